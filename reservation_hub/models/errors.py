"""Error kinds raised by the reservation engine."""

from __future__ import annotations


class ReservationHubError(Exception):
    """Base class for recoverable engine errors reported to the caller."""

    status_code = 400

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.kind


class InvalidInput(ReservationHubError):
    """A blank or out-of-range field."""


class InvalidTimeSlot(ReservationHubError):
    """Day or slot outside the fixed weekly grid."""


class IndexOutOfRange(ReservationHubError, IndexError):
    """Schedule cell addressed outside the grid."""


class NotFound(ReservationHubError):
    """Unknown resource, principal, or reservation key."""

    status_code = 404


class DuplicateIdentity(ReservationHubError):
    """Resource key or username already taken."""

    status_code = 409


class Conflict(ReservationHubError):
    """Slot already held by an active reservation."""

    status_code = 409


class Unauthorized(ReservationHubError):
    """Role or ownership check failed."""

    status_code = 403


class WrongResourceType(ReservationHubError):
    """Type-specific edit applied to the other resource variant."""


class HasActiveBookings(ReservationHubError):
    """Removal blocked by active reservations."""

    status_code = 409
