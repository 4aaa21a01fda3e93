"""HTTP booking workflow, resource admin routes and CLI hooks."""

from __future__ import annotations

from pathlib import Path

from reservation_hub.app import create_app
from reservation_hub.config import TestingConfig
from reservation_hub.data_access.db import get_db
from reservation_hub.data_access.snapshot_dao import save_snapshot
from reservation_hub.services.state import get_directory


def _login(client, username: str) -> None:
    client.post("/auth/login", data={"username": username})


def _logout(client) -> None:
    client.get("/auth/logout")


def test_booking_conflict_and_cancel_flow(client):
    _login(client, "student1")
    created = client.post("/bookings/create/SR101", data={"day": "0", "slot": "1"})
    assert created.status_code == 201
    body = created.get_json()
    assert body["reservation_id"] == "RES-1"
    assert body["time_range"] == "10:00-12:00"
    _logout(client)

    _login(client, "student2")
    clash = client.post("/bookings/create/SR101", data={"day": "0", "slot": "1"})
    assert clash.status_code == 409
    assert clash.get_json()["error"] == "Conflict"

    forbidden = client.post("/bookings/RES-1/cancel")
    assert forbidden.status_code == 403
    assert forbidden.get_json()["error"] == "Unauthorized"
    assert client.get("/bookings/RES-1").status_code == 403
    _logout(client)

    _login(client, "admin")
    cancelled = client.post("/bookings/RES-1/cancel")
    assert cancelled.get_json()["status"] == "CANCELLED"
    assert client.get("/resources/SR101/slots/0/1").get_json()["available"] is True
    _logout(client)

    _login(client, "student2")
    retry = client.post("/bookings/create/SR101", data={"day": "0", "slot": "1"})
    assert retry.status_code == 201
    assert retry.get_json()["reservation_id"] == "RES-2"
    assert [item["reservation_id"] for item in client.get("/bookings/my").get_json()["reservations"]] == ["RES-2"]


def test_out_of_grid_booking_reports_invalid_time_slot(client, app_directory):
    _login(client, "student1")

    response = client.post("/bookings/create/NOPE", data={"day": "9", "slot": "12"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidTimeSlot"
    assert app_directory.list_reservations() == []


def test_booking_requires_login(client):
    response = client.post("/bookings/create/SR101", data={"day": "0", "slot": "0"})
    assert response.status_code == 401


def test_booking_form_requires_integers(client):
    _login(client, "student1")
    response = client.post("/bookings/create/SR101", data={"day": "monday", "slot": "0"})
    assert response.status_code == 400
    assert "day" in response.get_json()["fields"]


def test_resource_schedule_and_detail(client):
    _login(client, "student1")
    client.post("/bookings/create/LE201", data={"day": "2", "slot": "0"})
    client.post("/bookings/create/LE201", data={"day": "0", "slot": "7"})

    schedule = client.get("/resources/LE201/schedule").get_json()
    assert schedule["bookings"] == [
        "Monday 23:00-1:00: student1 (RES-2)",
        "Wednesday 8:00-10:00: student1 (RES-1)",
    ]

    detail = client.get("/resources/LE201").get_json()
    assert detail["available"] is False
    assert len(detail["reservations"]) == 2
    assert client.get("/resources/ZZ999").status_code == 404


def test_student_cannot_manage_resources(client, app_directory):
    _login(client, "student1")

    assert client.post("/resources/new", data={"resource_id": "", "name": ""}).status_code == 403
    assert client.post("/resources/SR101/edit", data={"capacity": "-1"}).status_code == 403
    assert client.post("/resources/SR101/remove").status_code == 403
    assert app_directory.get_resource("SR101").capacity == 20


def test_admin_resource_lifecycle(client, app_directory):
    _login(client, "admin")

    created = client.post(
        "/resources/new",
        data={"resource_id": "LE204", "name": "Oscilloscopes", "resource_type": "Equipment", "category": "Physics"},
    )
    assert created.status_code == 201
    assert created.get_json()["details"] == "Category: Physics"

    wrong = client.post("/resources/LE204/edit", data={"capacity": "3"})
    assert wrong.status_code == 400
    assert wrong.get_json()["error"] == "WrongResourceType"

    edited = client.post("/resources/LE204/edit", data={"name": "Digital Oscilloscopes", "category": ""})
    assert edited.get_json()["name"] == "Digital Oscilloscopes"
    assert edited.get_json()["category"] == "Physics"

    bad_room = client.post(
        "/resources/new", data={"resource_id": "SR200", "name": "Loft", "resource_type": "Room", "capacity": "0"}
    )
    assert bad_room.status_code == 400
    assert app_directory.get_resource("SR200") is None

    client.post("/bookings/create/LE204", data={"day": "1", "slot": "1"})
    blocked = client.post("/resources/LE204/remove")
    assert blocked.status_code == 409
    assert blocked.get_json()["error"] == "HasActiveBookings"

    client.post("/bookings/RES-1/cancel")
    assert client.post("/resources/LE204/remove").status_code == 200
    assert app_directory.get_resource("LE204") is None


def test_snapshot_hooks_over_http(client, app):
    _login(client, "admin")
    client.post("/bookings/create/SR103", data={"day": "4", "slot": "4"})
    assert client.post("/admin/snapshot/save").status_code == 200

    client.post("/bookings/create/SR103", data={"day": "4", "slot": "5"})
    loaded = client.post("/admin/snapshot/load")
    assert loaded.status_code == 200
    assert loaded.get_json()["reservations"] == 1

    with app.app_context():
        directory = get_directory()
        assert [item.reservation_id for item in directory.list_reservations()] == ["RES-1"]
        directory.make_reservation("SR103", "admin", 4, 5)

    reservations = client.get("/admin/reservations").get_json()
    assert reservations["active"] == 2


def test_export_hook_over_http(client, app):
    _login(client, "admin")
    response = client.post("/admin/export")

    assert response.status_code == 200
    files = response.get_json()["files"]
    assert set(files) == {"resources.txt", "reservations.txt", "users.txt"}
    assert Path(files["users.txt"]).parent == Path(app.config["EXPORT_FOLDER"])


def test_cli_save_load_and_export(runner, app, tmp_path):
    with app.app_context():
        get_directory().make_reservation("SR101", "student1", 0, 0)

    assert "Snapshot saved" in runner.invoke(args=["save-snapshot"]).output

    with app.app_context():
        get_directory().make_reservation("SR101", "student1", 0, 1)

    result = runner.invoke(args=["load-snapshot"])
    assert result.exit_code == 0
    with app.app_context():
        assert len(get_directory().list_reservations()) == 1

    export_dir = tmp_path / "cli-export"
    result = runner.invoke(args=["export-text", "--folder", str(export_dir)])
    assert result.exit_code == 0
    assert (export_dir / "reservations.txt").exists()


def test_saved_snapshot_is_restored_on_startup(app):
    with app.app_context():
        get_directory().make_reservation("SR102", "student2", 3, 3)
        save_snapshot(get_directory(), get_db())

    database_url = app.config["DATABASE_URL"]

    class _RestoringConfig(TestingConfig):
        DATABASE_URL = database_url
        LOAD_SNAPSHOT_ON_START = True

    restored_app = create_app(_RestoringConfig)
    with restored_app.app_context():
        restored = get_directory()
        assert restored.get_reservation("RES-1").username == "student2"
        assert restored.make_reservation("SR102", "student2", 3, 4).reservation_id == "RES-2"


def test_reload_over_http_never_reissues_ids(client, app):
    _login(client, "admin")
    assert client.post("/admin/snapshot/save").status_code == 200
    with app.app_context():
        directory = get_directory()
        issued_user = directory.add_user("bob").user_id
        issued_booking = directory.make_reservation("SR101", "bob", 0, 0).reservation_id

    assert client.post("/admin/snapshot/load").status_code == 200

    with app.app_context():
        directory = get_directory()
        assert directory.add_user("carol").user_id != issued_user
        assert directory.make_reservation("SR101", "carol", 0, 0).reservation_id != issued_booking


def test_cli_backup_file_round_trip(runner, app, tmp_path):
    backup = tmp_path / "backup.db"
    with app.app_context():
        get_directory().make_reservation("LE203", "student2", 1, 6)

    result = runner.invoke(args=["save-snapshot", "--database", str(backup)])
    assert result.exit_code == 0
    assert backup.exists()

    with app.app_context():
        get_directory().make_reservation("LE203", "student2", 1, 7)

    result = runner.invoke(args=["load-snapshot", "--database", str(backup)])
    assert result.exit_code == 0
    with app.app_context():
        directory = get_directory()
        assert [item.slot for item in directory.list_reservations()] == [6]
        assert directory.make_reservation("LE203", "student2", 2, 0).reservation_id == "RES-3"

    missing = runner.invoke(args=["load-snapshot", "--database", str(tmp_path / "missing.db")])
    assert missing.exit_code != 0
    assert "Snapshot tables are missing" in missing.output
