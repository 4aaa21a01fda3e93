"""Search and filter functionality tests."""

from __future__ import annotations

from reservation_hub.models.entities import Equipment, ResourceType, Room


def _ids(resources):
    return [resource.resource_id for resource in resources]


def test_name_search_is_case_insensitive_substring(directory):
    assert _ids(directory.search_by_name("room")) == ["SR102", "SR103"]
    assert _ids(directory.search_by_name("  MICRO ")) == ["LE201"]
    assert directory.search_by_name("   ") == []


def test_key_search(directory):
    assert _ids(directory.search_by_key("le20")) == ["LE201", "LE202", "LE203"]
    assert _ids(directory.search_by_key("101")) == ["SR101"]
    assert directory.search_by_key("") == []


def test_type_filter(directory):
    rooms = directory.filter_by_type("room")
    equipment = directory.filter_by_type(ResourceType.EQUIPMENT)

    assert all(isinstance(resource, Room) for resource in rooms)
    assert _ids(rooms) == ["SR101", "SR102", "SR103"]
    assert all(isinstance(resource, Equipment) for resource in equipment)
    assert _ids(directory.filter_by_type("Lab Equipment")) == _ids(equipment)
    assert directory.filter_by_type("vehicle") == []


def test_room_capacity_filter(directory):
    assert _ids(directory.rooms_with_min_capacity(12)) == ["SR101", "SR103"]
    assert _ids(directory.rooms_with_min_capacity(21)) == []


def test_equipment_category_filter(directory):
    assert _ids(directory.equipment_by_category("chem")) == ["LE202"]
    assert _ids(directory.equipment_by_category("ENGINEERING")) == ["LE203"]
    assert directory.equipment_by_category(" ") == []


def test_availability_filter(directory):
    directory.make_reservation("SR103", "student1", 2, 6)

    assert "SR103" not in _ids(directory.filter_by_availability(True))
    assert _ids(directory.filter_by_availability(False)) == ["SR103"]


def test_queries_do_not_mutate(directory):
    before = repr(directory)
    directory.search_by_name("lab")
    directory.filter_by_type("room")
    directory.is_resource_available("SR101")
    directory.is_slot_available("SR101", 0, 0)

    assert repr(directory) == before
    assert directory.find_principal("nobody") is None


def test_listing_filters_over_http(client):
    response = client.get("/resources/?type=room&min_capacity=10")
    assert response.status_code == 200
    assert [item["resource_id"] for item in response.get_json()["resources"]] == ["SR101", "SR103"]

    response = client.get("/resources/?q=lab&available=true")
    assert [item["resource_id"] for item in response.get_json()["resources"]] == ["SR101"]

    response = client.get("/resources/?category=bio")
    assert [item["resource_id"] for item in response.get_json()["resources"]] == ["LE201"]


def test_listing_rejects_bad_filter_values(client):
    response = client.get("/resources/?min_capacity=lots")
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidInput"
