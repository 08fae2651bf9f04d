"""Tests for structured maintenance details."""

from dormdesk.models.enums import MaintenanceKind, MaintenanceStatus
from dormdesk.schemas.maintenance import MaintenanceDetails, MaintenanceRequest
from dormdesk.schemas.rooms import Room
from dormdesk.services.maintenance import (
    build_request,
    details_for,
    filter_requests,
    parse_legacy_description,
)


def test_parse_plain_note():
    details = parse_legacy_description("Tap is leaking\nin the bathroom")
    assert details.kind == MaintenanceKind.REPAIR
    assert details.note == "Tap is leaking\nin the bathroom"
    assert details.images == []


def test_parse_image_lines():
    details = parse_legacy_description(
        "Broken window\nIMAGE1: https://cdn.test/a.jpg\nIMAGE2: https://cdn.test/b.png"
    )
    assert details.images == ["https://cdn.test/a.jpg", "https://cdn.test/b.png"]
    assert details.note == "Broken window"


def test_parse_inline_image_url():
    details = parse_legacy_description("See photo https://cdn.test/x.webp?size=large")
    assert details.images == ["https://cdn.test/x.webp?size=large"]
    assert details.note == "See photo"


def test_parse_move_out_prefixes():
    details = parse_legacy_description(
        "Move out inspection\n"
        "TENANT: Somchai\n"
        "PHONE: 0812345678\n"
        "WATER_IMG: https://cdn.test/w.jpg\n"
        "ELECTRIC_IMG: https://cdn.test/e.jpg"
    )
    assert details.kind == MaintenanceKind.MOVE_OUT
    assert details.tenant_name == "Somchai"
    assert details.phone == "0812345678"
    assert details.water_image_url == "https://cdn.test/w.jpg"
    assert details.electric_image_url == "https://cdn.test/e.jpg"
    assert details.note == "Move out inspection"


def test_parse_empty_description():
    assert parse_legacy_description(None) == MaintenanceDetails()


def test_structured_details_win():
    request = MaintenanceRequest(
        id="m1",
        room_id="r1",
        title="Leak",
        description="IMAGE: https://cdn.test/old.jpg",
        details=MaintenanceDetails(note="structured"),
    )
    assert details_for(request).note == "structured"
    assert details_for(request).images == []


def test_build_request_carries_structured_details():
    payload = build_request(
        "r1", "  Leak ", " Under the sink ", image_urls=["https://cdn.test/a.jpg", " ", ""]
    )
    assert payload.title == "Leak"
    assert payload.description == "Under the sink"
    assert payload.details.kind == MaintenanceKind.REPAIR
    assert payload.details.images == ["https://cdn.test/a.jpg"]
    body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert body["roomId"] == "r1"
    assert body["details"]["kind"] == "repair"


def test_filter_requests():
    requests = [
        MaintenanceRequest(
            id="m1",
            room_id="r1",
            title="Leak",
            status=MaintenanceStatus.PENDING,
            room=Room(id="r1", number="101"),
        ),
        MaintenanceRequest(
            id="m2",
            room_id="r2",
            title="Checkout",
            description="TENANT: Malee",
            status=MaintenanceStatus.COMPLETED,
        ),
    ]
    assert [r.id for r in filter_requests(requests, status=MaintenanceStatus.PENDING)] == ["m1"]
    assert [r.id for r in filter_requests(requests, kind=MaintenanceKind.MOVE_OUT)] == ["m2"]
    assert [r.id for r in filter_requests(requests, search="101")] == ["m1"]
    assert [r.id for r in filter_requests(requests, search="leak")] == ["m1"]
