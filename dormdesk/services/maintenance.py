"""Structured details for maintenance tickets.

New tickets carry a ``MaintenanceDetails`` record next to the free-text
description. Older tickets only have the description, with images and
move-out data written as prefixed lines; those are parsed on read.
"""

import re
from collections.abc import Iterable

from dormdesk.models.enums import MaintenanceKind, MaintenanceStatus
from dormdesk.schemas.maintenance import (
    MaintenanceDetails,
    MaintenanceRequest,
    MaintenanceRequestCreate,
)

_MOVE_OUT_PREFIXES = {
    "WATER_IMG": "water_image_url",
    "ELECTRIC_IMG": "electric_image_url",
    "TENANT": "tenant_name",
    "PHONE": "phone",
}
_IMAGE_LINE = re.compile(r"^IMAGE\d*:", re.IGNORECASE)
_URL = re.compile(r"https?://\S+")
_IMAGE_URL = re.compile(r"\.(png|jpg|jpeg|gif|webp)(\?|$)", re.IGNORECASE)


def _after_colon(line: str) -> str:
    return line.split(":", 1)[1].strip() if ":" in line else ""


def parse_legacy_description(description: str | None) -> MaintenanceDetails:
    """Recover structured details from a description-only ticket."""
    details = MaintenanceDetails()
    if not description:
        return details

    note_lines = []
    lines = [line.strip() for line in description.split("\n")]
    for line in filter(None, lines):
        prefix = line.split(":", 1)[0].upper()
        if ":" in line and prefix in _MOVE_OUT_PREFIXES:
            value = _after_colon(line)
            if value:
                setattr(details, _MOVE_OUT_PREFIXES[prefix], value)
            details.kind = MaintenanceKind.MOVE_OUT
            continue
        if _IMAGE_LINE.match(line):
            url = _after_colon(line)
            if url:
                details.images.append(url)
            continue
        match = _URL.search(line)
        if match and _IMAGE_URL.search(match.group(0)):
            details.images.append(match.group(0))
            rest = line.replace(match.group(0), "").strip()
            if rest:
                note_lines.append(rest)
            continue
        note_lines.append(line)

    details.note = "\n".join(note_lines)
    return details


def details_for(request: MaintenanceRequest) -> MaintenanceDetails:
    """Structured details, falling back to parsing the description."""
    if request.details is not None:
        return request.details
    return parse_legacy_description(request.description)


def build_request(
    room_id: str,
    title: str,
    note: str,
    image_urls: Iterable[str] = (),
    reported_by: str | None = None,
) -> MaintenanceRequestCreate:
    """Ticket payload for a repair reported from the dashboard."""
    images = [url.strip() for url in image_urls if url and url.strip()]
    note = note.strip()
    return MaintenanceRequestCreate(
        room_id=room_id,
        title=title.strip(),
        description=note or None,
        details=MaintenanceDetails(kind=MaintenanceKind.REPAIR, images=images, note=note),
        reported_by=reported_by,
    )


def filter_requests(
    requests: Iterable[MaintenanceRequest],
    status: MaintenanceStatus | None = None,
    kind: MaintenanceKind | None = None,
    search: str = "",
) -> list[MaintenanceRequest]:
    """Tickets matching status, kind and a search over title, note and room number."""
    query = search.strip().casefold()
    result = []
    for request in requests:
        if status is not None and request.status != status:
            continue
        details = details_for(request)
        if kind is not None and details.kind != kind:
            continue
        if query:
            haystack = [request.title, details.note, request.room.number if request.room else ""]
            if not any(query in part.casefold() for part in haystack):
                continue
        result.append(request)
    return result
