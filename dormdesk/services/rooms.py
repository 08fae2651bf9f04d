"""Filtering, ordering and grouping of rooms for the meter sheet and dashboard."""

import re
import unicodedata
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from dormdesk.core.config import settings
from dormdesk.models.enums import RoomStatus
from dormdesk.schemas.readings import ReadingInput
from dormdesk.schemas.rooms import Building, Contract, Room

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class RoomFilter:
    """What the user narrowed the room list down to."""

    building_id: str | None = None
    search: str = ""
    only_incomplete: bool = False


@dataclass
class BuildingGroup:
    """Consecutive rooms of one building in display order."""

    building_id: str | None
    label: str
    rooms: list[Room] = field(default_factory=list)


def _locale_key(text: str) -> str:
    return unicodedata.normalize("NFKC", text).casefold()


def _building_index(buildings: Iterable[Building]) -> dict[str, Building]:
    return {building.id: building for building in buildings}


def building_for(room: Room, index: Mapping[str, Building]) -> Building | None:
    """The room's building, embedded or looked up by id."""
    if room.building is not None:
        return room.building
    if room.building_id:
        return index.get(room.building_id)
    return None


def building_label(room: Room, index: Mapping[str, Building]) -> str:
    building = building_for(room, index)
    return building.label if building else ""


def active_tenant_name(room_id: str, contracts: Iterable[Contract]) -> str | None:
    """Name of the tenant on the room's active contract, if any."""
    for contract in contracts:
        if contract.room_id == room_id and contract.is_active:
            return contract.tenant.name if contract.tenant else None
    return None


def has_active_contract(room_id: str, contracts: Iterable[Contract]) -> bool:
    return any(c.room_id == room_id and c.is_active for c in contracts)


def is_annex_building(label: str, pattern: str | None = None) -> bool:
    """Annex buildings are listed after every other building."""
    pattern = settings.ANNEX_BUILDING_PATTERN if pattern is None else pattern
    if not pattern:
        return False
    return re.search(pattern, label, re.IGNORECASE) is not None


def _is_incomplete(value: ReadingInput | None) -> bool:
    if value is None:
        return True
    return not value.water.strip() or not value.electric.strip()


def filter_rooms(
    rooms: Iterable[Room],
    buildings: Iterable[Building],
    contracts: Sequence[Contract],
    values: Mapping[str, ReadingInput],
    room_filter: RoomFilter,
) -> list[Room]:
    """Apply the building, search and only-incomplete filters in that order."""
    index = _building_index(buildings)
    result = list(rooms)

    if room_filter.building_id:
        result = [r for r in result if r.building_id == room_filter.building_id]

    query = room_filter.search.strip().casefold()
    if query:
        matched = []
        for room in result:
            building = building_for(room, index)
            haystack = [
                active_tenant_name(room.id, contracts) or "",
                room.number or "",
                building.name if building else "",
                (building.code or "") if building else "",
            ]
            if any(query in part.casefold() for part in haystack):
                matched.append(room)
        result = matched

    if room_filter.only_incomplete:
        result = [r for r in result if _is_incomplete(values.get(r.id))]

    return result


def _room_number_key(number: str) -> tuple:
    match = _LEADING_INT.match(number or "")
    if match:
        return (0, int(match.group(1)), _locale_key(number))
    return (1, 0, _locale_key(number or ""))


def sort_rooms(
    rooms: Iterable[Room],
    buildings: Iterable[Building],
    annex_pattern: str | None = None,
) -> list[Room]:
    """Order rooms by annex flag, building, floor, then room number.

    Numeric room numbers sort numerically and ahead of non-numeric ones.
    The ordering is total; equal keys keep their input order.
    """
    index = _building_index(buildings)

    def sort_key(room: Room) -> tuple:
        label = building_label(room, index)
        return (
            is_annex_building(label, annex_pattern),
            _locale_key(label),
            room.floor or 0,
            _room_number_key(room.number),
            room.number or "",
        )

    return sorted(rooms, key=sort_key)


def group_by_building(rooms: Iterable[Room], buildings: Iterable[Building]) -> list[BuildingGroup]:
    """Split an ordered room list into runs of the same building."""
    index = _building_index(buildings)
    groups: list[BuildingGroup] = []
    for room in rooms:
        if not groups or groups[-1].building_id != room.building_id:
            groups.append(
                BuildingGroup(
                    building_id=room.building_id,
                    label=building_label(room, index) or "-",
                )
            )
        groups[-1].rooms.append(room)
    return groups


def build_room_view(
    rooms: Iterable[Room],
    buildings: Sequence[Building],
    contracts: Sequence[Contract],
    values: Mapping[str, ReadingInput],
    room_filter: RoomFilter,
) -> list[Room]:
    """Filtered rooms in display order."""
    visible = filter_rooms(rooms, buildings, contracts, values, room_filter)
    return sort_rooms(visible, buildings)


def building_room_counts(rooms: Iterable[Room]) -> Counter:
    """Rooms per building id, for the building selector."""
    return Counter(room.building_id for room in rooms)


def summarize_room_status(rooms: Iterable[Room]) -> dict[RoomStatus, int]:
    """Room count per status, every status present."""
    counts = {status: 0 for status in RoomStatus}
    for room in rooms:
        counts[room.status] += 1
    return counts
