"""
Slot use cases: search open slots, evaluate a join, evaluate a leave.
Each returns a proposal; applying it transactionally is the caller's job.
"""

from datetime import date
from typing import Optional

from walkgroups.application.config import DEFAULT_GROUPING_CONFIG
from walkgroups.core.slot_engine.membership import evaluate_join, evaluate_leave
from walkgroups.core.slot_engine.slot_search import find_candidate_slots
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.errors import InvalidInputError
from walkgroups.domain.models import (
    Coordinate,
    DogProfile,
    JoinOutcome,
    LeaveDelta,
    SlotMatch,
)
from walkgroups.infrastructure.snapshot_loader import (
    parse_datetime,
    load_dogs,
    parse_slot,
)


def _dogs_for(dog_ids: list[str], raw_dogs: list[dict]) -> list[Optional[DogProfile]]:
    """Unknown ids stay as None so the eligibility gate rejects them."""
    by_id = load_dogs(raw_dogs)
    return [by_id.get(str(d)) for d in dog_ids]


def search_slots(
    raw_slots: list[dict],
    latitude: float,
    longitude: float,
    dog_ids: list[str],
    raw_dogs: list[dict],
    desired_date: date,
    config: Optional[GroupingConfig] = None,
) -> list[SlotMatch]:
    if config is None:
        config = DEFAULT_GROUPING_CONFIG
    slots = [parse_slot(r) for r in raw_slots]
    return find_candidate_slots(
        slots, Coordinate(lat=latitude, lng=longitude), _dogs_for(dog_ids, raw_dogs), desired_date, config
    )


def join_slot(
    raw_slot: dict,
    latitude: float,
    longitude: float,
    desired_start: str,
    dog_ids: list[str],
    raw_dogs: list[dict],
    booking_id: Optional[str] = None,
    config: Optional[GroupingConfig] = None,
) -> JoinOutcome:
    if config is None:
        config = DEFAULT_GROUPING_CONFIG
    if not dog_ids:
        raise InvalidInputError("join request without dogs")
    return evaluate_join(
        parse_slot(raw_slot),
        _dogs_for(dog_ids, raw_dogs),
        Coordinate(lat=latitude, lng=longitude),
        parse_datetime(desired_start),
        config,
        booking_id=booking_id,
    )


def leave_slot(raw_slot: dict, booking_id: str) -> LeaveDelta:
    return evaluate_leave(parse_slot(raw_slot), booking_id)
