"""
Shared factories for the group walk engine tests.

Provides:
- offset(): move a point N/E by meters
- candidate / dog / slot factories
- an eligible dog registry that grows as candidates are built
"""

import math
from datetime import date, datetime, timedelta
from typing import Iterable

import pytest

from walkgroups.core.geo import bounding_radius_m, centroid
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.models import (
    BookingCandidate,
    Coordinate,
    DogProfile,
    GroupWalkSlot,
    SlotMember,
    SlotStatus,
)

M_PER_DEG = 6371000.0 * math.pi / 180.0
BASE_LAT = 52.520
BASE_LNG = 13.400
BASE_START = datetime(2024, 1, 15, 10, 0)
WALK_DATE = date(2024, 1, 15)


def offset(north_m: float = 0.0, east_m: float = 0.0, lat: float = BASE_LAT, lng: float = BASE_LNG) -> Coordinate:
    return Coordinate(
        lat=lat + north_m / M_PER_DEG,
        lng=lng + east_m / (M_PER_DEG * math.cos(math.radians(lat))),
    )


def make_dog(dog_id: str, vaccinated: bool = True, friendly_with_dogs: bool = True) -> DogProfile:
    return DogProfile(dog_id=dog_id, vaccinated=vaccinated, friendly_with_dogs=friendly_with_dogs)


class Pool:
    """Builds candidates and keeps the dog registry they reference."""

    def __init__(self) -> None:
        self.dogs: dict[str, DogProfile] = {}
        self.candidates: list[BookingCandidate] = []

    def add(
        self,
        candidate_id: str,
        coordinate: Coordinate,
        start: datetime = BASE_START,
        dogs: int = 2,
        ineligible: Iterable[int] = (),
        duration: int = 60,
        **fields,
    ) -> BookingCandidate:
        bad = set(ineligible)
        dog_ids = []
        for k in range(dogs):
            dog_id = f"{candidate_id}-dog{k}"
            self.dogs[dog_id] = make_dog(dog_id, vaccinated=k not in bad)
            dog_ids.append(dog_id)
        cand = BookingCandidate(
            candidate_id=candidate_id,
            customer_id=f"cust-{candidate_id}",
            address_id=f"addr-{candidate_id}",
            coordinate=coordinate,
            desired_start=start,
            duration_minutes=duration,
            dog_ids=tuple(dog_ids),
            dog_count=dogs,
            postal_code=fields.pop("postal_code", "10115"),
            **fields,
        )
        self.candidates.append(cand)
        return cand


def make_slot(
    members: list[SlotMember],
    capacity: int = 6,
    status: SlotStatus = SlotStatus.OPEN,
    start: datetime = BASE_START,
    slot_id: str = "slot-1",
    current_dog_count: int | None = None,
    **kwargs,
) -> GroupWalkSlot:
    """Slot whose center/radius are consistent with its members."""
    if members:
        center = centroid((m.coordinate, m.dog_count) for m in members)
        radius = bounding_radius_m(center, [m.coordinate for m in members])
    else:
        center, radius = kwargs.pop("center", offset()), 0.0
    count = current_dog_count if current_dog_count is not None else sum(m.dog_count for m in members)
    return GroupWalkSlot(
        slot_id=slot_id,
        scheduled_date=start.date(),
        start_time=start,
        end_time=start + timedelta(minutes=60),
        capacity=capacity,
        current_dog_count=count,
        status=status,
        center=center,
        radius_m=radius,
        members=tuple(members),
        **kwargs,
    )


@pytest.fixture
def pool() -> Pool:
    return Pool()


@pytest.fixture
def config() -> GroupingConfig:
    return GroupingConfig(max_dogs_per_group=6, max_group_radius_m=2000.0, time_window_minutes=60)


@pytest.fixture
def eligible_dogs() -> list[DogProfile]:
    return [make_dog("new-dog0"), make_dog("new-dog1")]
