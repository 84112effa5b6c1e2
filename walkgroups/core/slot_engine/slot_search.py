"""
Slot search: rank open slots for a customer's join request.
Radius query over slot centers with a haversine BallTree, then capacity/date filters.
"""

from datetime import date
from typing import List, Optional, Sequence

from sklearn.neighbors import BallTree

from walkgroups.core.geo import EARTH_RADIUS_M, coords_to_radians
from walkgroups.domain.compatibility import are_dog_sets_compatible
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.models import (
    Coordinate,
    DogProfile,
    GroupWalkSlot,
    SlotMatch,
    SlotStatus,
)


def find_candidate_slots(
    open_slots: Sequence[GroupWalkSlot],
    coordinate: Coordinate,
    dogs: Sequence[Optional[DogProfile]],
    desired_date: date,
    config: Optional[GroupingConfig] = None,
) -> List[SlotMatch]:
    """
    Slots the customer could join, by ascending distance, then ascending
    remaining capacity after the join (tighter packing first), then slot id.
    """
    if config is None:
        config = GroupingConfig()
    dogs = list(dogs)
    if not are_dog_sets_compatible(dogs):
        return []
    n_dogs = len(dogs)
    pool = [
        s
        for s in open_slots
        if s.status == SlotStatus.OPEN
        and s.scheduled_date == desired_date
        and s.remaining_capacity >= n_dogs
    ]
    if not pool:
        return []

    tree = BallTree(coords_to_radians([s.center for s in pool]), metric="haversine")
    idx, dist = tree.query_radius(
        coords_to_radians([coordinate]),
        r=config.max_group_radius_m / EARTH_RADIUS_M,
        return_distance=True,
    )
    matches: List[SlotMatch] = []
    for i, d_rad in zip(idx[0], dist[0]):
        slot = pool[int(i)]
        d_m = float(d_rad) * EARTH_RADIUS_M
        matches.append(
            SlotMatch(
                slot=slot,
                distance_m=d_m,
                remaining_after_join=slot.remaining_capacity - n_dogs,
                fit_score=max(0.0, 1.0 - d_m / config.max_group_radius_m),
            )
        )
    matches.sort(key=lambda m: (m.distance_m, m.remaining_after_join, m.slot.slot_id))
    return matches
