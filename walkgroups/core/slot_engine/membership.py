"""
Slot membership (join / leave) for open group walks.

Stateless validator/calculator: given a consistent slot snapshot it returns a proposed
delta; the persistence layer applies it atomically (slot lock or optimistic check on
current_dog_count) and retries on conflict by calling these functions again.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from walkgroups.core.geo import bounding_radius_m, centroid, distance_m
from walkgroups.domain.compatibility import are_dog_sets_compatible
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.errors import (
    InvalidInputError,
    MemberNotFoundError,
    RejectionReason,
    SlotStateError,
)
from walkgroups.domain.models import (
    MEMBERSHIP_STATUSES,
    Coordinate,
    DogProfile,
    GroupWalkSlot,
    JoinDelta,
    JoinOutcome,
    LeaveDelta,
    SlotMember,
    SlotStatus,
)

logger = logging.getLogger(__name__)


def slot_start_window(
    slot: GroupWalkSlot, config: GroupingConfig
) -> Tuple[datetime, datetime]:
    """Acceptable start window of the slot; falls back to start_time +/- W/2."""
    half = timedelta(minutes=config.half_window_minutes)
    start = slot.window_start if slot.window_start is not None else slot.start_time - half
    end = slot.window_end if slot.window_end is not None else slot.start_time + half
    return start, end


def _untracked_dogs(slot: GroupWalkSlot) -> int:
    """Dogs counted on the slot but not listed as members (e.g. the booking that opened it)."""
    return max(0, slot.current_dog_count - sum(m.dog_count for m in slot.members))


def _slot_geometry(
    members: Sequence[SlotMember], anchor: Optional[Coordinate] = None, anchor_dogs: int = 0
) -> Tuple[Coordinate, float]:
    """
    Weighted centroid and bounding radius of the members. Untracked dogs are placed
    at `anchor` (the slot's stored center) with weight `anchor_dogs`.
    """
    points = [(m.coordinate, m.dog_count) for m in members]
    if anchor is not None and anchor_dogs > 0:
        points.append((anchor, anchor_dogs))
    center = centroid(points)
    return center, bounding_radius_m(center, [p for p, _ in points])


def _join_booking_id(slot: GroupWalkSlot, booking_id: Optional[str]) -> str:
    taken = {m.booking_id for m in slot.members}
    if booking_id:
        if booking_id in taken:
            raise InvalidInputError(f"booking {booking_id} is already a member of slot {slot.slot_id}")
        return booking_id
    n = len(slot.members)
    while f"{slot.slot_id}:join:{n}" in taken:
        n += 1
    return f"{slot.slot_id}:join:{n}"


def _reject(slot: GroupWalkSlot, reason: RejectionReason) -> JoinOutcome:
    logger.debug("Join rejected for slot %s: %s", slot.slot_id, reason.value)
    return JoinOutcome(reason=reason)


def evaluate_join(
    slot: GroupWalkSlot,
    dogs: Sequence[Optional[DogProfile]],
    coordinate: Coordinate,
    desired_start: datetime,
    config: Optional[GroupingConfig] = None,
    booking_id: Optional[str] = None,
) -> JoinOutcome:
    """
    Validate a join against the slot snapshot. Checks, in order:
    status → capacity → dog eligibility → distance to the advertised center →
    recomputed bounding radius → start time inside the slot window.
    """
    if config is None:
        config = GroupingConfig()

    if slot.status not in MEMBERSHIP_STATUSES:
        return _reject(slot, RejectionReason.SLOT_NOT_JOINABLE)

    new_dogs = list(dogs)
    new_count = slot.current_dog_count + len(new_dogs)
    if new_count > slot.capacity:
        return _reject(slot, RejectionReason.CAPACITY_EXCEEDED)

    if not are_dog_sets_compatible(new_dogs):
        return _reject(slot, RejectionReason.INCOMPATIBLE_DOG)

    # Contra el centro existente: un join no debe arrastrar el área anunciada
    if distance_m(coordinate, slot.center) > config.max_group_radius_m:
        return _reject(slot, RejectionReason.OUT_OF_RADIUS)

    member = SlotMember(
        booking_id=_join_booking_id(slot, booking_id),
        coordinate=coordinate,
        dog_count=len(new_dogs),
    )
    members = tuple(slot.members) + (member,)
    new_center, new_radius = _slot_geometry(members, slot.center, _untracked_dogs(slot))
    if new_radius > config.max_group_radius_m:
        return _reject(slot, RejectionReason.OUT_OF_RADIUS)

    win_start, win_end = slot_start_window(slot, config)
    if not win_start <= desired_start <= win_end:
        return _reject(slot, RejectionReason.OUTSIDE_TIME_WINDOW)

    return JoinOutcome(
        delta=JoinDelta(
            new_centroid=new_center,
            new_radius_m=new_radius,
            new_dog_count=new_count,
            becomes_full=new_count == slot.capacity,
            members=members,
        )
    )


def evaluate_leave(slot: GroupWalkSlot, booking_id: str) -> LeaveDelta:
    """
    Geometry and count after `booking_id` leaves. With no dogs left the slot
    should be cancelled (the caller decides).
    """
    if slot.status not in MEMBERSHIP_STATUSES:
        raise SlotStateError(
            f"slot {slot.slot_id} is {slot.status.value}; membership can no longer change"
        )
    leaving = [m for m in slot.members if m.booking_id == booking_id]
    if not leaving:
        raise MemberNotFoundError(f"booking {booking_id} is not a member of slot {slot.slot_id}")

    untracked = _untracked_dogs(slot)
    remaining = tuple(m for m in slot.members if m.booking_id != booking_id)
    new_count = max(0, slot.current_dog_count - sum(m.dog_count for m in leaving))
    if not remaining and untracked == 0:
        return LeaveDelta(
            new_centroid=None,
            new_radius_m=0.0,
            new_dog_count=new_count,
            should_cancel=True,
            new_status=SlotStatus.CANCELLED,
            members=remaining,
        )
    new_center, new_radius = _slot_geometry(remaining, slot.center, untracked)
    return LeaveDelta(
        new_centroid=new_center,
        new_radius_m=new_radius,
        new_dog_count=new_count,
        should_cancel=False,
        new_status=SlotStatus.FULL if new_count >= slot.capacity else SlotStatus.OPEN,
        members=remaining,
    )
