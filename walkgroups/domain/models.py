"""
Group walk domain models. Dataclasses only. No FastAPI, no external deps beyond dataclasses/typing.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from walkgroups.domain.errors import InvalidInputError, RejectionReason


@dataclass(frozen=True)
class Coordinate:
    """(lat, lng) in decimal degrees."""
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise InvalidInputError(f"non-finite coordinate ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidInputError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidInputError(f"longitude out of range: {self.lng}")


@dataclass(frozen=True)
class DogProfile:
    dog_id: str
    vaccinated: bool
    friendly_with_dogs: bool
    friendly_with_people: bool = True


class GroupPreference(str, Enum):
    NO_PREFERENCE = "NO_PREFERENCE"
    GROUP_PREFERRED = "GROUP_PREFERRED"
    SOLO_ONLY = "SOLO_ONLY"


@dataclass(frozen=True)
class BookingCandidate:
    """An ungrouped walk request read from the pool. Never mutated by the engine."""
    candidate_id: str
    customer_id: str
    address_id: str
    coordinate: Coordinate
    desired_start: datetime
    duration_minutes: int
    dog_ids: Tuple[str, ...]
    dog_count: int
    postal_code: str = ""
    group_preference: GroupPreference = GroupPreference.NO_PREFERENCE
    # Tope de perros que el cliente acepta en su grupo (None = sin tope propio)
    max_group_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"candidate {self.candidate_id}: duration must be positive, got {self.duration_minutes}"
            )
        if self.dog_count < 0:
            raise InvalidInputError(f"candidate {self.candidate_id}: negative dog count")
        if self.dog_count != len(self.dog_ids):
            raise InvalidInputError(
                f"candidate {self.candidate_id}: dog_count={self.dog_count} "
                f"but {len(self.dog_ids)} dog ids"
            )
        if self.max_group_size is not None and self.max_group_size <= 0:
            raise InvalidInputError(
                f"candidate {self.candidate_id}: max_group_size must be positive, got {self.max_group_size}"
            )


@dataclass(frozen=True)
class GroupSuggestion:
    """Output of one formation pass. Ephemeral: the review step decides what becomes a slot."""
    suggestion_id: str
    member_ids: List[str]
    centroid: Coordinate
    radius_m: float
    window_start: datetime
    window_end: datetime
    total_dogs: int
    score: float
    meeting_point: Coordinate
    total_distance_m: float  # suma de distancias de cada miembro al punto de encuentro
    area_postal_code: str = ""  # código postal más frecuente entre los miembros


@dataclass
class FormationResult:
    suggestions: List[GroupSuggestion]
    ungroupable_ids: List[str]
    ungroupable_reasons: Dict[str, str] = field(default_factory=dict)  # id -> "solo_only" | "ineligible_dog" | "no_feasible_group"
    invalid: Dict[str, str] = field(default_factory=dict)  # id -> error message (INVALID_INPUT)


class SlotStatus(str, Enum):
    OPEN = "OPEN"
    FULL = "FULL"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


MEMBERSHIP_STATUSES = frozenset({SlotStatus.OPEN, SlotStatus.FULL})


@dataclass(frozen=True)
class SlotMember:
    booking_id: str
    coordinate: Coordinate
    dog_count: int


@dataclass(frozen=True)
class GroupWalkSlot:
    """Persisted externally. The engine only reads it and proposes deltas."""
    slot_id: str
    scheduled_date: date
    start_time: datetime
    end_time: datetime
    capacity: int
    current_dog_count: int
    status: SlotStatus
    center: Coordinate
    radius_m: float
    members: Tuple[SlotMember, ...] = ()
    walker_id: Optional[str] = None
    accepted_by_walker: bool = False
    # Ventana de inicio aceptable; si falta se usa start_time +/- W/2
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.capacity - self.current_dog_count)


@dataclass(frozen=True)
class JoinDelta:
    new_centroid: Coordinate
    new_radius_m: float
    new_dog_count: int
    becomes_full: bool
    members: Tuple[SlotMember, ...]


@dataclass(frozen=True)
class JoinOutcome:
    delta: Optional[JoinDelta] = None
    reason: Optional[RejectionReason] = None

    @property
    def accepted(self) -> bool:
        return self.delta is not None


@dataclass(frozen=True)
class LeaveDelta:
    new_centroid: Optional[Coordinate]  # None when no members remain
    new_radius_m: float
    new_dog_count: int
    should_cancel: bool
    new_status: SlotStatus
    members: Tuple[SlotMember, ...]


@dataclass(frozen=True)
class SlotMatch:
    """One ranked slot for a join request."""
    slot: GroupWalkSlot
    distance_m: float
    remaining_after_join: int
    fit_score: float
