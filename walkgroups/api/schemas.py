"""
API request/response schemas. Pydantic only in api layer.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class CandidateSchema(BaseModel):
    id: str
    customer_id: str = ""
    address_id: str = ""
    latitude: float
    longitude: float
    desired_start: str  # ISO 8601, ej. "2024-01-15T10:00:00"
    duration_minutes: int = 60
    dog_ids: list[str] = Field(default_factory=list)
    dog_count: int | None = None
    postal_code: str = ""
    group_preference: str = "NO_PREFERENCE"  # NO_PREFERENCE | GROUP_PREFERRED | SOLO_ONLY
    max_group_size: int | None = None


class DogSchema(BaseModel):
    id: str
    vaccinated: bool = False
    friendly_with_dogs: bool = False
    friendly_with_people: bool = False


class SlotMemberSchema(BaseModel):
    booking_id: str
    latitude: float
    longitude: float
    dog_count: int = 1


class SlotSchema(BaseModel):
    id: str
    scheduled_date: date
    start_time: str
    end_time: str
    capacity: int
    current_dog_count: int | None = None
    status: str = "OPEN"
    latitude: float
    longitude: float
    radius_m: float = 0.0
    members: list[SlotMemberSchema] = Field(default_factory=list)
    walker_id: str | None = None
    accepted_by_walker: bool = False
    window_start: str | None = None
    window_end: str | None = None


class FormGroupsRequest(BaseModel):
    candidates: list[CandidateSchema]
    dogs: list[DogSchema]
    n_regions: int = Field(default=1, ge=1)


class CoordinateSchema(BaseModel):
    latitude: float
    longitude: float


class GroupSuggestionSchema(BaseModel):
    suggestion_id: str
    member_ids: list[str]
    centroid: CoordinateSchema
    meeting_point: CoordinateSchema
    radius_m: float
    window_start: datetime
    window_end: datetime
    total_dogs: int
    total_distance_m: float
    area_postal_code: str = ""
    score: float


class FormGroupsResponse(BaseModel):
    suggestions: list[GroupSuggestionSchema]
    ungroupable: list[str]
    ungroupable_reasons: dict[str, str]
    invalid: dict[str, str]


class SlotSearchRequest(BaseModel):
    slots: list[SlotSchema]
    latitude: float
    longitude: float
    dog_ids: list[str]
    dogs: list[DogSchema]
    desired_date: date


class SlotMatchSchema(BaseModel):
    slot_id: str
    distance_m: float
    remaining_after_join: int
    fit_score: float


class JoinRequest(BaseModel):
    slot: SlotSchema
    booking_id: str | None = None
    latitude: float
    longitude: float
    desired_start: str
    dog_ids: list[str]
    dogs: list[DogSchema]


class JoinResponse(BaseModel):
    accepted: bool
    reason: str | None = None
    new_centroid: CoordinateSchema | None = None
    new_radius_m: float | None = None
    new_dog_count: int | None = None
    becomes_full: bool | None = None


class LeaveRequest(BaseModel):
    slot: SlotSchema
    booking_id: str


class LeaveResponse(BaseModel):
    new_centroid: CoordinateSchema | None = None
    new_radius_m: float
    new_dog_count: int
    should_cancel: bool
    new_status: str
