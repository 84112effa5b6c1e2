"""
Group walk API router. Calls application only. No business logic.
"""

from fastapi import APIRouter, HTTPException

from walkgroups.api.schemas import (
    CoordinateSchema,
    FormGroupsRequest,
    FormGroupsResponse,
    GroupSuggestionSchema,
    JoinRequest,
    JoinResponse,
    LeaveRequest,
    LeaveResponse,
    SlotMatchSchema,
    SlotSearchRequest,
)
from walkgroups.application.use_cases.form_groups import form_groups
from walkgroups.application.use_cases.join_slot import join_slot, leave_slot, search_slots
from walkgroups.domain.errors import GroupingError, InvalidInputError
from walkgroups.domain.models import Coordinate

router = APIRouter()


def _coord(c: Coordinate | None) -> CoordinateSchema | None:
    if c is None:
        return None
    return CoordinateSchema(latitude=c.lat, longitude=c.lng)


@router.post("/groups/form", response_model=FormGroupsResponse)
def post_form_groups(request: FormGroupsRequest) -> FormGroupsResponse:
    """
    POST /v1/groups/form
    Formation pass over the submitted pool. Suggestions come ordered by score desc.
    """
    result = form_groups(
        [c.model_dump() for c in request.candidates],
        [d.model_dump() for d in request.dogs],
        n_regions=request.n_regions,
    )
    return FormGroupsResponse(
        suggestions=[
            GroupSuggestionSchema(
                suggestion_id=s.suggestion_id,
                member_ids=s.member_ids,
                centroid=_coord(s.centroid),
                meeting_point=_coord(s.meeting_point),
                radius_m=s.radius_m,
                window_start=s.window_start,
                window_end=s.window_end,
                total_dogs=s.total_dogs,
                total_distance_m=s.total_distance_m,
                area_postal_code=s.area_postal_code,
                score=s.score,
            )
            for s in result.suggestions
        ],
        ungroupable=result.ungroupable_ids,
        ungroupable_reasons=result.ungroupable_reasons,
        invalid=result.invalid,
    )


@router.post("/slots/search", response_model=list[SlotMatchSchema])
def post_search_slots(request: SlotSearchRequest) -> list[SlotMatchSchema]:
    try:
        matches = search_slots(
            [s.model_dump() for s in request.slots],
            request.latitude,
            request.longitude,
            request.dog_ids,
            [d.model_dump() for d in request.dogs],
            request.desired_date,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return [
        SlotMatchSchema(
            slot_id=m.slot.slot_id,
            distance_m=m.distance_m,
            remaining_after_join=m.remaining_after_join,
            fit_score=m.fit_score,
        )
        for m in matches
    ]


@router.post("/slots/join", response_model=JoinResponse)
def post_join_slot(request: JoinRequest) -> JoinResponse:
    """
    POST /v1/slots/join
    Evaluates the join only; the caller persists the returned delta.
    """
    try:
        outcome = join_slot(
            request.slot.model_dump(),
            request.latitude,
            request.longitude,
            request.desired_start,
            request.dog_ids,
            [d.model_dump() for d in request.dogs],
            booking_id=request.booking_id,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not outcome.accepted:
        return JoinResponse(accepted=False, reason=outcome.reason.value)
    d = outcome.delta
    return JoinResponse(
        accepted=True,
        new_centroid=_coord(d.new_centroid),
        new_radius_m=d.new_radius_m,
        new_dog_count=d.new_dog_count,
        becomes_full=d.becomes_full,
    )


@router.post("/slots/leave", response_model=LeaveResponse)
def post_leave_slot(request: LeaveRequest) -> LeaveResponse:
    try:
        delta = leave_slot(request.slot.model_dump(), request.booking_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GroupingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return LeaveResponse(
        new_centroid=_coord(delta.new_centroid),
        new_radius_m=delta.new_radius_m,
        new_dog_count=delta.new_dog_count,
        should_cancel=delta.should_cancel,
        new_status=delta.new_status.value,
    )
