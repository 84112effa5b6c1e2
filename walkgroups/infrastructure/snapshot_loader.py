"""
Snapshot loader. Raw dict -> domain values (candidates, dogs, slots).

A malformed record is isolated: it is reported in the `invalid` map and the
rest of the snapshot loads normally.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Tuple

from walkgroups.domain.errors import InvalidInputError
from walkgroups.domain.models import (
    BookingCandidate,
    Coordinate,
    DogProfile,
    GroupPreference,
    GroupWalkSlot,
    SlotMember,
    SlotStatus,
)

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    # UTC naive: mezclar offsets rompe la comparación de horarios
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> datetime:
    """
    Accepts datetime or ISO 8601 string ('2024-01-15T10:00:00', trailing 'Z' allowed).
    Offset-aware values are converted to UTC and returned naive.
    """
    if isinstance(value, datetime):
        return _naive_utc(value)
    if not value or not isinstance(value, str):
        raise InvalidInputError(f"invalid datetime: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _naive_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise InvalidInputError(f"invalid datetime: {value!r}") from exc


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidInputError(f"invalid date: {value!r}") from exc


def _coordinate(raw: dict) -> Coordinate:
    try:
        return Coordinate(lat=float(raw["latitude"]), lng=float(raw["longitude"]))
    except InvalidInputError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInputError(f"missing or malformed coordinate: {exc}") from exc


def parse_candidate(raw: dict) -> BookingCandidate:
    """Single raw record -> BookingCandidate. Raises InvalidInputError."""
    candidate_id = raw.get("id")
    if not candidate_id:
        raise InvalidInputError("candidate without id")
    dog_ids = tuple(str(d) for d in (raw.get("dog_ids") or ()))
    try:
        duration = int(raw.get("duration_minutes", raw.get("duration", 0)))
        dog_count = int(raw["dog_count"]) if raw.get("dog_count") is not None else len(dog_ids)
        max_group_size = int(raw["max_group_size"]) if raw.get("max_group_size") is not None else None
        preference = GroupPreference(raw.get("group_preference") or GroupPreference.NO_PREFERENCE)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"candidate {candidate_id}: {exc}") from exc
    return BookingCandidate(
        candidate_id=str(candidate_id),
        customer_id=str(raw.get("customer_id", "")),
        address_id=str(raw.get("address_id", "")),
        coordinate=_coordinate(raw),
        desired_start=parse_datetime(raw.get("desired_start")),
        duration_minutes=duration,
        dog_ids=dog_ids,
        dog_count=dog_count,
        postal_code=str(raw.get("postal_code") or ""),
        group_preference=preference,
        max_group_size=max_group_size,
    )


def load_candidates(raw_candidates: List[dict]) -> Tuple[List[BookingCandidate], Dict[str, str]]:
    """Returns (valid candidates in input order, invalid: id -> message)."""
    result: List[BookingCandidate] = []
    invalid: Dict[str, str] = {}
    for pos, raw in enumerate(raw_candidates):
        try:
            result.append(parse_candidate(raw))
        except InvalidInputError as exc:
            key = str(raw.get("id") or f"#{pos}")
            invalid[key] = str(exc)
            logger.warning("Invalid candidate %s: %s", key, exc)
    return result, invalid


def load_dogs(raw_dogs: List[dict]) -> Dict[str, DogProfile]:
    """dog_id -> DogProfile. Missing flags default to False (not eligible)."""
    out: Dict[str, DogProfile] = {}
    for raw in raw_dogs:
        dog_id = raw.get("id", raw.get("dog_id"))
        if dog_id is None:
            continue
        out[str(dog_id)] = DogProfile(
            dog_id=str(dog_id),
            vaccinated=bool(raw.get("vaccinated", False)),
            friendly_with_dogs=bool(raw.get("friendly_with_dogs", False)),
            friendly_with_people=bool(raw.get("friendly_with_people", False)),
        )
    return out


def parse_slot(raw: dict) -> GroupWalkSlot:
    """Single raw slot record -> GroupWalkSlot. Raises InvalidInputError."""
    try:
        status = SlotStatus(str(raw.get("status", SlotStatus.OPEN.value)).upper())
        members = tuple(
            SlotMember(
                booking_id=str(m["booking_id"]),
                coordinate=_coordinate(m),
                dog_count=int(m.get("dog_count", 1)),
            )
            for m in raw.get("members") or ()
        )
        capacity = int(raw["capacity"])
        current = raw.get("current_dog_count")
        current_dog_count = int(current) if current is not None else sum(m.dog_count for m in members)
        return GroupWalkSlot(
            slot_id=str(raw["id"]),
            scheduled_date=_parse_date(raw["scheduled_date"]),
            start_time=parse_datetime(raw["start_time"]),
            end_time=parse_datetime(raw["end_time"]),
            capacity=capacity,
            current_dog_count=current_dog_count,
            status=status,
            center=_coordinate(raw),
            radius_m=float(raw.get("radius_m", 0.0)),
            members=members,
            walker_id=raw.get("walker_id"),
            accepted_by_walker=bool(raw.get("accepted_by_walker", False)),
            window_start=parse_datetime(raw["window_start"]) if raw.get("window_start") else None,
            window_end=parse_datetime(raw["window_end"]) if raw.get("window_end") else None,
        )
    except InvalidInputError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInputError(f"slot {raw.get('id')!r}: {exc}") from exc
