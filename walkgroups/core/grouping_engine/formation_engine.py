"""
Group walk formation. Greedy deterministic clustering over the pending pool:
eligibility filter → sort (start asc, dogs desc, id) → seed + nearest neighbors
under capacity / radius / time window → score → order by score desc.

The consumed set is an explicit boolean mask over the sorted candidate arena;
candidates are never removed from the pool in place.
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from walkgroups.core.geo import bounding_radius_m, centroid, distance_m, medoid
from walkgroups.core.grouping_engine.candidate_index import CandidateIndex, start_minutes
from walkgroups.domain.compatibility import candidate_dogs_eligible
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.errors import (
    UNGROUPABLE_INELIGIBLE_DOG,
    UNGROUPABLE_NO_FEASIBLE_GROUP,
    UNGROUPABLE_SOLO_ONLY,
)
from walkgroups.domain.evaluation import score_group
from walkgroups.domain.models import (
    BookingCandidate,
    DogProfile,
    FormationResult,
    GroupPreference,
    GroupSuggestion,
)

logger = logging.getLogger(__name__)


def _sort_key(c: BookingCandidate) -> Tuple:
    return (c.desired_start, -c.dog_count, c.candidate_id)


def _geometry(members: Sequence[BookingCandidate]):
    center = centroid((m.coordinate, m.dog_count) for m in members)
    radius = bounding_radius_m(center, [m.coordinate for m in members])
    return center, radius


def _dog_cap(c: BookingCandidate, config: GroupingConfig) -> int:
    if c.max_group_size is None:
        return config.max_dogs_per_group
    return min(config.max_dogs_per_group, c.max_group_size)


def _area_postal_code(members: Sequence[BookingCandidate]) -> str:
    """Most common postal code among members; ties go to the first seen."""
    counts = Counter(m.postal_code for m in members if m.postal_code)
    if not counts:
        return ""
    return counts.most_common(1)[0][0]


def _grow_cluster(
    seed: BookingCandidate,
    index: CandidateIndex,
    consumed: np.ndarray,
    config: GroupingConfig,
) -> List[BookingCandidate]:
    """
    Accumulate neighbors of `seed` in ascending distance-to-seed order.
    A neighbor is accepted iff capacity, intersected window and recomputed radius all hold.
    Capacity is the smallest per-customer max_group_size among members, bounded by config.
    Repeats passes over the rejected ones until a pass accepts nothing or capacity is reached.
    """
    members = [seed]
    total_dogs = seed.dog_count
    cap = _dog_cap(seed, config)
    if total_dogs >= cap:
        return members

    half = config.half_window_minutes
    lo = start_minutes(seed) - half
    hi = start_minutes(seed) + half

    pending = list(
        index.nearby(seed, config.max_group_radius_m, config.time_window_minutes, skip=consumed)
    )
    pending.sort(
        key=lambda c: (distance_m(seed.coordinate, c.coordinate), index.position(c.candidate_id))
    )

    progressed = True
    while progressed and pending and total_dogs < cap:
        progressed = False
        for k, cand in enumerate(pending):
            new_cap = min(cap, _dog_cap(cand, config))
            if total_dogs + cand.dog_count > new_cap:
                continue
            s = start_minutes(cand)
            new_lo, new_hi = max(lo, s - half), min(hi, s + half)
            if new_lo > new_hi:
                continue
            _, radius = _geometry(members + [cand])
            if radius > config.max_group_radius_m:
                continue
            members.append(cand)
            total_dogs += cand.dog_count
            cap = new_cap
            lo, hi = new_lo, new_hi
            del pending[k]
            progressed = True
            break
    return members


def _build_suggestion(
    suggestion_id: str,
    members: Sequence[BookingCandidate],
    config: GroupingConfig,
) -> GroupSuggestion:
    center, radius = _geometry(members)
    half = timedelta(minutes=config.half_window_minutes)
    window_start = max(m.desired_start for m in members) - half
    window_end = min(m.desired_start for m in members) + half
    width_min = (window_end - window_start).total_seconds() / 60.0
    total_dogs = sum(m.dog_count for m in members)
    avg_dist = float(np.mean([distance_m(center, m.coordinate) for m in members]))
    meeting, total_distance = medoid([m.coordinate for m in members])
    return GroupSuggestion(
        suggestion_id=suggestion_id,
        member_ids=[m.candidate_id for m in members],
        centroid=center,
        radius_m=radius,
        window_start=window_start,
        window_end=window_end,
        total_dogs=total_dogs,
        score=score_group(total_dogs, avg_dist, width_min, config),
        meeting_point=meeting,
        total_distance_m=total_distance,
        area_postal_code=_area_postal_code(members),
    )


def run_group_formation(
    candidates: Sequence[BookingCandidate],
    dogs: Mapping[str, DogProfile],
    config: Optional[GroupingConfig] = None,
    id_prefix: str = "group",
) -> FormationResult:
    """
    One formation pass. Pure function of its inputs: same pool → same suggestions,
    same scores, same order.
    """
    if config is None:
        config = GroupingConfig()
    logger.info(
        "Starting group formation: candidates=%d max_dogs=%d radius_m=%.0f window_min=%d",
        len(candidates),
        config.max_dogs_per_group,
        config.max_group_radius_m,
        config.time_window_minutes,
    )

    invalid: Dict[str, str] = {}
    reasons: Dict[str, str] = {}
    seen: set = set()
    unique: List[BookingCandidate] = []
    eligible: List[BookingCandidate] = []
    for c in candidates:
        if c.candidate_id in seen:
            invalid[c.candidate_id] = "duplicate candidate id"
            logger.warning("Duplicate candidate id %s skipped", c.candidate_id)
            continue
        seen.add(c.candidate_id)
        unique.append(c)
        if c.group_preference == GroupPreference.SOLO_ONLY:
            reasons[c.candidate_id] = UNGROUPABLE_SOLO_ONLY
            logger.debug("Candidate %s excluded: solo walks only", c.candidate_id)
        elif candidate_dogs_eligible(c, dogs):
            eligible.append(c)
        else:
            reasons[c.candidate_id] = UNGROUPABLE_INELIGIBLE_DOG
            logger.debug("Candidate %s excluded: ineligible dog", c.candidate_id)

    arena = sorted(eligible, key=_sort_key)
    index = CandidateIndex(
        arena,
        cell_size_m=config.max_group_radius_m,
        time_bucket_minutes=config.time_window_minutes,
    )
    consumed = np.zeros(len(arena), dtype=bool)

    suggestions: List[GroupSuggestion] = []
    for i, seed in enumerate(arena):
        if consumed[i]:
            continue
        members = _grow_cluster(seed, index, consumed, config)
        if len(members) < 2:
            continue
        consumed[[index.position(m.candidate_id) for m in members]] = True
        suggestions.append(
            _build_suggestion(f"{id_prefix}_{len(suggestions)}", members, config)
        )

    for i, c in enumerate(arena):
        if not consumed[i]:
            reasons[c.candidate_id] = UNGROUPABLE_NO_FEASIBLE_GROUP

    # sorted() es estable: empates conservan el orden de emisión
    suggestions = sorted(suggestions, key=lambda s: -s.score)
    ungroupable = [c.candidate_id for c in unique if c.candidate_id in reasons]

    logger.info(
        "Group formation finished: groups=%d grouped=%d ungroupable=%d invalid=%d",
        len(suggestions),
        int(consumed.sum()),
        len(ungroupable),
        len(invalid),
    )
    return FormationResult(
        suggestions=suggestions,
        ungroupable_ids=ungroupable,
        ungroupable_reasons={cid: reasons[cid] for cid in ungroupable},
        invalid=invalid,
    )
