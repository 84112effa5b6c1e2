"""
Region split for large pools: KMeans over the local tangent plane, then one
independent formation pass per region (disjoint slices, no shared state).
"""

import logging
from dataclasses import replace
from typing import List, Mapping, Optional, Sequence

import numpy as np
from sklearn.cluster import KMeans

from walkgroups.core.geo import to_local_meters
from walkgroups.core.grouping_engine.formation_engine import run_group_formation
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.models import BookingCandidate, DogProfile, FormationResult

logger = logging.getLogger(__name__)


def partition_regions(
    candidates: Sequence[BookingCandidate], n_regions: int
) -> List[List[BookingCandidate]]:
    """
    Split the pool into at most n_regions geographic regions.
    Every candidate lands in exactly one region; input order is kept inside a region.
    """
    if not candidates:
        return []
    k = max(1, min(int(n_regions), len(candidates)))
    if k == 1:
        return [list(candidates)]
    coords = [c.coordinate for c in candidates]
    lats = np.array([c.lat for c in coords])
    lngs = np.array([c.lng for c in coords])
    X = to_local_meters(coords, float(lats.mean()), float(lngs.mean()))
    km = KMeans(n_clusters=k, n_init=10, random_state=42)
    labels = km.fit_predict(X)
    regions: List[List[BookingCandidate]] = []
    for lab in sorted(set(int(x) for x in labels)):
        regions.append([c for c, l in zip(candidates, labels) if int(l) == lab])
    return regions


def run_regional_formation(
    candidates: Sequence[BookingCandidate],
    dogs: Mapping[str, DogProfile],
    n_regions: int,
    config: Optional[GroupingConfig] = None,
) -> FormationResult:
    """One formation pass per region; suggestions merged and ordered by score desc."""
    merged = FormationResult(suggestions=[], ungroupable_ids=[])
    unique: List[BookingCandidate] = []
    seen: set = set()
    for c in candidates:
        if c.candidate_id in seen:
            merged.invalid[c.candidate_id] = "duplicate candidate id"
            continue
        seen.add(c.candidate_id)
        unique.append(c)

    regions = partition_regions(unique, n_regions)
    logger.info("Regional formation: candidates=%d regions=%d", len(unique), len(regions))
    for r, region in enumerate(regions):
        res = run_group_formation(region, dogs, config, id_prefix=f"r{r}_group")
        merged.suggestions.extend(res.suggestions)
        merged.ungroupable_ids.extend(res.ungroupable_ids)
        merged.ungroupable_reasons.update(res.ungroupable_reasons)
        merged.invalid.update(res.invalid)
    merged.suggestions = sorted(merged.suggestions, key=lambda s: -s.score)
    merged.suggestions = [
        replace(s, suggestion_id=f"group_{i}") for i, s in enumerate(merged.suggestions)
    ]
    return merged
