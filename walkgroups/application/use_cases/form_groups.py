"""
Form groups use case. Orchestrates loader + engine. No FastAPI.

Flow: raw snapshot -> candidates (+ invalid) -> formation pass (optionally per region)
      -> FormationResult with suggestions ordered by score desc.
"""

from typing import Optional

from walkgroups.application.config import DEFAULT_GROUPING_CONFIG
from walkgroups.core.grouping_engine.formation_engine import run_group_formation
from walkgroups.core.grouping_engine.region_partition import run_regional_formation
from walkgroups.domain.constraints import GroupingConfig
from walkgroups.domain.models import FormationResult
from walkgroups.infrastructure.snapshot_loader import load_candidates, load_dogs


def form_groups(
    raw_candidates: list[dict],
    raw_dogs: list[dict],
    config: Optional[GroupingConfig] = None,
    n_regions: int = 1,
) -> FormationResult:
    if config is None:
        config = DEFAULT_GROUPING_CONFIG
    candidates, invalid = load_candidates(raw_candidates)
    dogs = load_dogs(raw_dogs)
    if n_regions > 1:
        result = run_regional_formation(candidates, dogs, n_regions, config)
    else:
        result = run_group_formation(candidates, dogs, config)
    result.invalid = {**invalid, **result.invalid}
    return result
