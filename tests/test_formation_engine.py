"""
Formation pass: scenarios and invariants.
"""

import random
from datetime import timedelta

import pytest

from walkgroups.core.grouping_engine.formation_engine import run_group_formation
from walkgroups.domain.compatibility import is_dog_group_eligible
from walkgroups.domain.constraints import GroupingConfig, ScoreWeights
from walkgroups.domain.errors import (
    UNGROUPABLE_INELIGIBLE_DOG,
    UNGROUPABLE_NO_FEASIBLE_GROUP,
    UNGROUPABLE_SOLO_ONLY,
)
from walkgroups.domain.models import GroupPreference

from .conftest import BASE_START, offset


def test_three_nearby_candidates_form_one_group(pool, config):
    pool.add("a", offset(), start=BASE_START)
    pool.add("b", offset(north_m=500), start=BASE_START + timedelta(minutes=5))
    pool.add("c", offset(east_m=500), start=BASE_START + timedelta(minutes=10))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert len(result.suggestions) == 1
    group = result.suggestions[0]
    assert sorted(group.member_ids) == ["a", "b", "c"]
    assert group.total_dogs == 6
    assert group.radius_m <= config.max_group_radius_m
    assert group.window_start <= group.window_end
    assert result.ungroupable_ids == []


def test_candidates_too_far_apart_are_ungroupable(pool, config):
    pool.add("a", offset())
    pool.add("b", offset(north_m=5000))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert result.suggestions == []
    assert result.ungroupable_ids == ["a", "b"]
    assert set(result.ungroupable_reasons.values()) == {UNGROUPABLE_NO_FEASIBLE_GROUP}


def test_candidate_with_unvaccinated_dog_is_excluded(pool, config):
    pool.add("a", offset())
    pool.add("bad", offset(north_m=100), ineligible=[0])
    pool.add("c", offset(east_m=100))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert len(result.suggestions) == 1
    assert sorted(result.suggestions[0].member_ids) == ["a", "c"]
    assert result.ungroupable_ids == ["bad"]
    assert result.ungroupable_reasons["bad"] == UNGROUPABLE_INELIGIBLE_DOG


def test_capacity_limits_group_size(pool):
    cfg = GroupingConfig(max_dogs_per_group=4, max_group_radius_m=2000.0)
    pool.add("a", offset())
    pool.add("b", offset(north_m=50))
    pool.add("c", offset(north_m=100))

    result = run_group_formation(pool.candidates, pool.dogs, cfg)

    assert len(result.suggestions) == 1
    assert result.suggestions[0].member_ids == ["a", "b"]
    assert result.suggestions[0].total_dogs == 4
    assert result.ungroupable_ids == ["c"]


def test_no_group_when_every_pair_exceeds_capacity(pool):
    cfg = GroupingConfig(max_dogs_per_group=4)
    for cid in ("a", "b", "c"):
        pool.add(cid, offset(), dogs=3)
    assert run_group_formation(pool.candidates, pool.dogs, cfg).suggestions == []


def test_starts_further_apart_than_window_do_not_merge(pool, config):
    pool.add("a", offset(), start=BASE_START)
    pool.add("b", offset(north_m=100), start=BASE_START + timedelta(minutes=90))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert result.suggestions == []


def test_recomputed_radius_keeps_outlier_out(pool, config):
    pool.add("a", offset(), start=BASE_START)
    pool.add("b", offset(east_m=1500))
    pool.add("c", offset(east_m=3000))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert [s.member_ids for s in result.suggestions] == [["a", "b"]]
    assert result.ungroupable_ids == ["c"]


def test_identical_position_and_start_break_ties_by_id(pool):
    cfg = GroupingConfig(max_dogs_per_group=4)
    pool.add("b", offset())
    pool.add("a", offset())
    pool.add("c", offset())

    result = run_group_formation(pool.candidates, pool.dogs, cfg)

    assert result.suggestions[0].member_ids == ["a", "b"]
    assert result.ungroupable_ids == ["c"]


def test_suggestions_are_ordered_by_score(pool, config):
    pool.add("s1", offset(), dogs=2)
    pool.add("s2", offset(north_m=200), dogs=2)
    far = offset(north_m=20_000)
    pool.add("b1", far, dogs=3)
    pool.add("b2", offset(north_m=20_200), dogs=3)

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert [s.total_dogs for s in result.suggestions] == [6, 4]
    scores = [s.score for s in result.suggestions]
    assert scores == sorted(scores, reverse=True)


def test_score_weights_are_configurable(pool):
    pool.add("a", offset())
    pool.add("b", offset(north_m=1000))
    base = run_group_formation(pool.candidates, pool.dogs, GroupingConfig())
    heavy = run_group_formation(
        pool.candidates,
        pool.dogs,
        GroupingConfig(score_weights=ScoreWeights(w_dogs=10, w_distance=100, w_slack=0.5)),
    )
    assert heavy.suggestions[0].score < base.suggestions[0].score


def test_duplicate_ids_are_reported_invalid(pool, config):
    a = pool.add("a", offset())
    pool.add("b", offset(north_m=10))
    result = run_group_formation(pool.candidates + [a], pool.dogs, config)
    assert "a" in result.invalid
    assert result.suggestions[0].member_ids == ["a", "b"]


def _random_pool(pool, seed=7, n=40):
    rng = random.Random(seed)
    for i in range(n):
        pool.add(
            f"c{i:02d}",
            offset(north_m=rng.uniform(-3000, 3000), east_m=rng.uniform(-3000, 3000)),
            start=BASE_START + timedelta(minutes=rng.randrange(0, 180, 5)),
            dogs=rng.randint(1, 3),
            ineligible=[0] if rng.random() < 0.15 else [],
        )
    return pool


def test_invariants_hold_on_random_pool(pool, config):
    _random_pool(pool)
    by_id = {c.candidate_id: c for c in pool.candidates}

    result = run_group_formation(pool.candidates, pool.dogs, config)

    seen = set()
    for s in result.suggestions:
        assert len(s.member_ids) >= 2
        assert s.total_dogs <= config.max_dogs_per_group
        assert s.radius_m <= config.max_group_radius_m + 1e-6
        assert s.window_start <= s.window_end
        for cid in s.member_ids:
            assert cid not in seen
            seen.add(cid)
            assert all(is_dog_group_eligible(pool.dogs[d]) for d in by_id[cid].dog_ids)
    assert seen.isdisjoint(result.ungroupable_ids)
    assert seen | set(result.ungroupable_ids) == set(by_id)


def test_formation_is_idempotent(pool, config):
    _random_pool(pool)
    first = run_group_formation(pool.candidates, pool.dogs, config)
    second = run_group_formation(list(pool.candidates), dict(pool.dogs), config)
    assert first == second


def test_invalid_config_is_rejected():
    with pytest.raises(ValueError):
        GroupingConfig(max_dogs_per_group=0)


def test_solo_only_customer_is_never_grouped(pool, config):
    pool.add("a", offset())
    pool.add("solo", offset(north_m=50), group_preference=GroupPreference.SOLO_ONLY)
    pool.add("c", offset(east_m=100))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert [s.member_ids for s in result.suggestions] == [["a", "c"]]
    assert result.ungroupable_ids == ["solo"]
    assert result.ungroupable_reasons["solo"] == UNGROUPABLE_SOLO_ONLY


def test_customer_max_group_size_caps_the_group(pool, config):
    pool.add("a", offset(), max_group_size=4)
    pool.add("b", offset(north_m=50))
    pool.add("c", offset(north_m=100))

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert len(result.suggestions) == 1
    assert result.suggestions[0].member_ids == ["a", "b"]
    assert result.suggestions[0].total_dogs == 4
    assert result.ungroupable_ids == ["c"]


def test_neighbor_with_smaller_max_group_size_is_skipped(pool, config):
    pool.add("a", offset())
    pool.add("picky", offset(north_m=50), max_group_size=2)

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert result.suggestions == []
    assert result.ungroupable_ids == ["a", "picky"]


def test_group_carries_most_common_postal_code(pool, config):
    pool.add("a", offset(), postal_code="10115")
    pool.add("b", offset(north_m=100), postal_code="10117")
    pool.add("c", offset(east_m=100), postal_code="10117")

    result = run_group_formation(pool.candidates, pool.dogs, config)

    assert len(result.suggestions) == 1
    assert result.suggestions[0].area_postal_code == "10117"
