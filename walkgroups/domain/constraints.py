"""
Grouping constraints and score weights. Dataclasses only. No FastAPI, no external deps.
"""

from dataclasses import dataclass, field

# Defaults from the booking platform (GROUP_WALK_MAX_RADIUS_KM=3, GROUP_WALK_TIME_WINDOW_MINUTES=60)
MAX_DOGS_PER_GROUP = 6
MAX_GROUP_RADIUS_M = 3000.0
TIME_WINDOW_MINUTES = 60


@dataclass(frozen=True)
class ScoreWeights:
    """score = dogs * w_dogs - avg_km_to_centroid * w_distance - slack_min * w_slack"""
    w_dogs: float = 10.0
    w_distance: float = 1.0
    w_slack: float = 0.5


@dataclass(frozen=True)
class GroupingConfig:
    max_dogs_per_group: int = MAX_DOGS_PER_GROUP
    max_group_radius_m: float = MAX_GROUP_RADIUS_M
    time_window_minutes: int = TIME_WINDOW_MINUTES
    score_weights: ScoreWeights = field(default_factory=ScoreWeights)

    def __post_init__(self) -> None:
        if self.max_dogs_per_group <= 0:
            raise ValueError("max_dogs_per_group must be positive")
        if self.max_group_radius_m <= 0:
            raise ValueError("max_group_radius_m must be positive")
        if self.time_window_minutes <= 0:
            raise ValueError("time_window_minutes must be positive")

    @property
    def half_window_minutes(self) -> float:
        """Each request tolerates a start shift of +/- half the window."""
        return self.time_window_minutes / 2.0
