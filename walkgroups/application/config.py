"""
Configuration via pydantic-settings. Single place for default grouping values,
so the API, use cases and engine do not duplicate them.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from walkgroups.domain.constraints import GroupingConfig, ScoreWeights


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GROUP_WALK_")

    max_radius_km: float = Field(default=3.0, gt=0)
    time_window_minutes: int = Field(default=60, gt=0)
    max_dogs_per_group: int = Field(default=6, gt=0)

    # Score weights: dogs * W1 - avg km to centroid * W2 - slack minutes * W3
    score_w_dogs: float = 10.0
    score_w_distance: float = 1.0
    score_w_slack: float = 0.5

    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR)$")


def build_grouping_config(settings: Settings) -> GroupingConfig:
    return GroupingConfig(
        max_dogs_per_group=settings.max_dogs_per_group,
        max_group_radius_m=settings.max_radius_km * 1000.0,
        time_window_minutes=settings.time_window_minutes,
        score_weights=ScoreWeights(
            w_dogs=settings.score_w_dogs,
            w_distance=settings.score_w_distance,
            w_slack=settings.score_w_slack,
        ),
    )


settings = Settings()
DEFAULT_GROUPING_CONFIG = build_grouping_config(settings)
