"""
Group suggestion scoring. Pure scoring. No I/O.
"""

from walkgroups.domain.constraints import GroupingConfig


def window_slack_penalty(window_width_minutes: float, config: GroupingConfig) -> float:
    """
    Minutes lost from the full per-request window. Grows as the intersected window
    shrinks toward zero (tight windows are harder to honor).
    """
    return max(0.0, config.time_window_minutes - max(0.0, window_width_minutes))


def score_group(
    total_dogs: int,
    avg_distance_to_centroid_m: float,
    window_width_minutes: float,
    config: GroupingConfig,
) -> float:
    """
    Score: higher is better.
    dogs * W1 - avg member distance to centroid (km) * W2 - slack penalty (min) * W3.
    """
    w = config.score_weights
    return (
        total_dogs * w.w_dogs
        - (avg_distance_to_centroid_m / 1000.0) * w.w_distance
        - window_slack_penalty(window_width_minutes, config) * w.w_slack
    )
