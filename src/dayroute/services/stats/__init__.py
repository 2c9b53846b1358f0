"""Day statistics helpers."""

from .day_stats import appointment_points, compute_day_stats, round_half_away, workload_points
from .ratings import format_hm, rate_day

__all__ = [
    "compute_day_stats",
    "workload_points",
    "appointment_points",
    "round_half_away",
    "format_hm",
    "rate_day",
]
