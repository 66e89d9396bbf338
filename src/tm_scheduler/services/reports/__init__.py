"""Schedule report helpers."""

from .utilization import build_hourly_utilization

__all__ = ["build_hourly_utilization"]
