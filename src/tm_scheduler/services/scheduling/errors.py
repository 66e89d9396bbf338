"""Scheduling error taxonomy."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all scheduling failures."""


class InvalidInputParams(SchedulingError, ValueError):
    """Quantity, pumping speed or timings are out of range."""


class InvalidMixerSelection(SchedulingError, ValueError):
    """Selected mixer list is empty or references unknown/inactive mixers."""


class InvalidRange(SchedulingError, ValueError):
    """A time range ends before it starts by more than the allowed skew."""


class NoMixerAvailable(SchedulingError):
    """Every candidate mixer is busy past the allowed tolerance."""

    def __init__(self, at, candidates) -> None:
        self.at = at
        self.candidates = tuple(candidates)
        super().__init__(f"No mixer available by {at.isoformat()} among {len(self.candidates)} candidate(s).")


class InsufficientFleet(SchedulingError):
    """Estimator reached the configured fleet ceiling without a gap-free plan."""

    def __init__(self, max_fleet_size: int, idle_minutes: float) -> None:
        self.max_fleet_size = max_fleet_size
        self.idle_minutes = idle_minutes
        super().__init__(
            f"Pump would still idle {idle_minutes:.1f} min with the maximum fleet of {max_fleet_size} mixers."
        )


class MixerConflict(SchedulingError):
    """Selected mixers are already booked by another schedule in an overlapping window."""

    def __init__(self, conflicts: list[dict]) -> None:
        self.conflicts = conflicts
        mixers = sorted({item["tm_id"] for item in conflicts})
        super().__init__(f"Mixer(s) already booked in an overlapping window: {', '.join(mixers)}")


class ScheduleNotFound(SchedulingError, LookupError):
    def __init__(self, schedule_id: str) -> None:
        self.schedule_id = schedule_id
        super().__init__(f"Schedule '{schedule_id}' not found.")


class InvalidStatusTransition(SchedulingError):
    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move schedule from '{current}' to '{target}'.")


class ComputationTimeout(SchedulingError, TimeoutError):
    """Planning exceeded the request time budget."""
