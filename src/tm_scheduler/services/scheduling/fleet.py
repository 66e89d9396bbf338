"""Mixer availability tracking for the trip planner."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Sequence

from .errors import NoMixerAvailable

# Float slack when comparing timestamps built from fractional minutes.
_EPSILON = timedelta(microseconds=1)


class FleetAvailability:
    """Earliest free time per mixer.

    The map is owned by one planning call: it is passed in, updated as trips
    are assigned, and handed back through :meth:`snapshot`.
    """

    def __init__(self, next_free: Mapping[str, datetime] | None = None) -> None:
        self._next_free: dict[str, datetime] = dict(next_free or {})

    @classmethod
    def initial(cls, mixer_ids: Iterable[str], shift_start: datetime) -> "FleetAvailability":
        return cls({mixer_id: shift_start for mixer_id in mixer_ids})

    def __contains__(self, mixer_id: str) -> bool:
        return mixer_id in self._next_free

    def next_available(self, mixer_id: str) -> datetime:
        try:
            return self._next_free[mixer_id]
        except KeyError as exc:
            raise KeyError(f"Mixer '{mixer_id}' is not tracked.") from exc

    def book(self, mixer_id: str, free_at: datetime) -> None:
        self._next_free[mixer_id] = free_at

    def ensure(self, mixer_id: str, default: datetime) -> None:
        self._next_free.setdefault(mixer_id, default)

    def earliest(self, candidates: Sequence[str]) -> str:
        if not candidates:
            raise ValueError("No candidate mixers supplied.")
        return min(candidates, key=lambda mixer_id: (self.next_available(mixer_id).astimezone(timezone.utc), mixer_id))

    def is_ready(self, mixer_id: str, at: datetime, tolerance_minutes: float = 0.0) -> bool:
        deadline = at.astimezone(timezone.utc) + timedelta(minutes=tolerance_minutes) + _EPSILON
        return self.next_available(mixer_id).astimezone(timezone.utc) <= deadline

    def select_mixer(self, candidates: Sequence[str], at: datetime, tolerance_minutes: float = 0.0) -> str:
        """Pick the ready candidate that has been free the longest.

        Ties break on mixer id ascending so plans are reproducible.
        """
        ready = [mixer_id for mixer_id in candidates if self.is_ready(mixer_id, at, tolerance_minutes)]
        if not ready:
            raise NoMixerAvailable(at, candidates)
        return self.earliest(ready)

    def snapshot(self) -> dict[str, datetime]:
        return dict(self._next_free)
