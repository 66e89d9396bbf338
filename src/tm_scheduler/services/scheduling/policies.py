"""Mixer dispatch policies for the trip planner."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Sequence

from ...config import settings
from .errors import NoMixerAvailable
from .fleet import FleetAvailability


class DispatchPolicy(ABC):
    """Contract for choosing which mixer loads the next trip.

    Implementations raise :class:`NoMixerAvailable` when no candidate can be
    at the plant by ``at`` plus ``tolerance_minutes``; the planner then
    falls back to the earliest free mixer and absorbs the pump idle gap.
    """

    name: str = ""

    @abstractmethod
    def select(
        self,
        *,
        availability: FleetAvailability,
        candidates: Sequence[str],
        at: datetime,
        tolerance_minutes: float,
        trips_per_mixer: Mapping[str, int],
    ) -> str:
        raise NotImplementedError


class EarliestAvailablePolicy(DispatchPolicy):
    name = "earliest_available"

    def select(self, *, availability, candidates, at, tolerance_minutes, trips_per_mixer) -> str:
        return availability.select_mixer(candidates, at, tolerance_minutes)


class SequencePolicy(DispatchPolicy):
    """Rotate through mixers in the order the dispatcher listed them."""

    name = "sequence"

    def __init__(self) -> None:
        self._cursor = 0

    def select(self, *, availability, candidates, at, tolerance_minutes, trips_per_mixer) -> str:
        mixer_id = candidates[self._cursor % len(candidates)]
        if not availability.is_ready(mixer_id, at, tolerance_minutes):
            mixer_id = availability.select_mixer(candidates, at, tolerance_minutes)
        self._cursor = (list(candidates).index(mixer_id) + 1) % len(candidates)
        return mixer_id


class FewestMixersPolicy(DispatchPolicy):
    """Reuse mixers already on the job before calling in a fresh one."""

    name = "fewest_mixers"

    def select(self, *, availability, candidates, at, tolerance_minutes, trips_per_mixer) -> str:
        ready = [mixer_id for mixer_id in candidates if availability.is_ready(mixer_id, at, tolerance_minutes)]
        if not ready:
            raise NoMixerAvailable(at, candidates)
        in_use = [mixer_id for mixer_id in ready if trips_per_mixer.get(mixer_id)]
        return availability.earliest(in_use or ready)


def get_policy(name: str | None = None) -> DispatchPolicy:
    match name or settings.default_dispatch_policy:
        case "earliest_available":
            return EarliestAvailablePolicy()
        case "sequence":
            return SequencePolicy()
        case "fewest_mixers":
            return FewestMixersPolicy()
        case _:
            raise ValueError(f"Unknown dispatch policy '{name}'.")
