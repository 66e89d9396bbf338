"""Trip planner: discrete event simulation of mixers feeding one pump."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Mapping, Sequence

from ...config import settings
from ...models.domain import InputParams, MixerBooking, TransitMixer, Trip
from .errors import InvalidInputParams, InvalidMixerSelection, NoMixerAvailable
from .fleet import FleetAvailability
from .policies import DispatchPolicy, get_policy
from .timeutils import (
    add_minutes,
    combine_date_and_clock,
    duration_minutes,
    minutes_between,
    normalize_timestamp,
    to_utc,
)

# Volume below which the remaining quantity counts as delivered (m3).
VOLUME_EPSILON = 1e-9


@dataclass(slots=True)
class PlanResult:
    trips: list[Trip]
    availability: dict[str, datetime]
    tm_count: int
    pumping_time: float
    idle_time: float
    buffer_time: float
    policy: str
    degraded_trips: int = 0
    tight_trips: int = 0
    trips_per_mixer: dict[str, int] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return self.degraded_trips > 0 or self.idle_time > 0

    def bookings(self, schedule_id: str) -> list[MixerBooking]:
        return [
            MixerBooking(
                schedule_id=schedule_id,
                tm_id=trip.tm_id,
                start=trip.plant_start,
                end=add_minutes(trip.return_time, self.buffer_time),
            )
            for trip in self.trips
        ]

    def metadata(self) -> dict:
        return {
            "policy": self.policy,
            "degraded": self.degraded,
            "degraded_trips": self.degraded_trips,
            "tight_trips": self.tight_trips,
            "trips_per_mixer": dict(self.trips_per_mixer),
        }


def validate_input_params(params: InputParams) -> None:
    if params.quantity is None or params.quantity <= 0:
        raise InvalidInputParams("quantity must be greater than zero.")
    if params.pumping_speed is None or params.pumping_speed <= 0:
        raise InvalidInputParams("pumping_speed must be greater than zero.")
    for name in ("onward_time", "return_time", "buffer_time"):
        value = getattr(params, name)
        if value is None or value < 0:
            raise InvalidInputParams(f"{name} must be zero or positive.")
    if params.pump_onward_time is not None and params.pump_onward_time < 0:
        raise InvalidInputParams("pump_onward_time must be zero or positive.")


def resolve_pump_start(params: InputParams) -> datetime:
    if params.pump_start is not None:
        return normalize_timestamp(params.pump_start)
    return combine_date_and_clock(params.schedule_date, time(hour=settings.default_pump_start_hour))


def unloading_minutes(volume: float, pumping_speed: float) -> float:
    return volume / pumping_speed * 60.0


def _unique_mixers(mixers: Sequence[TransitMixer]) -> dict[str, TransitMixer]:
    lookup: dict[str, TransitMixer] = {}
    for mixer in mixers:
        if mixer.capacity is None or mixer.capacity <= 0:
            raise InvalidMixerSelection(f"Mixer '{mixer.identifier}' has no usable capacity.")
        lookup.setdefault(mixer.id, mixer)
    return lookup


def plan_trips(
    params: InputParams,
    mixers: Sequence[TransitMixer],
    *,
    pump_start: datetime | None = None,
    availability: FleetAvailability | Mapping[str, datetime] | None = None,
    policy: DispatchPolicy | None = None,
    tolerance_minutes: float | None = None,
) -> PlanResult:
    """Assign trips to ``mixers`` until ``params.quantity`` is delivered.

    The pump is kept busy back to back: every trip is due at the pump the
    moment the previous one finishes unloading. A mixer counts as on time when
    it can leave the plant within ``tolerance_minutes`` (the buffer time by
    default) of the ideal departure. When none is, the earliest free mixer is
    sent late and the pump idle gap is recorded on the trip instead of
    failing the plan.
    """
    validate_input_params(params)
    if not mixers:
        raise InvalidMixerSelection("At least one mixer is required to plan trips.")

    lookup = _unique_mixers(mixers)
    candidates = list(lookup)
    # simulate on UTC so comparisons and arithmetic ignore daylight saving shifts
    start = to_utc(pump_start if pump_start else resolve_pump_start(params))
    tolerance = params.buffer_time if tolerance_minutes is None else tolerance_minutes
    policy = policy or get_policy()

    if isinstance(availability, FleetAvailability):
        availability = availability.snapshot()
    fleet = FleetAvailability({mixer_id: to_utc(free_at) for mixer_id, free_at in (availability or {}).items()})
    shift_start = add_minutes(start, -params.onward_time)
    for mixer_id in candidates:
        fleet.ensure(mixer_id, shift_start)

    remaining = float(params.quantity)
    completed = 0.0
    pump_clock = start
    trips: list[Trip] = []
    trips_per_mixer: dict[str, int] = {}
    idle_total = 0.0
    pumping_total = 0.0
    degraded_trips = 0
    tight_trips = 0

    while remaining > VOLUME_EPSILON:
        trip_no = len(trips) + 1
        ideal_plant_start = add_minutes(pump_clock, -params.onward_time)
        try:
            mixer_id = policy.select(
                availability=fleet,
                candidates=candidates,
                at=ideal_plant_start,
                tolerance_minutes=tolerance,
                trips_per_mixer=trips_per_mixer,
            )
        except NoMixerAvailable:
            mixer_id = fleet.earliest(candidates)
            degraded_trips += 1
            logging.debug(f"Trip {trip_no}: no mixer ready by {ideal_plant_start.isoformat()}, sending {mixer_id} late")

        mixer = lookup[mixer_id]
        free_at = fleet.next_available(mixer_id)
        plant_start = max(ideal_plant_start, free_at)
        unloading_start = max(add_minutes(plant_start, params.onward_time), pump_clock)

        if remaining - mixer.capacity <= VOLUME_EPSILON:
            dispatched = remaining
            remaining = 0.0
            completed = float(params.quantity)
        else:
            dispatched = float(mixer.capacity)
            remaining -= dispatched
            completed += dispatched

        unload = unloading_minutes(dispatched, params.pumping_speed)
        unloading_end = add_minutes(unloading_start, unload)
        return_at = add_minutes(unloading_end, params.return_time)
        idle = duration_minutes(pump_clock, unloading_start)

        mixer_trip_no = trips_per_mixer.get(mixer_id, 0) + 1
        trips_per_mixer[mixer_id] = mixer_trip_no
        cushion = minutes_between(free_at, ideal_plant_start) if mixer_trip_no > 1 else None
        if cushion is not None and cushion <= 0:
            tight_trips += 1

        trips.append(
            Trip(
                trip_no=trip_no,
                tm_no=mixer.identifier,
                tm_id=mixer.id,
                plant_start=normalize_timestamp(plant_start),
                pump_start=normalize_timestamp(unloading_start),
                unloading_time=normalize_timestamp(unloading_end),
                return_time=normalize_timestamp(return_at),
                completed_capacity=completed,
                dispatched_capacity=dispatched,
                cycle_time=duration_minutes(plant_start, return_at),
                trip_no_for_tm=mixer_trip_no,
                cushion_time=cushion,
                idle_time=idle,
                plant_name=mixer.plant_name,
            )
        )

        idle_total += idle
        pumping_total += unload
        pump_clock = unloading_end
        fleet.book(mixer_id, add_minutes(return_at, params.buffer_time))

    return PlanResult(
        trips=trips,
        availability={mixer_id: normalize_timestamp(free_at) for mixer_id, free_at in fleet.snapshot().items()},
        tm_count=len(trips_per_mixer),
        pumping_time=pumping_total,
        idle_time=idle_total,
        buffer_time=params.buffer_time,
        policy=policy.name,
        degraded_trips=degraded_trips,
        tight_trips=tight_trips,
        trips_per_mixer=trips_per_mixer,
    )
