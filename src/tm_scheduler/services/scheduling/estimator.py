"""Advisory fleet sizing ahead of mixer selection."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ...config import settings
from ...models.domain import FleetEstimate, InputParams, TransitMixer
from .errors import InsufficientFleet, InvalidInputParams
from .planner import VOLUME_EPSILON, plan_trips, unloading_minutes, validate_input_params
from .policies import EarliestAvailablePolicy

# Pump idle (minutes) below which a trial plan counts as gap free.
IDLE_EPSILON = 1e-6


def average_capacity(mixers: Sequence[TransitMixer]) -> float:
    """Mean capacity of the active fleet, or the configured default."""
    capacities = [mixer.capacity for mixer in mixers if mixer.is_active and mixer.capacity and mixer.capacity > 0]
    if not capacities:
        return settings.default_average_capacity
    return sum(capacities) / len(capacities)


def _virtual_fleet(count: int, capacity: float) -> list[TransitMixer]:
    width = max(2, len(str(count)))
    return [
        TransitMixer(id=f"TM-{index:0{width}d}", identifier=f"TM-{index:0{width}d}", capacity=capacity)
        for index in range(1, count + 1)
    ]


def estimate_mixer_count(
    params: InputParams,
    average_capacity: float,
    max_fleet_size: int | None = None,
) -> FleetEstimate:
    """Smallest homogeneous fleet that keeps the pump continuously fed.

    Trial fleets of 1..``max_fleet_size`` mixers of ``average_capacity`` are
    simulated with zero lateness tolerance until a plan has no pump idle
    time. Never returns more mixers than there are trips.
    """
    validate_input_params(params)
    if average_capacity is None or average_capacity <= 0:
        raise InvalidInputParams("average_capacity must be greater than zero.")
    ceiling = max_fleet_size or settings.max_fleet_size

    total_trips = max(1, math.ceil(params.quantity / average_capacity - VOLUME_EPSILON))
    unload = unloading_minutes(min(average_capacity, params.quantity), params.pumping_speed)
    cycle_time = params.onward_time + unload + params.return_time + params.buffer_time

    last_idle = 0.0
    for count in range(1, min(ceiling, total_trips) + 1):
        result = plan_trips(
            params,
            _virtual_fleet(count, average_capacity),
            policy=EarliestAvailablePolicy(),
            tolerance_minutes=0.0,
        )
        last_idle = result.idle_time
        if result.idle_time <= IDLE_EPSILON:
            logging.info(
                f"Estimated {count} mixer(s) for {params.quantity} m3 at {params.pumping_speed} m3/h "
                f"({len(result.trips)} trips, cycle {cycle_time:.1f} min)"
            )
            return FleetEstimate(
                tm_count=count,
                total_trips=len(result.trips),
                trips_per_tm=len(result.trips) / count,
                cycle_time=cycle_time,
                unloading_time=unload,
                average_capacity=average_capacity,
            )

    raise InsufficientFleet(ceiling, last_idle)
