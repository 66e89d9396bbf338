from datetime import date, datetime

import pytest

from tm_scheduler.models.domain import InputParams, TransitMixer
from tm_scheduler.services.scheduling.errors import InsufficientFleet, InvalidInputParams
from tm_scheduler.services.scheduling.estimator import average_capacity, estimate_mixer_count
from tm_scheduler.services.scheduling.timeutils import normalize_timestamp


def _params(quantity: float, pumping_speed: float = 30) -> InputParams:
    return InputParams(
        quantity=quantity,
        pumping_speed=pumping_speed,
        onward_time=30,
        return_time=30,
        buffer_time=10,
        schedule_date=date(2026, 3, 2),
        pump_start=normalize_timestamp(datetime(2026, 3, 2, 8, 0)),
    )


def test_estimate_covers_one_full_cycle() -> None:
    estimate = estimate_mixer_count(_params(120), 6.0)

    # 82 min cycle against 12 min of pumping per load
    assert estimate.tm_count == 7
    assert estimate.total_trips == 20
    assert estimate.cycle_time == pytest.approx(82.0)
    assert estimate.unloading_time == pytest.approx(12.0)


def test_estimate_never_exceeds_trip_count() -> None:
    estimate = estimate_mixer_count(_params(30), 6.0)

    assert estimate.tm_count == 5
    assert estimate.total_trips == 5
    assert estimate.trips_per_tm == pytest.approx(1.0)


def test_smaller_mixers_never_need_fewer_trucks() -> None:
    counts = [estimate_mixer_count(_params(30), capacity).tm_count for capacity in (3.0, 6.0, 10.0)]

    assert counts == [10, 5, 3]
    assert counts == sorted(counts, reverse=True)


def test_slow_pump_needs_fewer_trucks() -> None:
    fast = estimate_mixer_count(_params(120, pumping_speed=60), 6.0)
    slow = estimate_mixer_count(_params(120, pumping_speed=15), 6.0)

    assert slow.tm_count < fast.tm_count


def test_fleet_ceiling_raises() -> None:
    with pytest.raises(InsufficientFleet) as excinfo:
        estimate_mixer_count(_params(120), 6.0, max_fleet_size=3)

    assert excinfo.value.max_fleet_size == 3
    assert excinfo.value.idle_minutes > 0


def test_invalid_capacity_rejected() -> None:
    with pytest.raises(InvalidInputParams):
        estimate_mixer_count(_params(30), 0)


def test_average_capacity_ignores_inactive_mixers() -> None:
    mixers = [
        TransitMixer(id="1", identifier="TM-1", capacity=6),
        TransitMixer(id="2", identifier="TM-2", capacity=8),
        TransitMixer(id="3", identifier="TM-3", capacity=30, status="inactive"),
    ]

    assert average_capacity(mixers) == pytest.approx(7.0)
    assert average_capacity([]) == pytest.approx(6.0)
