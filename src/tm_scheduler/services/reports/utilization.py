"""Hourly mixer utilization for the plant calendar."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, List

from ...models.domain import Schedule, ScheduleStatus
from ..scheduling.timeutils import combine_date_and_clock, to_utc

HOURS_PER_DAY = 24


def build_hourly_utilization(schedules: Iterable[Schedule], day: date, start_hour: int = 0) -> List[int]:
    """Count distinct mixers on the road in each hour of a 24 hour window.

    The window opens at ``start_hour`` on ``day`` in the site timezone. A
    mixer counts towards an hour when any of its trips (plant start to
    return) overlaps it. Cancelled schedules are ignored.
    """
    if not 0 <= start_hour < HOURS_PER_DAY:
        raise ValueError("start_hour must be between 0 and 23.")

    # hours are elapsed hours, so a daylight saving day still has 24 slots
    window_start = to_utc(combine_date_and_clock(day, time(hour=start_hour)))
    busy: List[set[str]] = [set() for _ in range(HOURS_PER_DAY)]

    for schedule in schedules:
        if schedule.status == ScheduleStatus.CANCELLED:
            continue
        for trip in schedule.output_table:
            _mark(busy, window_start, trip.tm_id, trip.plant_start, trip.return_time)

    return [len(mixers) for mixers in busy]


def _mark(busy: List[set[str]], window_start: datetime, tm_id: str, start: datetime, end: datetime) -> None:
    start = to_utc(start)
    end = to_utc(end)
    for hour in range(HOURS_PER_DAY):
        slot_start = window_start + timedelta(hours=hour)
        slot_end = slot_start + timedelta(hours=1)
        if start < slot_end and slot_start < end:
            busy[hour].add(tm_id)
