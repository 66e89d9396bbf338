"""Domain models for transit mixers, schedules and trips."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


class ScheduleStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed status moves. Regenerating a generated schedule is a self-transition.
ALLOWED_TRANSITIONS: dict[ScheduleStatus, frozenset[ScheduleStatus]] = {
    ScheduleStatus.DRAFT: frozenset({ScheduleStatus.DRAFT, ScheduleStatus.GENERATED, ScheduleStatus.CANCELLED}),
    ScheduleStatus.GENERATED: frozenset(
        {ScheduleStatus.DRAFT, ScheduleStatus.GENERATED, ScheduleStatus.CONFIRMED, ScheduleStatus.CANCELLED}
    ),
    ScheduleStatus.CONFIRMED: frozenset({ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED}),
    ScheduleStatus.COMPLETED: frozenset(),
    ScheduleStatus.CANCELLED: frozenset(),
}


def can_transition(current: ScheduleStatus, target: ScheduleStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(slots=True)
class TransitMixer:
    """A concrete transit mixer (TM) available for dispatch."""

    id: str
    identifier: str
    capacity: float
    plant_id: Optional[str] = None
    plant_name: Optional[str] = None
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return (self.status or "").strip().lower() == "active"


@dataclass(slots=True)
class InputParams:
    """Planning inputs. Durations are minutes, quantity m3, pumping speed m3/h."""

    quantity: float
    pumping_speed: float
    onward_time: float
    return_time: float
    buffer_time: float
    schedule_date: date
    pump_start: Optional[datetime] = None
    pump_onward_time: Optional[float] = None


@dataclass(slots=True)
class Trip:
    """One row of a schedule's output table."""

    trip_no: int
    tm_no: str
    tm_id: str
    plant_start: datetime
    pump_start: datetime
    unloading_time: datetime
    return_time: datetime
    completed_capacity: float
    dispatched_capacity: float
    cycle_time: float
    trip_no_for_tm: int
    cushion_time: Optional[float]
    idle_time: float
    plant_name: Optional[str] = None


@dataclass(slots=True)
class MixerBooking:
    """Window during which a mixer is held by a generated schedule."""

    schedule_id: str
    tm_id: str
    start: datetime
    end: datetime

    def overlaps(self, other: "MixerBooking") -> bool:
        if self.tm_id != other.tm_id:
            return False
        start, end = self.start.astimezone(timezone.utc), self.end.astimezone(timezone.utc)
        return start < other.end.astimezone(timezone.utc) and other.start.astimezone(timezone.utc) < end


@dataclass(slots=True)
class Cancelation:
    canceled_by: str
    reason: Optional[str]
    canceled_at: datetime


@dataclass(slots=True)
class FleetEstimate:
    """Advisory fleet size produced before mixers are selected."""

    tm_count: int
    total_trips: int
    trips_per_tm: float
    cycle_time: float
    unloading_time: float
    average_capacity: float


@dataclass(slots=True)
class Schedule:
    id: str
    input_params: InputParams
    created_at: datetime
    last_updated: datetime
    status: ScheduleStatus = ScheduleStatus.DRAFT
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    site_address: Optional[str] = None
    created_by: Optional[str] = None
    tm_count: int = 0
    tm_overrule: Optional[int] = None
    output_table: list[Trip] = field(default_factory=list)
    pumping_time: Optional[float] = None
    idle_time: Optional[float] = None
    estimate: Optional[FleetEstimate] = None
    cancelation: Optional[Cancelation] = None
    plan_metadata: dict = field(default_factory=dict)
