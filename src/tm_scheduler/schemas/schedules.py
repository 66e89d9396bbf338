"""Schedule request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InputParamsModel(BaseModel):
    quantity: float = Field(..., description="Concrete volume to place (m3).")
    pumping_speed: float = Field(..., description="Pump throughput (m3/h).")
    onward_time: float = Field(..., description="Plant to site travel time (minutes).")
    return_time: float = Field(..., description="Site to plant travel time (minutes).")
    buffer_time: float = Field(..., description="Safety margin added to every mixer cycle (minutes).")
    schedule_date: date
    pump_start: Optional[datetime] = Field(
        default=None,
        description="Time the pump starts receiving concrete. Naive values are site-local.",
    )
    pump_onward_time: Optional[float] = Field(default=None, description="Pump travel time to site (minutes).")


class CalculateTMRequest(BaseModel):
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    site_address: Optional[str] = None
    created_by: Optional[str] = Field(default=None, description="Person or system creating the schedule.")
    average_capacity: Optional[float] = Field(
        default=None,
        gt=0,
        description="Mixer capacity (m3) to size the fleet with. Defaults to the active fleet average.",
    )
    input_params: InputParamsModel


class AvailableTMModel(BaseModel):
    id: str
    identifier: str
    capacity: float
    plant_id: Optional[str] = None
    plant_name: Optional[str] = None
    availability: bool


class CalculateTMResponse(BaseModel):
    schedule_id: str
    tm_count: int
    required_tms: int
    total_trips: int
    trips_per_tm: float
    cycle_time: float
    unloading_time: float
    average_capacity: float
    available_tms: List[AvailableTMModel]


class TripModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trip_no: int
    tm_no: str
    tm_id: str
    plant_start: datetime
    pump_start: datetime
    unloading_time: datetime
    return_at: datetime = Field(..., alias="return")
    completed_capacity: float
    dispatched_capacity: float
    cycle_time: float
    trip_no_for_tm: int
    cushion_time: Optional[float] = None
    idle_time: float = 0.0
    plant_name: Optional[str] = None


class CancelationModel(BaseModel):
    canceled_by: Optional[str] = None
    reason: Optional[str] = None
    canceled_at: Optional[datetime] = None


class ScheduleModel(BaseModel):
    id: str
    status: str
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    site_address: Optional[str] = None
    created_by: Optional[str] = None
    input_params: InputParamsModel
    output_table: List[TripModel]
    tm_count: int
    tm_overrule: Optional[int] = None
    pumping_time: Optional[float] = None
    idle_time: Optional[float] = None
    estimate: Optional[dict] = None
    cancelation: Optional[CancelationModel] = None
    plan_metadata: dict = Field(default_factory=dict)
    created_at: datetime
    last_updated: datetime


class CancelRequest(BaseModel):
    canceled_by: str
    reason: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: Literal["confirmed", "completed"]


class UtilizationResponse(BaseModel):
    day: date
    start_hour: int
    hours: List[int]


class TransitMixerModel(BaseModel):
    id: str
    identifier: str
    capacity: float
    plant_id: Optional[str] = None
    plant_name: Optional[str] = None
    status: str


class AverageCapacityResponse(BaseModel):
    average_capacity: float
    active_count: int
