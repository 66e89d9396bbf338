"""Utilities to serialize schedules into API models and CSV/XLSX artifacts."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from openpyxl import Workbook
from openpyxl.styles import Font

from ...models.domain import Schedule, Trip
from ...schemas.schedules import CancelationModel, InputParamsModel, ScheduleModel, TripModel
from ..scheduling.timeutils import format_clock

EXPORT_COLUMNS = [
    "Trip No",
    "TM No",
    "Plant Start",
    "Pump Start",
    "Unloading Time",
    "Return",
    "Completed Capacity",
]


def trip_to_model(trip: Trip) -> TripModel:
    return TripModel(
        trip_no=trip.trip_no,
        tm_no=trip.tm_no,
        tm_id=trip.tm_id,
        plant_start=trip.plant_start,
        pump_start=trip.pump_start,
        unloading_time=trip.unloading_time,
        return_at=trip.return_time,
        completed_capacity=trip.completed_capacity,
        dispatched_capacity=trip.dispatched_capacity,
        cycle_time=trip.cycle_time,
        trip_no_for_tm=trip.trip_no_for_tm,
        cushion_time=trip.cushion_time,
        idle_time=trip.idle_time,
        plant_name=trip.plant_name,
    )


def schedule_to_model(schedule: Schedule) -> ScheduleModel:
    cancelation = None
    if schedule.cancelation:
        cancelation = CancelationModel(
            canceled_by=schedule.cancelation.canceled_by,
            reason=schedule.cancelation.reason,
            canceled_at=schedule.cancelation.canceled_at,
        )
    return ScheduleModel(
        id=schedule.id,
        status=schedule.status.value,
        client_id=schedule.client_id,
        client_name=schedule.client_name,
        site_address=schedule.site_address,
        created_by=schedule.created_by,
        input_params=InputParamsModel.model_validate(asdict(schedule.input_params)),
        output_table=[trip_to_model(trip) for trip in schedule.output_table],
        tm_count=schedule.tm_count,
        tm_overrule=schedule.tm_overrule,
        pumping_time=schedule.pumping_time,
        idle_time=schedule.idle_time,
        estimate=asdict(schedule.estimate) if schedule.estimate else None,
        cancelation=cancelation,
        plan_metadata=dict(schedule.plan_metadata),
        created_at=schedule.created_at,
        last_updated=schedule.last_updated,
    )


def schedule_to_json(schedule: Schedule) -> dict:
    return schedule_to_model(schedule).model_dump(mode="json", by_alias=True)


def _export_rows(schedule: Schedule) -> list[list]:
    return [
        [
            trip.trip_no,
            trip.tm_no,
            format_clock(trip.plant_start),
            format_clock(trip.pump_start),
            format_clock(trip.unloading_time),
            format_clock(trip.return_time),
            round(trip.completed_capacity, 3),
        ]
        for trip in schedule.output_table
    ]


def schedule_to_csv(schedule: Schedule) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    writer.writerows(_export_rows(schedule))
    return buffer.getvalue()


def schedule_to_xlsx(schedule: Schedule) -> bytes:
    wb = Workbook()
    sheet = wb.active
    sheet.title = "Trips"
    sheet.append(EXPORT_COLUMNS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in _export_rows(schedule):
        sheet.append(row)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
