"""Conversion between domain objects and stored JSON documents."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any

from ..models.domain import (
    Cancelation,
    FleetEstimate,
    InputParams,
    MixerBooking,
    Schedule,
    ScheduleStatus,
    Trip,
)
from ..services.scheduling.timeutils import parse_timestamp


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _ts(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return parse_timestamp(value)


def input_params_to_document(params: InputParams) -> dict:
    return {
        "quantity": params.quantity,
        "pumping_speed": params.pumping_speed,
        "onward_time": params.onward_time,
        "return_time": params.return_time,
        "buffer_time": params.buffer_time,
        "pump_onward_time": params.pump_onward_time,
        "pump_start": _iso(params.pump_start),
        "schedule_date": _iso(params.schedule_date),
    }


def input_params_from_document(doc: dict) -> InputParams:
    raw_date = doc.get("schedule_date")
    schedule_date = raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)[:10])
    return InputParams(
        quantity=float(doc["quantity"]),
        pumping_speed=float(doc["pumping_speed"]),
        onward_time=float(doc["onward_time"]),
        return_time=float(doc["return_time"]),
        buffer_time=float(doc["buffer_time"]),
        schedule_date=schedule_date,
        pump_start=_ts(doc.get("pump_start")),
        pump_onward_time=float(doc["pump_onward_time"]) if doc.get("pump_onward_time") is not None else None,
    )


def trip_to_document(trip: Trip) -> dict:
    return {
        "trip_no": trip.trip_no,
        "tm_no": trip.tm_no,
        "tm_id": trip.tm_id,
        "plant_start": _iso(trip.plant_start),
        "pump_start": _iso(trip.pump_start),
        "unloading_time": _iso(trip.unloading_time),
        "return": _iso(trip.return_time),
        "completed_capacity": trip.completed_capacity,
        "dispatched_capacity": trip.dispatched_capacity,
        "cycle_time": trip.cycle_time,
        "trip_no_for_tm": trip.trip_no_for_tm,
        "cushion_time": trip.cushion_time,
        "idle_time": trip.idle_time,
        "plant_name": trip.plant_name,
    }


def trip_from_document(doc: dict) -> Trip:
    return Trip(
        trip_no=int(doc["trip_no"]),
        tm_no=str(doc["tm_no"]),
        tm_id=str(doc["tm_id"]),
        plant_start=_ts(doc["plant_start"]),
        pump_start=_ts(doc["pump_start"]),
        unloading_time=_ts(doc["unloading_time"]),
        return_time=_ts(doc["return"]),
        completed_capacity=float(doc["completed_capacity"]),
        dispatched_capacity=float(doc.get("dispatched_capacity") or 0.0),
        cycle_time=float(doc.get("cycle_time") or 0.0),
        trip_no_for_tm=int(doc.get("trip_no_for_tm") or 1),
        cushion_time=float(doc["cushion_time"]) if doc.get("cushion_time") is not None else None,
        idle_time=float(doc.get("idle_time") or 0.0),
        plant_name=doc.get("plant_name"),
    )


def schedule_to_document(schedule: Schedule) -> dict:
    cancelation = None
    if schedule.cancelation:
        cancelation = {
            "canceled_by": schedule.cancelation.canceled_by,
            "reason": schedule.cancelation.reason,
            "canceled_at": _iso(schedule.cancelation.canceled_at),
        }
    return {
        "id": schedule.id,
        "status": schedule.status.value,
        "client_id": schedule.client_id,
        "client_name": schedule.client_name,
        "site_address": schedule.site_address,
        "created_by": schedule.created_by,
        "input_params": input_params_to_document(schedule.input_params),
        "output_table": [trip_to_document(trip) for trip in schedule.output_table],
        "tm_count": schedule.tm_count,
        "tm_overrule": schedule.tm_overrule,
        "pumping_time": schedule.pumping_time,
        "idle_time": schedule.idle_time,
        "estimate": asdict(schedule.estimate) if schedule.estimate else None,
        "cancelation": cancelation,
        "plan_metadata": schedule.plan_metadata,
        "created_at": _iso(schedule.created_at),
        "last_updated": _iso(schedule.last_updated),
    }


def schedule_from_document(doc: dict) -> Schedule:
    cancelation_doc = doc.get("cancelation")
    estimate_doc = doc.get("estimate")
    return Schedule(
        id=str(doc["id"]),
        status=ScheduleStatus(doc.get("status") or ScheduleStatus.DRAFT.value),
        client_id=doc.get("client_id"),
        client_name=doc.get("client_name"),
        site_address=doc.get("site_address"),
        created_by=doc.get("created_by"),
        input_params=input_params_from_document(doc["input_params"]),
        output_table=[trip_from_document(item) for item in doc.get("output_table") or []],
        tm_count=int(doc.get("tm_count") or 0),
        tm_overrule=doc.get("tm_overrule"),
        pumping_time=doc.get("pumping_time"),
        idle_time=doc.get("idle_time"),
        estimate=FleetEstimate(**estimate_doc) if estimate_doc else None,
        cancelation=Cancelation(
            canceled_by=cancelation_doc.get("canceled_by"),
            reason=cancelation_doc.get("reason"),
            canceled_at=_ts(cancelation_doc.get("canceled_at")),
        )
        if cancelation_doc
        else None,
        plan_metadata=dict(doc.get("plan_metadata") or {}),
        created_at=_ts(doc["created_at"]),
        last_updated=_ts(doc["last_updated"]),
    )


def booking_to_document(booking: MixerBooking) -> dict:
    return {
        "schedule_id": booking.schedule_id,
        "tm_id": booking.tm_id,
        "start": _iso(booking.start),
        "end": _iso(booking.end),
    }


def booking_from_document(doc: dict) -> MixerBooking:
    return MixerBooking(
        schedule_id=str(doc["schedule_id"]),
        tm_id=str(doc["tm_id"]),
        start=_ts(doc["start"]),
        end=_ts(doc["end"]),
    )
