"""Schedule planning endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Literal, NoReturn

from fastapi import APIRouter, Body, HTTPException, Query, status
from fastapi.responses import FileResponse

from ...schemas.schedules import (
    CalculateTMRequest,
    CalculateTMResponse,
    CancelRequest,
    ScheduleModel,
    StatusUpdateRequest,
    TripModel,
    UtilizationResponse,
)
from ...services.outputs.schedule_formatter import schedule_to_model, trip_to_model
from ...services.scheduling import service as schedule_service
from ...services.scheduling.errors import (
    ComputationTimeout,
    InsufficientFleet,
    InvalidStatusTransition,
    MixerConflict,
    ScheduleNotFound,
)

router = APIRouter(prefix="/schedules", tags=["schedules"])

_MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _raise_http(exc: Exception, action: str) -> NoReturn:
    if isinstance(exc, ScheduleNotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, MixerConflict):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "conflicts": exc.conflicts},
        ) from exc
    if isinstance(exc, InvalidStatusTransition):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, InsufficientFleet):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if isinstance(exc, ComputationTimeout):
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc)) from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logging.exception(f"Error while trying to {action}: {exc}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc}",
    ) from exc


@router.post("/calculate-tm", response_model=CalculateTMResponse, status_code=status.HTTP_200_OK)
def calculate_tm(payload: CalculateTMRequest) -> CalculateTMResponse:
    """Estimate how many mixers the pour needs and store a draft schedule."""
    try:
        return schedule_service.calculate_tms(payload)
    except Exception as exc:
        _raise_http(exc, "calculate transit mixers")


@router.get("/utilization", response_model=UtilizationResponse, status_code=status.HTTP_200_OK)
def get_utilization(
    day: date = Query(..., alias="date", description="Calendar day in the site timezone"),
    start_hour: int = Query(default=0, ge=0, le=23, description="Hour the 24 hour window opens at"),
) -> UtilizationResponse:
    try:
        hours = schedule_service.hourly_utilization(day, start_hour=start_hour)
    except Exception as exc:
        _raise_http(exc, "build utilization")
    return UtilizationResponse(day=day, start_hour=start_hour, hours=hours)


@router.get("", response_model=List[ScheduleModel], status_code=status.HTTP_200_OK)
def list_schedules(
    status_filter: str | None = Query(default=None, alias="status", description="Filter by schedule status"),
    client_id: str | None = Query(default=None, description="Filter by client"),
    schedule_date: date | None = Query(default=None, description="Filter by pour date"),
) -> List[ScheduleModel]:
    try:
        schedules = schedule_service.list_schedules(
            status=status_filter,
            client_id=client_id,
            schedule_date=schedule_date,
        )
    except Exception as exc:
        _raise_http(exc, "list schedules")
    return [schedule_to_model(schedule) for schedule in schedules]


@router.get("/{schedule_id}", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
def get_schedule(schedule_id: str) -> ScheduleModel:
    try:
        return schedule_to_model(schedule_service.get_schedule(schedule_id))
    except Exception as exc:
        _raise_http(exc, "load schedule")


@router.put("/{schedule_id}", response_model=CalculateTMResponse, status_code=status.HTTP_200_OK)
def update_schedule(schedule_id: str, payload: CalculateTMRequest) -> CalculateTMResponse:
    """Replace the pour parameters; any generated trips are discarded."""
    try:
        return schedule_service.update_schedule(schedule_id, payload)
    except Exception as exc:
        _raise_http(exc, "update schedule")


@router.post(
    "/{schedule_id}/generate-schedule",
    response_model=List[TripModel],
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
def generate_schedule(
    schedule_id: str,
    mixer_ids: List[str] = Body(..., description="Selected transit mixer ids, in dispatch order"),
    policy: Literal["earliest_available", "sequence", "fewest_mixers"] | None = Query(
        default=None,
        description="Mixer dispatch policy; defaults to the configured policy",
    ),
) -> List[TripModel]:
    """Plan trips for the selected mixers.

    The body is a bare JSON array of mixer ids. Calling again with the same
    selection reproduces the same plan.
    """
    try:
        schedule = schedule_service.generate_schedule(schedule_id, mixer_ids, policy=policy)
    except Exception as exc:
        _raise_http(exc, "generate schedule")
    return [trip_to_model(trip) for trip in schedule.output_table]


@router.post("/{schedule_id}/cancel", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
def cancel_schedule(schedule_id: str, payload: CancelRequest) -> ScheduleModel:
    try:
        schedule = schedule_service.cancel_schedule(schedule_id, payload.canceled_by, payload.reason)
    except Exception as exc:
        _raise_http(exc, "cancel schedule")
    return schedule_to_model(schedule)


@router.patch("/{schedule_id}/status", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
def update_schedule_status(schedule_id: str, payload: StatusUpdateRequest) -> ScheduleModel:
    try:
        schedule = schedule_service.update_status(schedule_id, payload.status)
    except Exception as exc:
        _raise_http(exc, "update schedule status")
    return schedule_to_model(schedule)


@router.delete("/{schedule_id}", status_code=status.HTTP_200_OK)
def delete_schedule(
    schedule_id: str,
    delete_type: Literal["temporarily", "permanently"] = Query(default="temporarily"),
    canceled_by: str | None = Query(default=None, description="Who removed the schedule"),
    cancel_reason: str | None = Query(default=None, description="Why the schedule was removed"),
) -> dict:
    try:
        return schedule_service.delete_schedule(
            schedule_id,
            delete_type=delete_type,
            canceled_by=canceled_by,
            cancel_reason=cancel_reason,
        )
    except Exception as exc:
        _raise_http(exc, "delete schedule")


@router.get("/{schedule_id}/export", response_class=FileResponse, status_code=status.HTTP_200_OK)
def export_schedule(
    schedule_id: str,
    file_format: Literal["csv", "xlsx"] = Query(default="csv", alias="format"),
) -> FileResponse:
    try:
        file_path = schedule_service.export_schedule(schedule_id, file_format)
    except Exception as exc:
        _raise_http(exc, "export schedule")

    filename = f"schedule_{schedule_id}.{file_format}"
    return FileResponse(
        path=file_path,
        filename=filename,
        media_type=_MEDIA_TYPES[file_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
