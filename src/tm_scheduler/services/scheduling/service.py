"""Schedule orchestration: draft estimation, trip generation and cancellation."""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Sequence, TypeVar

from ...config import settings
from ...data.tms_repository import find_mixers, get_transit_mixers
from ...db.supabase import get_supabase_client
from ...models.domain import (
    Cancelation,
    InputParams,
    MixerBooking,
    Schedule,
    ScheduleStatus,
    TransitMixer,
    can_transition,
)
from ...persistence.filesystem import FileStorage
from ...persistence.schedules import ScheduleRepository
from ...schemas.schedules import (
    AvailableTMModel,
    CalculateTMRequest,
    CalculateTMResponse,
    InputParamsModel,
)
from ..outputs.schedule_formatter import schedule_to_csv, schedule_to_json, schedule_to_xlsx
from ..reports.utilization import build_hourly_utilization
from .errors import (
    ComputationTimeout,
    InvalidMixerSelection,
    InvalidStatusTransition,
    ScheduleNotFound,
)
from .estimator import average_capacity, estimate_mixer_count
from .planner import plan_trips, resolve_pump_start, unloading_minutes, validate_input_params
from .policies import get_policy
from .timeutils import add_minutes, normalize_timestamp

T = TypeVar("T")

# Shared by every request; a planning call that times out keeps its worker until it returns.
_PLANNER_POOL = ThreadPoolExecutor(max_workers=settings.planner_workers, thread_name_prefix="planner")


def _repository() -> ScheduleRepository:
    return ScheduleRepository(storage=FileStorage(), supabase=get_supabase_client())


def _now() -> datetime:
    return normalize_timestamp(datetime.now(timezone.utc))


def to_input_params(model: InputParamsModel) -> InputParams:
    return InputParams(
        quantity=model.quantity,
        pumping_speed=model.pumping_speed,
        onward_time=model.onward_time,
        return_time=model.return_time,
        buffer_time=model.buffer_time,
        schedule_date=model.schedule_date,
        pump_start=normalize_timestamp(model.pump_start) if model.pump_start else None,
        pump_onward_time=model.pump_onward_time,
    )


def _load(repository: ScheduleRepository, schedule_id: str) -> Schedule:
    schedule = repository.get(schedule_id)
    if schedule is None:
        raise ScheduleNotFound(schedule_id)
    return schedule


def _ensure_transition(schedule: Schedule, target: ScheduleStatus) -> None:
    if not can_transition(schedule.status, target):
        raise InvalidStatusTransition(schedule.status.value, target.value)


def _run_with_timeout(func: Callable[..., T], *args, **kwargs) -> T:
    future = _PLANNER_POOL.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=settings.computation_timeout_seconds)
    except FuturesTimeoutError as exc:
        raise ComputationTimeout(
            f"Planning did not finish within {settings.computation_timeout_seconds:g}s."
        ) from exc


def _estimated_window(params: InputParams) -> tuple[datetime, datetime]:
    pump_start = resolve_pump_start(params)
    start = add_minutes(pump_start, -params.onward_time)
    pumping = unloading_minutes(params.quantity, params.pumping_speed)
    end = add_minutes(pump_start, pumping + params.return_time + params.buffer_time)
    return start, end


def _available_mixers(
    repository: ScheduleRepository,
    fleet: Sequence[TransitMixer],
    schedule: Schedule,
) -> list[AvailableTMModel]:
    active = sorted((mixer for mixer in fleet if mixer.is_active), key=lambda mixer: mixer.identifier)
    start, end = _estimated_window(schedule.input_params)
    window = [MixerBooking(schedule_id=schedule.id, tm_id=mixer.id, start=start, end=end) for mixer in active]
    held = repository.bookings_for((mixer.id for mixer in active), exclude_schedule_id=schedule.id)
    busy = {booking.tm_id for booking in window for other in held if booking.overlaps(other)}
    return [
        AvailableTMModel(
            id=mixer.id,
            identifier=mixer.identifier,
            capacity=mixer.capacity,
            plant_id=mixer.plant_id,
            plant_name=mixer.plant_name,
            availability=mixer.id not in busy,
        )
        for mixer in active
    ]


def _estimate_into(schedule: Schedule, fleet: Sequence[TransitMixer], override: float | None) -> None:
    capacity = override or average_capacity(fleet)
    estimate = estimate_mixer_count(schedule.input_params, capacity)
    schedule.estimate = estimate
    schedule.tm_count = estimate.tm_count


def _calculate_response(
    repository: ScheduleRepository,
    fleet: Sequence[TransitMixer],
    schedule: Schedule,
) -> CalculateTMResponse:
    estimate = schedule.estimate
    return CalculateTMResponse(
        schedule_id=schedule.id,
        tm_count=schedule.tm_count,
        required_tms=estimate.tm_count,
        total_trips=estimate.total_trips,
        trips_per_tm=estimate.trips_per_tm,
        cycle_time=estimate.cycle_time,
        unloading_time=estimate.unloading_time,
        average_capacity=estimate.average_capacity,
        available_tms=_available_mixers(repository, fleet, schedule),
    )


def calculate_tms(payload: CalculateTMRequest) -> CalculateTMResponse:
    """Validate inputs, size the fleet and store a draft schedule."""
    params = to_input_params(payload.input_params)
    validate_input_params(params)

    fleet = get_transit_mixers()
    now = _now()
    schedule = Schedule(
        id=uuid.uuid4().hex,
        input_params=params,
        created_at=now,
        last_updated=now,
        client_id=payload.client_id,
        client_name=payload.client_name,
        site_address=payload.site_address,
        created_by=payload.created_by,
    )
    _estimate_into(schedule, fleet, payload.average_capacity)

    repository = _repository()
    repository.save(schedule)
    logging.info(f"Draft schedule {schedule.id} created with advisory tm_count={schedule.tm_count}")
    return _calculate_response(repository, fleet, schedule)


def update_schedule(schedule_id: str, payload: CalculateTMRequest) -> CalculateTMResponse:
    """Replace the inputs of a draft or generated schedule and re-estimate it.

    Any generated trips are discarded and the schedule returns to draft.
    """
    params = to_input_params(payload.input_params)
    validate_input_params(params)

    repository = _repository()
    schedule = _load(repository, schedule_id)
    _ensure_transition(schedule, ScheduleStatus.DRAFT)

    fleet = get_transit_mixers()
    schedule.input_params = params
    schedule.client_id = payload.client_id or schedule.client_id
    schedule.client_name = payload.client_name or schedule.client_name
    schedule.site_address = payload.site_address or schedule.site_address
    _estimate_into(schedule, fleet, payload.average_capacity)
    schedule.output_table = []
    schedule.pumping_time = None
    schedule.idle_time = None
    schedule.tm_overrule = None
    schedule.plan_metadata = {}
    schedule.status = ScheduleStatus.DRAFT
    schedule.last_updated = _now()

    repository.release_bookings(schedule.id)
    repository.save(schedule)
    return _calculate_response(repository, fleet, schedule)


def _resolve_selection(mixer_ids: Sequence[str]) -> list[TransitMixer]:
    if not mixer_ids:
        raise InvalidMixerSelection("Select at least one transit mixer.")

    unique_ids: list[str] = []
    for mixer_id in mixer_ids:
        normalized = str(mixer_id).strip()
        if not normalized:
            continue
        if normalized in unique_ids:
            logging.warning(f"Mixer {normalized} selected more than once, using first occurrence")
            continue
        unique_ids.append(normalized)
    if not unique_ids:
        raise InvalidMixerSelection("Select at least one transit mixer.")

    found, missing = find_mixers(unique_ids)
    if missing:
        raise InvalidMixerSelection(f"Unknown transit mixer(s): {', '.join(missing)}")
    inactive = [mixer.identifier for mixer in found if not mixer.is_active]
    if inactive:
        raise InvalidMixerSelection(f"Inactive transit mixer(s): {', '.join(inactive)}")

    # an id and a TM number can name the same mixer
    selected: dict[str, TransitMixer] = {}
    for mixer in found:
        if mixer.id in selected:
            logging.warning(f"Mixer {mixer.identifier} ({mixer.id}) selected more than once, using first occurrence")
            continue
        selected[mixer.id] = mixer
    return list(selected.values())


def generate_schedule(schedule_id: str, mixer_ids: Sequence[str], policy: str | None = None) -> Schedule:
    """Plan trips for a draft schedule with the caller's mixer selection."""
    mixers = _resolve_selection(mixer_ids)

    repository = _repository()
    schedule = _load(repository, schedule_id)
    _ensure_transition(schedule, ScheduleStatus.GENERATED)
    dispatch_policy = get_policy(policy)

    result = _run_with_timeout(plan_trips, schedule.input_params, mixers, policy=dispatch_policy)
    if result.degraded:
        logging.warning(
            f"Schedule {schedule.id}: plan leaves the pump idle {result.idle_time:.1f} min "
            f"({result.degraded_trips} late trip(s), {result.tight_trips} with no cushion)"
        )

    schedule.output_table = result.trips
    schedule.pumping_time = result.pumping_time
    schedule.idle_time = result.idle_time
    schedule.tm_overrule = len(mixers) if len(mixers) != schedule.tm_count else None
    schedule.plan_metadata = {
        **result.metadata(),
        "selected_tm_ids": [mixer.id for mixer in mixers],
        "tm_used": result.tm_count,
    }
    schedule.status = ScheduleStatus.GENERATED
    schedule.last_updated = _now()

    repository.commit_generation(schedule, result.bookings(schedule.id))
    logging.info(f"Schedule {schedule.id} generated: {len(result.trips)} trips on {result.tm_count} mixer(s)")
    return schedule


def cancel_schedule(schedule_id: str, canceled_by: str, reason: str | None = None) -> Schedule:
    repository = _repository()
    schedule = _load(repository, schedule_id)
    _ensure_transition(schedule, ScheduleStatus.CANCELLED)

    now = _now()
    schedule.status = ScheduleStatus.CANCELLED
    schedule.cancelation = Cancelation(canceled_by=canceled_by, reason=reason, canceled_at=now)
    schedule.last_updated = now

    repository.release_bookings(schedule.id)
    repository.save(schedule)
    logging.info(f"Schedule {schedule.id} cancelled by {canceled_by}")
    return schedule


def update_status(schedule_id: str, status: str) -> Schedule:
    target = ScheduleStatus(status)
    repository = _repository()
    schedule = _load(repository, schedule_id)
    _ensure_transition(schedule, target)
    schedule.status = target
    schedule.last_updated = _now()
    repository.save(schedule)
    return schedule


def get_schedule(schedule_id: str) -> Schedule:
    return _load(_repository(), schedule_id)


def list_schedules(
    *,
    status: str | None = None,
    client_id: str | None = None,
    schedule_date: date | None = None,
) -> list[Schedule]:
    return _repository().list_schedules(
        status=status,
        client_id=client_id,
        schedule_date=schedule_date.isoformat() if schedule_date else None,
    )


def delete_schedule(
    schedule_id: str,
    delete_type: str = "temporarily",
    canceled_by: str | None = None,
    cancel_reason: str | None = None,
) -> dict:
    """Soft delete (cancel) or permanently remove a schedule."""
    if delete_type == "permanently":
        repository = _repository()
        if not repository.delete(schedule_id):
            raise ScheduleNotFound(schedule_id)
        logging.info(f"Schedule {schedule_id} permanently deleted")
        return {"schedule_id": schedule_id, "deleted": True, "status": "deleted"}
    if delete_type != "temporarily":
        raise ValueError(f"Unknown delete_type '{delete_type}'.")
    schedule = cancel_schedule(schedule_id, canceled_by or "system", cancel_reason)
    return {"schedule_id": schedule.id, "deleted": False, "status": schedule.status.value}


def export_schedule(schedule_id: str, file_format: str = "csv") -> Path:
    """Write the schedule's trip table under the outputs folder and return the file."""
    schedule = get_schedule(schedule_id)
    storage = FileStorage()
    run_dir = storage.make_run_directory(prefix=f"schedule_{schedule.id}")

    match file_format:
        case "csv":
            path = run_dir / "trips.csv"
            storage.write_csv(path, schedule_to_csv(schedule))
        case "xlsx":
            path = run_dir / "trips.xlsx"
            storage.write_bytes(path, schedule_to_xlsx(schedule))
        case _:
            raise ValueError(f"Unsupported export format '{file_format}'.")
    storage.write_json(run_dir / "summary.json", schedule_to_json(schedule))
    logging.info(f"Exported schedule {schedule.id} to {path}")
    return path


def hourly_utilization(day: date, start_hour: int = 0) -> list[int]:
    schedules = list_schedules()
    return build_hourly_utilization(schedules, day, start_hour=start_hour)
