from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo
from pathlib import Path

from tm_scheduler.models.domain import (
    Cancelation,
    FleetEstimate,
    InputParams,
    MixerBooking,
    Schedule,
    ScheduleStatus,
    Trip,
)
from tm_scheduler.persistence.filesystem import FileStorage
from tm_scheduler.persistence.schedules import ScheduleRepository, find_conflicts
from tm_scheduler.services.scheduling.timeutils import normalize_timestamp

START = normalize_timestamp(datetime(2026, 3, 2, 8, 0))


def _schedule(schedule_id: str = "S-1") -> Schedule:
    trip = Trip(
        trip_no=1,
        tm_no="TM-1",
        tm_id="TM-1",
        plant_start=START - timedelta(minutes=30),
        pump_start=START,
        unloading_time=START + timedelta(minutes=12.5),
        return_time=START + timedelta(minutes=42.5),
        completed_capacity=6.25,
        dispatched_capacity=6.25,
        cycle_time=72.5,
        trip_no_for_tm=1,
        cushion_time=None,
        idle_time=0.0,
        plant_name="North Plant",
    )
    return Schedule(
        id=schedule_id,
        input_params=InputParams(
            quantity=6.25,
            pumping_speed=30,
            onward_time=30,
            return_time=30,
            buffer_time=10,
            schedule_date=date(2026, 3, 2),
            pump_start=START,
        ),
        created_at=START - timedelta(days=1),
        last_updated=START - timedelta(hours=20),
        status=ScheduleStatus.CANCELLED,
        client_id="C-1",
        tm_count=1,
        output_table=[trip],
        pumping_time=12.5,
        idle_time=0.0,
        estimate=FleetEstimate(
            tm_count=1, total_trips=1, trips_per_tm=1.0, cycle_time=82.5, unloading_time=12.5, average_capacity=6.0
        ),
        cancelation=Cancelation(canceled_by="ops", reason="rain", canceled_at=START - timedelta(hours=2)),
        plan_metadata={"policy": "earliest_available"},
    )


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="schedule_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == (tmp_path / "outputs").resolve()


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="schedule_test")

    summary_path = run_dir / "summary.json"
    trips_path = run_dir / "trips.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(trips_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert trips_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert not list(run_dir.glob("*.tmp"))


def test_file_storage_documents(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    storage.save_document("schedules", "a", {"id": "a"})
    storage.save_document("schedules", "b", {"id": "b"})

    assert storage.load_document("schedules", "a") == {"id": "a"}
    assert [doc["id"] for doc in storage.iter_documents("schedules")] == ["a", "b"]
    assert storage.delete_document("schedules", "a") is True
    assert storage.delete_document("schedules", "a") is False
    assert storage.load_document("schedules", "a") is None
    assert list(storage.iter_documents("missing")) == []


def test_schedule_round_trips_through_repository(tmp_path: Path) -> None:
    repository = ScheduleRepository(storage=FileStorage(root=tmp_path))
    schedule = _schedule()

    repository.save(schedule)

    assert repository.backend == "filesystem"
    assert repository.get("S-1") == schedule
    assert repository.get("S-2") is None


def test_trip_document_uses_return_key(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    ScheduleRepository(storage=storage).save(_schedule())

    document = storage.load_document("schedules", "S-1")

    assert "return" in document["output_table"][0]
    assert document["output_table"][0]["cushion_time"] is None


def test_find_conflicts_only_reports_overlaps_on_same_mixer() -> None:
    held = [MixerBooking("S-1", "TM-1", START, START + timedelta(hours=1))]
    candidates = [
        MixerBooking("S-2", "TM-1", START + timedelta(minutes=59), START + timedelta(hours=2)),
        MixerBooking("S-2", "TM-1", START + timedelta(hours=1), START + timedelta(hours=2)),
        MixerBooking("S-2", "TM-2", START, START + timedelta(hours=1)),
    ]

    conflicts = find_conflicts(candidates, held)

    assert len(conflicts) == 1
    assert conflicts[0]["tm_id"] == "TM-1"
    assert conflicts[0]["schedule_id"] == "S-1"


def test_find_conflicts_compares_instants_across_repeated_hour() -> None:
    zone = ZoneInfo("America/New_York")
    # 01:00-01:50 EDT, then 01:10-01:40 EST once the clock has gone back
    held = [
        MixerBooking(
            "S-1",
            "TM-1",
            datetime(2026, 11, 1, 1, 0, tzinfo=zone),
            datetime(2026, 11, 1, 1, 50, tzinfo=zone),
        )
    ]
    later = MixerBooking(
        "S-2",
        "TM-1",
        datetime(2026, 11, 1, 1, 10, tzinfo=zone, fold=1),
        datetime(2026, 11, 1, 1, 40, tzinfo=zone, fold=1),
    )

    assert find_conflicts([later], held) == []
    assert not later.overlaps(held[0])


def test_commit_excludes_own_bookings(tmp_path: Path) -> None:
    repository = ScheduleRepository(storage=FileStorage(root=tmp_path))
    schedule = _schedule()
    schedule.status = ScheduleStatus.GENERATED
    bookings = [MixerBooking("S-1", "TM-1", START, START + timedelta(hours=1))]

    repository.commit_generation(schedule, bookings)
    repository.commit_generation(schedule, bookings)

    assert repository.bookings_for(["TM-1"]) == bookings
    assert repository.bookings_for(["TM-1"], exclude_schedule_id="S-1") == []

    repository.release_bookings("S-1")
    assert repository.bookings_for(["TM-1"]) == []
