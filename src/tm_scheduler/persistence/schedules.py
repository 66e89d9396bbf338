"""Schedule repository backed by Supabase or local JSON documents."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from supabase import Client

from ..models.domain import MixerBooking, Schedule
from ..services.scheduling.errors import MixerConflict
from . import database
from .documents import (
    booking_from_document,
    booking_to_document,
    schedule_from_document,
    schedule_to_document,
)
from .filesystem import FileStorage

SCHEDULES_COLLECTION = "schedules"
BOOKINGS_COLLECTION = "bookings"

# Serializes the conflict check and the booking write within this process.
_COMMIT_LOCK = threading.Lock()


def find_conflicts(candidates: Iterable[MixerBooking], existing: Iterable[MixerBooking]) -> list[dict]:
    existing = list(existing)
    conflicts: list[dict] = []
    for booking in candidates:
        for other in existing:
            if booking.overlaps(other):
                conflicts.append(
                    {
                        "tm_id": booking.tm_id,
                        "schedule_id": other.schedule_id,
                        "start": other.start.isoformat(),
                        "end": other.end.isoformat(),
                    }
                )
    return conflicts


class ScheduleRepository:
    """Stores schedules and the mixer windows they hold.

    Uses Supabase when a client is supplied, otherwise JSON files under the
    storage root.
    """

    def __init__(self, storage: FileStorage | None = None, supabase: Client | None = None) -> None:
        self.supabase = supabase
        self.storage = storage if storage is not None or supabase is not None else FileStorage()

    @property
    def backend(self) -> str:
        return "supabase" if self.supabase is not None else "filesystem"

    def get(self, schedule_id: str) -> Schedule | None:
        if self.supabase is not None:
            document = database.get_schedule_from_database(self.supabase, schedule_id)
        else:
            document = self.storage.load_document(SCHEDULES_COLLECTION, schedule_id)
        return schedule_from_document(document) if document else None

    def save(self, schedule: Schedule) -> None:
        document = schedule_to_document(schedule)
        if self.supabase is not None:
            database.save_schedule_to_database(self.supabase, document)
        else:
            self.storage.save_document(SCHEDULES_COLLECTION, schedule.id, document)

    def list_schedules(
        self,
        *,
        status: str | None = None,
        client_id: str | None = None,
        schedule_date: str | None = None,
    ) -> list[Schedule]:
        if self.supabase is not None:
            documents = database.list_schedules_from_database(
                self.supabase, status=status, client_id=client_id, schedule_date=schedule_date
            )
        else:
            documents = []
            for document in self.storage.iter_documents(SCHEDULES_COLLECTION):
                if status and document.get("status") != status:
                    continue
                if client_id and document.get("client_id") != client_id:
                    continue
                if schedule_date and (document.get("input_params") or {}).get("schedule_date") != schedule_date:
                    continue
                documents.append(document)
        schedules = [schedule_from_document(document) for document in documents]
        schedules.sort(key=lambda item: item.last_updated, reverse=True)
        return schedules

    def delete(self, schedule_id: str) -> bool:
        if self.supabase is not None:
            return database.delete_schedule_from_database(self.supabase, schedule_id)
        self.storage.delete_document(BOOKINGS_COLLECTION, schedule_id)
        return self.storage.delete_document(SCHEDULES_COLLECTION, schedule_id)

    def bookings_for(self, mixer_ids: Iterable[str], *, exclude_schedule_id: str | None = None) -> list[MixerBooking]:
        wanted = set(mixer_ids)
        if self.supabase is not None:
            documents = database.get_bookings_from_database(self.supabase, sorted(wanted))
        else:
            documents = [
                item
                for document in self.storage.iter_documents(BOOKINGS_COLLECTION)
                for item in document.get("bookings", [])
            ]
        bookings = [booking_from_document(item) for item in documents]
        return [
            booking
            for booking in bookings
            if booking.tm_id in wanted and booking.schedule_id != exclude_schedule_id
        ]

    def release_bookings(self, schedule_id: str) -> None:
        if self.supabase is not None:
            database.delete_bookings_from_database(self.supabase, schedule_id)
        else:
            self.storage.delete_document(BOOKINGS_COLLECTION, schedule_id)

    def commit_generation(self, schedule: Schedule, bookings: list[MixerBooking]) -> None:
        """Persist a generated schedule and its mixer windows.

        Raises :class:`MixerConflict` if another schedule already holds an
        overlapping window on any of the mixers; nothing is written then.
        """
        with _COMMIT_LOCK:
            existing = self.bookings_for(
                {booking.tm_id for booking in bookings},
                exclude_schedule_id=schedule.id,
            )
            conflicts = find_conflicts(bookings, existing)
            if conflicts:
                logging.warning(f"Schedule {schedule.id}: {len(conflicts)} mixer window conflict(s)")
                raise MixerConflict(conflicts)

            booking_documents = [booking_to_document(booking) for booking in bookings]
            if self.supabase is not None:
                database.replace_bookings_in_database(self.supabase, schedule.id, booking_documents)
            else:
                self.storage.save_document(
                    BOOKINGS_COLLECTION,
                    schedule.id,
                    {"schedule_id": schedule.id, "bookings": booking_documents},
                )
            self.save(schedule)
