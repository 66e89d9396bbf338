"""Supabase persistence for schedules and mixer bookings."""

from __future__ import annotations

import logging
from typing import Any

from supabase import Client

SCHEDULES_TABLE = "schedules"
BOOKINGS_TABLE = "mixer_bookings"


def save_schedule_to_database(supabase: Client, document: dict[str, Any]) -> None:
    """Upsert one schedule document. The full document is kept in ``data``."""
    row = {
        "id": document["id"],
        "status": document["status"],
        "client_id": document.get("client_id"),
        "schedule_date": (document.get("input_params") or {}).get("schedule_date"),
        "data": document,
        "last_updated": document.get("last_updated"),
    }
    supabase.table(SCHEDULES_TABLE).upsert(row).execute()


def get_schedule_from_database(supabase: Client, schedule_id: str) -> dict | None:
    response = supabase.table(SCHEDULES_TABLE).select("data").eq("id", schedule_id).limit(1).execute()
    rows = response.data or []
    if not rows:
        return None
    return rows[0].get("data")


def list_schedules_from_database(
    supabase: Client,
    *,
    status: str | None = None,
    client_id: str | None = None,
    schedule_date: str | None = None,
) -> list[dict]:
    query = supabase.table(SCHEDULES_TABLE).select("data")
    if status:
        query = query.eq("status", status)
    if client_id:
        query = query.eq("client_id", client_id)
    if schedule_date:
        query = query.eq("schedule_date", schedule_date)
    response = query.order("last_updated", desc=True).execute()
    return [row["data"] for row in (response.data or []) if row.get("data")]


def delete_schedule_from_database(supabase: Client, schedule_id: str) -> bool:
    response = supabase.table(SCHEDULES_TABLE).delete().eq("id", schedule_id).execute()
    delete_bookings_from_database(supabase, schedule_id)
    return bool(response.data)


def get_bookings_from_database(supabase: Client, mixer_ids: list[str]) -> list[dict]:
    if not mixer_ids:
        return []
    response = supabase.table(BOOKINGS_TABLE).select("*").in_("tm_id", mixer_ids).execute()
    return list(response.data or [])


def replace_bookings_in_database(supabase: Client, schedule_id: str, bookings: list[dict]) -> None:
    delete_bookings_from_database(supabase, schedule_id)
    if bookings:
        supabase.table(BOOKINGS_TABLE).insert(bookings).execute()
    logging.info(f"Stored {len(bookings)} mixer booking(s) for schedule {schedule_id}")


def delete_bookings_from_database(supabase: Client, schedule_id: str) -> None:
    supabase.table(BOOKINGS_TABLE).delete().eq("schedule_id", schedule_id).execute()


def check_schedules_table(supabase: Client) -> int:
    """Return the number of stored schedules; raises when the table is missing."""
    response = supabase.table(SCHEDULES_TABLE).select("id", count="exact").limit(1).execute()
    return int(response.count or 0)
