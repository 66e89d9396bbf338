"""Transit mixer loader with database-first approach, falling back to an Excel workbook."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import TransitMixer

_REQUIRED_COLUMNS = {"Identifier", "Capacity"}


def _normalize_status(value: Any) -> str:
    if value is None or value == "":
        return "active"
    if isinstance(value, bool):
        return "active" if value else "inactive"
    text = str(value).strip().lower()
    if text in {"active", "available", "yes", "true", "1"}:
        return "active"
    return "inactive"


def _row_to_mixer(row: dict) -> TransitMixer:
    identifier = str(row.get("identifier") or row.get("tm_no") or "").strip()
    mixer_id = str(row.get("id") or row.get("_id") or identifier).strip()
    if not mixer_id:
        raise ValueError("mixer row has no id or identifier")
    return TransitMixer(
        id=mixer_id,
        identifier=identifier or mixer_id,
        capacity=float(row["capacity"]),
        plant_id=(str(row["plant_id"]) if row.get("plant_id") else None),
        plant_name=row.get("plant_name") or None,
        status=_normalize_status(row.get("status", row.get("availability"))),
    )


def _load_mixers_from_database() -> tuple[TransitMixer, ...] | None:
    """Load mixers from Supabase. Returns None if database not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table("transit_mixers").select("*").execute()
    except Exception as e:
        logging.warning(f"Transit mixer query failed, falling back to file: {e}")
        return None
    if not response.data:
        return None

    mixers: list[TransitMixer] = []
    for row in response.data:
        try:
            mixers.append(_row_to_mixer(row))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid transit mixer row: {e}")
    return tuple(mixers) if mixers else None


def _load_mixers_from_file(source: Path | None = None) -> tuple[TransitMixer, ...]:
    """Load mixers from the Excel workbook (Id, Identifier, Capacity, Plant, Status)."""
    workbook_path = source or settings.tms_file
    if not workbook_path.exists():
        logging.warning(f"Transit mixer workbook not found: {workbook_path}")
        return tuple()

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    sheet = wb.active
    rows = sheet.iter_rows(min_row=1, values_only=True)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"Transit mixer workbook '{workbook_path}' is empty.")

    header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
    missing_columns = _REQUIRED_COLUMNS - set(header_map)
    if missing_columns:
        raise ValueError(f"Transit mixer workbook missing columns: {', '.join(sorted(missing_columns))}")

    def _cell(row: tuple, column: str) -> Any:
        idx = header_map.get(column)
        return row[idx] if idx is not None and idx < len(row) else None

    mixers: list[TransitMixer] = []
    for row in rows:
        identifier = _cell(row, "Identifier")
        if not identifier:
            continue
        plant = _cell(row, "Plant")
        mixers.append(
            TransitMixer(
                id=str(_cell(row, "Id") or identifier).strip(),
                identifier=str(identifier).strip(),
                capacity=float(_cell(row, "Capacity")),
                plant_id=str(plant).strip() if plant else None,
                plant_name=str(plant).strip() if plant else None,
                status=_normalize_status(_cell(row, "Status")),
            )
        )
    wb.close()
    return tuple(mixers)


def get_transit_mixers(source: Path | None = None) -> tuple[TransitMixer, ...]:
    """Get mixers from the database first, fall back to the workbook."""
    db_mixers = _load_mixers_from_database()
    if db_mixers:
        return db_mixers
    return _load_mixers_from_file(source)


def get_active_mixers() -> tuple[TransitMixer, ...]:
    return tuple(mixer for mixer in get_transit_mixers() if mixer.is_active)


def find_mixers(mixer_ids: Iterable[str]) -> tuple[list[TransitMixer], list[str]]:
    """Resolve ids (or TM numbers) to mixers; returns (found, missing)."""
    fleet: Sequence[TransitMixer] = get_transit_mixers()
    by_id = {mixer.id: mixer for mixer in fleet}
    by_identifier = {mixer.identifier: mixer for mixer in fleet}
    found: list[TransitMixer] = []
    missing: list[str] = []
    for mixer_id in mixer_ids:
        mixer = by_id.get(mixer_id) or by_identifier.get(mixer_id)
        if mixer is None:
            missing.append(mixer_id)
        else:
            found.append(mixer)
    return found, missing
