from datetime import datetime, timedelta

import pytest

from tm_scheduler.services.scheduling.errors import NoMixerAvailable
from tm_scheduler.services.scheduling.fleet import FleetAvailability
from tm_scheduler.services.scheduling.timeutils import normalize_timestamp

START = normalize_timestamp(datetime(2026, 3, 2, 7, 30))


def test_select_mixer_breaks_ties_on_ascending_id() -> None:
    fleet = FleetAvailability.initial(["TM-3", "TM-1", "TM-2"], START)

    assert fleet.select_mixer(["TM-3", "TM-1", "TM-2"], START) == "TM-1"


def test_select_mixer_prefers_longest_free() -> None:
    fleet = FleetAvailability.initial(["TM-1", "TM-2"], START)
    fleet.book("TM-1", START + timedelta(minutes=20))

    assert fleet.select_mixer(["TM-1", "TM-2"], START + timedelta(minutes=30)) == "TM-2"


def test_select_mixer_honours_tolerance() -> None:
    fleet = FleetAvailability.initial(["TM-1"], START)
    fleet.book("TM-1", START + timedelta(minutes=10))

    with pytest.raises(NoMixerAvailable):
        fleet.select_mixer(["TM-1"], START)
    assert fleet.select_mixer(["TM-1"], START, tolerance_minutes=10) == "TM-1"


def test_earliest_returns_busy_mixer_that_frees_first() -> None:
    fleet = FleetAvailability.initial(["TM-1", "TM-2"], START)
    fleet.book("TM-1", START + timedelta(minutes=50))
    fleet.book("TM-2", START + timedelta(minutes=40))

    assert fleet.earliest(["TM-1", "TM-2"]) == "TM-2"


def test_snapshot_is_a_copy() -> None:
    fleet = FleetAvailability.initial(["TM-1"], START)
    snapshot = fleet.snapshot()
    fleet.book("TM-1", START + timedelta(hours=1))

    assert snapshot == {"TM-1": START}
    assert "TM-1" in fleet
    assert "TM-9" not in fleet
