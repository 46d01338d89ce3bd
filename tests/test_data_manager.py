"""
Tests for roster file loading and validation.
"""

import json
import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.data_manager import DataManager
from shift_roster.models import (
    DataFileCorruptedError,
    DataFileNotFoundError,
    DataManagerError,
    DataValidationError,
    ManualShiftEntry,
    ShiftRequirement,
    WorkerPreference,
)


ROSTER = {
    "employees": [
        {"id": "w1", "name": "Alice", "preference": "Either", "availability": {"daysOff": [0, 6]}},
        {"id": "w2", "name": "Bob", "preference": "Night Only", "targetShifts": 12},
        {"id": "w3", "name": "Carol", "preference": "Day Only", "availability": {"daysOff": []}},
    ],
    "config": {
        "dayStartTime": "06:00",
        "distributeDayShiftsToEither": True,
        "requirements": {"1": {"day": 2, "night": 1}, "0": {"day": 0, "night": 1}},
    },
    "manualHistory": {
        "2024-02-05": {"dayShift": ["w1"], "nightShift": ["w2"]},
    },
}


def write_roster(tmp_path, data, name="roster.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def data_manager(tmp_path):
    """DataManager over an isolated roster file."""
    return DataManager(write_roster(tmp_path, ROSTER))


def test_workers_loaded_in_roster_order(data_manager):
    workers = data_manager.get_workers()
    assert [w.id for w in workers] == ["w1", "w2", "w3"]

    alice, bob, carol = workers
    assert alice.days_off == {0, 6}
    assert alice.target_shifts is None and alice.quota == 0
    assert bob.preference == WorkerPreference.NIGHT_ONLY
    assert bob.quota == 12
    assert carol.preference == WorkerPreference.DAY_ONLY


def test_worker_lookup(data_manager):
    assert data_manager.get_worker_by_id("w2").name == "Bob"
    assert data_manager.get_worker_by_id("missing") is None
    assert data_manager.get_worker_by_name("  carol ").id == "w3"
    assert data_manager.get_worker_by_name("Zed") is None


def test_config_parsing(data_manager):
    config = data_manager.get_config()
    assert config.day_start_time == "06:00"
    assert config.night_end_time == "07:00"
    assert config.distribute_day_shifts_to_either
    assert config.requirement_for(1) == ShiftRequirement(day=2, night=1)
    assert config.requirement_for(0) == ShiftRequirement(day=0, night=1)
    # Weekdays without an entry fall back to one of each
    assert config.requirement_for(3) == ShiftRequirement(day=1, night=1)


def test_manual_history_parsing(data_manager):
    manual = data_manager.get_manual_history()
    assert manual == {"2024-02-05": ManualShiftEntry(day_shift=("w1",), night_shift=("w2",))}


def test_worker_round_trip(data_manager):
    for worker in data_manager.get_workers():
        assert type(worker).from_dict(worker.to_dict()) == worker


def test_missing_sections_default_to_empty(tmp_path):
    dm = DataManager(write_roster(tmp_path, {}))
    assert dm.get_workers() == []
    assert dm.get_manual_history() == {}
    assert dm.get_config().requirements == {}


def test_missing_file(tmp_path):
    with pytest.raises(DataFileNotFoundError):
        DataManager(tmp_path / "nope.json")


def test_corrupted_file(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text("{ not json", encoding="utf-8")
    with pytest.raises(DataFileCorruptedError):
        DataManager(path)


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"employees": {}},
        {"config": []},
        {"manualHistory": []},
        {"manualHistory": {"05/02/2024": {}}},
        {"manualHistory": {"2024-02-05": ["w1"]}},
        {"employees": ["Alice"]},
        {"employees": [{"id": "w1", "name": "Alice", "preference": "Sometimes"}]},
        {"employees": [{"id": "w1", "name": "Alice", "availability": {"daysOff": [7]}}]},
        {"employees": [{"id": "w1", "name": "Alice", "targetShifts": -1}]},
        {"employees": [{"name": "Alice"}]},
        {"employees": [{"id": "w1", "name": "Alice"}, {"id": "w1", "name": "Bob"}]},
        {"config": {"requirements": {"7": {"day": 1}}}},
        {"config": {"requirements": {"mon": {"day": 1}}}},
        {"config": {"requirements": {"1": {"day": -2}}}},
    ],
)
def test_invalid_roster_rejected(tmp_path, data):
    path = write_roster(tmp_path, data)
    with pytest.raises(DataValidationError):
        dm = DataManager(path)
        dm.get_config()


def test_errors_share_base_class():
    assert issubclass(DataFileNotFoundError, DataManagerError)
    assert issubclass(DataFileCorruptedError, DataManagerError)
    assert issubclass(DataValidationError, DataManagerError)
