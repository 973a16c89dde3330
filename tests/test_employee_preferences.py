"""
Tests for enforcement of employee preferences (preferred days and
specializations) when generating through the registry-backed scheduler.
"""

import pytest
from pathlib import Path
import sys
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staff_scheduler.data_manager import DataManager
from staff_scheduler.scheduler_logic import ShiftScheduler, FixedOrdering, InvalidInputError, RandomOrdering

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri"]


@pytest.fixture
def data_manager():
    """Fixture for a clean DataManager instance for each test."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    dm.add_shift("ER Nurse", 2)
    dm.add_shift("Ward Nurse", 1)
    dm.add_employee("emp1", ["ER Nurse"], 5, WEEKDAYS)
    dm.add_employee("emp2", ["ER Nurse", "Ward Nurse"], 4, WEEKDAYS + ["Sat"])
    dm.add_employee("emp3", ["Ward Nurse"], 3, ["Sat", "Sun", "Mon"])
    yield dm
    for path in (Path(temp_path), Path(temp_path).with_suffix(".bak"), Path(temp_path).with_suffix(".tmp")):
        if path.exists():
            os.unlink(path)


@pytest.fixture
def scheduler(data_manager):
    """Fixture for a ShiftScheduler instance."""
    return ShiftScheduler(data_manager, ordering=RandomOrdering(seed=11))


@pytest.mark.parametrize(
    "preferred_days, specializations",
    [
        (["Sat", "Sun"], ["ER Nurse"]),
        (["Wed"], ["Ward Nurse", "ER Nurse"]),
        (["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"], ["Ward Nurse"]),
    ]
)
def test_employee_preferences_enforced(data_manager, scheduler, preferred_days, specializations):
    """
    An employee is only ever placed on a preferred day and in a shift they
    specialize in.
    """
    data_manager.add_employee("TestEmployee", specializations, 7, preferred_days)
    result = scheduler.generate_schedule("2025-08-04", 21, 7)

    for day_schedule in result.schedule:
        shift = day_schedule.shift_for("TestEmployee")
        if shift is None:
            continue
        assert day_schedule.day in preferred_days, f"TestEmployee scheduled on {day_schedule.date}"
        assert shift in specializations


def test_facade_reports_understaffing_and_statistics(data_manager):
    """
    Why this is important: Under-filled shifts are a valid result, so the
    caller must be able to see them without re-scanning the schedule.
    """
    scheduler = ShiftScheduler(data_manager, ordering=FixedOrdering())
    # 2025-08-09 is a Saturday; only emp2 and emp3 work weekends
    result = scheduler.generate_schedule("2025-08-09", 2, 7)

    saturday, sunday = result.schedule
    assert saturday.shifts == {"ER Nurse": ["emp2"], "Ward Nurse": ["emp3"]}
    assert sunday.shifts == {"ER Nurse": [], "Ward Nurse": ["emp3"]}

    assert {"date": "2025-08-09", "shift": "ER Nurse", "assigned": 1, "required": 2} in result.understaffed
    assert {"date": "2025-08-10", "shift": "ER Nurse", "assigned": 0, "required": 2} in result.understaffed
    assert "understaffed" in result.message
    assert result.statistics["per_employee"] == {"emp1": 0, "emp2": 1, "emp3": 2}


def test_facade_does_not_touch_registry(data_manager, scheduler):
    before = json.dumps(data_manager.data, sort_keys=True)
    scheduler.generate_schedule("2025-08-04", 14, 7)
    assert json.dumps(data_manager.data, sort_keys=True) == before


def test_facade_caps_range_at_one_year(scheduler):
    """
    Why this is important: The registry-backed entry point serves the CLI,
    so it bounds the range even though the generator itself does not.
    """
    assert len(scheduler.generate_schedule("2024-01-01", 366, 7).schedule) == 366
    with pytest.raises(InvalidInputError, match="366"):
        scheduler.generate_schedule("2024-01-01", 367, 7)
