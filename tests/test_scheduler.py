"""
Test Suite for the Schedule Generator

Covers request validation, the greedy assignment rules, weekly quota
renewal, calendar handling and the schedule statistics helpers.
"""

import pytest
from datetime import date, timedelta
import sys
from pathlib import Path

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staff_scheduler.data_manager import Employee
from staff_scheduler.scheduler_logic import (
    FixedOrdering, InvalidInputError, RandomOrdering, ScheduleRequest,
    find_understaffed, format_date_label, generate_schedule,
    get_schedule_statistics, weekday_label,
)

ALL_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def make_employee(name, specializations, working_days, preferred_days=None):
    return Employee(name, list(specializations), working_days, list(preferred_days or ALL_DAYS))


@pytest.fixture
def roster():
    """Mixed roster over three shifts."""
    return [
        make_employee("Alice", ["ER Nurse", "Ward Nurse"], 5),
        make_employee("Bob", ["ER Nurse"], 3, ["Mon", "Tue", "Wed", "Thu", "Fri"]),
        make_employee("Charlie", ["Ward Nurse", "Receptionist"], 4),
        make_employee("Diana", ["Receptionist"], 5, ["Sat", "Sun", "Mon"]),
        make_employee("Evan", ["ER Nurse", "Ward Nurse", "Receptionist"], 6),
    ]


SHIFTS = ["ER Nurse", "Ward Nurse", "Receptionist"]
REQUIRED = {"ER Nurse": 2, "Ward Nurse": 1, "Receptionist": 1}


@pytest.mark.parametrize(
    "start_date, total_days, operating_days",
    [
        (None, 7, 7),
        ("", 7, 7),
        ("2024-02-30", 7, 7),
        ("15/01/2024", 7, 7),
        ("2024-1-5", 7, 7),
        (" 2024-01-15", 7, 7),
        ("2024-01-15 ", 7, 7),
        ("20240115", 7, 7),
        ("2024-01-15", 0, 7),
        ("2024-01-15", -3, 7),
        ("2024-01-15", 7, 0),
        ("2024-01-15", 7, -1),
        ("2024-01-15", "7", 7),
        ("2024-01-15", 7, 2.5),
    ],
)
def test_invalid_requests_rejected(start_date, total_days, operating_days):
    """Invalid parameters raise before any schedule is produced."""
    with pytest.raises(InvalidInputError):
        generate_schedule([], SHIFTS, REQUIRED, start_date, total_days, operating_days)


def test_request_accepts_date_objects():
    request = ScheduleRequest.create(date(2024, 1, 15), 3, 5)
    assert request.start_date == date(2024, 1, 15)
    assert ScheduleRequest.create("2024-01-15", 3, 5) == request


def test_long_ranges_have_no_upper_bound():
    """The generator itself accepts any positive day count."""
    schedule = generate_schedule([make_employee("Alice", ["ER Nurse"], 5)], SHIFTS, REQUIRED,
                                 "2024-01-01", 400, 7, ordering=FixedOrdering())
    assert len(schedule) == 400
    assert schedule[-1].calendar_date == date(2024, 1, 1) + timedelta(days=399)


def test_scenario_single_employee_every_day():
    """One employee, one single-seat shift, full availability: works all seven days."""
    nurse = make_employee("Alice", ["ER Nurse"], 7)
    schedule = generate_schedule([nurse], ["ER Nurse"], {"ER Nurse": 1}, "2024-03-04", 7, 7)

    assert len(schedule) == 7
    assert all(day.shifts["ER Nurse"] == ["Alice"] for day in schedule)


def test_scenario_preferred_days_excluded():
    """Saturday is not a preferred day, so the employee is absent that day whatever the quota."""
    days = [d for d in ALL_DAYS if d != "Sat"]
    nurse = make_employee("Alice", ["ER Nurse"], 7, days)
    schedule = generate_schedule([nurse], ["ER Nurse"], {"ER Nurse": 1}, "2024-03-04", 7, 7)

    for day in schedule:
        if day.day == "Sat":
            assert "Alice" not in day.assigned_names()
        else:
            assert day.shifts["ER Nurse"] == ["Alice"]


def test_scenario_weekly_quota_renews():
    """Quota of two days: two assignments in each seven-day window."""
    nurse = make_employee("Alice", ["ER Nurse"], 2)
    schedule = generate_schedule([nurse], ["ER Nurse"], {"ER Nurse": 5}, "2024-03-04", 14, 7)

    first_week = [day for day in schedule[:7] if "Alice" in day.assigned_names()]
    second_week = [day for day in schedule[7:] if "Alice" in day.assigned_names()]
    assert len(first_week) == 2
    assert len(second_week) == 2
    # Greedy: the quota is spent on the first days of each window
    assert [day.calendar_date for day in first_week] == [date(2024, 3, 4), date(2024, 3, 5)]
    assert [day.calendar_date for day in second_week] == [date(2024, 3, 11), date(2024, 3, 12)]


def test_scenario_single_seat_two_candidates():
    """Two qualified employees, one seat: exactly one works each day."""
    employees = [make_employee("Alice", ["ER Nurse"], 7), make_employee("Bob", ["ER Nurse"], 7)]
    schedule = generate_schedule(employees, ["ER Nurse"], {"ER Nurse": 1}, "2024-03-04", 14, 7,
                                 ordering=RandomOrdering(seed=3))

    for day in schedule:
        assert len(day.shifts["ER Nurse"]) == 1
        assert day.shifts["ER Nurse"][0] in {"Alice", "Bob"}


def test_operating_week_shorter_than_calendar_week():
    """Quotas renew every five generated days when the business runs five days a week."""
    nurse = make_employee("Alice", ["ER Nurse"], 1)
    schedule = generate_schedule([nurse], ["ER Nurse"], {"ER Nurse": 1}, "2024-03-04", 10, 5)

    worked = [i for i, day in enumerate(schedule) if "Alice" in day.assigned_names()]
    assert worked == [0, 5]


@pytest.mark.parametrize("seed", [0, 1, 2, 7, 42])
def test_generated_schedule_invariants(roster, seed):
    """Capacity, no double booking, weekly quota and preference rules hold for any shuffle."""
    operating_days = 7
    schedule = generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-29", 28, operating_days,
                                 ordering=RandomOrdering(seed))
    by_name = {emp.name: emp for emp in roster}

    for day in schedule:
        names = day.assigned_names()
        assert len(names) == len(set(names))
        for label, assigned in day.shifts.items():
            assert len(assigned) <= REQUIRED[label]
            for name in assigned:
                assert label in by_name[name].specializations
                assert day.day in by_name[name].preferred_days

    for start in range(0, len(schedule), operating_days):
        window = schedule[start:start + operating_days]
        for emp in roster:
            worked = sum(1 for day in window if emp.name in day.assigned_names())
            assert worked <= emp.working_days


def test_dates_and_weekdays_roll_over_month_and_year():
    """Dates advance one day at a time across month ends, leap days and the new year."""
    schedule = generate_schedule([], ["ER Nurse"], {"ER Nurse": 1}, "2023-12-30", 70, 7)

    assert len(schedule) == 70
    for previous, current in zip(schedule, schedule[1:]):
        assert current.calendar_date - previous.calendar_date == timedelta(days=1)

    assert schedule[0].calendar_date == date(2023, 12, 30)
    assert schedule[0].day == "Sat"
    assert schedule[2].calendar_date == date(2024, 1, 1)
    assert schedule[2].day == "Mon"
    leap_day = next(day for day in schedule if day.calendar_date == date(2024, 2, 29))
    assert leap_day.day == "Thu"
    assert [day.day for day in schedule[2:9]] == ALL_DAYS


def test_february_start_runs_into_march():
    schedule = generate_schedule([], [], {}, "2023-02-01", 30, 7)
    assert schedule[27].calendar_date == date(2023, 2, 28)
    assert schedule[28].calendar_date == date(2023, 3, 1)
    assert schedule[29].date == "Thu (3/2/2023)"


def test_weekday_label_and_display_label():
    assert weekday_label(date(2024, 1, 14)) == "Sun"
    assert weekday_label(date(2024, 1, 15)) == "Mon"
    assert format_date_label(date(2024, 1, 15)) == "Mon (1/15/2024)"


def test_fixed_order_is_deterministic(roster):
    """Same inputs and no shuffle give identical schedules."""
    first = generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-01", 21, 7, ordering=FixedOrdering())
    second = generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-01", 21, 7, ordering=FixedOrdering())
    assert [d.to_dict() for d in first] == [d.to_dict() for d in second]


def test_seeded_random_order_is_repeatable(roster):
    ordering = RandomOrdering(seed=99)
    first = generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-01", 14, 7, ordering=ordering)
    second = generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-01", 14, 7, ordering=ordering)
    assert [d.to_dict() for d in first] == [d.to_dict() for d in second]


def test_fewer_specializations_pick_first():
    """The specialist gets the seat even when listed after the generalist."""
    generalist = make_employee("Gina", ["ER Nurse", "Ward Nurse"], 7)
    specialist = make_employee("Sam", ["ER Nurse"], 7)
    schedule = generate_schedule([generalist, specialist], ["ER Nurse", "Ward Nurse"],
                                 {"ER Nurse": 1, "Ward Nurse": 1}, "2024-01-01", 3, 7,
                                 ordering=FixedOrdering())

    for day in schedule:
        assert day.shifts["ER Nurse"] == ["Sam"]
        assert day.shifts["Ward Nurse"] == ["Gina"]


def test_ordering_sort_is_stable():
    employees = [make_employee(name, ["ER Nurse"], 1) for name in ("Zed", "Amy", "Kim")]
    ordered = FixedOrdering().order(employees)
    assert [emp.name for emp in ordered] == ["Zed", "Amy", "Kim"]


def test_first_declared_specialization_wins():
    """With room in both shifts, the employee lands in the first one they listed."""
    employee = make_employee("Alice", ["Ward Nurse", "ER Nurse"], 7)
    schedule = generate_schedule([employee], ["ER Nurse", "Ward Nurse"],
                                 {"ER Nurse": 1, "Ward Nurse": 1}, "2024-01-01", 2, 7)
    for day in schedule:
        assert day.shifts == {"ER Nurse": [], "Ward Nurse": ["Alice"]}


def test_zero_capacity_and_unknown_shifts_never_assigned():
    employees = [
        make_employee("Alice", ["Closed Desk"], 7),
        make_employee("Bob", ["Ghost Shift", "ER Nurse"], 7),
    ]
    schedule = generate_schedule(employees, ["ER Nurse", "Closed Desk"],
                                 {"ER Nurse": 1, "Closed Desk": 0}, "2024-01-01", 7, 7)

    for day in schedule:
        assert day.shifts["Closed Desk"] == []
        assert "Ghost Shift" not in day.shifts
        assert day.shifts["ER Nurse"] == ["Bob"]


def test_shift_missing_from_required_workers_has_no_capacity():
    employee = make_employee("Alice", ["ER Nurse"], 7)
    schedule = generate_schedule([employee], ["ER Nurse"], {}, "2024-01-01", 3, 7)
    assert all(day.shifts["ER Nurse"] == [] for day in schedule)


def test_understaffed_shifts_are_not_an_error():
    employee = make_employee("Alice", ["ER Nurse"], 7)
    schedule = generate_schedule([employee], ["ER Nurse"], {"ER Nurse": 3}, "2024-01-01", 2, 7)

    assert all(day.shifts["ER Nurse"] == ["Alice"] for day in schedule)
    understaffed = find_understaffed(schedule, {"ER Nurse": 3})
    assert understaffed == [
        {"date": "2024-01-01", "shift": "ER Nurse", "assigned": 1, "required": 3},
        {"date": "2024-01-02", "shift": "ER Nurse", "assigned": 1, "required": 3},
    ]


def test_registry_records_are_not_mutated(roster):
    before = [emp.to_dict() for emp in roster]
    generate_schedule(roster, SHIFTS, REQUIRED, "2024-01-01", 14, 7)
    assert [emp.to_dict() for emp in roster] == before


def test_schedule_statistics():
    employees = [make_employee("Alice", ["ER Nurse"], 2), make_employee("Bob", ["Desk"], 7, ["Mon"])]
    schedule = generate_schedule(employees, ["ER Nurse", "Desk"], {"ER Nurse": 1, "Desk": 1},
                                 "2024-01-01", 3, 7, ordering=FixedOrdering())
    stats = get_schedule_statistics(schedule, employees, {"ER Nurse": 1, "Desk": 1})

    assert stats["total_days"] == 3
    assert stats["total_slots"] == 6
    assert stats["filled_slots"] == 3
    assert stats["unfilled_slots"] == 3
    assert stats["per_employee"] == {"Alice": 2, "Bob": 1}
    assert stats["per_shift"]["ER Nurse"] == {"filled": 2, "required": 3}
    assert stats["per_shift"]["Desk"] == {"filled": 1, "required": 3}


def test_empty_roster_produces_empty_days():
    schedule = generate_schedule([], ["ER Nurse"], {"ER Nurse": 2}, "2024-01-01", 3, 7)
    assert len(schedule) == 3
    assert all(day.shifts == {"ER Nurse": []} for day in schedule)


def test_employee_model_round_trip_keys():
    emp = Employee("Alice", ["ER Nurse"], 3, ["Mon"])
    assert emp.to_dict() == {
        "name": "Alice",
        "specializations": ["ER Nurse"],
        "workingDays": 3,
        "preferredDays": ["Mon"],
    }
