"""
Scheduler Logic for Staff Scheduling System

Implements the greedy day-by-day assignment of employees to shifts with
specialization, preferred-day and weekly working-day quota constraints.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Any, Iterable, Mapping, Union
from dataclasses import dataclass, field
import logging
import random
import time

from .config import DAYS_OF_WEEK, MAX_TOTAL_DAYS
from .data_manager import DataManager, Employee

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Base exception for scheduling operations"""
    pass


class InvalidInputError(SchedulerError):
    """Raised when a generation request is malformed"""
    pass


@dataclass
class DaySchedule:
    """Assignments for a single calendar day"""
    calendar_date: date
    day: str  # "Mon".."Sun"
    date: str  # display label, e.g. "Mon (1/15/2024)"
    shifts: Dict[str, List[str]] = field(default_factory=dict)

    def assigned_names(self) -> List[str]:
        return [name for names in self.shifts.values() for name in names]

    def shift_for(self, name: str) -> Optional[str]:
        """Return the first shift the employee works this day, if any"""
        for label, names in self.shifts.items():
            if name in names:
                return label
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.date,
            "isoDate": self.calendar_date.isoformat(),
            "shifts": {label: list(names) for label, names in self.shifts.items()}
        }


Schedule = List[DaySchedule]


@dataclass(frozen=True)
class ScheduleRequest:
    """Validated generation parameters"""
    start_date: date
    total_days: int
    operating_days_per_week: int

    @classmethod
    def create(cls, start_date: Union[str, date, None], total_days: Any,
               operating_days_per_week: Any) -> 'ScheduleRequest':
        parsed = parse_start_date(start_date)
        _check_positive_int("totalDays", total_days)
        _check_positive_int("operatingDaysPerWeek", operating_days_per_week)
        return cls(parsed, total_days, operating_days_per_week)


@dataclass
class ScheduleResult:
    """Result of schedule generation"""
    schedule: Schedule
    understaffed: List[Dict[str, Any]]
    statistics: Dict[str, Any]
    message: str


@dataclass
class EmployeeState:
    """Per-run working copy of an employee's weekly counters"""
    employee: Employee
    remaining_days: int = 0
    assigned_this_week: int = 0
    assigned_last_week: int = 0
    # TODO: last_shift and the weekly counters are not yet used to avoid repeats or balance load
    last_shift: Optional[str] = None

    def __post_init__(self):
        self.remaining_days = self.employee.working_days

    @property
    def name(self) -> str:
        return self.employee.name

    def assign(self, shift: str):
        self.remaining_days -= 1
        self.assigned_this_week += 1
        self.last_shift = shift

    def start_new_week(self):
        self.assigned_last_week = self.assigned_this_week
        self.assigned_this_week = 0
        self.remaining_days = self.employee.working_days
        self.last_shift = None


class EmployeeOrdering:
    """
    Decides the order in which employees get to pick shifts.

    Subclasses provide the initial permutation; the result is then
    stable-sorted so employees with fewer specializations pick first.
    """

    def permute(self, employees: List[Employee]) -> List[Employee]:
        raise NotImplementedError

    def order(self, employees: Iterable[Employee]) -> List[Employee]:
        permuted = self.permute(list(employees))
        return sorted(permuted, key=lambda emp: len(emp.specializations))


class RandomOrdering(EmployeeOrdering):
    """Uniform shuffle, optionally seeded for reproducible runs"""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed

    def permute(self, employees: List[Employee]) -> List[Employee]:
        # Fresh generator per run so a seeded ordering repeats exactly
        shuffled = list(employees)
        random.Random(self.seed).shuffle(shuffled)
        return shuffled


class FixedOrdering(EmployeeOrdering):
    """Keeps the given employee order (tests, reproducible reports)"""

    def permute(self, employees: List[Employee]) -> List[Employee]:
        return list(employees)


def parse_start_date(value: Union[str, date, None]) -> date:
    """Accept a date or an ISO-8601 YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise InvalidInputError("Start date is required")
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        parsed = None
    # fromisoformat also takes compact and week-date forms
    if parsed is None or parsed.isoformat() != value:
        raise InvalidInputError(f"Start date '{value}' is not a valid YYYY-MM-DD date")
    return parsed


def _check_positive_int(name: str, value: Any):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value}")


def weekday_label(day: date) -> str:
    """Three-letter weekday label for a calendar date"""
    return DAYS_OF_WEEK[day.weekday()]


def format_date_label(day: date) -> str:
    """Display label combining weekday and date, e.g. 'Mon (1/15/2024)'"""
    return f"{weekday_label(day)} ({day.month}/{day.day}/{day.year})"


def generate_schedule(employees: Iterable[Employee], shifts: Iterable[str],
                      required_workers: Mapping[str, int], start_date: Union[str, date, None],
                      total_days: int, operating_days_per_week: int,
                      ordering: Optional[EmployeeOrdering] = None) -> Schedule:
    """
    Build a day-by-day schedule.

    Each day, employees are visited in a fixed order (shuffled, then by
    ascending specialization count). An employee with quota left is given
    the first of their specializations that still has capacity, provided the
    day is one of their preferred days. Nobody works more than one shift a
    day. Quotas renew every ``operating_days_per_week`` generated days.

    Args:
        employees: Employee records; never mutated
        shifts: Shift labels in catalog order
        required_workers: Headcount per shift label; missing labels have no capacity
        start_date: First day as ``date`` or ``YYYY-MM-DD``
        total_days: Number of days to generate
        operating_days_per_week: Generated days between quota resets
        ordering: Employee ordering strategy, defaults to an unseeded shuffle

    Raises:
        InvalidInputError: If the date range parameters are invalid
    """
    request = ScheduleRequest.create(start_date, total_days, operating_days_per_week)
    shift_labels = list(dict.fromkeys(shifts))
    ordering = ordering or RandomOrdering()

    states = [EmployeeState(emp) for emp in ordering.order(employees)]

    schedule: Schedule = []
    current_day_index = 0

    for offset in range(request.total_days):
        current_date = request.start_date + timedelta(days=offset)
        current_day = weekday_label(current_date)

        day_schedule = DaySchedule(
            calendar_date=current_date,
            day=current_day,
            date=format_date_label(current_date),
            shifts={label: [] for label in shift_labels}
        )
        assigned_today = set()

        for state in states:
            if state.remaining_days <= 0:
                continue
            if current_day not in state.employee.preferred_days:
                continue
            for shift in state.employee.specializations:
                if state.name in assigned_today:
                    break
                if not _has_capacity(day_schedule.shifts, shift, required_workers):
                    continue
                day_schedule.shifts[shift].append(state.name)
                assigned_today.add(state.name)
                state.assign(shift)

        schedule.append(day_schedule)

        current_day_index = (current_day_index + 1) % request.operating_days_per_week
        if current_day_index == 0:
            for state in states:
                state.start_new_week()

    return schedule


def _has_capacity(assignments: Dict[str, List[str]], shift: str,
                  required_workers: Mapping[str, int]) -> bool:
    # Unknown shifts count as full
    if shift not in assignments:
        return False
    return len(assignments[shift]) < required_workers.get(shift, 0)


def find_understaffed(schedule: Schedule, required_workers: Mapping[str, int]) -> List[Dict[str, Any]]:
    """List every shift slot that ended up below its required headcount"""
    understaffed = []
    for day_schedule in schedule:
        for label, names in day_schedule.shifts.items():
            required = max(required_workers.get(label, 0), 0)
            if len(names) < required:
                understaffed.append({
                    "date": day_schedule.calendar_date.isoformat(),
                    "shift": label,
                    "assigned": len(names),
                    "required": required
                })
    return understaffed


def get_schedule_statistics(schedule: Schedule, employees: Iterable[Employee],
                            required_workers: Mapping[str, int]) -> Dict[str, Any]:
    """Coverage totals for the whole schedule, per shift and per employee"""
    per_employee = {emp.name: 0 for emp in employees}
    per_shift: Dict[str, Dict[str, int]] = {}

    for day_schedule in schedule:
        for label, names in day_schedule.shifts.items():
            totals = per_shift.setdefault(label, {"filled": 0, "required": 0})
            totals["filled"] += len(names)
            totals["required"] += max(required_workers.get(label, 0), 0)
            for name in names:
                per_employee[name] = per_employee.get(name, 0) + 1

    total_slots = sum(s["required"] for s in per_shift.values())
    filled_slots = sum(s["filled"] for s in per_shift.values())

    return {
        "total_days": len(schedule),
        "total_slots": total_slots,
        "filled_slots": filled_slots,
        "unfilled_slots": total_slots - filled_slots,
        "per_employee": per_employee,
        "per_shift": per_shift
    }


class ShiftScheduler:
    """Runs schedule generation against the registry held by a DataManager"""

    def __init__(self, data_manager: DataManager, ordering: Optional[EmployeeOrdering] = None):
        self.data_manager = data_manager
        self.ordering = ordering

    def generate_schedule(self, start_date: Union[str, date, None], total_days: int,
                          operating_days_per_week: int) -> ScheduleResult:
        """
        Generate a schedule from the current registry and shift catalog.

        The registry is only read; counters live on a per-run working copy.
        """
        start_time = time.time()
        logger.info(
            f"Starting schedule generation from {start_date} "
            f"({total_days} days, {operating_days_per_week} operating days/week)"
        )

        request = ScheduleRequest.create(start_date, total_days, operating_days_per_week)
        if request.total_days > MAX_TOTAL_DAYS:
            raise InvalidInputError(f"totalDays must not exceed {MAX_TOTAL_DAYS}, got {request.total_days}")

        employees = self.data_manager.get_employees()
        shift_labels = self.data_manager.get_shift_labels()
        required_workers = self.data_manager.get_required_workers()

        schedule = generate_schedule(
            employees, shift_labels, required_workers,
            request.start_date, request.total_days, request.operating_days_per_week,
            ordering=self.ordering
        )

        understaffed = find_understaffed(schedule, required_workers)
        statistics = get_schedule_statistics(schedule, employees, required_workers)

        message = f"Schedule generated for {len(schedule)} days"
        if understaffed:
            message += f" with {len(understaffed)} understaffed shift slot(s)"

        duration = time.time() - start_time
        logger.info(f"Schedule generation completed in {duration:.2f}s. {message}")

        return ScheduleResult(
            schedule=schedule,
            understaffed=understaffed,
            statistics=statistics,
            message=message
        )
