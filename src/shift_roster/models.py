"""
Data Model for Shift Roster

Workers, shift configuration, historical context and generated schedule
versions, together with the exception hierarchy shared by every module.
Roster entries and generated versions use the camelCase JSON shape of roster files.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any, Set, Tuple


class ShiftRosterError(Exception):
    """Base exception for Shift Roster operations"""
    pass


class HistoryParseError(ShiftRosterError):
    """Raised when a history export cannot be parsed"""
    pass


class DataManagerError(ShiftRosterError):
    """Base exception for roster file operations"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the roster file is not found"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the roster file is not valid JSON"""
    pass


class DataValidationError(DataManagerError):
    """Raised when roster data validation fails"""
    pass


class ShiftType(Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"


class WorkerPreference(Enum):
    DAY_ONLY = "Day Only"
    NIGHT_ONLY = "Night Only"
    EITHER = "Either"

    def allows(self, shift_type: ShiftType) -> bool:
        if shift_type == ShiftType.DAY:
            return self != WorkerPreference.NIGHT_ONLY
        return self != WorkerPreference.DAY_ONLY


@dataclass
class Worker:
    """Worker with shift preference, weekly days off and optional monthly quota"""
    id: str
    name: str
    preference: WorkerPreference = WorkerPreference.EITHER
    days_off: Set[int] = field(default_factory=set)  # 0 = Sunday ... 6 = Saturday
    target_shifts: Optional[int] = None

    @property
    def quota(self) -> int:
        return self.target_shifts or 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "preference": self.preference.value,
            "availability": {"daysOff": sorted(self.days_off)},
        }
        if self.target_shifts is not None:
            data["targetShifts"] = self.target_shifts
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Worker':
        try:
            preference = WorkerPreference(data.get("preference", WorkerPreference.EITHER.value))
        except ValueError:
            raise DataValidationError(
                f"Unknown preference {data.get('preference')!r} for worker {data.get('name')!r}"
            )

        days_off = set()
        for day in data.get("availability", {}).get("daysOff", []):
            if not isinstance(day, int) or not 0 <= day <= 6:
                raise DataValidationError(f"Invalid day off {day!r} for worker {data.get('name')!r}")
            days_off.add(day)

        target = data.get("targetShifts")
        if target is not None and (not isinstance(target, int) or target < 0):
            raise DataValidationError(f"Invalid target shifts {target!r} for worker {data.get('name')!r}")

        try:
            return cls(
                id=str(data["id"]),
                name=data["name"],
                preference=preference,
                days_off=days_off,
                target_shifts=target,
            )
        except KeyError as e:
            raise DataValidationError(f"Worker entry missing required field {e}")


@dataclass(frozen=True)
class ShiftRequirement:
    """Required headcount for the day and night shift of one weekday"""
    day: int = 1
    night: int = 1


DEFAULT_REQUIREMENT = ShiftRequirement()


@dataclass
class ShiftConfig:
    """Per-weekday headcount requirements and distribution options"""
    requirements: Dict[int, ShiftRequirement] = field(default_factory=dict)
    distribute_day_shifts_to_either: bool = False
    day_start_time: str = "07:00"
    day_end_time: str = "19:00"
    night_start_time: str = "19:00"
    night_end_time: str = "07:00"

    def requirement_for(self, weekday: int) -> ShiftRequirement:
        return self.requirements.get(weekday, DEFAULT_REQUIREMENT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dayStartTime": self.day_start_time,
            "dayEndTime": self.day_end_time,
            "nightStartTime": self.night_start_time,
            "nightEndTime": self.night_end_time,
            "distributeDayShiftsToEither": self.distribute_day_shifts_to_either,
            "requirements": {
                str(weekday): {"day": req.day, "night": req.night}
                for weekday, req in sorted(self.requirements.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShiftConfig':
        requirements = {}
        for key, value in data.get("requirements", {}).items():
            try:
                weekday = int(key)
            except (TypeError, ValueError):
                raise DataValidationError(f"Invalid weekday key {key!r} in requirements")
            if not 0 <= weekday <= 6:
                raise DataValidationError(f"Weekday {weekday} outside 0-6 in requirements")
            day_count = value.get("day", 1)
            night_count = value.get("night", 1)
            for count in (day_count, night_count):
                if not isinstance(count, int) or count < 0:
                    raise DataValidationError(f"Invalid headcount {count!r} for weekday {weekday}")
            requirements[weekday] = ShiftRequirement(day=day_count, night=night_count)

        return cls(
            requirements=requirements,
            distribute_day_shifts_to_either=bool(data.get("distributeDayShiftsToEither", False)),
            day_start_time=data.get("dayStartTime", "07:00"),
            day_end_time=data.get("dayEndTime", "19:00"),
            night_start_time=data.get("nightStartTime", "19:00"),
            night_end_time=data.get("nightEndTime", "07:00"),
        )


@dataclass
class ShiftCounts:
    """Running day/night/total shift counters for one worker"""
    day: int = 0
    night: int = 0
    total: int = 0

    def record(self, shift_type: ShiftType):
        if shift_type == ShiftType.DAY:
            self.day += 1
        else:
            self.night += 1
        self.total += 1

    def count_for(self, shift_type: ShiftType) -> int:
        return self.day if shift_type == ShiftType.DAY else self.night

    def copy(self) -> 'ShiftCounts':
        return ShiftCounts(day=self.day, night=self.night, total=self.total)


@dataclass
class HistoricalContext:
    """State carried over from the window before the target range"""
    accumulated_stats: Dict[str, ShiftCounts] = field(default_factory=dict)
    consecutive_days_ending: Dict[str, int] = field(default_factory=dict)
    last_day_night_shift_ids: List[str] = field(default_factory=list)
    source_name: str = ""
    unresolved_cells: int = 0

    def stats_for(self, worker_id: str) -> ShiftCounts:
        counts = self.accumulated_stats.get(worker_id)
        return counts.copy() if counts else ShiftCounts()


@dataclass(frozen=True)
class ManualShiftEntry:
    """Ground-truth assignment for one date, used verbatim by the generator"""
    day_shift: Tuple[str, ...] = ()
    night_shift: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManualShiftEntry':
        return cls(
            day_shift=tuple(str(w) for w in data.get("dayShift", [])),
            night_shift=tuple(str(w) for w in data.get("nightShift", [])),
        )


# {date_key: ManualShiftEntry}
ManualHistoryInput = Dict[str, ManualShiftEntry]


def manual_history_from_dict(data: Dict[str, Any]) -> ManualHistoryInput:
    return {date_key: ManualShiftEntry.from_dict(entry) for date_key, entry in data.items()}


@dataclass(frozen=True)
class DailySchedule:
    """Assignments for one calendar date"""
    date: str  # ISO YYYY-MM-DD
    day_shift: Tuple[str, ...] = ()
    night_shift: Tuple[str, ...] = ()
    is_padding: bool = False

    def works(self, worker_id: str) -> bool:
        return worker_id in self.day_shift or worker_id in self.night_shift

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "dayShift": list(self.day_shift),
            "nightShift": list(self.night_shift),
            "isPadding": self.is_padding,
        }


@dataclass(frozen=True)
class EmployeeStats:
    """Display statistics for one worker in one generated schedule"""
    total_shifts: int = 0
    day_shifts: int = 0
    night_shifts: int = 0
    longest_streak: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalShifts": self.total_shifts,
            "dayShifts": self.day_shifts,
            "nightShifts": self.night_shifts,
            "longestStreak": self.longest_streak,
        }


@dataclass(frozen=True)
class ScheduleVersion:
    """Result of one schedule generation run"""
    id: str
    timestamp: int  # epoch milliseconds
    name: str
    month: int  # 0-11
    year: int
    schedule: Tuple[DailySchedule, ...]
    stats: Dict[str, EmployeeStats]

    @property
    def month_key(self) -> str:
        return f"{self.year}-{self.month + 1:02d}"

    def day(self, date_key: str) -> Optional[DailySchedule]:
        for daily in self.schedule:
            if daily.date == date_key:
                return daily
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "name": self.name,
            "month": self.month,
            "year": self.year,
            "schedule": [daily.to_dict() for daily in self.schedule],
            "stats": {wid: s.to_dict() for wid, s in self.stats.items()},
        }
