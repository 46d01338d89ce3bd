"""
Scheduler Logic for Shift Roster

Greedy day-by-day generation of day/night shift assignments with hard rest
constraints, quota pacing and fairness ranking, seeded from imported history
so month-boundary rules hold on the first generated date.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import cmp_to_key
from typing import Dict, List, Optional, Sequence, Set, Any
import calendar
import logging
import random
import time
import uuid

from .calendar_range import (
    CalendarDay,
    days_in_month,
    format_date_key,
    get_full_weeks_range,
    sunday_weekday,
)
from .models import (
    DailySchedule,
    EmployeeStats,
    HistoricalContext,
    ManualHistoryInput,
    ScheduleVersion,
    ShiftConfig,
    ShiftCounts,
    ShiftType,
    Worker,
    WorkerPreference,
)

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_DAYS = 5
PACING_TOLERANCE = 0.8
EITHER_DAY_BONUS = 2

TIE_BREAK_STABLE = "stable"
TIE_BREAK_RANDOM = "random"

# Pacing categories, lower is assigned first
URGENT, ON_PACE, COOL_DOWN = 1, 2, 3


class ConstraintViolation:
    """Types of constraint violations"""
    UNKNOWN_WORKER = "Worker not found"
    OFF_DAY = "Worker has this weekday off"
    SHIFT_PREFERENCE = "Shift type does not match worker preference"
    SAME_DAY_CONFLICT = "Cannot work day and night shift on same day"
    ALREADY_ASSIGNED = "Worker already assigned to this shift"
    POST_NIGHT_CONFLICT = "Cannot work a day shift immediately after a night shift"
    NEXT_DAY_CONFLICT = "Cannot work a night shift before a day shift on the following day"
    CONSECUTIVE_DAYS_EXCEEDED = f"Cannot work more than {MAX_CONSECUTIVE_DAYS} consecutive days"


@dataclass(frozen=True)
class ShiftSlot:
    """One (date, shift type) pair to fill"""
    date: date
    shift_type: ShiftType
    count: int
    exclude_ids: frozenset = frozenset()
    pacing_day: int = 1
    total_days: int = 30


@dataclass
class GenerationState:
    """Per-worker running state owned by a single generation run"""
    work_history: Dict[str, Set[str]] = field(default_factory=dict)
    last_shift_type: Dict[str, Optional[ShiftType]] = field(default_factory=dict)
    consecutive_days: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, ShiftCounts] = field(default_factory=dict)

    @classmethod
    def seed(cls, workers: Sequence[Worker], history: Optional[HistoricalContext] = None) -> 'GenerationState':
        state = cls()
        for worker in workers:
            state.work_history[worker.id] = set()
            state.last_shift_type[worker.id] = None
            if history:
                state.stats[worker.id] = history.stats_for(worker.id)
                state.consecutive_days[worker.id] = history.consecutive_days_ending.get(worker.id, 0)
            else:
                state.stats[worker.id] = ShiftCounts()
                state.consecutive_days[worker.id] = 0
        return state

    def worked_night_before(self, worker_id: str, day: date) -> bool:
        yesterday = format_date_key(day - timedelta(days=1))
        return (yesterday in self.work_history.get(worker_id, set())
                and self.last_shift_type.get(worker_id) == ShiftType.NIGHT)

    def record(self, workers: Sequence[Worker], daily: DailySchedule):
        """Apply one finished date to every worker's running state"""
        for worker in workers:
            if worker.id in daily.day_shift:
                shift_type = ShiftType.DAY
            elif worker.id in daily.night_shift:
                shift_type = ShiftType.NIGHT
            else:
                # A gap day breaks both the streak and the night-before adjacency
                self.consecutive_days[worker.id] = 0
                self.last_shift_type[worker.id] = None
                continue

            self.work_history[worker.id].add(daily.date)
            self.consecutive_days[worker.id] += 1
            self.last_shift_type[worker.id] = shift_type
            if not daily.is_padding:
                self.stats[worker.id].record(shift_type)


class ShiftScheduler:
    """Main scheduler class implementing greedy day-by-day shift assignment"""

    def __init__(self, workers: Sequence[Worker], config: Optional[ShiftConfig] = None,
                 tie_break: str = TIE_BREAK_STABLE, seed: Optional[int] = None):
        if tie_break not in (TIE_BREAK_STABLE, TIE_BREAK_RANDOM):
            raise ValueError(f"Unsupported tie-break strategy: {tie_break}")
        self.workers = list(workers)
        seen_ids = set()
        for worker in self.workers:
            if worker.id in seen_ids:
                raise ValueError(f"Duplicate worker id: {worker.id}")
            seen_ids.add(worker.id)
        self.config = config or ShiftConfig()
        self.tie_break = tie_break
        self._rng = random.Random(seed)
        self._workers_by_id = {worker.id: worker for worker in self.workers}

    def get_worker(self, worker_id: str) -> Optional[Worker]:
        return self._workers_by_id.get(worker_id)

    def generate_schedule(self, year: int, month: int,
                          history: Optional[HistoricalContext] = None,
                          manual_history: Optional[ManualHistoryInput] = None) -> ScheduleVersion:
        """
        Generate a schedule covering the full weeks around the target month

        Args:
            year: Target year
            month: Target month (0-11)
            history: Context imported from the window before the target range
            manual_history: Per-date assignments used verbatim instead of generated ones
        """
        start_time = time.time()
        days = get_full_weeks_range(year, month)
        total_days = days_in_month(year, month)
        month_start = date(year, month + 1, 1)
        month_key = f"{year}-{month + 1:02d}"
        logger.info(f"Starting schedule generation for {month_key}: {len(days)} dates, "
                    f"{len(self.workers)} workers, history={'yes' if history else 'no'}")

        state = GenerationState.seed(self.workers, history)
        manual_history = manual_history or {}
        schedule: List[DailySchedule] = []

        for day_index, day in enumerate(days):
            manual_entry = manual_history.get(day.key)
            if manual_entry is not None:
                logger.debug(f"Using manual assignment for {day.key}")
                day_workers = list(manual_entry.day_shift)
                night_workers = list(manual_entry.night_shift)
            else:
                forbidden = set()
                if day_index == 0 and history:
                    forbidden.update(history.last_day_night_shift_ids)
                day_workers, night_workers = self._fill_day(day, state, forbidden, month_start, total_days)

            daily = DailySchedule(
                date=day.key,
                day_shift=tuple(day_workers),
                night_shift=tuple(night_workers),
                is_padding=day.is_padding,
            )
            state.record(self.workers, daily)
            schedule.append(daily)

        version = ScheduleVersion(
            id=str(uuid.uuid4()),
            timestamp=int(time.time() * 1000),
            name=f"Schedule {calendar.month_abbr[month + 1]} {year}",
            month=month,
            year=year,
            schedule=tuple(schedule),
            stats=self.compute_stats(schedule),
        )

        duration = time.time() - start_time
        logger.info(f"Schedule generation for {month_key} completed in {duration:.3f}s")
        return version

    def _fill_day(self, day: CalendarDay, state: GenerationState,
                  forbidden_day_ids: Set[str], month_start: date, total_days: int) -> tuple:
        requirement = self.config.requirement_for(day.weekday)
        pacing_day = self._pacing_day(day, month_start, total_days)

        day_slot = ShiftSlot(
            date=day.date,
            shift_type=ShiftType.DAY,
            count=requirement.day,
            exclude_ids=frozenset(forbidden_day_ids),
            pacing_day=pacing_day,
            total_days=total_days,
        )
        day_workers = self.pick_workers(day_slot, state, self.config.distribute_day_shifts_to_either)

        night_slot = ShiftSlot(
            date=day.date,
            shift_type=ShiftType.NIGHT,
            count=requirement.night,
            exclude_ids=frozenset(day_workers),
            pacing_day=pacing_day,
            total_days=total_days,
        )
        night_workers = self.pick_workers(night_slot, state)

        for slot, picked in ((day_slot, day_workers), (night_slot, night_workers)):
            if len(picked) < slot.count:
                logger.warning(f"{slot.shift_type.value.title()} shift on {day.key} under-filled: "
                               f"{len(picked)} of {slot.count}")
        return day_workers, night_workers

    @staticmethod
    def _pacing_day(day: CalendarDay, month_start: date, total_days: int) -> int:
        """Day-of-month position used for pacing, clamped for padding dates"""
        if day.in_target_month:
            return day.date.day
        return 0 if day.date < month_start else total_days

    # Candidate filtering and ranking
    def pick_workers(self, slot: ShiftSlot, state: GenerationState,
                     prioritize_either_for_day: bool = False) -> List[str]:
        """Return up to slot.count eligible worker ids, best candidates first"""
        candidates = [worker for worker in self.workers if self._is_eligible(worker, slot, state)]

        if self.tie_break == TIE_BREAK_RANDOM:
            self._rng.shuffle(candidates)

        def compare(a: Worker, b: Worker) -> int:
            return self._compare_candidates(a, b, slot, state, prioritize_either_for_day)

        candidates.sort(key=cmp_to_key(compare))
        picked = [worker.id for worker in candidates[:slot.count]]
        logger.debug(f"{slot.shift_type.value} {format_date_key(slot.date)}: "
                     f"{len(candidates)} eligible, picked {picked}")
        return picked

    def _is_eligible(self, worker: Worker, slot: ShiftSlot, state: GenerationState) -> bool:
        """Check hard constraints for one worker and slot"""
        if worker.id in slot.exclude_ids:
            return False

        if not worker.preference.allows(slot.shift_type):
            return False

        if sunday_weekday(slot.date) in worker.days_off:
            return False

        if state.consecutive_days.get(worker.id, 0) >= MAX_CONSECUTIVE_DAYS:
            return False

        if slot.shift_type == ShiftType.DAY and state.worked_night_before(worker.id, slot.date):
            return False

        return True

    @staticmethod
    def _pacing_category(worker: Worker, counts: ShiftCounts, slot: ShiftSlot) -> int:
        if worker.quota <= 0:
            return ON_PACE
        expected = worker.quota * (max(1, slot.pacing_day) / slot.total_days)
        diff = counts.total - expected
        if diff < -PACING_TOLERANCE:
            return URGENT
        if diff > PACING_TOLERANCE:
            return COOL_DOWN
        return ON_PACE

    def _compare_candidates(self, a: Worker, b: Worker, slot: ShiftSlot,
                            state: GenerationState, prioritize_either_for_day: bool) -> int:
        stats_a = state.stats[a.id]
        stats_b = state.stats[b.id]

        # Quota already met goes last
        met_a = a.quota > 0 and stats_a.total >= a.quota
        met_b = b.quota > 0 and stats_b.total >= b.quota
        if met_a != met_b:
            return 1 if met_a else -1

        cat_a = self._pacing_category(a, stats_a, slot)
        cat_b = self._pacing_category(b, stats_b, slot)
        if cat_a != cat_b:
            return cat_a - cat_b

        score_a = stats_a.total
        score_b = stats_b.total
        if prioritize_either_for_day and slot.shift_type == ShiftType.DAY:
            if a.preference == WorkerPreference.EITHER:
                score_a -= EITHER_DAY_BONUS
            if b.preference == WorkerPreference.EITHER:
                score_b -= EITHER_DAY_BONUS
        if score_a != score_b:
            return score_a - score_b

        if a.preference == WorkerPreference.EITHER and b.preference == WorkerPreference.EITHER:
            return stats_a.count_for(slot.shift_type) - stats_b.count_for(slot.shift_type)

        return 0

    # Statistics
    def compute_stats(self, schedule: Sequence[DailySchedule]) -> Dict[str, EmployeeStats]:
        """Per-worker counts over target-month dates and longest streak over all dates"""
        stats = {}
        for worker in self.workers:
            day_shifts = night_shifts = 0
            current_streak = longest_streak = 0

            for daily in schedule:
                worked = daily.works(worker.id)
                if worked:
                    current_streak += 1
                    longest_streak = max(longest_streak, current_streak)
                else:
                    current_streak = 0

                if worked and not daily.is_padding:
                    if worker.id in daily.day_shift:
                        day_shifts += 1
                    else:
                        night_shifts += 1

            stats[worker.id] = EmployeeStats(
                total_shifts=day_shifts + night_shifts,
                day_shifts=day_shifts,
                night_shifts=night_shifts,
                longest_streak=longest_streak,
            )
        return stats

    def get_schedule_statistics(self, version: ScheduleVersion) -> Dict[str, Any]:
        """Slot fill statistics for the target month of a generated version"""
        stats = {
            "required_shifts": 0,
            "assigned_shifts": 0,
            "day_shifts": 0,
            "night_shifts": 0,
            "unfilled_day_slots": 0,
            "unfilled_night_slots": 0,
            "padding_days": 0,
        }

        for daily in version.schedule:
            if daily.is_padding:
                stats["padding_days"] += 1
                continue
            requirement = self.config.requirement_for(sunday_weekday(date.fromisoformat(daily.date)))
            stats["required_shifts"] += requirement.day + requirement.night
            stats["day_shifts"] += len(daily.day_shift)
            stats["night_shifts"] += len(daily.night_shift)
            stats["unfilled_day_slots"] += max(0, requirement.day - len(daily.day_shift))
            stats["unfilled_night_slots"] += max(0, requirement.night - len(daily.night_shift))

        stats["assigned_shifts"] = stats["day_shifts"] + stats["night_shifts"]
        return stats

    # Validation
    def validate_schedule(self, version: ScheduleVersion) -> List[str]:
        """Report constraint violations in a finished version (manual entries may introduce them)"""
        violations = []
        by_date = {daily.date: daily for daily in version.schedule}
        streaks = {worker.id: 0 for worker in self.workers}

        for daily in version.schedule:
            shift_date = date.fromisoformat(daily.date)
            weekday = sunday_weekday(shift_date)
            requirement = self.config.requirement_for(weekday)

            if len(daily.day_shift) < requirement.day:
                violations.append(f"Day shift on {daily.date} under-filled: "
                                  f"{len(daily.day_shift)} of {requirement.day}")
            if len(daily.night_shift) < requirement.night:
                violations.append(f"Night shift on {daily.date} under-filled: "
                                  f"{len(daily.night_shift)} of {requirement.night}")

            for worker_id in set(daily.day_shift) & set(daily.night_shift):
                violations.append(f"Worker {worker_id} assigned to both shifts on {daily.date}")

            prev_key = format_date_key(shift_date - timedelta(days=1))
            prev_day = by_date.get(prev_key)
            if prev_day:
                for worker_id in daily.day_shift:
                    if worker_id in prev_day.night_shift:
                        violations.append(f"Worker {worker_id} assigned day shift on {daily.date} "
                                          f"after night shift on {prev_key}")

            for shift_type, assigned in ((ShiftType.DAY, daily.day_shift), (ShiftType.NIGHT, daily.night_shift)):
                for worker_id in assigned:
                    worker = self.get_worker(worker_id)
                    if worker is None:
                        continue
                    if weekday in worker.days_off:
                        violations.append(f"Worker {worker_id} scheduled on a day off ({daily.date})")
                    if not worker.preference.allows(shift_type):
                        violations.append(f"Worker {worker_id} assigned {shift_type.value.lower()} "
                                          f"shift on {daily.date} against preference")

            for worker_id in streaks:
                streaks[worker_id] = streaks[worker_id] + 1 if daily.works(worker_id) else 0
                if streaks[worker_id] == MAX_CONSECUTIVE_DAYS + 1:
                    violations.append(f"Worker {worker_id} works more than {MAX_CONSECUTIVE_DAYS} "
                                      f"consecutive days ending {daily.date}")

        return violations

    def validate_manual_assignment(self, worker_id: str, date_key: str, shift_type: ShiftType,
                                   schedule: Sequence[DailySchedule]) -> List[str]:
        """
        Validate adding one worker to one shift of an existing schedule.
        Returns list of constraint violations (empty if valid).
        """
        violations = []
        worker = self.get_worker(worker_id)
        if worker is None:
            violations.append(ConstraintViolation.UNKNOWN_WORKER)
            return violations

        shift_date = date.fromisoformat(date_key)

        if sunday_weekday(shift_date) in worker.days_off:
            violations.append(ConstraintViolation.OFF_DAY)
        if not worker.preference.allows(shift_type):
            violations.append(ConstraintViolation.SHIFT_PREFERENCE)

        # If basic eligibility fails, no need to check relational constraints
        if violations:
            return violations

        by_date = {daily.date: daily for daily in schedule}
        today = by_date.get(date_key, DailySchedule(date=date_key))
        same_list = today.day_shift if shift_type == ShiftType.DAY else today.night_shift
        other_list = today.night_shift if shift_type == ShiftType.DAY else today.day_shift
        if worker_id in same_list:
            violations.append(ConstraintViolation.ALREADY_ASSIGNED)
        if worker_id in other_list:
            violations.append(ConstraintViolation.SAME_DAY_CONFLICT)

        if shift_type == ShiftType.DAY:
            prev_day = by_date.get(format_date_key(shift_date - timedelta(days=1)))
            if prev_day and worker_id in prev_day.night_shift:
                violations.append(ConstraintViolation.POST_NIGHT_CONFLICT)
        else:
            next_day = by_date.get(format_date_key(shift_date + timedelta(days=1)))
            if next_day and worker_id in next_day.day_shift:
                violations.append(ConstraintViolation.NEXT_DAY_CONFLICT)

        if not today.works(worker_id):
            streak = 1
            for step in (-1, 1):
                cursor = shift_date + timedelta(days=step)
                while by_date.get(format_date_key(cursor)) and by_date[format_date_key(cursor)].works(worker_id):
                    streak += 1
                    cursor += timedelta(days=step)
            if streak > MAX_CONSECUTIVE_DAYS:
                violations.append(ConstraintViolation.CONSECUTIVE_DAYS_EXCEEDED)

        return violations
