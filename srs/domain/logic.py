import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional

from .enums import Grade
from .errors import InvalidGrade
from ..config import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    DEFAULT_REPETITIONS,
    FAILED_INTERVAL_DAYS,
    FIRST_INTERVAL_DAYS,
    MAX_GRADE,
    MIN_EASE_FACTOR,
    MIN_GRADE,
    PASSING_GRADE,
)


@dataclass(frozen=True)
class ScheduleState:
    repetitions: Optional[int] = DEFAULT_REPETITIONS
    interval_days: Optional[int] = DEFAULT_INTERVAL_DAYS
    ease_factor: Optional[float] = DEFAULT_EASE_FACTOR

    def with_defaults(self) -> "ScheduleState":
        # Records written before a field existed come back with None
        return ScheduleState(
            repetitions=DEFAULT_REPETITIONS if self.repetitions is None else self.repetitions,
            interval_days=DEFAULT_INTERVAL_DAYS if self.interval_days is None else self.interval_days,
            ease_factor=DEFAULT_EASE_FACTOR if self.ease_factor is None else self.ease_factor,
        )


class ScheduleResult(NamedTuple):
    state: ScheduleState
    next_review_at: datetime


def validate_grade(grade) -> Grade:
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise InvalidGrade(grade)
    if grade < MIN_GRADE or grade > MAX_GRADE:
        raise InvalidGrade(grade)
    return Grade(grade)


def ease_delta(grade: int) -> float:
    miss = MAX_GRADE - grade
    return 0.1 - miss * (0.08 + miss * 0.02)


def next_ease(ease_factor: float, grade: int) -> float:
    return max(MIN_EASE_FACTOR, ease_factor + ease_delta(grade))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (12.5 -> 13)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def schedule_next(state: ScheduleState, grade: int, now: datetime) -> ScheduleResult:
    """
    Apply one SM-2 grading step.

    A grade below PASSING_GRADE is a lapse: the repetition run restarts and
    the item comes back tomorrow. Otherwise the run grows and the interval
    follows 1, 6, then the previous interval times the updated ease factor.
    The ease factor moves on every grade, success or failure.
    """
    grade = validate_grade(grade)
    state = state.with_defaults()
    ease = next_ease(state.ease_factor, grade)

    if grade < PASSING_GRADE:
        repetitions = 0
        interval = FAILED_INTERVAL_DAYS
    else:
        repetitions = state.repetitions + 1
        if repetitions in FIRST_INTERVAL_DAYS:
            interval = FIRST_INTERVAL_DAYS[repetitions]
        else:
            interval = max(1, round_half_up(state.interval_days * ease))

    new_state = ScheduleState(
        repetitions=repetitions, interval_days=interval, ease_factor=ease
    )
    return ScheduleResult(new_state, now + timedelta(days=interval))


def next_streak(streak: int, last_review_date: Optional[date], today: date) -> int:
    if last_review_date is None:
        return 1
    gap = (today - last_review_date).days
    if gap == 0:
        return streak
    if gap == 1:
        return streak + 1
    # Missed a day, or the clock went backwards
    return 1
