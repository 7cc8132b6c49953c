from typing import NamedTuple, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
import structlog

from ..config import MAX_WRITE_ATTEMPTS
from ..data import repos
from ..data.models import ReviewRecord, StreakState
from ..domain.errors import (
    ConcurrentUpdateError,
    ReviewNotFound,
    StoreUnavailable,
    StreakUpdateError,
)
from ..domain.logic import ScheduleState, schedule_next, validate_grade
from .streaks import current_streak, record_activity

logger = structlog.get_logger()


class GradeResult(NamedTuple):
    record: ReviewRecord
    streak: Optional[StreakState]
    idempotent: bool


def _state_of(record):
    return ScheduleState(
        repetitions=record.repetitions,
        interval_days=record.interval_days,
        ease_factor=record.ease_factor,
    )


def _replay(user_id, item_id, log):
    record = repos.get_review(user_id, item_id)
    if record is None:
        raise ReviewNotFound(user_id, item_id)
    logger.info("idempotent_reuse",
        user_id=str(user_id),
        item_id=str(item_id),
        idempotency_key=log.idempotency_key,
        next_review_utc=record.next_review_at.isoformat(),
    )
    return GradeResult(record, current_streak(user_id), True)


def grade_review(user_id, item_id, grade, *, now=None, idempotency_key=None):
    """
    Apply a 0-5 recall grade to an item the user is already learning.

    The grade is validated before the store is touched. The new schedule and
    its review log row commit together; the streak is updated afterwards as
    a separate write. If only the streak write fails, StreakUpdateError
    carries the committed result.

    Passing the same ``idempotency_key`` again for the same item returns the
    current record without grading twice.
    """
    grade = validate_grade(grade)
    now = now or timezone.now()
    # A blank key means no key; "" would otherwise collide in the log
    idempotency_key = idempotency_key or None
    logger.info("review_received",
        user_id=str(user_id),
        item_id=str(item_id),
        grade=int(grade),
        idempotency_key=idempotency_key,
    )

    # Fast path: return previous result if same idempotency_key
    if idempotency_key is not None:
        existing = repos.get_review_log(user_id, item_id, idempotency_key)
        if existing:
            return _replay(user_id, item_id, existing)

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        record = repos.get_review(user_id, item_id)
        if record is None:
            raise ReviewNotFound(user_id, item_id)

        result = schedule_next(_state_of(record), grade, now)
        try:
            with transaction.atomic():
                if repos.swap_review(record, result, now):
                    repos.persist_review_log(record, grade, idempotency_key, now)
                    break
        except IntegrityError as exc:
            # A concurrent request committed this idempotency key first; our write rolled back
            existing = None
            if idempotency_key is not None:
                existing = repos.get_review_log(user_id, item_id, idempotency_key)
            if existing is None:
                raise StoreUnavailable(f"grading {item_id!r} failed: {exc}") from exc
            return _replay(user_id, item_id, existing)
        except DatabaseError as exc:
            raise StoreUnavailable(f"grading {item_id!r} failed: {exc}") from exc

        logger.info("review_write_conflict",
            user_id=str(user_id),
            item_id=str(item_id),
            attempt=attempt,
        )
    else:
        raise ConcurrentUpdateError(f"review {item_id!r} kept changing during grading")

    logger.info("review_scheduled",
        user_id=str(user_id),
        item_id=str(item_id),
        grade=int(grade),
        repetitions=record.repetitions,
        interval_days=record.interval_days,
        ease_factor=record.ease_factor,
        next_review_utc=record.next_review_at.isoformat(),
    )

    try:
        streak = record_activity(user_id, now)
    except StoreUnavailable as exc:
        logger.warning("streak_update_failed",
            user_id=str(user_id),
            item_id=str(item_id),
            error=str(exc),
        )
        raise StreakUpdateError(GradeResult(record, None, False)) from exc

    return GradeResult(record, streak, False)


def initialize_review(user_id, lesson_id, item_id, *, now=None):
    """Create the default record for (user, item) unless one already exists."""
    now = now or timezone.now()
    existing = repos.get_review(user_id, item_id)
    if existing is not None:
        return existing

    record = repos.create_review(user_id, lesson_id, item_id, now)
    if record is None:
        # Lost the insert race; the winner's record is the one to return
        return repos.get_review(user_id, item_id)

    logger.info("review_initialized",
        user_id=str(user_id),
        lesson_id=lesson_id,
        item_id=str(item_id),
        next_review_utc=record.next_review_at.isoformat(),
    )
    return record


def remove_review(user_id, item_id):
    """
    Delete the record for (user, item) if present.

    Log rows stay for the daily stats, but their idempotency keys are
    retired so a re-learned item never replays an old grade.
    """
    with transaction.atomic():
        repos.delete_review(user_id, item_id)
        repos.retire_idempotency_keys(user_id, item_id)
    logger.info("review_removed", user_id=str(user_id), item_id=str(item_id))


def list_due(user_id, as_of=None):
    """Records due at ``as_of`` (default now), soonest first, ties by item id."""
    as_of = as_of or timezone.now()
    return repos.list_due_reviews(user_id, as_of)
