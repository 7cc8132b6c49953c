import functools

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, F

from ..domain.errors import StoreUnavailable
from .models import LessonCompletion, ReviewLog, ReviewRecord, StreakState


def store_call(func):
    """
    Surface database failures as StoreUnavailable.

    Integrity violations pass through untouched; callers use them to detect
    a lost insert race or a replayed idempotency key.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            raise StoreUnavailable(f"{func.__name__} failed: {exc}") from exc
    return wrapper


# Review records

@store_call
def get_review(user_id, item_id):
    return ReviewRecord.objects.filter(user_id=user_id, item_id=item_id).first()

@store_call
def create_review(user_id, lesson_id, item_id, now):
    """
    Insert a record with default scheduling state.
    Returns None if a concurrent insert already claimed (user, item).
    """
    try:
        with transaction.atomic():
            return ReviewRecord.objects.create(
                user_id=user_id, item_id=item_id, lesson_id=lesson_id,
                next_review_at=now, updated_at=now,
            )
    except IntegrityError:
        return None

@store_call
def swap_review(record, result, now):
    """
    Write a new schedule only if nobody else wrote since ``record`` was read.
    On success ``record`` is updated in place to the stored values.
    """
    state = result.state
    updated = (ReviewRecord.objects
               .filter(pk=record.pk, version=record.version)
               .update(
                   repetitions=state.repetitions,
                   interval_days=state.interval_days,
                   ease_factor=state.ease_factor,
                   next_review_at=result.next_review_at,
                   updated_at=now,
                   version=F("version") + 1,
               ))
    if updated != 1:
        return False
    record.repetitions = state.repetitions
    record.interval_days = state.interval_days
    record.ease_factor = state.ease_factor
    record.next_review_at = result.next_review_at
    record.updated_at = now
    record.version += 1
    return True

@store_call
def delete_review(user_id, item_id):
    ReviewRecord.objects.filter(user_id=user_id, item_id=item_id).delete()

@store_call
def list_reviews(user_id):
    return list(ReviewRecord.objects.filter(user_id=user_id).order_by("lesson_id", "item_id"))

@store_call
def list_due_reviews(user_id, as_of):
    return list(
        ReviewRecord.objects
        .filter(user_id=user_id, next_review_at__lte=as_of)
        .order_by("next_review_at", "item_id")
    )

@store_call
def count_due_reviews(user_id, until):
    return ReviewRecord.objects.filter(user_id=user_id, next_review_at__lte=until).count()

@store_call
def due_counts_by_lesson(user_id, until):
    return list(
        ReviewRecord.objects
        .filter(user_id=user_id, next_review_at__lte=until)
        .values("lesson_id")
        .annotate(due_count=Count("id"))
        .order_by("lesson_id")
    )


# Review log

@store_call
def get_review_log(user_id, item_id, idempotency_key):
    return ReviewLog.objects.filter(
        user_id=user_id, item_id=item_id, idempotency_key=idempotency_key
    ).first()

@store_call
def persist_review_log(record, grade, idempotency_key, now):
    """Raises IntegrityError if ``idempotency_key`` was already used for this item."""
    return ReviewLog.objects.create(
        user_id=record.user_id, item_id=record.item_id, lesson_id=record.lesson_id,
        grade=int(grade), idempotency_key=idempotency_key, reviewed_at=now,
        next_review_at=record.next_review_at, interval_days=record.interval_days,
        ease_factor=record.ease_factor, repetitions=record.repetitions,
    )

@store_call
def retire_idempotency_keys(user_id, item_id):
    """Keep the log rows but free their keys for a re-learned item."""
    ReviewLog.objects.filter(
        user_id=user_id, item_id=item_id, idempotency_key__isnull=False
    ).update(idempotency_key=None)

@store_call
def count_reviews_between(user_id, start, end):
    return ReviewLog.objects.filter(
        user_id=user_id, reviewed_at__gte=start, reviewed_at__lte=end
    ).count()


# Streaks

@store_call
def get_streak(user_id):
    return StreakState.objects.filter(user_id=user_id).first()

@store_call
def create_streak(user_id, today):
    """Start a streak of 1. Returns None if a concurrent insert won."""
    try:
        with transaction.atomic():
            return StreakState.objects.create(user_id=user_id, streak=1, last_review_date=today)
    except IntegrityError:
        return None

@store_call
def swap_streak(state, streak, today):
    updated = (StreakState.objects
               .filter(pk=state.pk, version=state.version)
               .update(streak=streak, last_review_date=today, version=F("version") + 1))
    if updated != 1:
        return False
    state.streak = streak
    state.last_review_date = today
    state.version += 1
    return True


# Lesson completions

@store_call
def get_or_create_completion(user_id, lesson_id, item_id, now):
    return LessonCompletion.objects.get_or_create(
        user_id=user_id, lesson_id=lesson_id, item_id=item_id,
        defaults={"completed_at": now},
    )

@store_call
def delete_completion(user_id, lesson_id, item_id):
    LessonCompletion.objects.filter(
        user_id=user_id, lesson_id=lesson_id, item_id=item_id
    ).delete()

@store_call
def item_completed_elsewhere(user_id, lesson_id, item_id):
    return (LessonCompletion.objects
            .filter(user_id=user_id, item_id=item_id)
            .exclude(lesson_id=lesson_id)
            .exists())

@store_call
def list_completed_items(user_id, lesson_id):
    return list(
        LessonCompletion.objects
        .filter(user_id=user_id, lesson_id=lesson_id)
        .order_by("completed_at", "id")
        .values_list("item_id", flat=True)
    )

@store_call
def count_learned_items(user_id):
    return (LessonCompletion.objects
            .filter(user_id=user_id)
            .values("item_id")
            .distinct()
            .count())
