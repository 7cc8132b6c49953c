import pytest
from datetime import datetime, timedelta, timezone

from django.db import OperationalError, connection
from django.db.models import F

from srs.data import repos
from srs.data.models import ReviewLog, ReviewRecord, StreakState
from srs.domain.errors import (
    ConcurrentUpdateError,
    InvalidGrade,
    ReviewNotFound,
    StoreUnavailable,
    StreakUpdateError,
)
from srs.domain.logic import ease_delta
from srs.services import reviews
from srs.services.reviews import grade_review, initialize_review, list_due, remove_review

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
USER = "learner@example.com"


def fresh(item_id="marhaba", lesson_id=1, user_id=USER, now=T0):
    return initialize_review(user_id, lesson_id, item_id, now=now)


@pytest.mark.django_db
def test_initialize_creates_defaults():
    record = fresh()

    assert record.user_id == USER
    assert record.lesson_id == 1
    assert record.repetitions == 0
    assert record.interval_days == 1
    assert record.ease_factor == 2.5
    assert record.next_review_at == T0
    assert record.updated_at == T0


@pytest.mark.django_db
def test_initialize_is_idempotent():
    first = fresh()
    grade_review(USER, "marhaba", 5, now=T0)

    again = initialize_review(USER, 1, "marhaba", now=T0 + timedelta(days=3))

    assert again.pk == first.pk
    assert again.repetitions == 1
    assert again.next_review_at == T0 + timedelta(days=1)
    assert ReviewRecord.objects.count() == 1


@pytest.mark.django_db
def test_grade_unknown_item_is_not_found():
    with pytest.raises(ReviewNotFound):
        grade_review(USER, "never-seen", 5, now=T0)

    assert ReviewRecord.objects.count() == 0
    assert StreakState.objects.count() == 0


@pytest.mark.django_db
@pytest.mark.parametrize("grade", [-1, 6, True, 2.5])
def test_invalid_grade_leaves_store_untouched(grade):
    record = fresh()

    with pytest.raises(InvalidGrade):
        grade_review(USER, "marhaba", grade, now=T0)

    stored = ReviewRecord.objects.get(pk=record.pk)
    assert (stored.repetitions, stored.interval_days, stored.ease_factor, stored.version) == (0, 1, 2.5, 1)
    assert ReviewLog.objects.count() == 0
    assert StreakState.objects.count() == 0


@pytest.mark.django_db
def test_grade_persists_schedule_log_and_streak():
    fresh()

    result = grade_review(USER, "marhaba", 5, now=T0)

    stored = ReviewRecord.objects.get(user_id=USER, item_id="marhaba")
    assert result.idempotent is False
    assert stored.repetitions == result.record.repetitions == 1
    assert stored.interval_days == 1
    assert stored.ease_factor == pytest.approx(2.6)
    assert stored.next_review_at == T0 + timedelta(days=1)
    assert stored.updated_at == T0

    log = ReviewLog.objects.get()
    assert (log.grade, log.repetitions, log.interval_days) == (5, 1, 1)

    assert result.streak.streak == 1
    assert result.streak.last_review_date == T0.date()


@pytest.mark.django_db
def test_successive_grades_follow_sm2():
    fresh()
    grade_review(USER, "marhaba", 5, now=T0)
    second = grade_review(USER, "marhaba", 5, now=T0 + timedelta(days=1)).record
    third = grade_review(USER, "marhaba", 5, now=T0 + timedelta(days=7)).record

    assert second.interval_days == 6
    assert second.ease_factor == pytest.approx(2.5 + 2 * ease_delta(5))
    assert third.repetitions == 3
    assert third.interval_days == 17  # 6 * 2.8 = 16.8
    assert third.next_review_at == T0 + timedelta(days=7 + 17)


@pytest.mark.django_db
def test_failed_grade_resets_record():
    record = fresh()
    ReviewRecord.objects.filter(pk=record.pk).update(repetitions=3, interval_days=10, ease_factor=2.0)

    result = grade_review(USER, "marhaba", 0, now=T0)

    assert result.record.repetitions == 0
    assert result.record.interval_days == 1
    assert result.record.ease_factor == pytest.approx(1.3)
    assert result.record.next_review_at == T0 + timedelta(days=1)


@pytest.mark.django_db
def test_same_idempotency_key_grades_once():
    fresh()

    first = grade_review(USER, "marhaba", 5, now=T0, idempotency_key="tap-1")
    second = grade_review(USER, "marhaba", 5, now=T0, idempotency_key="tap-1")

    assert first.idempotent is False
    assert second.idempotent is True
    assert second.record.repetitions == 1
    assert second.record.next_review_at == first.record.next_review_at
    assert second.streak.streak == 1
    assert ReviewLog.objects.count() == 1


@pytest.mark.django_db
def test_idempotency_key_is_scoped_to_item():
    fresh("a")
    fresh("b")

    grade_review(USER, "a", 5, now=T0, idempotency_key="k")
    other = grade_review(USER, "b", 5, now=T0, idempotency_key="k")

    assert other.idempotent is False
    assert ReviewLog.objects.count() == 2


@pytest.mark.django_db
def test_concurrent_write_is_retried_not_lost(monkeypatch):
    """A grade that lands between our read and write must survive."""
    record = fresh()
    original_get = repos.get_review
    reads = []

    def racing_get(user_id, item_id):
        current = original_get(user_id, item_id)
        reads.append(current.version)
        if len(reads) == 1:
            # Another request grades the item 5 after we read it
            ReviewRecord.objects.filter(pk=record.pk).update(
                repetitions=1, ease_factor=2.6, interval_days=1,
                next_review_at=T0 + timedelta(days=1), version=F("version") + 1,
            )
        return current

    monkeypatch.setattr(repos, "get_review", racing_get)

    result = grade_review(USER, "marhaba", 5, now=T0)

    assert reads == [1, 2]
    assert result.record.repetitions == 2
    assert result.record.interval_days == 6
    assert result.record.ease_factor == pytest.approx(2.7)
    stored = ReviewRecord.objects.get(pk=record.pk)
    assert stored.repetitions == 2
    assert stored.version == 3
    assert ReviewLog.objects.count() == 1


@pytest.mark.django_db
def test_sustained_contention_gives_up(monkeypatch):
    fresh()
    monkeypatch.setattr(repos, "swap_review", lambda record, result, now: False)

    with pytest.raises(ConcurrentUpdateError):
        grade_review(USER, "marhaba", 4, now=T0)

    assert ReviewLog.objects.count() == 0
    assert StreakState.objects.count() == 0


@pytest.mark.django_db
def test_store_failure_propagates():
    fresh()

    def broken(execute, sql, params, many, context):
        raise OperationalError("database is locked")

    with connection.execute_wrapper(broken):
        with pytest.raises(StoreUnavailable) as excinfo:
            grade_review(USER, "marhaba", 5, now=T0)

    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert ReviewRecord.objects.get().repetitions == 0


@pytest.mark.django_db
def test_streak_failure_is_reported_after_commit(monkeypatch):
    fresh()

    def failing_activity(user_id, as_of=None):
        raise StoreUnavailable("streak store down")

    monkeypatch.setattr(reviews, "record_activity", failing_activity)

    with pytest.raises(StreakUpdateError) as excinfo:
        grade_review(USER, "marhaba", 5, now=T0)

    committed = excinfo.value.result
    assert committed.streak is None
    assert committed.record.repetitions == 1
    assert isinstance(excinfo.value.__cause__, StoreUnavailable)
    assert ReviewRecord.objects.get().repetitions == 1


@pytest.mark.django_db
def test_failed_grade_still_counts_for_streak():
    fresh()
    result = grade_review(USER, "marhaba", 1, now=T0)

    assert result.streak.streak == 1


@pytest.mark.django_db
def test_remove_review_is_idempotent():
    fresh()

    remove_review(USER, "marhaba")
    remove_review(USER, "marhaba")

    assert ReviewRecord.objects.count() == 0
    with pytest.raises(ReviewNotFound):
        grade_review(USER, "marhaba", 5, now=T0)


@pytest.mark.django_db
def test_list_due_filters_and_orders():
    for item_id, offset in [("late", 3), ("b-tie", -1), ("a-tie", -1), ("oldest", -5), ("now", 0)]:
        record = fresh(item_id)
        ReviewRecord.objects.filter(pk=record.pk).update(next_review_at=T0 + timedelta(hours=offset))
    fresh("other-user", user_id="someone-else")

    due = list_due(USER, T0)

    assert [r.item_id for r in due] == ["oldest", "a-tie", "b-tie", "now"]
    assert all(r.next_review_at <= T0 for r in due)


@pytest.mark.django_db
def test_list_due_after_grading():
    fresh("a")
    fresh("b")
    grade_review(USER, "a", 5, now=T0)

    assert [r.item_id for r in list_due(USER, T0)] == ["b"]
    assert [r.item_id for r in list_due(USER, T0 + timedelta(days=1))] == ["b", "a"]


@pytest.mark.django_db
def test_list_reviews_returns_every_record_of_user():
    fresh("b", lesson_id=2)
    fresh("a", lesson_id=2)
    fresh("z", lesson_id=1)
    fresh("a", user_id="someone-else")
    grade_review(USER, "a", 5, now=T0)

    records = repos.list_reviews(USER)

    assert [(r.lesson_id, r.item_id) for r in records] == [(1, "z"), (2, "a"), (2, "b")]


@pytest.mark.django_db
def test_blank_idempotency_key_means_no_key():
    fresh()

    first = grade_review(USER, "marhaba", 5, now=T0, idempotency_key="")
    second = grade_review(USER, "marhaba", 5, now=T0 + timedelta(days=1), idempotency_key="")

    assert first.idempotent is False
    assert second.idempotent is False
    assert second.record.repetitions == 2
    assert list(ReviewLog.objects.values_list("idempotency_key", flat=True)) == [None, None]


@pytest.mark.django_db
def test_relearned_item_does_not_replay_old_key():
    fresh()
    grade_review(USER, "marhaba", 5, now=T0, idempotency_key="k")

    remove_review(USER, "marhaba")
    fresh(now=T0 + timedelta(days=2))
    result = grade_review(USER, "marhaba", 5, now=T0 + timedelta(days=2), idempotency_key="k")

    assert result.idempotent is False
    assert result.record.repetitions == 1
    # Old rows are kept for the daily count, new key is live again
    assert ReviewLog.objects.count() == 2
    assert ReviewLog.objects.filter(idempotency_key="k").count() == 1


@pytest.mark.django_db
def test_key_committed_by_concurrent_request_replays(monkeypatch):
    """Another request commits the same key between our check and our write."""
    record = fresh()
    original_get_log = repos.get_review_log
    lookups = []

    def racing_get_log(user_id, item_id, idempotency_key):
        lookups.append(idempotency_key)
        if len(lookups) == 1:
            ReviewLog.objects.create(
                user_id=user_id, item_id=item_id, lesson_id=1, grade=5,
                idempotency_key=idempotency_key, reviewed_at=T0,
                next_review_at=T0 + timedelta(days=1), interval_days=1,
                ease_factor=2.6, repetitions=1,
            )
            return None
        return original_get_log(user_id, item_id, idempotency_key)

    monkeypatch.setattr(repos, "get_review_log", racing_get_log)

    result = grade_review(USER, "marhaba", 5, now=T0, idempotency_key="tap-1")

    assert lookups == ["tap-1", "tap-1"]
    assert result.idempotent is True
    stored = ReviewRecord.objects.get(pk=record.pk)
    assert (stored.repetitions, stored.version) == (0, 1)
    assert ReviewLog.objects.count() == 1
    assert StreakState.objects.count() == 0
