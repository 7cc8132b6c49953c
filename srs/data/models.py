from django.db import models
from django.utils import timezone

from ..config import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL_DAYS, DEFAULT_REPETITIONS


class ReviewRecord(models.Model):
    """SM-2 scheduling state for one learned item of one user."""

    user_id = models.CharField(max_length=255)
    item_id = models.CharField(max_length=255)
    lesson_id = models.IntegerField()
    next_review_at = models.DateTimeField(default=timezone.now)  # UTC
    interval_days = models.PositiveIntegerField(default=DEFAULT_INTERVAL_DAYS)
    ease_factor = models.FloatField(default=DEFAULT_EASE_FACTOR)
    repetitions = models.PositiveIntegerField(default=DEFAULT_REPETITIONS)
    updated_at = models.DateTimeField(default=timezone.now)
    version = models.PositiveIntegerField(default=1)  # bumped on every write

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user_id", "item_id"], name="uq_review_user_item"),
        ]
        indexes = [
            models.Index(fields=["user_id", "next_review_at"], name="srs_review_user_due_idx"),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.item_id} due {self.next_review_at.isoformat()}"


class StreakState(models.Model):
    user_id = models.CharField(max_length=255, unique=True)
    streak = models.PositiveIntegerField(default=0)
    last_review_date = models.DateField()  # UTC calendar day
    version = models.PositiveIntegerField(default=1)


class ReviewLog(models.Model):
    user_id = models.CharField(max_length=255)
    item_id = models.CharField(max_length=255)
    lesson_id = models.IntegerField()
    grade = models.SmallIntegerField()
    idempotency_key = models.CharField(max_length=64, null=True, blank=True)
    reviewed_at = models.DateTimeField(default=timezone.now)
    next_review_at = models.DateTimeField()
    interval_days = models.PositiveIntegerField()
    ease_factor = models.FloatField()
    repetitions = models.PositiveIntegerField()

    class Meta:
        # NULL keys never collide, so unkeyed grades are always logged
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "item_id", "idempotency_key"],
                name="uq_reviewlog_idempotency",
            ),
        ]
        indexes = [
            models.Index(fields=["user_id", "reviewed_at"], name="srs_log_user_reviewed_idx"),
        ]


class LessonCompletion(models.Model):
    """An item the user has marked learned inside a lesson."""

    user_id = models.CharField(max_length=255)
    lesson_id = models.IntegerField()
    item_id = models.CharField(max_length=255)
    completed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "lesson_id", "item_id"], name="uq_completion_user_lesson_item"
            ),
        ]
