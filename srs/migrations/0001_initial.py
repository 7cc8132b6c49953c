import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LessonCompletion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("lesson_id", models.IntegerField()),
                ("item_id", models.CharField(max_length=255)),
                ("completed_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "lesson_id", "item_id"), name="uq_completion_user_lesson_item"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ReviewLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("item_id", models.CharField(max_length=255)),
                ("lesson_id", models.IntegerField()),
                ("grade", models.SmallIntegerField()),
                ("idempotency_key", models.CharField(blank=True, max_length=64, null=True)),
                ("reviewed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("next_review_at", models.DateTimeField()),
                ("interval_days", models.PositiveIntegerField()),
                ("ease_factor", models.FloatField()),
                ("repetitions", models.PositiveIntegerField()),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user_id", "reviewed_at"], name="srs_log_user_reviewed_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "item_id", "idempotency_key"), name="uq_reviewlog_idempotency"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ReviewRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("item_id", models.CharField(max_length=255)),
                ("lesson_id", models.IntegerField()),
                ("next_review_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("interval_days", models.PositiveIntegerField(default=1)),
                ("ease_factor", models.FloatField(default=2.5)),
                ("repetitions", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("version", models.PositiveIntegerField(default=1)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user_id", "next_review_at"], name="srs_review_user_due_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user_id", "item_id"), name="uq_review_user_item")
                ],
            },
        ),
        migrations.CreateModel(
            name="StreakState",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255, unique=True)),
                ("streak", models.PositiveIntegerField(default=0)),
                ("last_review_date", models.DateField()),
                ("version", models.PositiveIntegerField(default=1)),
            ],
        ),
    ]
