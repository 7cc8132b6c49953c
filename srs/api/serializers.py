from rest_framework import serializers

from ..config import MAX_GRADE, MIN_GRADE
from ..data.models import ReviewRecord, StreakState

class ReviewInSerializer(serializers.Serializer):
    user_id = serializers.CharField(max_length=255)
    item_id = serializers.CharField(max_length=255)
    grade = serializers.IntegerField(min_value=MIN_GRADE, max_value=MAX_GRADE)
    idempotency_key = serializers.CharField(max_length=64, required=False, allow_null=True)

class DueQuerySerializer(serializers.Serializer):
    as_of = serializers.DateTimeField(required=False)  # ISO-8601

class CompletionInSerializer(serializers.Serializer):
    user_id = serializers.CharField(max_length=255)
    lesson_id = serializers.IntegerField(min_value=1)
    item_id = serializers.CharField(max_length=255)

class ReviewRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReviewRecord
        fields = [
            "user_id", "item_id", "lesson_id", "next_review_at",
            "interval_days", "ease_factor", "repetitions", "updated_at",
        ]

class StreakSerializer(serializers.ModelSerializer):
    class Meta:
        model = StreakState
        fields = ["user_id", "streak", "last_review_date"]
