from django.utils import timezone
from rest_framework import views, status
from rest_framework.response import Response
import structlog
import uuid
from ..domain.enums import GRADE_LABELS
from ..domain.errors import StreakUpdateError
from ..services.progress import complete_item, lesson_progress, uncomplete_item
from ..services.reviews import grade_review, list_due
from ..services.stats import user_stats
from .serializers import (
    CompletionInSerializer,
    DueQuerySerializer,
    ReviewInSerializer,
    ReviewRecordSerializer,
    StreakSerializer,
)

base_logger = structlog.get_logger()


class ReviewView(views.APIView):
    def post(self, request):
        # Create a unique request_id
        request_id = str(uuid.uuid4())
        logger = base_logger.bind(request_id=request_id)

        s = ReviewInSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        user_id = s.validated_data["user_id"]
        item_id = s.validated_data["item_id"]
        grade = s.validated_data["grade"]
        idem = s.validated_data.get("idempotency_key")

        warnings = []
        try:
            result = grade_review(user_id, item_id, grade, idempotency_key=idem)
        except StreakUpdateError as exc:
            result = exc.result
            warnings.append("streak_not_updated")

        status_code = status.HTTP_200_OK if result.idempotent else status.HTTP_201_CREATED
        record = result.record

        logger.info(
            "review_api_response",
            user_id=user_id,
            item_id=item_id,
            grade=grade,
            idempotent=result.idempotent,
            interval_days=record.interval_days,
            next_review_utc=record.next_review_at.isoformat(),
            warnings=warnings,
            status=status_code,
        )

        return Response(
            {
                "review": ReviewRecordSerializer(record).data,
                "grade_label": GRADE_LABELS[grade],
                "streak": StreakSerializer(result.streak).data if result.streak else None,
                "idempotent": result.idempotent,
                "warnings": warnings,
            },
            status=status_code,
        )


class DueReviewsView(views.APIView):
    def get(self, request, user_id):
        # Create a unique request_id
        request_id = str(uuid.uuid4())
        logger = base_logger.bind(request_id=request_id)

        qs = DueQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)
        as_of = qs.validated_data.get("as_of") or timezone.now()

        results = list_due(user_id, as_of)

        logger.info(
            "due_reviews_api_response",
            user_id=user_id,
            as_of_utc=as_of.isoformat(),
            review_count=len(results),
        )

        return Response(
            {
                "user_id": user_id,
                "as_of_utc": as_of.isoformat(),
                "reviews": ReviewRecordSerializer(results, many=True).data,
            }
        )


class CompletionView(views.APIView):
    def post(self, request):
        s = CompletionInSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        completion, created = complete_item(**s.validated_data)
        status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK

        return Response(
            {
                "user_id": completion.user_id,
                "lesson_id": completion.lesson_id,
                "completed_items": lesson_progress(completion.user_id, completion.lesson_id),
                "created": created,
            },
            status=status_code,
        )


class CompletedItemView(views.APIView):
    def delete(self, request, user_id, lesson_id, item_id):
        uncomplete_item(user_id, lesson_id, item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LessonProgressView(views.APIView):
    def get(self, request, user_id, lesson_id):
        return Response(
            {
                "user_id": user_id,
                "lesson_id": lesson_id,
                "completed_items": lesson_progress(user_id, lesson_id),
            }
        )


class StatsView(views.APIView):
    def get(self, request, user_id):
        stats = user_stats(user_id)
        last = stats["last_review_date"]
        return Response(
            {
                **stats,
                "user_id": user_id,
                "last_review_date": last.isoformat() if last else None,
            }
        )
