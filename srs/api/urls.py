from django.urls import path
from .views import (
    CompletedItemView,
    CompletionView,
    DueReviewsView,
    LessonProgressView,
    ReviewView,
    StatsView,
)

urlpatterns = [
    path("reviews", ReviewView.as_view(), name="review"),
    path("users/<str:user_id>/due-reviews", DueReviewsView.as_view(), name="due-reviews"),
    path("progress", CompletionView.as_view(), name="progress"),
    path(
        "users/<str:user_id>/lessons/<int:lesson_id>/progress",
        LessonProgressView.as_view(),
        name="lesson-progress",
    ),
    path(
        "users/<str:user_id>/lessons/<int:lesson_id>/items/<str:item_id>",
        CompletedItemView.as_view(),
        name="completed-item",
    ),
    path("users/<str:user_id>/stats", StatsView.as_view(), name="stats"),
]
