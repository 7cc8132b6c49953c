from django.utils import timezone

from ..data import repos
from ..utils.time import end_of_utc_day, start_of_utc_day


def user_stats(user_id, as_of=None):
    """
    Dashboard numbers for one learner, bucketed by the UTC day of ``as_of``.

    ``reviews_done_today`` counts grading events from the review log, so an
    item graded twice today counts twice.
    """
    as_of = as_of or timezone.now()
    day_start = start_of_utc_day(as_of)
    day_end = end_of_utc_day(as_of)
    streak = repos.get_streak(user_id)

    return {
        "total_learned": repos.count_learned_items(user_id),
        "due_today": repos.count_due_reviews(user_id, day_end),
        "streak": streak.streak if streak else 0,
        "last_review_date": streak.last_review_date if streak else None,
        "reviews_done_today": repos.count_reviews_between(user_id, day_start, day_end),
        "per_lesson_due": repos.due_counts_by_lesson(user_id, day_end),
    }
