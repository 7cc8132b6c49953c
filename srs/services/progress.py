from django.utils import timezone
import structlog

from ..data import repos
from .reviews import initialize_review, remove_review

logger = structlog.get_logger()


def complete_item(user_id, lesson_id, item_id, *, now=None):
    """
    Mark an item learned and put it into the review queue.

    Returns ``(completion, created)``. Completing an item twice is a no-op,
    and the review record is only created the first time.
    """
    now = now or timezone.now()
    completion, created = repos.get_or_create_completion(user_id, lesson_id, item_id, now)
    initialize_review(user_id, lesson_id, item_id, now=now)
    if created:
        logger.info("item_completed", user_id=str(user_id), lesson_id=lesson_id, item_id=str(item_id))
    return completion, created


def uncomplete_item(user_id, lesson_id, item_id):
    repos.delete_completion(user_id, lesson_id, item_id)
    # The same item id may also be marked learned through another lesson
    if not repos.item_completed_elsewhere(user_id, lesson_id, item_id):
        remove_review(user_id, item_id)
    logger.info("item_uncompleted", user_id=str(user_id), lesson_id=lesson_id, item_id=str(item_id))


def lesson_progress(user_id, lesson_id):
    return repos.list_completed_items(user_id, lesson_id)
