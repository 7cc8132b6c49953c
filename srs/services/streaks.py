from django.utils import timezone
import structlog

from ..config import MAX_WRITE_ATTEMPTS
from ..data import repos
from ..domain.errors import ConcurrentUpdateError
from ..domain.logic import next_streak
from ..utils.time import utc_date

logger = structlog.get_logger()


def record_activity(user_id, as_of=None):
    """
    Count ``as_of`` as a review day for ``user_id`` and return the streak.

    Days are UTC calendar days regardless of where the learner is, so two
    reviews either side of midnight UTC land on different days.
    """
    as_of = as_of or timezone.now()
    today = utc_date(as_of)

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        state = repos.get_streak(user_id)
        if state is None:
            state = repos.create_streak(user_id, today)
            if state is not None:
                logger.info("streak_started", user_id=str(user_id), date=today.isoformat())
                return state
        else:
            previous = state.streak
            streak = next_streak(state.streak, state.last_review_date, today)
            if repos.swap_streak(state, streak, today):
                logger.info("streak_updated",
                    user_id=str(user_id),
                    date=today.isoformat(),
                    previous=previous,
                    streak=streak,
                )
                return state
        logger.info("streak_write_conflict", user_id=str(user_id), attempt=attempt)

    raise ConcurrentUpdateError(f"streak for {user_id!r} kept changing during update")


def current_streak(user_id):
    return repos.get_streak(user_id)
