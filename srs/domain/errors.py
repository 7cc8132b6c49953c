class SchedulerError(Exception):
    """Base class for review scheduling failures."""


class ReviewNotFound(SchedulerError):
    def __init__(self, user_id, item_id):
        super().__init__(f"No review record for user {user_id!r}, item {item_id!r}")
        self.user_id = user_id
        self.item_id = item_id


class InvalidGrade(SchedulerError, ValueError):
    def __init__(self, grade):
        super().__init__(f"Grade must be an integer between 0 and 5, got {grade!r}")
        self.grade = grade


class StoreUnavailable(SchedulerError):
    """A review or streak store call failed. The cause is chained."""


class ConcurrentUpdateError(StoreUnavailable):
    """Another request kept winning the write for the same key."""


class StreakUpdateError(SchedulerError):
    """
    The grade was applied and committed, but the streak write failed.

    ``result`` is the committed GradeResult (with ``streak=None``) so the
    caller can report the new schedule and retry only ``record_activity``.
    """

    def __init__(self, result):
        super().__init__("Review was graded but the streak could not be updated")
        self.result = result
