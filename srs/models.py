# Models live in srs.data.models; Django discovers them through this module.
from .data.models import LessonCompletion, ReviewLog, ReviewRecord, StreakState  # noqa: F401
