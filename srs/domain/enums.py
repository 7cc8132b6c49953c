from enum import IntEnum

class Grade(IntEnum):
    BLACKOUT = 0
    INCORRECT = 1
    INCORRECT_FAMILIAR = 2
    CORRECT_HARD = 3
    CORRECT = 4
    PERFECT = 5

GRADE_LABELS = {
    Grade.BLACKOUT: "blackout",
    Grade.INCORRECT: "incorrect",
    Grade.INCORRECT_FAMILIAR: "incorrect, familiar",
    Grade.CORRECT_HARD: "correct, hard",
    Grade.CORRECT: "correct",
    Grade.PERFECT: "perfect",
}


def grade_for_answer(correct: bool) -> Grade:
    """
    Map a right/wrong free-response answer onto the 0-5 scale.

    This is the convention the quiz and review screens use when they call
    the scheduler: a correct answer is a perfect recall, a wrong one is a
    lapse that still counts the item as familiar.
    """
    return Grade.PERFECT if correct else Grade.INCORRECT_FAMILIAR
