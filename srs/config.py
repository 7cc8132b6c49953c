DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
DEFAULT_INTERVAL_DAYS = 1
DEFAULT_REPETITIONS = 0

MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3          # grade < 3 is a lapse

FAILED_INTERVAL_DAYS = 1
FIRST_INTERVAL_DAYS = {
    1: 1,      # first successful recall
    2: 6,      # second in a row
}

# Compare-and-swap attempts per read-modify-write before giving up
MAX_WRITE_ATTEMPTS = 5
