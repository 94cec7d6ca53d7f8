MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
INITIAL_DIFFICULTY = MIN_DIFFICULTY

MIN_QUALITY = 1
MAX_QUALITY = 5
EASY_THRESHOLD = 4   # rating >= this lowers difficulty
HARD_THRESHOLD = 2   # rating <= this raises difficulty

# Harder cards come back sooner
REVIEW_INTERVAL_DAYS = {
    1: 16,
    2: 8,
    3: 4,
    4: 2,
    5: 1,
}

MAX_TEXT_LENGTH = 500
IDEMPOTENCY_KEY_MAX_LENGTH = 64

STUDY_QUEUE_DEFAULT = 10
STUDY_QUEUE_MAX = 50

BULK_IMPORT_MAX = 100
BULK_REVIEW_MAX = 50

DUE_CARDS_DEFAULT = 20
DUE_CARDS_MAX = 100
OVERDUE_FACTOR = 1.5  # past due by more than half an interval
