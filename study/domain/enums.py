from enum import IntEnum

class QualityRating(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

RATING_LABELS = {
    QualityRating.AGAIN: "Again",
    QualityRating.HARD: "Hard",
    QualityRating.GOOD: "Good",
    QualityRating.EASY: "Easy",
    QualityRating.PERFECT: "Perfect",
}
