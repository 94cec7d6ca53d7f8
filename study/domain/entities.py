from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..config import (
    IDEMPOTENCY_KEY_MAX_LENGTH,
    INITIAL_DIFFICULTY,
    MAX_QUALITY,
    MIN_QUALITY,
)
from .enums import QualityRating
from .errors import ValidationError


@dataclass(frozen=True)
class Flashcard:
    """Immutable snapshot of one flashcard and its scheduling state."""

    id: int
    owner_id: int
    front_text: str
    back_text: str
    difficulty: int = INITIAL_DIFFICULTY
    review_count: int = 0
    last_reviewed: Optional[datetime] = None
    version: int = 1
    created_at: Optional[datetime] = None

    @property
    def is_new(self) -> bool:
        return self.review_count == 0


@dataclass(frozen=True)
class ReviewEvent:
    user_id: int
    flashcard_id: int
    quality_rating: int
    timestamp: datetime
    previous_difficulty: int
    new_difficulty: int
    response_time_ms: Optional[int] = None
    idempotency_key: Optional[str] = None
    id: Optional[int] = None


def _require_id(name, value):
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{name} is required", field=name)
    return value


@dataclass(frozen=True)
class ReviewSubmission:
    """A review request, validated on construction."""

    user_id: int
    flashcard_id: int
    quality_rating: QualityRating
    response_time_ms: Optional[int] = None
    idempotency_key: Optional[str] = None
    expected_version: Optional[int] = None

    def __post_init__(self):
        _require_id("user_id", self.user_id)
        _require_id("flashcard_id", self.flashcard_id)

        rating = self.quality_rating
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError(
                "quality_rating must be an integer", field="quality_rating"
            )
        if not MIN_QUALITY <= rating <= MAX_QUALITY:
            raise ValidationError(
                f"quality_rating must be between {MIN_QUALITY} and {MAX_QUALITY}",
                field="quality_rating",
                value=rating,
            )
        object.__setattr__(self, "quality_rating", QualityRating(rating))

        elapsed = self.response_time_ms
        if elapsed is not None and (
            isinstance(elapsed, bool) or not isinstance(elapsed, int) or elapsed < 0
        ):
            raise ValidationError(
                "response_time_ms must be a non-negative integer",
                field="response_time_ms",
            )

        key = self.idempotency_key
        if key is not None and (not key or len(key) > IDEMPOTENCY_KEY_MAX_LENGTH):
            raise ValidationError(
                f"idempotency_key must be 1-{IDEMPOTENCY_KEY_MAX_LENGTH} characters",
                field="idempotency_key",
            )


@dataclass(frozen=True)
class SessionSummary:
    reviewed: int
    average_quality: Optional[float]
    flashcards_reviewed: int = 0


@dataclass(frozen=True)
class DeckStats:
    total_flashcards: int
    reviewed_cards: int
    unreviewed_cards: int
    total_reviews: int
    average_difficulty: float
    due_now: int
    difficulty_distribution: Dict[int, int] = field(default_factory=dict)
    last_study_session: Optional[datetime] = None


@dataclass(frozen=True)
class DueCards:
    """Cards waiting for review, split by how urgent they are."""

    new: List[Flashcard] = field(default_factory=list)
    due: List[Flashcard] = field(default_factory=list)
    overdue: List[Flashcard] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.new) + len(self.due) + len(self.overdue)


@dataclass(frozen=True)
class BulkFailure:
    index: int
    error: str
    message: str


@dataclass(frozen=True)
class BulkResult:
    """Per-item outcome of a batch: created or reviewed cards by input index."""

    successful: List[Tuple[int, Flashcard]] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.successful) + len(self.failed)
