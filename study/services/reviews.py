import structlog

from ..config import (
    BULK_REVIEW_MAX,
    DUE_CARDS_DEFAULT,
    DUE_CARDS_MAX,
    STUDY_QUEUE_DEFAULT,
    STUDY_QUEUE_MAX,
)
from ..domain.entities import BulkFailure, BulkResult, ReviewEvent, ReviewSubmission
from ..domain.errors import ConflictError, StudyError, ValidationError, flashcard_not_found
from ..domain.logic import (
    adjust_difficulty,
    classify_due,
    lock_wait,
    order_due,
    summarize_events,
)
from ..domain.ports import FlashcardStore, SessionLog
from ..utils.time import to_utc_iso, utc_now

logger = structlog.get_logger()


class SchedulingEngine:
    """
    Turns recall ratings into flashcard scheduling state and picks the
    next cards to study.

    The engine holds no state of its own: every call goes through the
    store and session log it was built with. Writes to one card are
    serialized by ``store.locked``; reads take no lock.
    """

    def __init__(self, store: FlashcardStore, log: SessionLog, clock=utc_now, timeout=None):
        self.store = store
        self.log = log
        self.clock = clock
        self.timeout = lock_wait(timeout)

    def submit_review(
        self,
        user_id,
        flashcard_id,
        quality_rating: int,
        response_time_ms=None,
        *,
        expected_version=None,
        idempotency_key=None,
        timeout=None,
    ):
        submission = ReviewSubmission(
            user_id=user_id,
            flashcard_id=flashcard_id,
            quality_rating=quality_rating,
            response_time_ms=response_time_ms,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )
        logger.info("review_received",
            user_id=str(user_id),
            flashcard_id=str(flashcard_id),
            rating=int(submission.quality_rating),
            idempotency_key=idempotency_key,
        )

        wait = lock_wait(self.timeout, timeout)
        with self.store.locked(submission.flashcard_id, timeout=wait) as card:
            if card is None or card.owner_id != submission.user_id:
                logger.warning("review_rejected",
                    user_id=str(user_id),
                    flashcard_id=str(flashcard_id),
                    reason="not_found",
                )
                raise flashcard_not_found(submission.flashcard_id)

            # Fast path: a retried request with a known key changes nothing
            if submission.idempotency_key is not None:
                existing = self.log.find(
                    submission.user_id, submission.flashcard_id, submission.idempotency_key
                )
                if existing is not None:
                    logger.info("idempotent_reuse",
                        user_id=str(user_id),
                        flashcard_id=str(flashcard_id),
                        event_id=existing.id,
                    )
                    return card

            if (
                submission.expected_version is not None
                and card.version != submission.expected_version
            ):
                raise ConflictError(
                    "Flashcard changed since it was read",
                    flashcard_id=card.id,
                    expected_version=submission.expected_version,
                    actual_version=card.version,
                )

            now = self.clock()
            new_difficulty = adjust_difficulty(card.difficulty, submission.quality_rating)
            updated = self.store.update(
                card.id,
                {
                    "difficulty": new_difficulty,
                    "review_count": card.review_count + 1,
                    "last_reviewed": now,
                },
                expected_version=card.version,
            )
            self.log.append(ReviewEvent(
                user_id=submission.user_id,
                flashcard_id=card.id,
                quality_rating=int(submission.quality_rating),
                timestamp=now,
                previous_difficulty=card.difficulty,
                new_difficulty=new_difficulty,
                response_time_ms=submission.response_time_ms,
                idempotency_key=submission.idempotency_key,
            ))

        logger.info("review_scheduled",
            user_id=str(user_id),
            flashcard_id=str(flashcard_id),
            previous_difficulty=card.difficulty,
            difficulty=updated.difficulty,
            review_count=updated.review_count,
            last_reviewed_utc=to_utc_iso(updated.last_reviewed),
        )
        return updated

    def next_due_card(self, user_id, exclude_ids=()):
        if user_id is None or user_id == "":
            raise ValidationError("user_id is required", field="user_id")
        due = order_due(self.store.list_by_owner(user_id), exclude_ids)
        return due[0] if due else None

    def study_queue(self, user_id, limit=STUDY_QUEUE_DEFAULT):
        if user_id is None or user_id == "":
            raise ValidationError("user_id is required", field="user_id")
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= STUDY_QUEUE_MAX:
            raise ValidationError(
                f"limit must be between 1 and {STUDY_QUEUE_MAX}", field="limit"
            )
        return order_due(self.store.list_by_owner(user_id))[:limit]

    def session_summary(self, user_id, since=None):
        if user_id is None or user_id == "":
            raise ValidationError("user_id is required", field="user_id")
        return summarize_events(self.log.query(user_id, since))

    def submit_reviews(self, user_id, reviews):
        """
        Apply a batch of reviews one by one.

        Each item is a mapping with ``flashcard_id`` and ``quality_rating``
        and optionally ``response_time_ms`` and ``idempotency_key``. Every
        item commits or fails on its own; failures are reported by index
        and never stop the rest of the batch.
        """
        if user_id is None or user_id == "":
            raise ValidationError("user_id is required", field="user_id")
        if not isinstance(reviews, (list, tuple)) or not reviews:
            raise ValidationError("reviews must be a non-empty list", field="reviews")
        if len(reviews) > BULK_REVIEW_MAX:
            raise ValidationError(
                f"Cannot review more than {BULK_REVIEW_MAX} flashcards at once",
                field="reviews",
            )

        result = BulkResult()
        for index, item in enumerate(reviews):
            try:
                if not isinstance(item, dict):
                    raise ValidationError("Each review must be an object", field="reviews")
                card = self.submit_review(
                    user_id,
                    item.get("flashcard_id"),
                    item.get("quality_rating"),
                    item.get("response_time_ms"),
                    idempotency_key=item.get("idempotency_key"),
                )
            except StudyError as exc:
                result.failed.append(BulkFailure(index, exc.code, exc.message))
            else:
                result.successful.append((index, card))

        logger.info("bulk_review_completed",
            user_id=str(user_id),
            total=result.total_processed,
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return result

    def due_cards(self, user_id, limit=DUE_CARDS_DEFAULT, now=None):
        if user_id is None or user_id == "":
            raise ValidationError("user_id is required", field="user_id")
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= DUE_CARDS_MAX:
            raise ValidationError(
                f"limit must be between 1 and {DUE_CARDS_MAX}", field="limit"
            )
        return classify_due(self.store.list_by_owner(user_id), now or self.clock(), limit)
