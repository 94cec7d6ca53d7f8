import structlog

from ..config import BULK_IMPORT_MAX
from ..domain.entities import BulkFailure, BulkResult
from ..domain.errors import ConflictError, StudyError, ValidationError, flashcard_not_found
from ..domain.logic import clean_text, lock_wait, summarize_deck
from ..domain.ports import FlashcardStore, SessionLog
from ..utils.time import utc_now

logger = structlog.get_logger()


class FlashcardService:
    """Owner-scoped create, read, edit and delete of flashcards."""

    def __init__(self, store: FlashcardStore, log: SessionLog, clock=utc_now, timeout=None):
        self.store = store
        self.log = log
        self.clock = clock
        self.timeout = lock_wait(timeout)

    def create(self, owner_id, front_text, back_text):
        if owner_id is None or owner_id == "":
            raise ValidationError("owner_id is required", field="owner_id")
        card = self.store.create(
            owner_id,
            clean_text("front_text", front_text),
            clean_text("back_text", back_text),
        )
        logger.info("flashcard_created", user_id=str(owner_id), flashcard_id=str(card.id))
        return card

    def bulk_create(self, owner_id, items):
        """Create up to BULK_IMPORT_MAX cards, reporting each item on its own."""
        if not isinstance(items, (list, tuple)) or not items:
            raise ValidationError("flashcards must be a non-empty list", field="flashcards")
        if len(items) > BULK_IMPORT_MAX:
            raise ValidationError(
                f"Cannot import more than {BULK_IMPORT_MAX} flashcards at once",
                field="flashcards",
            )

        result = BulkResult()
        for index, item in enumerate(items):
            try:
                if not isinstance(item, dict):
                    raise ValidationError("Each flashcard must be an object", field="flashcards")
                card = self.create(owner_id, item.get("front_text"), item.get("back_text"))
            except StudyError as exc:
                result.failed.append(BulkFailure(index, exc.code, exc.message))
            else:
                result.successful.append((index, card))

        logger.info("flashcards_imported",
            user_id=str(owner_id),
            total=result.total_processed,
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return result

    def get(self, user_id, flashcard_id):
        card = self.store.get(flashcard_id)
        if card is None or card.owner_id != user_id:
            raise flashcard_not_found(flashcard_id)
        return card

    def list(self, user_id):
        return self.store.list_by_owner(user_id)

    def edit(
        self,
        user_id,
        flashcard_id,
        front_text=None,
        back_text=None,
        expected_version=None,
        timeout=None,
    ):
        patch = {}
        if front_text is not None:
            patch["front_text"] = clean_text("front_text", front_text)
        if back_text is not None:
            patch["back_text"] = clean_text("back_text", back_text)

        wait = lock_wait(self.timeout, timeout)
        with self.store.locked(flashcard_id, timeout=wait) as card:
            if card is None or card.owner_id != user_id:
                raise flashcard_not_found(flashcard_id)
            if expected_version is not None and card.version != expected_version:
                logger.info("flashcard_edit_conflict",
                    user_id=str(user_id),
                    flashcard_id=str(flashcard_id),
                    expected_version=expected_version,
                    actual_version=card.version,
                )
                raise ConflictError(
                    "Flashcard is being edited elsewhere, reload and try again",
                    flashcard_id=flashcard_id,
                    expected_version=expected_version,
                    actual_version=card.version,
                )
            if not patch:
                return card
            updated = self.store.update(flashcard_id, patch, expected_version=card.version)

        logger.info("flashcard_edited",
            user_id=str(user_id),
            flashcard_id=str(flashcard_id),
            fields=sorted(patch),
            version=updated.version,
        )
        return updated

    def delete(self, user_id, flashcard_id, timeout=None):
        wait = lock_wait(self.timeout, timeout)
        with self.store.locked(flashcard_id, timeout=wait) as card:
            if card is None or card.owner_id != user_id:
                raise flashcard_not_found(flashcard_id)
            # Card first, so a failed delete leaves its events in place
            self.store.delete(flashcard_id)
            self.log.purge_flashcard(flashcard_id)

        logger.info("flashcard_deleted", user_id=str(user_id), flashcard_id=str(flashcard_id))

    def stats(self, user_id, now=None):
        return summarize_deck(self.store.list_by_owner(user_id), now or self.clock())
