from contextlib import contextmanager

import structlog
from django.db import IntegrityError, OperationalError, connections, transaction
from django.db.models import F

from ..domain.errors import ConflictError, TransientError, ValidationError, flashcard_not_found
from ..domain.logic import check_patch
from .models import Flashcard as FlashcardRow
from .models import ReviewEvent as ReviewEventRow

logger = structlog.get_logger()


@contextmanager
def store_errors(operation, **context):
    """Surface database lock timeouts and outages as TransientError."""
    try:
        yield
    except OperationalError as exc:
        logger.warning("store_unavailable", operation=operation, error=str(exc), **context)
        raise TransientError(
            "Flashcard store is unavailable, retry later", operation=operation, **context
        ) from exc


class DjangoFlashcardStore:
    """
    Flashcard store backed by the Django ORM.

    Writers of one card are serialized by a row lock taken in ``locked``;
    ``update`` additionally filters on the version stamp so a stale write
    can never overwrite a newer one (SQLite ignores SELECT ... FOR UPDATE).
    """

    def __init__(self, using="default"):
        self.using = using

    @property
    def rows(self):
        return FlashcardRow.objects.using(self.using)

    def create(self, owner_id, front_text, back_text):
        with store_errors("create", owner_id=owner_id):
            try:
                with transaction.atomic(using=self.using):
                    row = self.rows.create(
                        owner_id=owner_id, front_text=front_text, back_text=back_text
                    )
            except IntegrityError as exc:
                raise ValidationError("Unknown owner", owner_id=owner_id) from exc
        return row.to_entity()

    def get(self, flashcard_id):
        with store_errors("get", flashcard_id=flashcard_id):
            row = self.rows.filter(pk=flashcard_id).first()
        return row.to_entity() if row is not None else None

    def list_by_owner(self, owner_id):
        with store_errors("list_by_owner", owner_id=owner_id):
            return [row.to_entity() for row in self.rows.filter(owner_id=owner_id).order_by("id")]

    def update(self, flashcard_id, patch, expected_version=None):
        check_patch(patch)
        with store_errors("update", flashcard_id=flashcard_id):
            with transaction.atomic(using=self.using):
                matching = self.rows.filter(pk=flashcard_id)
                if expected_version is not None:
                    matching = matching.filter(version=expected_version)

                if not matching.update(version=F("version") + 1, **patch):
                    actual = (
                        self.rows.filter(pk=flashcard_id)
                        .values_list("version", flat=True)
                        .first()
                    )
                    if actual is None:
                        raise flashcard_not_found(flashcard_id)
                    raise ConflictError(
                        "Flashcard was modified by another request",
                        flashcard_id=flashcard_id,
                        expected_version=expected_version,
                        actual_version=actual,
                    )

                return self.rows.get(pk=flashcard_id).to_entity()

    def delete(self, flashcard_id):
        with store_errors("delete", flashcard_id=flashcard_id):
            deleted, _ = self.rows.filter(pk=flashcard_id).delete()
        return deleted > 0

    @contextmanager
    def locked(self, flashcard_id, timeout=None):
        """
        Fetch the card row and lock it for update to avoid races.
        Everything done inside the block shares one transaction.
        """
        with store_errors("locked", flashcard_id=flashcard_id):
            with transaction.atomic(using=self.using):
                self._apply_lock_timeout(timeout)
                row = self.rows.select_for_update().filter(pk=flashcard_id).first()
                yield row.to_entity() if row is not None else None

    def _apply_lock_timeout(self, timeout):
        connection = connections[self.using]
        if timeout is None or connection.vendor != "postgresql":
            return
        # Scoped to the current transaction
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{max(int(timeout * 1000), 1)}ms"],
            )


class DjangoSessionLog:
    def __init__(self, using="default"):
        self.using = using

    @property
    def rows(self):
        return ReviewEventRow.objects.using(self.using)

    def append(self, event):
        """
        Insert the event; a duplicate idempotency key that slipped in
        concurrently surfaces as ConflictError.
        """
        with store_errors("append", flashcard_id=event.flashcard_id):
            try:
                with transaction.atomic(using=self.using):
                    row = self.rows.create(
                        user_id=event.user_id,
                        flashcard_id=event.flashcard_id,
                        quality_rating=int(event.quality_rating),
                        response_time_ms=event.response_time_ms,
                        previous_difficulty=event.previous_difficulty,
                        new_difficulty=event.new_difficulty,
                        idempotency_key=event.idempotency_key,
                        created_at=event.timestamp,
                    )
            except IntegrityError as exc:
                raise ConflictError(
                    "Review was already recorded",
                    flashcard_id=event.flashcard_id,
                    idempotency_key=event.idempotency_key,
                ) from exc
        return row.to_entity()

    def query(self, user_id, since=None):
        events = self.rows.filter(user_id=user_id)
        if since is not None:
            events = events.filter(created_at__gt=since)
        with store_errors("query", user_id=user_id):
            return [row.to_entity() for row in events.order_by("created_at", "id")]

    def find(self, user_id, flashcard_id, idempotency_key):
        with store_errors("find", flashcard_id=flashcard_id):
            row = self.rows.filter(
                user_id=user_id, flashcard_id=flashcard_id, idempotency_key=idempotency_key
            ).first()
        return row.to_entity() if row is not None else None

    def purge_flashcard(self, flashcard_id):
        with store_errors("purge_flashcard", flashcard_id=flashcard_id):
            deleted, _ = self.rows.filter(flashcard_id=flashcard_id).delete()
        return deleted
