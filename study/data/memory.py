"""
In-process stores for integrators without a transactional database.

Writers of one flashcard are serialized by a mutex keyed by flashcard id.
Readers never take that mutex: they see the last committed snapshot,
which is an immutable value and therefore never torn.
"""

import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace

from ..domain.entities import Flashcard
from ..domain.errors import ConflictError, TransientError, flashcard_not_found
from ..domain.logic import check_patch
from ..utils.time import utc_now


class InMemoryFlashcardStore:
    def __init__(self, clock=utc_now):
        self.clock = clock
        self._cards = {}
        self._ids = itertools.count(1)
        self._guard = threading.Lock()
        self._row_locks = {}  # flashcard id -> [lock, holders and waiters]

    def create(self, owner_id, front_text, back_text):
        with self._guard:
            card = Flashcard(
                id=next(self._ids),
                owner_id=owner_id,
                front_text=front_text,
                back_text=back_text,
                created_at=self.clock(),
            )
            self._cards[card.id] = card
        return card

    def get(self, flashcard_id):
        return self._cards.get(flashcard_id)

    def list_by_owner(self, owner_id):
        with self._guard:
            cards = [c for c in self._cards.values() if c.owner_id == owner_id]
        return sorted(cards, key=lambda c: c.id)

    def update(self, flashcard_id, patch, expected_version=None):
        check_patch(patch)
        with self._guard:
            current = self._cards.get(flashcard_id)
            if current is None:
                raise flashcard_not_found(flashcard_id)
            if expected_version is not None and current.version != expected_version:
                raise ConflictError(
                    "Flashcard was modified by another request",
                    flashcard_id=flashcard_id,
                    expected_version=expected_version,
                    actual_version=current.version,
                )
            updated = replace(current, version=current.version + 1, **patch)
            self._cards[flashcard_id] = updated
        return updated

    def delete(self, flashcard_id):
        with self._guard:
            return self._cards.pop(flashcard_id, None) is not None

    @contextmanager
    def locked(self, flashcard_id, timeout=None):
        with self._guard:
            entry = self._row_locks.setdefault(flashcard_id, [threading.Lock(), 0])
            entry[1] += 1

        try:
            if not entry[0].acquire(timeout=-1 if timeout is None else timeout):
                raise TransientError(
                    "Timed out waiting for flashcard lock",
                    flashcard_id=flashcard_id,
                    timeout=timeout,
                )
            try:
                snapshot = self._cards.get(flashcard_id)
                try:
                    yield snapshot
                except BaseException:
                    self._restore(flashcard_id, snapshot)
                    raise
            finally:
                entry[0].release()
        finally:
            self._drop_row_lock(flashcard_id, entry)

    def _drop_row_lock(self, flashcard_id, entry):
        # Forget the mutex once nobody holds or waits on it
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                del self._row_locks[flashcard_id]

    def _restore(self, flashcard_id, snapshot):
        with self._guard:
            if snapshot is None:
                self._cards.pop(flashcard_id, None)
            else:
                self._cards[flashcard_id] = snapshot


class InMemorySessionLog:
    def __init__(self):
        self._events = []
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def append(self, event):
        with self._guard:
            if event.idempotency_key is not None and self._find(
                event.user_id, event.flashcard_id, event.idempotency_key
            ):
                raise ConflictError(
                    "Review was already recorded",
                    flashcard_id=event.flashcard_id,
                    idempotency_key=event.idempotency_key,
                )
            stored = replace(event, id=next(self._ids))
            self._events.append(stored)
        return stored

    def query(self, user_id, since=None):
        with self._guard:
            events = list(self._events)
        return [
            e for e in events
            if e.user_id == user_id and (since is None or e.timestamp > since)
        ]

    def find(self, user_id, flashcard_id, idempotency_key):
        with self._guard:
            return self._find(user_id, flashcard_id, idempotency_key)

    def _find(self, user_id, flashcard_id, idempotency_key):
        for event in self._events:
            if (
                event.user_id == user_id
                and event.flashcard_id == flashcard_id
                and event.idempotency_key == idempotency_key
            ):
                return event
        return None

    def purge_flashcard(self, flashcard_id):
        with self._guard:
            kept = [e for e in self._events if e.flashcard_id != flashcard_id]
            removed = len(self._events) - len(kept)
            self._events = kept
        return removed
