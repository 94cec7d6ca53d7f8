"""Protocols for the collaborators the scheduling engine depends on."""

from datetime import datetime
from typing import ContextManager, List, Mapping, Optional, Protocol

from .entities import Flashcard, ReviewEvent


class FlashcardStore(Protocol):
    """Persists flashcards keyed by id and owner."""

    def create(self, owner_id: int, front_text: str, back_text: str) -> Flashcard:
        ...

    def get(self, flashcard_id: int) -> Optional[Flashcard]:
        ...

    def update(
        self,
        flashcard_id: int,
        patch: Mapping[str, object],
        expected_version: Optional[int] = None,
    ) -> Flashcard:
        """
        Apply a partial update atomically and bump the version.

        Raises:
            NotFoundError: the card does not exist
            ConflictError: expected_version no longer matches
        """
        ...

    def delete(self, flashcard_id: int) -> bool:
        ...

    def list_by_owner(self, owner_id: int) -> List[Flashcard]:
        ...

    def locked(
        self, flashcard_id: int, timeout: Optional[float] = None
    ) -> ContextManager[Optional[Flashcard]]:
        """
        Open a unit of work that serializes writers of one flashcard.

        Yields the current snapshot (None if missing). Writes made through
        the store and the session log inside the block become visible
        together, or not at all when the block raises.

        Raises:
            TransientError: the lock could not be taken within timeout
        """
        ...


class SessionLog(Protocol):
    """Append-only record of review events."""

    def append(self, event: ReviewEvent) -> ReviewEvent:
        ...

    def query(self, user_id: int, since: Optional[datetime] = None) -> List[ReviewEvent]:
        ...

    def find(
        self, user_id: int, flashcard_id: int, idempotency_key: str
    ) -> Optional[ReviewEvent]:
        ...

    def purge_flashcard(self, flashcard_id: int) -> int:
        ...
