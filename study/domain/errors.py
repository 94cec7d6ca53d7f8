"""Error taxonomy shared by the domain, the stores and the services.

Presentation (messages for end users, HTTP codes) belongs to the caller;
see ``study.api.exceptions`` for the REST mapping.
"""


class StudyError(Exception):
    """Base class for every error the study app raises on purpose."""

    code = "study_error"

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(StudyError):
    """Malformed input. Never retried automatically."""

    code = "validation_failed"


class NotFoundError(StudyError):
    """Missing resource, or one owned by another user.

    Both cases carry the same message so callers cannot discover other
    users' flashcards.
    """

    code = "not_found"


class ConflictError(StudyError):
    """A concurrent write invalidated the expected prior state."""

    code = "conflict"


class TransientError(StudyError):
    """Store timeout or unavailability; safe to retry with backoff."""

    code = "transient"


def flashcard_not_found(flashcard_id):
    return NotFoundError("Flashcard not found", flashcard_id=flashcard_id)
