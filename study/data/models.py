from django.conf import settings
from django.db import models
from django.utils import timezone

from ..config import INITIAL_DIFFICULTY, MAX_DIFFICULTY, MAX_TEXT_LENGTH, MIN_DIFFICULTY
from ..domain import entities


class Flashcard(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="flashcards"
    )
    front_text = models.CharField(max_length=MAX_TEXT_LENGTH)
    back_text = models.CharField(max_length=MAX_TEXT_LENGTH)
    difficulty = models.PositiveSmallIntegerField(default=INITIAL_DIFFICULTY)
    review_count = models.PositiveIntegerField(default=0)
    last_reviewed = models.DateTimeField(null=True, blank=True)  # UTC
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["owner", "last_reviewed"], name="flashcard_owner_due_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(difficulty__gte=MIN_DIFFICULTY)
                & models.Q(difficulty__lte=MAX_DIFFICULTY),
                name="flashcard_difficulty_range",
            ),
        ]

    def to_entity(self):
        return entities.Flashcard(
            id=self.pk,
            owner_id=self.owner_id,
            front_text=self.front_text,
            back_text=self.back_text,
            difficulty=self.difficulty,
            review_count=self.review_count,
            last_reviewed=self.last_reviewed,
            version=self.version,
            created_at=self.created_at,
        )


class ReviewEvent(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="review_events"
    )
    flashcard = models.ForeignKey(
        Flashcard, on_delete=models.CASCADE, related_name="review_events"
    )
    quality_rating = models.PositiveSmallIntegerField()
    response_time_ms = models.PositiveIntegerField(null=True, blank=True)
    previous_difficulty = models.PositiveSmallIntegerField()
    new_difficulty = models.PositiveSmallIntegerField()
    idempotency_key = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "flashcard", "idempotency_key"],
                condition=models.Q(idempotency_key__isnull=False),
                name="uniq_review_idempotency_key",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "created_at"], name="review_event_user_time_idx"),
        ]

    def to_entity(self):
        return entities.ReviewEvent(
            id=self.pk,
            user_id=self.user_id,
            flashcard_id=self.flashcard_id,
            quality_rating=self.quality_rating,
            response_time_ms=self.response_time_ms,
            previous_difficulty=self.previous_difficulty,
            new_difficulty=self.new_difficulty,
            idempotency_key=self.idempotency_key,
            timestamp=self.created_at,
        )
