from datetime import timedelta
from typing import Iterable, List, Optional

from .entities import DeckStats, DueCards, Flashcard, ReviewEvent, SessionSummary
from .errors import ValidationError
from ..config import (
    EASY_THRESHOLD,
    HARD_THRESHOLD,
    MAX_DIFFICULTY,
    MAX_TEXT_LENGTH,
    MIN_DIFFICULTY,
    OVERDUE_FACTOR,
    REVIEW_INTERVAL_DAYS,
)

def adjust_difficulty(difficulty: int, rating: int) -> int:
    # rating is validated earlier
    if rating >= EASY_THRESHOLD:
        return max(difficulty - 1, MIN_DIFFICULTY)
    if rating <= HARD_THRESHOLD:
        return min(difficulty + 1, MAX_DIFFICULTY)
    return difficulty


def review_interval(difficulty: int) -> timedelta:
    clamped = min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)
    return timedelta(days=REVIEW_INTERVAL_DAYS[clamped])


def next_review_at(card: Flashcard):
    """When the card is due again; None means due now (never reviewed)."""
    if card.last_reviewed is None:
        return None
    return card.last_reviewed + review_interval(card.difficulty)


def due_sort_key(card: Flashcard):
    # Never reviewed first, then oldest review, then lowest id
    if card.last_reviewed is None:
        return (0, 0.0, card.id)
    return (1, card.last_reviewed.timestamp(), card.id)


def order_due(cards: Iterable[Flashcard], exclude_ids=()) -> List[Flashcard]:
    excluded = set(exclude_ids)
    return sorted((c for c in cards if c.id not in excluded), key=due_sort_key)


def classify_due(cards: Iterable[Flashcard], now, limit: int) -> DueCards:
    """Walk cards in due order and keep the first `limit` that need review."""
    new, due, overdue = [], [], []
    for card in order_due(cards):
        if len(new) + len(due) + len(overdue) >= limit:
            break
        due_at = next_review_at(card)
        if due_at is None:
            new.append(card)
        elif due_at <= now:
            late = now - card.last_reviewed
            if late > review_interval(card.difficulty) * OVERDUE_FACTOR:
                overdue.append(card)
            else:
                due.append(card)
    return DueCards(new=new, due=due, overdue=overdue)


def lock_wait(default, override=None):
    wait = default if override is None else override
    if wait is not None and (
        isinstance(wait, bool) or not isinstance(wait, (int, float)) or wait < 0
    ):
        raise ValidationError(
            "timeout must be a non-negative number of seconds", field="timeout"
        )
    return wait


def clean_text(field_name: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} cannot be empty", field=field_name)
    text = value.strip()
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            f"{field_name} cannot exceed {MAX_TEXT_LENGTH} characters",
            field=field_name,
        )
    return text


def summarize_events(events: Iterable[ReviewEvent]) -> SessionSummary:
    ratings = []
    cards = set()
    for event in events:
        ratings.append(int(event.quality_rating))
        cards.add(event.flashcard_id)
    if not ratings:
        return SessionSummary(reviewed=0, average_quality=None, flashcards_reviewed=0)
    return SessionSummary(
        reviewed=len(ratings),
        average_quality=sum(ratings) / len(ratings),
        flashcards_reviewed=len(cards),
    )


def summarize_deck(cards: Iterable[Flashcard], now) -> DeckStats:
    cards = list(cards)
    distribution = {d: 0 for d in range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1)}
    reviewed = 0
    due = 0
    last_session: Optional[object] = None

    for card in cards:
        distribution[card.difficulty] = distribution.get(card.difficulty, 0) + 1
        if card.last_reviewed is not None:
            reviewed += 1
            if last_session is None or card.last_reviewed > last_session:
                last_session = card.last_reviewed
        due_at = next_review_at(card)
        if due_at is None or due_at <= now:
            due += 1

    average = 0.0
    if cards:
        average = round(sum(c.difficulty for c in cards) / len(cards), 2)

    return DeckStats(
        total_flashcards=len(cards),
        reviewed_cards=reviewed,
        unreviewed_cards=len(cards) - reviewed,
        total_reviews=sum(c.review_count for c in cards),
        average_difficulty=average,
        due_now=due,
        difficulty_distribution=distribution,
        last_study_session=last_session,
    )


PATCHABLE_FIELDS = frozenset(
    {"front_text", "back_text", "difficulty", "review_count", "last_reviewed"}
)


def check_patch(patch):
    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValidationError(
            "Unsupported flashcard fields: " + ", ".join(sorted(unknown)),
            fields=sorted(unknown),
        )
