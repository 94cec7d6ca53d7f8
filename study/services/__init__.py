from .flashcards import FlashcardService
from .reviews import SchedulingEngine

__all__ = ["FlashcardService", "SchedulingEngine"]
