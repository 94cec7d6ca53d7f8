from django.urls import path
from .views import (
    BulkReviewView,
    DueCardsView,
    FlashcardDetailView,
    FlashcardImportView,
    FlashcardListView,
    FlashcardStatsView,
    NextCardView,
    ReviewView,
    SessionSummaryView,
    StudySessionView,
)

urlpatterns = [
    path("flashcards", FlashcardListView.as_view(), name="flashcard-list"),
    path("flashcards/import", FlashcardImportView.as_view(), name="flashcard-import"),
    path("flashcards/stats", FlashcardStatsView.as_view(), name="flashcard-stats"),
    path("flashcards/<int:flashcard_id>", FlashcardDetailView.as_view(), name="flashcard-detail"),
    path("flashcards/<int:flashcard_id>/reviews", ReviewView.as_view(), name="review"),
    path("study/reviews", BulkReviewView.as_view(), name="study-reviews"),
    path("study/next", NextCardView.as_view(), name="study-next"),
    path("study/due", DueCardsView.as_view(), name="study-due"),
    path("study/session", StudySessionView.as_view(), name="study-session"),
    path("study/summary", SessionSummaryView.as_view(), name="study-summary"),
]
