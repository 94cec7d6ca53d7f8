import uuid

import structlog
from django.conf import settings
from rest_framework import status, views
from rest_framework.response import Response

from ..data.repos import DjangoFlashcardStore, DjangoSessionLog
from ..domain.enums import RATING_LABELS
from ..domain.logic import next_review_at
from ..services import FlashcardService, SchedulingEngine
from ..utils.time import to_utc_iso
from .serializers import (
    BulkImportSerializer,
    BulkReviewSerializer,
    DueCardsQuerySerializer,
    FlashcardEditSerializer,
    FlashcardInSerializer,
    NextCardQuerySerializer,
    ReviewInSerializer,
    StudySessionQuerySerializer,
    SummaryQuerySerializer,
)

base_logger = structlog.get_logger()


def scheduling_engine():
    return SchedulingEngine(
        DjangoFlashcardStore(),
        DjangoSessionLog(),
        timeout=settings.STUDY_STORE_TIMEOUT_SECONDS,
    )


def flashcard_service():
    return FlashcardService(
        DjangoFlashcardStore(),
        DjangoSessionLog(),
        timeout=settings.STUDY_STORE_TIMEOUT_SECONDS,
    )


def flashcard_payload(card):
    return {
        "id": card.id,
        "front_text": card.front_text,
        "back_text": card.back_text,
        "difficulty": card.difficulty,
        "review_count": card.review_count,
        "last_reviewed_utc": to_utc_iso(card.last_reviewed),
        "next_review_utc": to_utc_iso(next_review_at(card)),
        "version": card.version,
    }


def bulk_payload(result):
    return {
        "total_processed": result.total_processed,
        "successful": [
            {"index": index, "flashcard": flashcard_payload(card)}
            for index, card in result.successful
        ],
        "failed": [
            {"index": f.index, "error": f.error, "message": f.message}
            for f in result.failed
        ],
    }


class StudyView(views.APIView):
    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        # Create a unique request_id
        self.logger = base_logger.bind(
            request_id=str(uuid.uuid4()), user_id=str(request.user.pk)
        )


class FlashcardListView(StudyView):
    def get(self, request):
        cards = flashcard_service().list(request.user.pk)
        self.logger.info("flashcards_listed", card_count=len(cards))
        return Response(
            {"flashcards": [flashcard_payload(c) for c in cards], "count": len(cards)}
        )

    def post(self, request):
        s = FlashcardInSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        card = flashcard_service().create(
            request.user.pk,
            s.validated_data["front_text"],
            s.validated_data["back_text"],
        )
        self.logger.info("flashcard_api_created", flashcard_id=card.id)
        return Response(flashcard_payload(card), status=status.HTTP_201_CREATED)


class FlashcardImportView(StudyView):
    def post(self, request):
        s = BulkImportSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = flashcard_service().bulk_create(request.user.pk, s.validated_data["flashcards"])
        self.logger.info(
            "flashcard_import_api_response",
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return Response(bulk_payload(result), status=status.HTTP_201_CREATED)


class FlashcardDetailView(StudyView):
    def get(self, request, flashcard_id):
        card = flashcard_service().get(request.user.pk, flashcard_id)
        return Response(flashcard_payload(card))

    def patch(self, request, flashcard_id):
        s = FlashcardEditSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        card = flashcard_service().edit(
            request.user.pk,
            flashcard_id,
            front_text=s.validated_data.get("front_text"),
            back_text=s.validated_data.get("back_text"),
            expected_version=s.validated_data.get("version"),
        )
        self.logger.info("flashcard_api_edited", flashcard_id=card.id, version=card.version)
        return Response(flashcard_payload(card))

    def delete(self, request, flashcard_id):
        flashcard_service().delete(request.user.pk, flashcard_id)
        self.logger.info("flashcard_api_deleted", flashcard_id=flashcard_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class FlashcardStatsView(StudyView):
    def get(self, request):
        stats = flashcard_service().stats(request.user.pk)
        return Response(
            {
                "total_flashcards": stats.total_flashcards,
                "reviewed_cards": stats.reviewed_cards,
                "unreviewed_cards": stats.unreviewed_cards,
                "total_reviews": stats.total_reviews,
                "average_difficulty": stats.average_difficulty,
                "due_now": stats.due_now,
                "difficulty_distribution": {
                    str(k): v for k, v in stats.difficulty_distribution.items()
                },
                "last_study_session_utc": to_utc_iso(stats.last_study_session),
            }
        )


class ReviewView(StudyView):
    def post(self, request, flashcard_id):
        s = ReviewInSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        rating = s.validated_data["quality_rating"]

        card = scheduling_engine().submit_review(
            request.user.pk,
            flashcard_id,
            rating,
            s.validated_data.get("response_time_ms"),
            expected_version=s.validated_data.get("expected_version"),
            idempotency_key=s.validated_data.get("idempotency_key"),
        )

        # Log with request_id & relevant context
        self.logger.info(
            "review_api_response",
            flashcard_id=card.id,
            rating=rating,
            difficulty=card.difficulty,
            review_count=card.review_count,
            next_review_utc=to_utc_iso(next_review_at(card)),
        )

        payload = flashcard_payload(card)
        payload["rating_label"] = RATING_LABELS[rating]
        return Response(payload, status=status.HTTP_201_CREATED)


class BulkReviewView(StudyView):
    def post(self, request):
        s = BulkReviewSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = scheduling_engine().submit_reviews(request.user.pk, s.validated_data["reviews"])
        self.logger.info(
            "bulk_review_api_response",
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return Response(bulk_payload(result))


class NextCardView(StudyView):
    def get(self, request):
        qs = NextCardQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)
        exclude = qs.validated_data["exclude"]

        card = scheduling_engine().next_due_card(request.user.pk, exclude)
        self.logger.info(
            "next_card_api_response",
            excluded=len(exclude),
            flashcard_id=card.id if card else None,
        )
        return Response({"flashcard": flashcard_payload(card) if card else None})


class StudySessionView(StudyView):
    def get(self, request):
        qs = StudySessionQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)

        cards = scheduling_engine().study_queue(request.user.pk, qs.validated_data["limit"])
        new_cards = sum(1 for c in cards if c.is_new)
        self.logger.info("study_session_api_response", card_count=len(cards))
        return Response(
            {
                "cards": [flashcard_payload(c) for c in cards],
                "total_cards": len(cards),
                "new_cards": new_cards,
                "review_cards": len(cards) - new_cards,
            }
        )


class SessionSummaryView(StudyView):
    def get(self, request):
        qs = SummaryQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)
        since = qs.validated_data.get("since")

        summary = scheduling_engine().session_summary(request.user.pk, since)
        self.logger.info(
            "session_summary_api_response",
            since_utc=to_utc_iso(since),
            reviewed=summary.reviewed,
        )
        return Response(
            {
                "since_utc": to_utc_iso(since),
                "reviewed": summary.reviewed,
                "average_quality": summary.average_quality,
                "flashcards_reviewed": summary.flashcards_reviewed,
            }
        )


class DueCardsView(StudyView):
    def get(self, request):
        qs = DueCardsQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)

        due = scheduling_engine().due_cards(request.user.pk, qs.validated_data["limit"])
        self.logger.info("due_cards_api_response", total_due=due.total)
        return Response(
            {
                "new_cards": [flashcard_payload(c) for c in due.new],
                "due_cards": [flashcard_payload(c) for c in due.due],
                "overdue_cards": [flashcard_payload(c) for c in due.overdue],
                "total_due": due.total,
            }
        )
