from rest_framework import serializers

from ..config import (
    BULK_IMPORT_MAX,
    BULK_REVIEW_MAX,
    DUE_CARDS_DEFAULT,
    DUE_CARDS_MAX,
    IDEMPOTENCY_KEY_MAX_LENGTH,
    MAX_QUALITY,
    MAX_TEXT_LENGTH,
    MIN_QUALITY,
    STUDY_QUEUE_DEFAULT,
    STUDY_QUEUE_MAX,
)

class FlashcardInSerializer(serializers.Serializer):
    front_text = serializers.CharField(max_length=MAX_TEXT_LENGTH)
    back_text = serializers.CharField(max_length=MAX_TEXT_LENGTH)

class FlashcardEditSerializer(serializers.Serializer):
    front_text = serializers.CharField(max_length=MAX_TEXT_LENGTH, required=False)
    back_text = serializers.CharField(max_length=MAX_TEXT_LENGTH, required=False)
    version = serializers.IntegerField(min_value=1, required=False)

class ReviewInSerializer(serializers.Serializer):
    quality_rating = serializers.IntegerField(min_value=MIN_QUALITY, max_value=MAX_QUALITY)
    response_time_ms = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    idempotency_key = serializers.CharField(max_length=IDEMPOTENCY_KEY_MAX_LENGTH, required=False)
    expected_version = serializers.IntegerField(min_value=1, required=False)

class NextCardQuerySerializer(serializers.Serializer):
    exclude = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, default=list
    )

class StudySessionQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=STUDY_QUEUE_MAX, default=STUDY_QUEUE_DEFAULT)

class SummaryQuerySerializer(serializers.Serializer):
    since = serializers.DateTimeField(required=False)  # ISO-8601

# Items are checked one by one by the service so a bad item fails alone
class BulkImportSerializer(serializers.Serializer):
    flashcards = serializers.ListField(
        child=serializers.DictField(), allow_empty=False, max_length=BULK_IMPORT_MAX
    )

class BulkReviewSerializer(serializers.Serializer):
    reviews = serializers.ListField(
        child=serializers.DictField(), allow_empty=False, max_length=BULK_REVIEW_MAX
    )

class DueCardsQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=DUE_CARDS_MAX, default=DUE_CARDS_DEFAULT)
