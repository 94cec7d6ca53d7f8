import pytest
import logging
from django.db import OperationalError
from django.db.models import QuerySet
from django.urls import reverse
from django.utils import timezone
from datetime import timedelta

from study.data.models import ReviewEvent

logger = logging.getLogger(__name__)

# Helpers

def create_card(client, username, front="apple", back="manzana"):
    resp = client.post(
        reverse("flashcard-list"),
        data={"front_text": front, "back_text": back},
        content_type="application/json",
        HTTP_X_USER_NAME=username,
    )
    logger.info("POST /flashcards user=%s → status=%s", username, resp.status_code)
    return resp


def make_review(client, username, card_id, rating, **extra):
    url = reverse("review", kwargs={"flashcard_id": card_id})
    payload = {"quality_rating": rating, **extra}
    resp = client.post(url, data=payload, content_type="application/json", HTTP_X_USER_NAME=username)
    data = resp.json()
    logger.info(
        "POST /reviews rating=%s → status=%s difficulty=%s review_count=%s",
        rating,
        resp.status_code,
        data.get("difficulty"),
        data.get("review_count"),
    )
    return resp


def get_next(client, username, exclude=()):
    resp = client.get(reverse("study-next"), {"exclude": list(exclude)}, HTTP_X_USER_NAME=username)
    logger.info("GET /study/next exclude=%s → status=%s", list(exclude), resp.status_code)
    return resp


@pytest.fixture
def alice(django_user_model):
    return django_user_model.objects.create_user(username="alice")


@pytest.fixture
def bob(django_user_model):
    return django_user_model.objects.create_user(username="bob")


# Tests

@pytest.mark.django_db
def test_create_and_review_flow(client, alice):
    """Scenario: 5 keeps difficulty 1, 1 raises it to 2, 3 leaves it."""
    card = create_card(client, "alice").json()
    assert card["difficulty"] == 1
    assert card["review_count"] == 0
    assert card["next_review_utc"] is None

    expected = [(5, 1, 1, "Perfect"), (1, 2, 2, "Again"), (3, 2, 3, "Good")]
    for rating, difficulty, count, label in expected:
        resp = make_review(client, "alice", card["id"], rating, response_time_ms=1200)
        data = resp.json()
        assert resp.status_code == 201
        assert data["difficulty"] == difficulty
        assert data["review_count"] == count
        assert data["rating_label"] == label

    fetched = client.get(
        reverse("flashcard-detail", kwargs={"flashcard_id": card["id"]}), HTTP_X_USER_NAME="alice"
    ).json()
    assert fetched["difficulty"] == 2
    assert fetched["review_count"] == 3
    assert fetched["last_reviewed_utc"] == data["last_reviewed_utc"]
    logger.info("✓ Passed: review flow persisted and round-trips")


@pytest.mark.django_db
def test_rating_out_of_range_is_400(client, alice):
    card = create_card(client, "alice").json()
    for rating in (0, 6):
        resp = make_review(client, "alice", card["id"], rating)
        assert resp.status_code == 400
    assert ReviewEvent.objects.count() == 0


@pytest.mark.django_db
def test_other_users_card_looks_missing(client, alice, bob):
    """Reviewing, reading or deleting someone else's card is a plain 404."""
    card = create_card(client, "alice").json()
    detail = reverse("flashcard-detail", kwargs={"flashcard_id": card["id"]})

    foreign = make_review(client, "bob", card["id"], 5)
    missing = make_review(client, "bob", card["id"] + 1000, 5)
    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json()

    assert client.get(detail, HTTP_X_USER_NAME="bob").status_code == 404
    assert client.delete(detail, HTTP_X_USER_NAME="bob").status_code == 404

    unchanged = client.get(detail, HTTP_X_USER_NAME="alice").json()
    assert unchanged["review_count"] == 0
    logger.info("✓ Passed: ownership hidden behind 404")


@pytest.mark.django_db
def test_listing_is_per_user(client, alice, bob):
    create_card(client, "alice", "one", "uno")
    create_card(client, "alice", "two", "dos")
    create_card(client, "bob", "three", "tres")

    data = client.get(reverse("flashcard-list"), HTTP_X_USER_NAME="alice").json()
    assert data["count"] == 2
    assert [c["front_text"] for c in data["flashcards"]] == ["one", "two"]


@pytest.mark.django_db
def test_next_card_walks_due_order(client, alice):
    ids = [create_card(client, "alice", f"w{i}", f"p{i}").json()["id"] for i in range(3)]
    make_review(client, "alice", ids[0], 3)
    make_review(client, "alice", ids[1], 3)

    seen = []
    while True:
        data = get_next(client, "alice", seen).json()
        if data["flashcard"] is None:
            break
        seen.append(data["flashcard"]["id"])

    assert seen == [ids[2], ids[0], ids[1]]
    logger.info("✓ Passed: next card order %s", seen)


@pytest.mark.django_db
def test_next_card_is_null_without_cards(client, alice):
    resp = get_next(client, "alice")
    assert resp.status_code == 200
    assert resp.json() == {"flashcard": None}


@pytest.mark.django_db
def test_study_session_limit(client, alice):
    for i in range(3):
        create_card(client, "alice", f"w{i}", f"p{i}")

    data = client.get(reverse("study-session"), {"limit": 2}, HTTP_X_USER_NAME="alice").json()
    assert data["total_cards"] == 2
    assert data["new_cards"] == 2

    resp = client.get(reverse("study-session"), {"limit": 51}, HTTP_X_USER_NAME="alice")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_session_summary(client, alice):
    card = create_card(client, "alice").json()
    before = timezone.now() - timedelta(seconds=1)
    for rating in (5, 3, 4):
        make_review(client, "alice", card["id"], rating)

    data = client.get(
        reverse("study-summary"), {"since": before.isoformat()}, HTTP_X_USER_NAME="alice"
    ).json()
    assert data["reviewed"] == 3
    assert data["average_quality"] == 4.0

    empty = client.get(
        reverse("study-summary"),
        {"since": (timezone.now() + timedelta(days=1)).isoformat()},
        HTTP_X_USER_NAME="alice",
    ).json()
    assert empty["reviewed"] == 0
    assert empty["average_quality"] is None


@pytest.mark.django_db
def test_edit_with_stale_version_is_409(client, alice):
    card = create_card(client, "alice").json()
    url = reverse("flashcard-detail", kwargs={"flashcard_id": card["id"]})

    first = client.patch(
        url, data={"back_text": "poma", "version": card["version"]},
        content_type="application/json", HTTP_X_USER_NAME="alice",
    )
    assert first.status_code == 200
    assert first.json()["version"] == card["version"] + 1

    stale = client.patch(
        url, data={"back_text": "manzana roja", "version": card["version"]},
        content_type="application/json", HTTP_X_USER_NAME="alice",
    )
    assert stale.status_code == 409
    assert stale.json()["error"] == "conflict"
    logger.info("✓ Passed: stale edit rejected with 409")


@pytest.mark.django_db
def test_stale_expected_version_on_review_is_409(client, alice):
    card = create_card(client, "alice").json()
    make_review(client, "alice", card["id"], 3, expected_version=card["version"])
    resp = make_review(client, "alice", card["id"], 3, expected_version=card["version"])
    assert resp.status_code == 409


@pytest.mark.django_db
def test_idempotent_review_retry(client, alice):
    card = create_card(client, "alice").json()
    first = make_review(client, "alice", card["id"], 1, idempotency_key="idem-same").json()
    second = make_review(client, "alice", card["id"], 1, idempotency_key="idem-same").json()

    assert second["review_count"] == first["review_count"] == 1
    assert second["last_reviewed_utc"] == first["last_reviewed_utc"]
    assert ReviewEvent.objects.count() == 1


@pytest.mark.django_db
def test_delete_then_stats(client, alice):
    keep = create_card(client, "alice", "sun", "sol").json()
    drop = create_card(client, "alice", "moon", "luna").json()
    make_review(client, "alice", drop["id"], 2)

    resp = client.delete(
        reverse("flashcard-detail", kwargs={"flashcard_id": drop["id"]}), HTTP_X_USER_NAME="alice"
    )
    assert resp.status_code == 204
    assert ReviewEvent.objects.count() == 0

    stats = client.get(reverse("flashcard-stats"), HTTP_X_USER_NAME="alice").json()
    assert stats["total_flashcards"] == 1
    assert stats["unreviewed_cards"] == 1
    assert stats["difficulty_distribution"]["1"] == 1
    assert stats["last_study_session_utc"] is None
    assert keep["id"] != drop["id"]


@pytest.mark.django_db
def test_blank_text_is_rejected(client, alice):
    resp = create_card(client, "alice", "   ", "algo")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_requests_without_user_are_401(client, alice):
    assert client.get(reverse("flashcard-list")).status_code == 401
    assert client.get(reverse("flashcard-list"), HTTP_X_USER_NAME="mallory").status_code == 401


@pytest.mark.django_db
def test_locked_database_is_503_with_retry_after(client, alice, monkeypatch):
    card = create_card(client, "alice").json()

    def locked_out(*args, **kwargs):
        raise OperationalError("database is locked")

    monkeypatch.setattr(QuerySet, "select_for_update", locked_out)
    resp = make_review(client, "alice", card["id"], 4)

    assert resp.status_code == 503
    assert resp["Retry-After"] == "1"
    assert resp.json()["error"] == "transient"
    assert ReviewEvent.objects.count() == 0
    logger.info("✓ Passed: store outage surfaced as 503")


@pytest.mark.django_db
def test_bulk_import(client, alice):
    resp = client.post(
        reverse("flashcard-import"),
        data={"flashcards": [
            {"front_text": "red", "back_text": "rojo"},
            {"front_text": "  ", "back_text": "azul"},
            {"front_text": "green", "back_text": "verde"},
        ]},
        content_type="application/json",
        HTTP_X_USER_NAME="alice",
    )
    data = resp.json()
    assert resp.status_code == 201
    assert data["total_processed"] == 3
    assert [item["index"] for item in data["successful"]] == [0, 2]
    assert data["failed"][0]["index"] == 1
    assert data["failed"][0]["error"] == "validation_failed"

    listed = client.get(reverse("flashcard-list"), HTTP_X_USER_NAME="alice").json()
    assert [c["front_text"] for c in listed["flashcards"]] == ["red", "green"]

    too_many = client.post(
        reverse("flashcard-import"),
        data={"flashcards": [{"front_text": "a", "back_text": "b"}] * 101},
        content_type="application/json",
        HTTP_X_USER_NAME="alice",
    )
    assert too_many.status_code == 400


@pytest.mark.django_db
def test_bulk_review(client, alice, bob):
    mine = create_card(client, "alice", "cold", "frío").json()
    theirs = create_card(client, "bob", "hot", "caliente").json()

    resp = client.post(
        reverse("study-reviews"),
        data={"reviews": [
            {"flashcard_id": mine["id"], "quality_rating": 1},
            {"flashcard_id": theirs["id"], "quality_rating": 5},
            {"flashcard_id": mine["id"], "quality_rating": 0},
        ]},
        content_type="application/json",
        HTTP_X_USER_NAME="alice",
    )
    data = resp.json()
    assert resp.status_code == 200
    assert data["successful"][0]["flashcard"]["difficulty"] == 2
    assert [(f["index"], f["error"]) for f in data["failed"]] == [
        (1, "not_found"),
        (2, "validation_failed"),
    ]
    assert ReviewEvent.objects.count() == 1

    empty = client.post(
        reverse("study-reviews"), data={"reviews": []},
        content_type="application/json", HTTP_X_USER_NAME="alice",
    )
    assert empty.status_code == 400


@pytest.mark.django_db
def test_due_cards(client, alice):
    fresh = create_card(client, "alice", "left", "izquierda").json()
    reviewed = create_card(client, "alice", "right", "derecha").json()
    make_review(client, "alice", reviewed["id"], 3)

    data = client.get(reverse("study-due"), HTTP_X_USER_NAME="alice").json()
    assert [c["id"] for c in data["new_cards"]] == [fresh["id"]]
    assert data["due_cards"] == data["overdue_cards"] == []
    assert data["total_due"] == 1

    resp = client.get(reverse("study-due"), {"limit": 101}, HTTP_X_USER_NAME="alice")
    assert resp.status_code == 400
