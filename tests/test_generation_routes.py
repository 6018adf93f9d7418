from datetime import datetime, timedelta, timezone
import uuid

import pytest

from conftest import bearer, seed_deck, seed_pairs, utc_iso
from linguapairs.controllers.generation_controller import get_quota
from linguapairs.models import GenerateFromTopicRequest, Register


@pytest.fixture
def my_deck(store, languages, owner_id):
    pl, en, _ = languages
    return seed_deck(store, owner_id, pl["id"], en["id"], "private")


def add_generation(store, user_id, deck_id, status="succeeded", created_at=None):
    row = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "deck_id": deck_id,
        "type": "topic",
        "pairs_requested": 50,
        "status": status,
        "created_at": created_at or utc_iso(),
        "started_at": None,
    }
    store.tables["generations"].append(row)
    return row


# Quota

def test_quota_requires_auth(client):
    response = client.get("/api/users/me/quota")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_quota_counts_only_succeeded_today(client, store, my_deck, owner_id):
    yesterday = utc_iso(datetime.now(timezone.utc) - timedelta(days=1, hours=1))
    add_generation(store, owner_id, my_deck["id"])
    add_generation(store, owner_id, my_deck["id"], status="failed")
    add_generation(store, owner_id, my_deck["id"], created_at=yesterday)
    add_generation(store, str(uuid.uuid4()), my_deck["id"])

    response = client.get("/api/users/me/quota", headers=bearer(owner_id))

    assert response.status_code == 200
    body = response.json()
    assert body["daily_limit"] == 3
    assert body["used_today"] == 1
    assert body["remaining"] == 2
    assert body["reset_at"].endswith("T00:00:00Z")


def test_quota_reset_is_next_utc_midnight(store, owner_id):
    now = datetime(2025, 3, 10, 23, 59, tzinfo=timezone.utc)
    quota = get_quota(store, owner_id, now)
    assert quota.reset_at == "2025-03-11T00:00:00Z"
    assert quota.remaining == 3


# Generation

def topic_payload(deck_id, **extra):
    payload = {"deck_id": deck_id, "topic_id": "travel"}
    payload.update(extra)
    return payload


def test_generate_from_topic(client, store, my_deck, owner_id, fake_provider):
    response = client.post("/api/generate/from-topic", json=topic_payload(my_deck["id"]), headers=bearer(owner_id))

    assert response.status_code == 201
    body = response.json()
    assert body["deck_id"] == my_deck["id"]
    assert body["pairs_generated"] == 50
    assert len(body["pairs"]) == 50
    assert body["quota"]["used_today"] == 1
    assert body["quota"]["remaining"] == 2
    assert response.headers["location"] == f"/api/decks/{my_deck['id']}/generation"

    generation = store.tables["generations"][0]
    assert generation["id"] == body["generation_id"]
    assert generation["status"] == "succeeded"
    assert generation["started_at"] and generation["finished_at"]

    call = fake_provider.calls[0]
    assert call["kind"] == "topic"
    assert call["topic_label"] == "Podróże i Turystyka"
    assert call["count"] == 50
    assert (call["lang_a"].code, call["lang_b"].code) == ("pl", "en")
    assert call["content_type"] == "auto"
    assert call["register"] == "neutral"


def test_generate_from_text_with_banlist(client, store, my_deck, owner_id, fake_provider):
    pairs = seed_pairs(store, my_deck["id"], 3)
    payload = {"deck_id": my_deck["id"], "text": "Wakacje nad morzem", "register": "informal",
               "exclude_pairs": [pairs[0]["id"]]}

    response = client.post("/api/generate/from-text", json=payload, headers=bearer(owner_id))

    assert response.status_code == 201
    call = fake_provider.calls[0]
    assert call["kind"] == "text"
    assert call["text"] == "Wakacje nad morzem"
    assert call["register"] == "informal"
    assert call["banlist"] == ["słowo 0", "word 0"]
    assert store.tables["generations"][0]["input_text"] == "Wakacje nad morzem"


def test_generate_from_text_defaults_register(client, store, my_deck, owner_id, fake_provider):
    payload = {"deck_id": my_deck["id"], "text": "Wakacje"}

    response = client.post("/api/generate/from-text", json=payload, headers=bearer(owner_id))

    assert response.status_code == 201
    assert fake_provider.calls[0]["register"] == "neutral"
    assert fake_provider.calls[0]["content_type"] == "auto"
    assert response.json()["pairs"][0]["register"] == "neutral"
    assert store.tables["generations"][0]["register"] == "neutral"


def test_generate_request_register_default_and_alias():
    request = GenerateFromTopicRequest(deck_id=uuid.uuid4(), topic_id="travel")
    assert request.register_ is Register.NEUTRAL

    request = GenerateFromTopicRequest.model_validate(
        {"deck_id": str(uuid.uuid4()), "topic_id": "travel", "register": "formal"}
    )
    assert request.register_ is Register.FORMAL


def test_generate_quota_exceeded(client, store, my_deck, owner_id, fake_provider):
    for _ in range(3):
        add_generation(store, owner_id, my_deck["id"])

    response = client.post("/api/generate/from-topic", json=topic_payload(my_deck["id"]), headers=bearer(owner_id))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "QUOTA_EXCEEDED"
    assert fake_provider.calls == []


def test_generate_conflict_with_active_generation(client, store, my_deck, owner_id):
    add_generation(store, owner_id, my_deck["id"], status="running")
    response = client.post("/api/generate/from-topic", json=topic_payload(my_deck["id"]), headers=bearer(owner_id))
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


def test_generate_checks_deck(client, store, my_deck, owner_id, other_id):
    response = client.post("/api/generate/from-topic", json=topic_payload(str(uuid.uuid4())), headers=bearer(owner_id))
    assert response.status_code == 404

    response = client.post("/api/generate/from-topic", json=topic_payload(my_deck["id"]), headers=bearer(other_id))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
    assert store.tables["generations"] == []


def test_generate_validation(client, my_deck, owner_id):
    response = client.post(
        "/api/generate/from-topic", json=topic_payload(my_deck["id"], topic_id="space"), headers=bearer(owner_id)
    )
    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "topic_id"

    response = client.post(
        "/api/generate/from-text", json={"deck_id": my_deck["id"], "text": "x" * 5001}, headers=bearer(owner_id)
    )
    assert response.status_code == 422


def test_generate_provider_failure_marks_job_failed(client, store, my_deck, owner_id, fake_provider, generation_error):
    fake_provider.error = generation_error

    response = client.post("/api/generate/from-topic", json=topic_payload(my_deck["id"]), headers=bearer(owner_id))

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "GENERATION_FAILED"
    assert store.tables["generations"][0]["status"] == "failed"
    assert store.tables["pair_generation_errors"][0]["deck_id"] == my_deck["id"]

    quota = client.get("/api/users/me/quota", headers=bearer(owner_id)).json()
    assert quota["used_today"] == 0


def test_active_generation_status(client, store, my_deck, owner_id):
    url = f"/api/decks/{my_deck['id']}/generation"
    assert client.get(url, headers=bearer(owner_id)).status_code == 204

    active = add_generation(store, owner_id, my_deck["id"], status="pending")
    response = client.get(url, headers=bearer(owner_id))
    assert response.status_code == 200
    assert response.json()["id"] == active["id"]
    assert response.json()["status"] == "pending"

    assert client.get("/api/decks/not-a-uuid/generation", headers=bearer(owner_id)).status_code == 400
