"""
LinguaPairs Backend - Generation jobs and daily quota

A generation row moves pending -> running -> succeeded | failed. Only
succeeded rows created since 00:00 UTC count against the daily limit.
"""

from supabase import Client
from postgrest.exceptions import APIError
from linguapairs.constants import BASE_GENERATION_COUNT, DAILY_GENERATION_LIMIT, get_topic_label
from linguapairs.controllers.ai_provider import PairGenerationProvider, ProviderResult
from linguapairs.controllers.deck_controller import fetch_deck_row, first_row
from linguapairs.errors import (
    DeckForbiddenError,
    DeckNotFoundError,
    GenerationInProgressError,
    QuotaExceededError,
)
from linguapairs.models import (
    ActiveGeneration,
    GenerateFromTextRequest,
    GenerateFromTopicRequest,
    GenerationResponse,
    Quota,
)
from linguapairs.prompts import LanguageSpec
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ["pending", "running"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def start_of_utc_day(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def get_used_today(client: Client, user_id: str, now: Optional[datetime] = None) -> int:
    since = start_of_utc_day(now or _now())
    result = (
        client.table("generations")
        .select("id", count="exact")
        .eq("user_id", user_id)
        .eq("status", "succeeded")
        .gte("created_at", since.isoformat())
        .execute()
    )
    if result.count is not None:
        return result.count
    return len(result.data or [])


def get_quota(client: Client, user_id: str, now: Optional[datetime] = None) -> Quota:
    """Daily quota; resets at the next 00:00 UTC"""
    now = now or _now()
    used_today = get_used_today(client, user_id, now)
    reset_at = start_of_utc_day(now) + timedelta(days=1)
    return Quota(
        daily_limit=DAILY_GENERATION_LIMIT,
        used_today=used_today,
        remaining=max(0, DAILY_GENERATION_LIMIT - used_today),
        reset_at=reset_at.isoformat().replace("+00:00", "Z"),
    )


def has_active_for_user(client: Client, user_id: str) -> bool:
    result = (
        client.table("generations")
        .select("id")
        .eq("user_id", user_id)
        .in_("status", ACTIVE_STATUSES)
        .limit(1)
        .execute()
    )
    return bool(result.data)


def get_active_for_deck(client: Client, user_id: str, deck_id: str) -> Optional[ActiveGeneration]:
    result = (
        client.table("generations")
        .select("id, status, deck_id, pairs_requested, created_at, started_at")
        .eq("user_id", user_id)
        .eq("deck_id", deck_id)
        .in_("status", ACTIVE_STATUSES)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    row = first_row(result)
    return ActiveGeneration(**row) if row else None


def ensure_deck_owned_by_user(client: Client, user_id: str, deck_id: str) -> Dict[str, Any]:
    row = fetch_deck_row(client, deck_id)
    if not row:
        raise DeckNotFoundError(deck_id)
    if row["owner_user_id"] != user_id:
        raise DeckForbiddenError(deck_id)
    return row


def get_deck_languages(client: Client, deck: Dict[str, Any]) -> Tuple[LanguageSpec, LanguageSpec]:
    result = client.table("languages").select("id, code, name").in_("id", [deck["lang_a"], deck["lang_b"]]).execute()
    languages = {row["id"]: row for row in (result.data or [])}

    lang_a = languages.get(deck["lang_a"])
    lang_b = languages.get(deck["lang_b"])
    if not lang_a or not lang_b:
        raise RuntimeError(f"Languages for deck {deck['id']} are missing")

    def to_spec(row: Dict[str, Any]) -> LanguageSpec:
        code = (row.get("code") or "").lower()
        return LanguageSpec(code=code, name=row.get("name") or code)

    return to_spec(lang_a), to_spec(lang_b)


def fetch_pair_terms_by_ids(client: Client, deck_id: str, pair_ids: Iterable[Any]) -> List[str]:
    """Terms of the given pairs, used as the generation banlist"""
    ids = [str(pair_id) for pair_id in pair_ids]
    if not ids:
        return []

    result = client.table("pairs").select("term_a, term_b").eq("deck_id", deck_id).in_("id", ids).execute()
    terms: List[str] = []
    for row in result.data or []:
        for term in (row.get("term_a"), row.get("term_b")):
            term = (term or "").strip()
            if term and term not in terms:
                terms.append(term)
    return terms


def create_generation(client: Client, user_id: str, deck_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    try:
        result = client.table("generations").insert({
            "user_id": user_id,
            "deck_id": deck_id,
            "pairs_requested": BASE_GENERATION_COUNT,
            "status": "pending",
            **fields,
        }).execute()
    except APIError as e:
        # unique index on one active generation per user
        if e.code == "23505":
            raise GenerationInProgressError(user_id) from e
        raise

    row = result.data[0] if result.data else None
    if not row:
        raise RuntimeError("Failed to create generation")
    return row


def set_status(client: Client, generation_id: str, status: str, timestamp_field: str) -> None:
    client.table("generations").update({
        "status": status,
        timestamp_field: _now().isoformat(),
    }).eq("id", generation_id).execute()


def mark_failed(client: Client, deck_id: str, generation_id: str, error: Exception, model: Optional[str] = None) -> None:
    """Mark the job failed and record the error; bookkeeping failures are only logged"""
    try:
        set_status(client, generation_id, "failed", "finished_at")
    except Exception as e:
        logger.error(f"Failed to mark generation {generation_id} as failed: {e}")

    message = str(error) or error.__class__.__name__
    try:
        client.table("pair_generation_errors").insert({
            "deck_id": deck_id,
            "provider": "openrouter",
            "model": model,
            "error_code": "generation_failed",
            "error_message": message,
            "error_details": {"type": error.__class__.__name__, "message": message},
            "retryable": False,
        }).execute()
    except Exception as e:
        logger.error(f"Failed to log pair generation error for {generation_id}: {e}")


def _run(
    client: Client,
    user_id: str,
    payload: Union[GenerateFromTopicRequest, GenerateFromTextRequest],
    fields: Dict[str, Any],
    call_provider: Callable[[LanguageSpec, LanguageSpec, List[str]], ProviderResult],
    now: Optional[datetime] = None,
) -> GenerationResponse:
    deck_id = str(payload.deck_id)

    if get_quota(client, user_id, now).remaining <= 0:
        raise QuotaExceededError(user_id)
    if has_active_for_user(client, user_id):
        raise GenerationInProgressError(user_id)

    deck = ensure_deck_owned_by_user(client, user_id, deck_id)
    lang_a, lang_b = get_deck_languages(client, deck)
    banlist = fetch_pair_terms_by_ids(client, deck_id, payload.exclude_pairs)

    generation = create_generation(client, user_id, deck_id, {
        "content_type": payload.content_type.value,
        "register": payload.register_.value,
        **fields,
    })
    generation_id = generation["id"]
    set_status(client, generation_id, "running", "started_at")
    logger.info(f"Generation {generation_id} started for deck {deck_id}")

    try:
        result = call_provider(lang_a, lang_b, banlist)
    except Exception as e:
        logger.error(f"Generation {generation_id} failed: {e}")
        mark_failed(client, deck_id, generation_id, e)
        raise

    set_status(client, generation_id, "succeeded", "finished_at")
    logger.info(f"Generation {generation_id} succeeded with {len(result.pairs)} pairs")

    return GenerationResponse(
        generation_id=generation_id,
        deck_id=deck_id,
        pairs=result.pairs,
        pairs_generated=len(result.pairs),
        metadata=result.metadata,
        quota=get_quota(client, user_id, now),
    )


def run_from_topic(
    client: Client,
    provider: PairGenerationProvider,
    user_id: str,
    payload: GenerateFromTopicRequest,
    now: Optional[datetime] = None,
) -> GenerationResponse:
    """Synchronous generation of a full batch of pairs for a topic"""
    def call(lang_a: LanguageSpec, lang_b: LanguageSpec, banlist: List[str]) -> ProviderResult:
        return provider.generate_from_topic(
            topic_id=payload.topic_id,
            topic_label=get_topic_label(payload.topic_id),
            content_type=payload.content_type.value,
            register=payload.register_.value,
            count=BASE_GENERATION_COUNT,
            lang_a=lang_a,
            lang_b=lang_b,
            banlist=banlist,
        )

    fields = {"type": "topic", "topic_id": payload.topic_id, "input_text": None}
    return _run(client, user_id, payload, fields, call, now)


def run_from_text(
    client: Client,
    provider: PairGenerationProvider,
    user_id: str,
    payload: GenerateFromTextRequest,
    now: Optional[datetime] = None,
) -> GenerationResponse:
    """Synchronous generation of a full batch of pairs from free-form text"""
    def call(lang_a: LanguageSpec, lang_b: LanguageSpec, banlist: List[str]) -> ProviderResult:
        return provider.generate_from_text(
            text=payload.text,
            content_type=payload.content_type.value,
            register=payload.register_.value,
            count=BASE_GENERATION_COUNT,
            lang_a=lang_a,
            lang_b=lang_b,
            banlist=banlist,
        )

    fields = {"type": "text", "topic_id": None, "input_text": payload.text}
    return _run(client, user_id, payload, fields, call, now)
