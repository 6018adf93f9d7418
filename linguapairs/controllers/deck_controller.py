from supabase import Client
from linguapairs.models import (
    DeckCreate,
    DeckDetail,
    DeckOwner,
    DeckUpdate,
    DecksList,
    LanguageRef,
    Pagination,
)
from linguapairs.errors import InvalidLanguagesError
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging
import math

logger = logging.getLogger(__name__)

DECK_COLUMNS = "id, owner_user_id, title, description, lang_a, lang_b, visibility, created_at, updated_at"
DECK_SORT_FIELDS = ("created_at", "updated_at", "title")


def is_uuid(value: Any) -> bool:
    try:
        UUID(str(value))
        return True
    except ValueError:
        return False


def first_row(result) -> Optional[Dict[str, Any]]:
    """Row from a maybe_single() query; newer postgrest returns None instead of a response"""
    if result is None or not result.data:
        return None
    data = result.data
    return data[0] if isinstance(data, list) else data


def fetch_deck_row(client: Client, deck_id: str) -> Optional[Dict[str, Any]]:
    if not is_uuid(deck_id):
        return None
    result = (
        client.table("decks")
        .select(DECK_COLUMNS)
        .eq("id", str(deck_id))
        .is_("deleted_at", "null")
        .maybe_single()
        .execute()
    )
    return first_row(result)


def fetch_language_map(client: Client, ids: Iterable[str]) -> Dict[str, LanguageRef]:
    ids = list(dict.fromkeys(str(i) for i in ids))
    if not ids:
        return {}
    result = client.table("languages").select("id, code, name, flag_emoji").in_("id", ids).execute()
    return {row["id"]: LanguageRef(**row) for row in (result.data or [])}


def fetch_owner_profile(client: Client, user_id: str) -> DeckOwner:
    result = client.table("profiles").select("id, username").eq("id", user_id).maybe_single().execute()
    profile = first_row(result)
    if not profile:
        logger.warning(f"Deck owner profile not found for user ID: {user_id}")
        return DeckOwner(id=user_id)
    return DeckOwner(id=profile["id"], username=profile.get("username"))


def count_pairs_for_deck(client: Client, deck_id: str) -> int:
    result = (
        client.table("pairs")
        .select("id", count="exact")
        .eq("deck_id", deck_id)
        .is_("deleted_at", "null")
        .execute()
    )
    if result.count is not None:
        return result.count
    return len(result.data or [])


def map_deck_detail(row: Dict[str, Any], languages: Dict[str, LanguageRef], owner: DeckOwner, pairs_count: int) -> DeckDetail:
    lang_a = languages.get(row["lang_a"])
    lang_b = languages.get(row["lang_b"])
    if not lang_a or not lang_b:
        raise RuntimeError(f"Languages for deck {row['id']} are missing")

    return DeckDetail(
        id=row["id"],
        owner_user_id=row["owner_user_id"],
        owner=owner,
        title=row["title"],
        description=row.get("description"),
        lang_a=lang_a,
        lang_b=lang_b,
        visibility=row["visibility"],
        pairs_count=pairs_count,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def get_deck_detail(client: Client, deck_id: str) -> Optional[DeckDetail]:
    """Deck with languages, owner and pair count, or None when it does not exist"""
    row = fetch_deck_row(client, deck_id)
    if not row:
        return None

    languages = fetch_language_map(client, [row["lang_a"], row["lang_b"]])
    owner = fetch_owner_profile(client, row["owner_user_id"])
    pairs_count = count_pairs_for_deck(client, row["id"])
    return map_deck_detail(row, languages, owner, pairs_count)


def can_view_deck(deck, user_id: Optional[str]) -> bool:
    """Private decks are owner-only; public and unlisted decks are readable by anyone"""
    if deck.visibility == "private":
        return bool(user_id) and deck.owner_user_id == user_id
    return True


def is_owner(deck, user_id: Optional[str]) -> bool:
    return bool(user_id) and deck.owner_user_id == user_id


def create_deck(client: Client, user_id: str, data: DeckCreate) -> DeckDetail:
    lang_a, lang_b = str(data.lang_a), str(data.lang_b)

    languages_result = (
        client.table("languages")
        .select("id")
        .in_("id", [lang_a, lang_b])
        .eq("is_active", True)
        .execute()
    )
    found = {row["id"] for row in (languages_result.data or [])}
    details = [
        {"field": field, "message": "Language not found"}
        for field, lang_id in (("lang_a", lang_a), ("lang_b", lang_b))
        if lang_id not in found
    ]
    if details:
        raise InvalidLanguagesError("One or more languages are invalid", details)

    insert_result = client.table("decks").insert({
        "owner_user_id": user_id,
        "title": data.title,
        "description": data.description,
        "lang_a": lang_a,
        "lang_b": lang_b,
        "visibility": data.visibility.value,
    }).execute()

    row = insert_result.data[0] if insert_result.data else None
    if not row:
        raise RuntimeError("Failed to create deck: no record returned")

    logger.info(f"Deck created: {row['id']} by user {user_id}")
    languages = fetch_language_map(client, [lang_a, lang_b])
    owner = fetch_owner_profile(client, user_id)
    return map_deck_detail(row, languages, owner, 0)


def update_deck_meta(client: Client, deck_id: str, updates: DeckUpdate) -> None:
    payload: Dict[str, Any] = {}
    if updates.title is not None:
        payload["title"] = updates.title
    if updates.description is not None:
        payload["description"] = updates.description
    if updates.visibility is not None:
        payload["visibility"] = updates.visibility.value

    if not payload:
        return

    client.table("decks").update(payload).eq("id", deck_id).is_("deleted_at", "null").execute()


def list_user_decks(
    client: Client,
    user_id: str,
    page: int,
    limit: int,
    sort: str = "created_at",
    order: str = "desc",
) -> DecksList:
    """Owner's decks with languages and pair counts"""
    if sort not in DECK_SORT_FIELDS:
        sort = "created_at"
    offset = (page - 1) * limit

    result = (
        client.table("decks")
        .select(DECK_COLUMNS, count="exact")
        .eq("owner_user_id", user_id)
        .is_("deleted_at", "null")
        .order(sort, desc=order != "asc")
        .range(offset, offset + limit - 1)
        .execute()
    )
    rows: List[Dict[str, Any]] = result.data or []
    total = result.count if result.count is not None else len(rows)

    decks: List[DeckDetail] = []
    if rows:
        languages = fetch_language_map(client, [r["lang_a"] for r in rows] + [r["lang_b"] for r in rows])
        owner = fetch_owner_profile(client, user_id)

        pairs_result = (
            client.table("pairs")
            .select("deck_id")
            .in_("deck_id", [r["id"] for r in rows])
            .is_("deleted_at", "null")
            .execute()
        )
        counts: Dict[str, int] = {}
        for pair in pairs_result.data or []:
            counts[pair["deck_id"]] = counts.get(pair["deck_id"], 0) + 1

        decks = [map_deck_detail(row, languages, owner, counts.get(row["id"], 0)) for row in rows]

    return DecksList(
        decks=decks,
        pagination=Pagination(
            page=page,
            page_size=limit,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )
