from supabase import Client
from postgrest.exceptions import APIError
from linguapairs.constants import PAIRS_DEFAULT_PAGE_SIZE, PAIRS_MAX_PAGE_SIZE
from linguapairs.controllers.deck_controller import first_row, is_uuid
from linguapairs.errors import PairAlreadyFlaggedError, PairNotFoundError
from linguapairs.models import Pagination, Pair, PairFlag, PairsList
from datetime import datetime, timezone
from typing import Optional, Set
import logging
import math

logger = logging.getLogger(__name__)

PAIR_COLUMNS = "id, deck_id, term_a, term_b, added_at, updated_at"


def list_by_deck(
    client: Client,
    deck_id: str,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    user_id: Optional[str] = None,
) -> PairsList:
    """One page of a deck's pairs, oldest first"""
    page = max(1, page or 1)
    page_size = min(PAIRS_MAX_PAGE_SIZE, max(1, page_size or PAIRS_DEFAULT_PAGE_SIZE))
    offset = (page - 1) * page_size

    result = (
        client.table("pairs")
        .select(PAIR_COLUMNS, count="exact")
        .eq("deck_id", deck_id)
        .is_("deleted_at", "null")
        .order("added_at")
        .order("id")
        .range(offset, offset + page_size - 1)
        .execute()
    )
    rows = result.data or []

    flagged: Set[str] = set()
    if user_id and rows:
        flags_result = (
            client.table("pair_flags")
            .select("pair_id")
            .eq("flagged_by", user_id)
            .in_("pair_id", [row["id"] for row in rows])
            .execute()
        )
        flagged = {row["pair_id"] for row in (flags_result.data or [])}

    pairs = [
        Pair(
            id=row["id"],
            deck_id=row["deck_id"],
            term_a=row["term_a"],
            term_b=row["term_b"],
            added_at=row.get("added_at"),
            updated_at=row.get("updated_at"),
            flagged_by_me=True if row["id"] in flagged else None,
        )
        for row in rows
    ]

    total = result.count or 0
    total_pages = max(1, math.ceil(total / page_size)) if total > 0 else 1

    return PairsList(
        pairs=pairs,
        pagination=Pagination(
            page=page,
            page_size=page_size,
            limit=page_size,
            total=total,
            total_pages=total_pages,
        ),
    )


def pair_belongs_to_deck(client: Client, deck_id: str, pair_id: str) -> bool:
    if not is_uuid(pair_id):
        return False
    result = (
        client.table("pairs")
        .select("id")
        .eq("id", pair_id)
        .eq("deck_id", deck_id)
        .is_("deleted_at", "null")
        .maybe_single()
        .execute()
    )
    return first_row(result) is not None


def flag_pair(client: Client, deck_id: str, pair_id: str, user_id: str, reason: str) -> PairFlag:
    try:
        result = client.table("pair_flags").insert({
            "deck_id": deck_id,
            "pair_id": pair_id,
            "flagged_by": user_id,
            "reason": reason,
        }).execute()
    except APIError as e:
        if e.code == "23505":
            raise PairAlreadyFlaggedError(pair_id) from e
        logger.error(f"Error flagging pair {pair_id}: {e.message}")
        raise

    row = result.data[0] if result.data else None
    if not row:
        raise RuntimeError("Failed to flag pair")

    return PairFlag(
        id=row["id"],
        pair_id=row["pair_id"],
        flagged_by=row["flagged_by"],
        reason=row["reason"],
        flagged_at=row.get("flagged_at"),
    )


def delete_pair(client: Client, deck_id: str, pair_id: str) -> None:
    """Soft-delete a pair"""
    if not is_uuid(pair_id):
        raise PairNotFoundError(pair_id)

    result = (
        client.table("pairs")
        .update({"deleted_at": datetime.now(timezone.utc).isoformat()})
        .eq("id", pair_id)
        .eq("deck_id", deck_id)
        .is_("deleted_at", "null")
        .execute()
    )
    if not result.data:
        raise PairNotFoundError(pair_id)
