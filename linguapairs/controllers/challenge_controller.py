"""
Challenge mode: pair selection, result recording and leaderboards.

Leaderboards are ordered by total time, then by number of mistakes, then by
submission time, all ascending.
"""

from supabase import Client
from linguapairs.constants import (
    ANONYMOUS_PLAYER_NAME,
    CHALLENGE_LEADERBOARD_CAP,
    CHALLENGE_MAX_LEADERBOARD,
    CHALLENGE_REQUIRED_PAIRS,
    CHALLENGE_VERSION,
    DEMO_LEADERBOARD_LIMIT,
    OWN_PLAYER_NAME,
)
from linguapairs.controllers.deck_controller import first_row
from linguapairs.errors import NotEnoughPairsError
from linguapairs.models import (
    ChallengeResult,
    ChallengeResultCreate,
    DemoResult,
    DemoResultCreate,
    Leaderboard,
    LeaderboardEntry,
    Pair,
)
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import random

logger = logging.getLogger(__name__)

RESULT_COLUMNS = "id, deck_id, user_id, total_time_ms, correct, incorrect, created_at"
DEMO_COLUMNS = "id, guest_id, guest_name, total_time_ms, incorrect, created_at"
FETCH_FACTOR = 6
MAX_FETCH = 200


def pick_pairs_for_deck(
    client: Client,
    deck_id: str,
    desired_count: int = CHALLENGE_REQUIRED_PAIRS,
    rng: Optional[random.Random] = None,
) -> Tuple[List[Pair], int]:
    """Random selection of ``desired_count`` pairs and the number available"""
    fetch_limit = min(desired_count * FETCH_FACTOR, MAX_FETCH)
    result = (
        client.table("pairs")
        .select("id, deck_id, term_a, term_b, added_at, updated_at", count="exact")
        .eq("deck_id", deck_id)
        .is_("deleted_at", "null")
        .limit(fetch_limit)
        .execute()
    )
    rows = result.data or []
    total_available = result.count if result.count is not None else len(rows)
    if total_available < desired_count or len(rows) < desired_count:
        raise NotEnoughPairsError(total_available, desired_count)

    rng = rng or random.Random()
    chosen = rng.sample(rows, desired_count)
    return [Pair(**row) for row in chosen], total_available


def record_result(client: Client, user_id: str, payload: ChallengeResultCreate) -> ChallengeResult:
    result = client.table("challenge_results").insert({
        "deck_id": str(payload.deck_id),
        "user_id": user_id,
        "total_time_ms": payload.total_time_ms,
        "correct": payload.correct,
        "incorrect": payload.incorrect,
        "version": payload.version or CHALLENGE_VERSION,
        "round_times_ms": payload.round_times_ms,
    }).execute()

    row = result.data[0] if result.data else None
    if not row:
        raise RuntimeError("Failed to store challenge result")

    round_times = row.get("round_times_ms")
    return ChallengeResult(
        id=row["id"],
        deck_id=row["deck_id"],
        user_id=row["user_id"],
        total_time_ms=row["total_time_ms"],
        correct=row["correct"],
        incorrect=row["incorrect"],
        version=row.get("version"),
        round_times_ms=round_times if isinstance(round_times, list) else None,
        created_at=row.get("created_at"),
    )


def resolve_player_name(profile: Optional[Dict[str, Any]], fallback: str = ANONYMOUS_PLAYER_NAME) -> str:
    """Display name, then username, then ``fallback`` when both are blank"""
    if not profile:
        return fallback
    display_name = (profile.get("display_name") or "").strip()
    username = (profile.get("username") or "").strip()
    return display_name or username or fallback


def fetch_profile_map(client: Client, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    user_ids = list(dict.fromkeys(user_ids))
    if not user_ids:
        return {}
    result = client.table("profiles").select("id, username, display_name").in_("id", user_ids).execute()
    return {row["id"]: row for row in (result.data or [])}


def _ordered_results(client: Client, deck_id: str):
    return (
        client.table("challenge_results")
        .select(RESULT_COLUMNS)
        .eq("deck_id", deck_id)
        .order("total_time_ms")
        .order("incorrect")
        .order("created_at")
    )


def fetch_best_for_user(client: Client, deck_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    result = _ordered_results(client, deck_id).eq("user_id", user_id).limit(1).execute()
    return first_row(result)


def _entry(row: Dict[str, Any], player_name: str, is_current_user: bool) -> LeaderboardEntry:
    return LeaderboardEntry(
        id=row["id"],
        deck_id=row["deck_id"],
        user_id=row["user_id"],
        total_time_ms=row["total_time_ms"],
        correct=row["correct"],
        incorrect=row["incorrect"],
        created_at=row.get("created_at"),
        player_name=player_name,
        is_current_user=is_current_user,
    )


def get_leaderboard(
    client: Client,
    deck_id: str,
    limit: Optional[int] = None,
    current_user_id: Optional[str] = None,
) -> Leaderboard:
    """Top results for a deck plus the requester's best when it is outside the top"""
    effective_limit = min(max(limit or CHALLENGE_MAX_LEADERBOARD, 1), CHALLENGE_LEADERBOARD_CAP)

    result = _ordered_results(client, deck_id).limit(effective_limit).execute()
    rows = result.data or []
    profiles = fetch_profile_map(client, [row["user_id"] for row in rows])

    entries = [
        _entry(
            row,
            resolve_player_name(profiles.get(row["user_id"])),
            bool(current_user_id) and row["user_id"] == current_user_id,
        )
        for row in rows
    ]

    my_best = next((entry for entry in entries if entry.is_current_user), None)
    if my_best is None and current_user_id:
        best_row = fetch_best_for_user(client, deck_id, current_user_id)
        if best_row:
            profile = profiles.get(current_user_id)
            if profile is None:
                profile = fetch_profile_map(client, [current_user_id]).get(current_user_id)
            my_best = _entry(best_row, resolve_player_name(profile, OWN_PLAYER_NAME), True)

    return Leaderboard(deck_id=deck_id, entries=entries, my_best=my_best)


def get_demo_leaderboard(client: Client, limit: int = DEMO_LEADERBOARD_LIMIT) -> List[DemoResult]:
    result = (
        client.table("challenge_demo_results")
        .select(DEMO_COLUMNS)
        .order("total_time_ms")
        .order("incorrect")
        .limit(limit)
        .execute()
    )
    return [DemoResult(**row) for row in (result.data or [])]


def record_demo_result(client: Client, payload: DemoResultCreate) -> None:
    client.table("challenge_demo_results").insert({
        "guest_id": str(payload.guest_id),
        "guest_name": payload.guest_name,
        "total_time_ms": payload.total_time_ms,
        "incorrect": payload.incorrect,
    }).execute()
    logger.info(f"Stored demo result for guest {payload.guest_id}")
