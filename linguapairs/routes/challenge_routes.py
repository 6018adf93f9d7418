"""
LinguaPairs Backend - Challenge routes
Leaderboards and result submission for timed challenges
"""

from fastapi import APIRouter, Depends, HTTPException, status
from linguapairs.auth import get_current_user, get_current_user_optional
from linguapairs.constants import CHALLENGE_LEADERBOARD_CAP, CHALLENGE_MAX_LEADERBOARD
from linguapairs.controllers import challenge_controller
from linguapairs.database import SupabaseClient, get_db
from linguapairs.errors import internal_error
from linguapairs.models import (
    AuthUser,
    ChallengeResult,
    ChallengeResultCreate,
    DemoResult,
    DemoResultCreate,
    Leaderboard,
)
from linguapairs.params import parse_int_param
from linguapairs.routes.deck_routes import load_visible_deck
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

# Router setup
challenge_router = APIRouter()


@challenge_router.get("/decks/{deck_id}/top", response_model=Leaderboard, tags=["Challenge"])
async def get_deck_leaderboard(
    deck_id: str,
    limit: Optional[str] = None,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    database: SupabaseClient = Depends(get_db),
):
    """Fastest results for a deck, plus the requester's best"""
    try:
        deck = load_visible_deck(database, deck_id, current_user)
        return challenge_controller.get_leaderboard(
            database.service_client,
            deck.id,
            limit=parse_int_param(limit, CHALLENGE_MAX_LEADERBOARD, minimum=1, maximum=CHALLENGE_LEADERBOARD_CAP),
            current_user_id=current_user.id if current_user else None,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Leaderboard error for deck {deck_id}: {e}")
        raise internal_error()


@challenge_router.post(
    "/results",
    response_model=ChallengeResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Challenge"],
)
async def submit_result(
    result_data: ChallengeResultCreate,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    try:
        deck = load_visible_deck(database, str(result_data.deck_id), current_user)
        result = challenge_controller.record_result(database.service_client, current_user.id, result_data)
        logger.info(f"Challenge result stored for deck {deck.id} by user {current_user.id}")
        return result
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Submit challenge result error: {e}")
        raise internal_error()


@challenge_router.get("/demo/leaderboard", response_model=List[DemoResult], tags=["Challenge"])
async def get_demo_leaderboard(database: SupabaseClient = Depends(get_db)):
    """Top guest results of the demo challenge"""
    try:
        return challenge_controller.get_demo_leaderboard(database.service_client)
    except Exception as e:
        logger.error(f"Demo leaderboard error: {e}")
        raise internal_error()


@challenge_router.post("/demo/results", status_code=status.HTTP_201_CREATED, tags=["Challenge"])
async def submit_demo_result(result_data: DemoResultCreate, database: SupabaseClient = Depends(get_db)):
    try:
        challenge_controller.record_demo_result(database.service_client, result_data)
        return {"success": True}
    except Exception as e:
        logger.error(f"Submit demo result error: {e}")
        raise internal_error()
