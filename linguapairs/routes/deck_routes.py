"""
LinguaPairs Backend - Deck routes
Decks, their pairs, challenge pair selection and generation status
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from linguapairs.auth import get_current_user, get_current_user_optional
from linguapairs.constants import (
    CHALLENGE_PAIRS_PER_ROUND,
    CHALLENGE_REQUIRED_PAIRS,
    CHALLENGE_ROUNDS,
    DECKS_DEFAULT_PAGE_SIZE,
    DECKS_MAX_PAGE_SIZE,
    PAIRS_DEFAULT_PAGE_SIZE,
    PAIRS_MAX_PAGE_SIZE,
)
from linguapairs.controllers import challenge_controller, deck_controller, generation_controller, pair_controller
from linguapairs.database import SupabaseClient, get_db
from linguapairs.errors import (
    ApiError,
    ErrorCode,
    InvalidLanguagesError,
    NotEnoughPairsError,
    PairAlreadyFlaggedError,
    PairNotFoundError,
    forbidden,
    internal_error,
    not_found,
)
from linguapairs.models import (
    AuthUser,
    ChallengePairs,
    DeckCreate,
    DeckDetail,
    DecksList,
    DeckUpdate,
    FlagPairRequest,
    PairFlag,
    PairsList,
)
from linguapairs.params import parse_int_param
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Router setup
decks_router = APIRouter()


def load_visible_deck(database: SupabaseClient, deck_id: str, user: Optional[AuthUser]) -> DeckDetail:
    """Deck detail, or 404 when it does not exist or the requester may not see it"""
    deck = deck_controller.get_deck_detail(database.service_client, deck_id)
    if deck is None or not deck_controller.can_view_deck(deck, user.id if user else None):
        raise not_found()
    return deck


def load_owned_deck(database: SupabaseClient, deck_id: str, user: AuthUser) -> DeckDetail:
    deck = load_visible_deck(database, deck_id, user)
    if not deck_controller.is_owner(deck, user.id):
        raise forbidden("You do not own this deck")
    return deck


@decks_router.get("", response_model=DecksList, tags=["Decks"])
async def list_my_decks(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: str = "created_at",
    order: str = "desc",
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Get all decks owned by the current user"""
    try:
        return deck_controller.list_user_decks(
            database.service_client,
            current_user.id,
            page=parse_int_param(page, 1, minimum=1),
            limit=parse_int_param(limit, DECKS_DEFAULT_PAGE_SIZE, minimum=1, maximum=DECKS_MAX_PAGE_SIZE),
            sort=sort,
            order=order,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"List decks error: {e}")
        raise internal_error()


@decks_router.post("", response_model=DeckDetail, status_code=status.HTTP_201_CREATED, tags=["Decks"])
async def create_deck(
    deck_data: DeckCreate,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Create a new deck"""
    try:
        deck = deck_controller.create_deck(database.service_client, current_user.id, deck_data)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=deck.model_dump(mode="json"),
            headers={"Location": f"/api/decks/{deck.id}"},
        )
    except InvalidLanguagesError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, e.message, e.details)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create deck error: {e}")
        raise internal_error()


@decks_router.get("/{deck_id}", response_model=DeckDetail, tags=["Decks"])
async def get_deck(
    deck_id: str,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    database: SupabaseClient = Depends(get_db),
):
    try:
        return load_visible_deck(database, deck_id, current_user)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get deck error: {e}")
        raise internal_error()


@decks_router.patch("/{deck_id}", response_model=DeckDetail, tags=["Decks"])
async def update_deck(
    deck_id: str,
    deck_update: DeckUpdate,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Update deck title, description or visibility (owner only)"""
    try:
        load_owned_deck(database, deck_id, current_user)
        deck_controller.update_deck_meta(database.service_client, deck_id, deck_update)
        return deck_controller.get_deck_detail(database.service_client, deck_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update deck error: {e}")
        raise internal_error()


@decks_router.get("/{deck_id}/pairs", response_model=PairsList, response_model_exclude_none=True, tags=["Pairs"])
async def list_pairs(
    deck_id: str,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    limit: Optional[str] = None,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    database: SupabaseClient = Depends(get_db),
):
    """Paginated pairs of a visible deck; `limit` is accepted as a legacy alias of `page_size`"""
    try:
        deck = load_visible_deck(database, deck_id, current_user)
        raw_size = page_size if page_size is not None else limit
        return pair_controller.list_by_deck(
            database.service_client,
            deck.id,
            page=parse_int_param(page, 1, minimum=1),
            page_size=parse_int_param(raw_size, PAIRS_DEFAULT_PAGE_SIZE, minimum=1, maximum=PAIRS_MAX_PAGE_SIZE),
            user_id=current_user.id if current_user else None,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"List pairs error for deck {deck_id}: {e}")
        raise internal_error()


@decks_router.post(
    "/{deck_id}/pairs/{pair_id}/flag",
    response_model=PairFlag,
    status_code=status.HTTP_201_CREATED,
    tags=["Pairs"],
)
async def flag_pair(
    deck_id: str,
    pair_id: str,
    flag_data: FlagPairRequest,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Report a wrong or low-quality pair"""
    try:
        deck = load_visible_deck(database, deck_id, current_user)
        if not pair_controller.pair_belongs_to_deck(database.service_client, deck.id, pair_id):
            raise not_found("Pair not found")
        return pair_controller.flag_pair(database.service_client, deck.id, pair_id, current_user.id, flag_data.reason)
    except PairAlreadyFlaggedError:
        raise ApiError(status.HTTP_409_CONFLICT, ErrorCode.CONFLICT, "You have already flagged this pair")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Flag pair error: {e}")
        raise internal_error()


@decks_router.delete("/{deck_id}/pairs/{pair_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Pairs"])
async def delete_pair(
    deck_id: str,
    pair_id: str,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    try:
        deck = load_owned_deck(database, deck_id, current_user)
        pair_controller.delete_pair(database.service_client, deck.id, pair_id)
        logger.info(f"Pair {pair_id} deleted from deck {deck.id} by user {current_user.id}")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except PairNotFoundError:
        raise not_found("Pair not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete pair error: {e}")
        raise internal_error()


@decks_router.get("/{deck_id}/challenge-pairs", response_model=ChallengePairs, tags=["Challenge"])
async def get_challenge_pairs(
    deck_id: str,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    database: SupabaseClient = Depends(get_db),
):
    """Random pairs for one challenge run"""
    try:
        deck = load_visible_deck(database, deck_id, current_user)
        pairs, total_available = challenge_controller.pick_pairs_for_deck(
            database.service_client, deck.id, CHALLENGE_REQUIRED_PAIRS
        )
        return ChallengePairs(
            deck_id=deck.id,
            total_available=total_available,
            required_pairs=CHALLENGE_REQUIRED_PAIRS,
            rounds=CHALLENGE_ROUNDS,
            pairs_per_round=CHALLENGE_PAIRS_PER_ROUND,
            pairs=pairs,
        )
    except NotEnoughPairsError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.NOT_ENOUGH_PAIRS,
            f"Deck needs at least {e.required} pairs for a challenge",
            {"available": e.available, "required": e.required},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Challenge pairs error for deck {deck_id}: {e}")
        raise internal_error()


@decks_router.get("/{deck_id}/generation", tags=["Generation"])
async def get_active_generation(
    deck_id: str,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Pending or running generation for the deck, or 204 when there is none"""
    try:
        if not deck_controller.is_uuid(deck_id):
            raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, "Invalid deckId format")
        active = generation_controller.get_active_for_deck(database.service_client, current_user.id, deck_id)
        if active is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return active
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Active generation lookup error for deck {deck_id}: {e}")
        raise internal_error()
