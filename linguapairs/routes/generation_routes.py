"""
LinguaPairs Backend - Generation routes
Synchronous LLM pair generation from a topic or from free-form text
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from linguapairs.auth import get_current_user
from linguapairs.controllers import generation_controller
from linguapairs.controllers.ai_provider import PairGenerationProvider, get_ai_provider
from linguapairs.database import SupabaseClient, get_db
from linguapairs.errors import (
    ApiError,
    DeckForbiddenError,
    DeckNotFoundError,
    ErrorCode,
    GenerationInProgressError,
    GenerationOutputError,
    QuotaExceededError,
    forbidden,
    internal_error,
    not_found,
)
from linguapairs.models import AuthUser, GenerateFromTextRequest, GenerateFromTopicRequest, GenerationResponse
import logging
import openai

logger = logging.getLogger(__name__)

# Router setup
generation_router = APIRouter()


def generation_created(result: GenerationResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=result.model_dump(mode="json", by_alias=True),
        headers={"Location": f"/api/decks/{result.deck_id}/generation"},
    )


def translate_generation_error(e: Exception) -> HTTPException:
    if isinstance(e, QuotaExceededError):
        return ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.QUOTA_EXCEEDED, "Daily generation limit reached")
    if isinstance(e, GenerationInProgressError):
        return ApiError(status.HTTP_409_CONFLICT, ErrorCode.CONFLICT, "Another generation is in progress")
    if isinstance(e, DeckNotFoundError):
        return not_found()
    if isinstance(e, DeckForbiddenError):
        return forbidden("You do not own this deck")
    if isinstance(e, (GenerationOutputError, openai.OpenAIError)):
        return ApiError(status.HTTP_502_BAD_GATEWAY, ErrorCode.GENERATION_FAILED, "Pair generation failed, try again")
    return internal_error()


@generation_router.post(
    "/from-topic",
    response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Generation"],
)
async def generate_from_topic(
    request_data: GenerateFromTopicRequest,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
    provider: PairGenerationProvider = Depends(get_ai_provider),
):
    """Generate a batch of pairs for a predefined topic"""
    try:
        result = generation_controller.run_from_topic(database.service_client, provider, current_user.id, request_data)
        return generation_created(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Generate from topic error: {e}")
        raise translate_generation_error(e)


@generation_router.post(
    "/from-text",
    response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Generation"],
)
async def generate_from_text(
    request_data: GenerateFromTextRequest,
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
    provider: PairGenerationProvider = Depends(get_ai_provider),
):
    """Generate a batch of pairs from a pasted text"""
    try:
        result = generation_controller.run_from_text(database.service_client, provider, current_user.id, request_data)
        return generation_created(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Generate from text error: {e}")
        raise translate_generation_error(e)
