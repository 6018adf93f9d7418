from fastapi import APIRouter, Depends, HTTPException, status
from linguapairs.controllers import language_controller
from linguapairs.controllers.deck_controller import is_uuid
from linguapairs.database import SupabaseClient, get_db
from linguapairs.errors import ApiError, ErrorCode, internal_error, not_found
from linguapairs.models import Language, LanguagesList
import logging

logger = logging.getLogger(__name__)

# Router setup
languages_router = APIRouter()


@languages_router.get("", response_model=LanguagesList, tags=["Languages"])
async def list_languages(sort: str = "sort_order", database: SupabaseClient = Depends(get_db)):
    """Active languages available for decks"""
    try:
        return language_controller.get_languages(database.service_client, sort)
    except Exception as e:
        logger.error(f"List languages error: {e}")
        raise internal_error()


@languages_router.get("/{language_id}", response_model=Language, tags=["Languages"])
async def get_language(language_id: str, database: SupabaseClient = Depends(get_db)):
    try:
        if not is_uuid(language_id):
            raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, "Invalid language ID format")
        language = language_controller.get_language_by_id(database.service_client, language_id)
        if language is None:
            raise not_found("Language not found")
        return language
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get language error: {e}")
        raise internal_error()
