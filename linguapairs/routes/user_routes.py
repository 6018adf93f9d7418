from fastapi import APIRouter, Depends, HTTPException
from linguapairs.auth import get_current_user
from linguapairs.controllers import generation_controller
from linguapairs.database import SupabaseClient, get_db
from linguapairs.errors import internal_error
from linguapairs.models import AuthUser, Quota
import logging

logger = logging.getLogger(__name__)

# Router setup
users_router = APIRouter()


@users_router.get("/me/quota", response_model=Quota, tags=["Users"])
async def get_my_quota(
    current_user: AuthUser = Depends(get_current_user),
    database: SupabaseClient = Depends(get_db),
):
    """Daily generation quota of the current user"""
    try:
        return generation_controller.get_quota(database.service_client, current_user.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Quota error for user {current_user.id}: {e}")
        raise internal_error()
