"""
LinguaPairs Backend - Authentication Module
Resolves the requesting user from a Supabase session token
"""

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from linguapairs.config import Settings, get_settings
from linguapairs.errors import unauthorized
from linguapairs.models import AuthUser
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Bearer header wins over the session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.access_cookie_name)


def decode_access_token(token: str, settings: Settings) -> Optional[AuthUser]:
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return AuthUser(id=user_id, email=payload.get("email"))


async def get_current_user_optional(
    token: Optional[str] = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthUser]:
    """Get current user if authenticated, otherwise return None"""
    if not token:
        return None
    return decode_access_token(token, settings)


async def get_current_user(user: Optional[AuthUser] = Depends(get_current_user_optional)) -> AuthUser:
    """Get current authenticated user or fail with 401"""
    if user is None:
        raise unauthorized("User not authenticated")
    return user


def set_session_cookies(response: Response, session, settings: Settings) -> None:
    """Store a Supabase session's tokens in HTTP-only cookies"""
    if session is None:
        return
    options = dict(path="/", httponly=True, samesite="lax", secure=not settings.debug)
    response.set_cookie(
        settings.access_cookie_name,
        session.access_token,
        max_age=getattr(session, "expires_in", None),
        **options,
    )
    response.set_cookie(settings.refresh_cookie_name, session.refresh_token, **options)


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
