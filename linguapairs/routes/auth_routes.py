"""
LinguaPairs Backend - Authentication routes
Login, registration and password recovery backed by Supabase Auth.

These endpoints answer with a flat {"error": "<message>"} body carrying a
user-facing Polish message instead of the coded error envelope.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from supabase import AuthError
from linguapairs.auth import (
    clear_session_cookies,
    get_access_token,
    get_current_user_optional,
    set_session_cookies,
)
from linguapairs.config import Settings, get_settings
from linguapairs.database import SupabaseClient, get_db
from linguapairs.models import (
    AuthUser,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from typing import Any, Dict, Optional, Type
from urllib.parse import urlsplit
import logging

logger = logging.getLogger(__name__)

# Router setup
auth_router = APIRouter()

GENERIC_ERROR = "Wystąpił błąd. Spróbuj ponownie."
FORGOT_MESSAGE = "Jeśli konto istnieje, wysłaliśmy link do resetowania hasła."
RESET_NEXT_PATH = "/auth/reset"
EMAIL_OTP_TYPES = ("signup", "recovery", "invite", "magiclink", "email", "email_change")


def auth_error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def read_json(request: Request) -> Dict[str, Any]:
    """Request body as a dict; malformed or non-object bodies read as empty"""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def parse_body(model: Type, payload: Dict[str, Any], fallback: str):
    """Validated model and None, or None and the first validation message"""
    try:
        return model.model_validate(payload), None
    except ValidationError as e:
        errors = e.errors()
        return None, (errors[0].get("msg") if errors else None) or fallback


def callback_url(settings: Settings, next_path: str) -> str:
    base = settings.site_url.rstrip("/")
    return f"{base}/api/auth/callback?next={next_path}"


def safe_next_path(next_path: Optional[str]) -> str:
    """Only same-site relative paths are allowed as redirect targets"""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return "/"
    parts = urlsplit(next_path)
    if parts.scheme or parts.netloc or "\\" in next_path:
        return "/"
    return next_path


@auth_router.post("/login", tags=["Authentication"])
async def login(
    request: Request,
    settings: Settings = Depends(get_settings),
    database: SupabaseClient = Depends(get_db),
):
    """Sign in with e-mail and password and store the session in cookies"""
    try:
        data, message = parse_body(LoginRequest, await read_json(request), "Nieprawidłowe dane")
        if data is None:
            return auth_error(message)

        client = database.auth_client()
        try:
            result = client.auth.sign_in_with_password({"email": data.email, "password": data.password})
        except AuthError as e:
            if e.message == "Invalid login credentials":
                return auth_error("Błędny e-mail lub hasło")
            return auth_error(e.message or "Nie udało się zalogować. Spróbuj ponownie.")

        user = result.user
        response = JSONResponse(content={
            "user": AuthUser(id=user.id, email=user.email).model_dump() if user else None
        })
        set_session_cookies(response, result.session, settings)
        logger.info(f"User signed in: {user.id if user else 'unknown'}")
        return response

    except Exception as e:
        logger.error(f"Login error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@auth_router.post("/register", tags=["Authentication"])
async def register(
    request: Request,
    settings: Settings = Depends(get_settings),
    database: SupabaseClient = Depends(get_db),
):
    try:
        data, message = parse_body(RegisterRequest, await read_json(request), "Nieprawidłowe dane")
        if data is None:
            return auth_error(message)

        client = database.auth_client()
        try:
            result = client.auth.sign_up({
                "email": data.email,
                "password": data.password,
                "options": {"email_redirect_to": callback_url(settings, "/")},
            })
        except AuthError as e:
            if e.message == "User already registered":
                return auth_error("Konto z tym adresem już istnieje.")
            return auth_error(e.message or "Nie udało się utworzyć konta. Spróbuj ponownie.")

        # no session until the e-mail address is confirmed
        requires_confirmation = result.session is None
        response = JSONResponse(content={
            "message": (
                "Sprawdź swoją skrzynkę e-mail. Wysłaliśmy link aktywacyjny do potwierdzenia konta."
                if requires_confirmation
                else "Konto zostało utworzone pomyślnie!"
            ),
            "requiresConfirmation": requires_confirmation,
            "email": data.email,
        })
        set_session_cookies(response, result.session, settings)
        return response

    except Exception as e:
        logger.error(f"Registration error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@auth_router.post("/forgot", tags=["Authentication"])
async def forgot_password(
    request: Request,
    settings: Settings = Depends(get_settings),
    database: SupabaseClient = Depends(get_db),
):
    """Send a password reset link; the answer never reveals whether the account exists"""
    try:
        data, message = parse_body(EmailRequest, await read_json(request), "Nieprawidłowy adres e-mail")
        if data is None:
            return auth_error(message)

        client = database.auth_client()
        try:
            client.auth.reset_password_for_email(
                data.email,
                {"redirect_to": callback_url(settings, RESET_NEXT_PATH)},
            )
        except AuthError as e:
            logger.warning(f"Failed to send reset email: {e.message}")

        return {"success": True, "message": FORGOT_MESSAGE}

    except Exception as e:
        logger.error(f"Forgot password error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@auth_router.get("/callback", tags=["Authentication"])
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    token_hash: Optional[str] = None,
    otp_type: Optional[str] = Query(None, alias="type"),
    next_path: Optional[str] = Query(None, alias="next"),
    settings: Settings = Depends(get_settings),
    database: SupabaseClient = Depends(get_db),
):
    """
    Turn an e-mail link into a session and redirect.

    E-mail templates link here with ``token_hash`` and ``type``, which are
    verified server-side. A PKCE ``code`` is exchanged with the verifier the
    browser client left in the code-verifier cookie.
    """
    next_path = safe_next_path(next_path)
    use_token_hash = bool(token_hash) and otp_type in EMAIL_OTP_TYPES
    if not code and not use_token_hash:
        logger.warning("Auth callback called without code or token hash")
        return RedirectResponse("/auth/login?error=missing_code", status_code=status.HTTP_302_FOUND)

    try:
        client = database.auth_client()
        try:
            if use_token_hash:
                result = client.auth.verify_otp({"token_hash": token_hash, "type": otp_type})
            else:
                params = {"auth_code": code}
                code_verifier = request.cookies.get(settings.code_verifier_cookie_name)
                if code_verifier:
                    params["code_verifier"] = code_verifier
                result = client.auth.exchange_code_for_session(params)
        except AuthError as e:
            logger.warning(f"E-mail link verification failed: {e.message}")
            if next_path == RESET_NEXT_PATH:
                return RedirectResponse("/auth/forgot?error=link_expired", status_code=status.HTTP_302_FOUND)
            return RedirectResponse("/auth/login?error=auth_failed", status_code=status.HTTP_302_FOUND)

        response = RedirectResponse(next_path, status_code=status.HTTP_302_FOUND)
        set_session_cookies(response, result.session, settings)
        response.delete_cookie(settings.code_verifier_cookie_name, path="/")
        logger.debug(f"E-mail link verified, redirecting to {next_path}")
        return response

    except Exception as e:
        logger.error(f"Auth callback error: {e}")
        return RedirectResponse("/auth/login?error=unexpected", status_code=status.HTTP_302_FOUND)


@auth_router.post("/reset-password", tags=["Authentication"])
async def reset_password(
    request: Request,
    current_user: Optional[AuthUser] = Depends(get_current_user_optional),
    database: SupabaseClient = Depends(get_db),
):
    """Set a new password for the session created by the reset link"""
    try:
        data, message = parse_body(ResetPasswordRequest, await read_json(request), "Nieprawidłowe hasło")
        if data is None:
            return auth_error(message)

        if current_user is None:
            logger.warning("Password reset without an authenticated session")
            return auth_error(
                "Sesja wygasła. Poproś o nowy link do resetowania hasła.",
                status.HTTP_401_UNAUTHORIZED,
            )

        try:
            database.service_client.auth.admin.update_user_by_id(current_user.id, {"password": data.password})
        except AuthError as e:
            logger.error(f"Failed to update password for {current_user.id}: {e.message}")
            if getattr(e, "code", None) == "same_password" or "same as" in (e.message or ""):
                return auth_error("Nowe hasło musi być inne niż poprzednie.")
            return auth_error("Nie udało się zmienić hasła. Spróbuj ponownie.")

        logger.info(f"Password updated for user {current_user.id}")
        return {"success": True, "message": "Hasło zostało zmienione."}

    except Exception as e:
        logger.error(f"Reset password error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@auth_router.post("/resend-confirmation", tags=["Authentication"])
async def resend_confirmation(request: Request, database: SupabaseClient = Depends(get_db)):
    try:
        data, message = parse_body(EmailRequest, await read_json(request), "Nieprawidłowy adres e-mail")
        if data is None:
            return auth_error(message)

        client = database.auth_client()
        try:
            client.auth.resend({"type": "signup", "email": data.email})
        except AuthError as e:
            if e.message == "Email rate limit exceeded":
                return auth_error("Zbyt wiele prób. Spróbuj ponownie za chwilę.")
            return auth_error(e.message or "Nie udało się wysłać emaila. Spróbuj ponownie.")

        return {"message": "Link aktywacyjny został ponownie wysłany na Twój adres e-mail."}

    except Exception as e:
        logger.error(f"Resend confirmation error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)


@auth_router.post("/signout", tags=["Authentication"])
async def signout(
    token: Optional[str] = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
    database: SupabaseClient = Depends(get_db),
):
    """Revoke the session and clear the session cookies"""
    try:
        if token:
            try:
                database.service_client.auth.admin.sign_out(token)
            except AuthError as e:
                logger.error(f"Sign out failed: {e.message}")
                return auth_error(
                    "Nie udało się wylogować. Spróbuj ponownie.",
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                )

        response = JSONResponse(content={"success": True})
        clear_session_cookies(response, settings)
        return response

    except Exception as e:
        logger.error(f"Signout error: {e}")
        return auth_error(GENERIC_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)
