"""
Auth Service
Account lifecycle against Supabase Auth: signup, login, logout, password
reset, phone sign-in and auth state subscription.

Supabase error codes never leave this module; callers get an AuthError whose
kind maps to a localized message.
"""

import logging
from typing import Callable, Optional

from agri_assist.config import DEFAULT_DISPLAY_NAME
from agri_assist.errors import (
    AuthError,
    AuthErrorKind,
    AuthOperation,
    CLIENT_NOT_CONFIGURED,
    map_auth_error,
)
from agri_assist.models import AuthenticatedUser
from agri_assist.services import services

logger = logging.getLogger(__name__)


def _auth_client(operation: AuthOperation):
    if not services.supabase_client:
        logger.error("Supabase client not available")
        raise AuthError(AuthErrorKind.DEFAULT, operation, CLIENT_NOT_CONFIGURED)
    return services.supabase_client.auth


def to_authenticated_user(user, use_phone_fallback: bool = False) -> AuthenticatedUser:
    """Build an AuthenticatedUser from a Supabase user record"""
    metadata = getattr(user, "user_metadata", None) or {}
    email = getattr(user, "email", None)
    if not email and use_phone_fallback:
        email = getattr(user, "phone", None)
    return AuthenticatedUser(
        display_name=metadata.get("display_name") or DEFAULT_DISPLAY_NAME,
        email=email or "",
    )


class CaptchaVerifier:
    """
    Opaque human-challenge verifier for phone sign-in.

    The host app solves the challenge (hCaptcha / Turnstile) and hands the
    token in; this layer only forwards it to Supabase.
    """

    def __init__(self, token: str):
        self._token = token

    def verify(self) -> str:
        return self._token


class PhoneConfirmation:
    """In-progress phone sign-in, completed with the SMS code"""

    def __init__(self, phone_number: str):
        self.phone_number = phone_number

    async def confirm(self, code: str) -> AuthenticatedUser:
        auth = _auth_client(AuthOperation.PHONE_CONFIRM)
        try:
            response = auth.verify_otp({
                "phone": self.phone_number,
                "token": code,
                "type": "sms",
            })
        except Exception as e:
            logger.error(f"Supabase phone confirm error: {e}")
            raise map_auth_error(AuthOperation.PHONE_CONFIRM, e) from e

        logger.info("✓ Phone sign-in confirmed")
        return to_authenticated_user(response.user, use_phone_fallback=True)


class AuthStateSubscription:
    """Handle returned by on_auth_state_changed"""

    def __init__(self):
        self.active = True
        self._provider_subscription = None

    def unsubscribe(self):
        self.active = False
        if self._provider_subscription is not None:
            self._provider_subscription.unsubscribe()
            self._provider_subscription = None


async def signup(display_name: str, email: str, password: str) -> AuthenticatedUser:
    """
    Create an account, then set its display name.

    With email confirmation enabled Supabase returns no session, so the name
    travels in the signup metadata and the profile update only runs once a
    session exists.
    """
    auth = _auth_client(AuthOperation.SIGNUP)
    try:
        response = auth.sign_up({
            "email": email,
            "password": password,
            "options": {"data": {"display_name": display_name}},
        })
        if getattr(response, "session", None):
            auth.update_user({"data": {"display_name": display_name}})
        else:
            logger.info("Signup pending email confirmation")
    except Exception as e:
        logger.error(f"Supabase signup error: {e}")
        raise map_auth_error(AuthOperation.SIGNUP, e) from e

    logger.info(f"✓ Signed up {display_name}")
    return AuthenticatedUser(display_name=display_name, email=email)


async def login(email: str, password: str) -> AuthenticatedUser:
    auth = _auth_client(AuthOperation.LOGIN)
    try:
        response = auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.error(f"Supabase login error: {e}")
        raise map_auth_error(AuthOperation.LOGIN, e) from e

    return to_authenticated_user(response.user)


async def logout() -> None:
    auth = _auth_client(AuthOperation.LOGOUT)
    try:
        auth.sign_out()
    except Exception as e:
        logger.error(f"Supabase logout error: {e}")
        raise map_auth_error(AuthOperation.LOGOUT, e) from e


async def reset_password(email: str) -> None:
    """Send a password reset email"""
    auth = _auth_client(AuthOperation.RESET)
    try:
        auth.reset_password_for_email(email)
    except Exception as e:
        logger.error(f"Supabase reset password error: {e}")
        raise map_auth_error(AuthOperation.RESET, e) from e


async def sign_in_with_phone_number(phone_number: str, verifier: CaptchaVerifier) -> PhoneConfirmation:
    """Send an SMS code to the phone number; confirm it on the returned handle"""
    auth = _auth_client(AuthOperation.PHONE)
    try:
        auth.sign_in_with_otp({
            "phone": phone_number,
            "options": {"captcha_token": verifier.verify()},
        })
    except Exception as e:
        logger.error(f"Supabase phone sign-in error: {e}")
        raise map_auth_error(AuthOperation.PHONE, e) from e

    return PhoneConfirmation(phone_number)


def on_auth_state_changed(callback: Callable[[Optional[AuthenticatedUser]], None]) -> AuthStateSubscription:
    """
    Subscribe to sign-in / sign-out transitions.

    The callback receives an AuthenticatedUser, or None once signed out.
    """
    subscription = AuthStateSubscription()

    def _listener(event, session):
        if not subscription.active:
            return
        user = getattr(session, "user", None) if session else None
        if user:
            callback(to_authenticated_user(user, use_phone_fallback=True))
        else:
            callback(None)

    auth = _auth_client(AuthOperation.SESSION)
    subscription._provider_subscription = auth.on_auth_state_change(_listener)
    return subscription
