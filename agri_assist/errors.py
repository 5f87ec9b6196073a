"""
Auth error taxonomy

Supabase reports failures with its own error codes. Each auth operation owns a
lookup table that maps those codes to a small set of local kinds; the kind's
value is the localization key the UI shows. A code can mean different things
per operation ("user_not_found" on login vs. on password reset), so tables are
never shared.
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx
from supabase_auth.errors import AuthRetryableError


class AuthErrorKind(str, Enum):
    """Local auth error kinds (values are i18n message keys)"""
    EMAIL_IN_USE = "auth.error.emailInUse"
    INVALID_EMAIL = "auth.error.invalidEmail"
    WEAK_PASSWORD = "auth.error.weakPassword"
    OPERATION_NOT_ALLOWED = "auth.error.operationNotAllowed"
    NETWORK_FAILED = "auth.error.networkFailed"
    INVALID_CREDENTIAL = "auth.error.invalidCredential"
    USER_NOT_FOUND = "auth.error.userNotFound"
    DEFAULT = "auth.error.default"


class AuthOperation(str, Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    RESET = "reset"
    PHONE = "phone"
    PHONE_CONFIRM = "phoneConfirm"
    LOGOUT = "logout"
    SESSION = "session"


# Assigned locally to transport failures, which carry no provider code
NETWORK_REQUEST_FAILED = "network_request_failed"
CLIENT_NOT_CONFIGURED = "client_not_configured"

SIGNUP_ERRORS = {
    "email_exists": AuthErrorKind.EMAIL_IN_USE,
    "user_already_exists": AuthErrorKind.EMAIL_IN_USE,
    "email_address_invalid": AuthErrorKind.INVALID_EMAIL,
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "signup_disabled": AuthErrorKind.OPERATION_NOT_ALLOWED,
    "email_provider_disabled": AuthErrorKind.OPERATION_NOT_ALLOWED,
    NETWORK_REQUEST_FAILED: AuthErrorKind.NETWORK_FAILED,
}

# Supabase deliberately doesn't tell these apart; neither do we
LOGIN_ERRORS = {
    "user_not_found": AuthErrorKind.INVALID_CREDENTIAL,
    "wrong_password": AuthErrorKind.INVALID_CREDENTIAL,
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIAL,
    "email_provider_disabled": AuthErrorKind.OPERATION_NOT_ALLOWED,
    NETWORK_REQUEST_FAILED: AuthErrorKind.NETWORK_FAILED,
}

RESET_ERRORS = {
    "user_not_found": AuthErrorKind.USER_NOT_FOUND,
}

PHONE_ERRORS = {
    "phone_provider_disabled": AuthErrorKind.OPERATION_NOT_ALLOWED,
    NETWORK_REQUEST_FAILED: AuthErrorKind.NETWORK_FAILED,
}

PHONE_CONFIRM_ERRORS = {
    "otp_expired": AuthErrorKind.INVALID_CREDENTIAL,
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIAL,
    NETWORK_REQUEST_FAILED: AuthErrorKind.NETWORK_FAILED,
}

LOGOUT_ERRORS = {
    NETWORK_REQUEST_FAILED: AuthErrorKind.NETWORK_FAILED,
}

ERROR_TABLES = {
    AuthOperation.SIGNUP: SIGNUP_ERRORS,
    AuthOperation.LOGIN: LOGIN_ERRORS,
    AuthOperation.RESET: RESET_ERRORS,
    AuthOperation.PHONE: PHONE_ERRORS,
    AuthOperation.PHONE_CONFIRM: PHONE_CONFIRM_ERRORS,
    AuthOperation.LOGOUT: LOGOUT_ERRORS,
    AuthOperation.SESSION: {},
}


class AuthError(Exception):
    """Raised by the auth service with a local kind the caller can translate"""

    def __init__(self, kind: AuthErrorKind, operation: AuthOperation, code: Optional[str] = None):
        self.kind = kind
        self.operation = operation
        self.code = code
        super().__init__(self.message_key if kind != AuthErrorKind.DEFAULT else f"{self.message_key} ({code})")

    @property
    def message_key(self) -> str:
        if self.kind == AuthErrorKind.DEFAULT:
            # e.g. auth.error.defaultLogin
            op = self.operation.value
            return f"{self.kind.value}{op[0].upper()}{op[1:]}"
        return self.kind.value

    @property
    def params(self) -> Dict[str, Any]:
        """Interpolation values for the message (only the default kind has any)"""
        if self.kind == AuthErrorKind.DEFAULT:
            return {"code": self.code}
        return {}


def provider_error_code(error: Exception) -> str:
    """Extract the provider code from a Supabase/transport error"""
    if isinstance(error, (AuthRetryableError, httpx.TransportError)):
        return NETWORK_REQUEST_FAILED
    code = getattr(error, "code", None)
    if code:
        return str(code)
    return str(error) or error.__class__.__name__


def map_auth_error(operation: AuthOperation, error: Exception) -> AuthError:
    """Translate a provider error into an AuthError using the operation's table"""
    code = provider_error_code(error)
    kind = ERROR_TABLES[operation].get(code, AuthErrorKind.DEFAULT)
    return AuthError(kind, operation, code)


class AIServiceNotConfiguredError(RuntimeError):
    """Raised when a chat session is requested without an OpenAI API key"""
