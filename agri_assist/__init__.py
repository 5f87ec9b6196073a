"""
Agri Assist client layer

AI façade (pest / soil image analysis, daily summary, agronomist chat) and
auth façade (Supabase account lifecycle) for the plant-health assistant app.
"""
import logging

from .models import (
    PestAnalysisResult,
    SoilAnalysisResult,
    DailySummaryResult,
    SummarySource,
    PestAnalysisResponse,
    SoilAnalysisResponse,
    DailySummaryResponse,
    AuthenticatedUser,
)
from .errors import AuthError, AuthErrorKind, AuthOperation, AIServiceNotConfiguredError
from .services.ai_service import (
    analyze_pest,
    analyze_soil_by_image,
    get_daily_summary,
    create_agronomist_chat,
)
from .services.chat import AgronomistChat
from .services.auth_service import (
    signup,
    login,
    logout,
    reset_password,
    sign_in_with_phone_number,
    on_auth_state_changed,
    CaptchaVerifier,
    PhoneConfirmation,
    AuthStateSubscription,
)
from .utils.images import encode_image_file


def configure_logging(level=logging.INFO):
    """Logging setup for host applications"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


__all__ = [
    'PestAnalysisResult',
    'SoilAnalysisResult',
    'DailySummaryResult',
    'SummarySource',
    'PestAnalysisResponse',
    'SoilAnalysisResponse',
    'DailySummaryResponse',
    'AuthenticatedUser',
    'AuthError',
    'AuthErrorKind',
    'AuthOperation',
    'AIServiceNotConfiguredError',
    'analyze_pest',
    'analyze_soil_by_image',
    'get_daily_summary',
    'create_agronomist_chat',
    'AgronomistChat',
    'signup',
    'login',
    'logout',
    'reset_password',
    'sign_in_with_phone_number',
    'on_auth_state_changed',
    'CaptchaVerifier',
    'PhoneConfirmation',
    'AuthStateSubscription',
    'encode_image_file',
    'configure_logging',
]
