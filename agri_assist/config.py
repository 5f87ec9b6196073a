import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ============================================================================#
# ENVIRONMENT / SERVICES
# ============================================================================#
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Models
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gpt-4o")  # image analysis (pest / soil)
SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", "gpt-4o-search-preview")  # needs web search support
TTS_MODEL = os.getenv("TTS_MODEL", "gpt-4o-mini-tts")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o")

# Speech synthesis
TTS_VOICE = os.getenv("TTS_VOICE", "coral")  # same preset voice for every spoken result
TTS_AUDIO_FORMAT = os.getenv("TTS_AUDIO_FORMAT", "mp3")

# Timeout configuration for API calls (seconds)
API_TIMEOUT = int(os.getenv("API_TIMEOUT", "60"))
API_CONNECT_TIMEOUT = int(os.getenv("API_CONNECT_TIMEOUT", "15"))

# ============================================================================#
# BEHAVIOUR
# ============================================================================#
CHAT_TEMPERATURE = 0.2
SUMMARY_AUDIO_MAX_CHARS = 1000  # only the spoken rendition is cut, never the returned text
DEFAULT_DISPLAY_NAME = "Farmer"

# Images larger than this (longest edge, px) are downscaled before upload
MAX_IMAGE_EDGE = int(os.getenv("MAX_IMAGE_EDGE", "2048"))
