import logging
import httpx
from supabase import create_client, Client

from agri_assist.config import (
    OPENAI_API_KEY,
    SUPABASE_URL,
    SUPABASE_KEY,
    API_TIMEOUT,
    API_CONNECT_TIMEOUT,
)

logger = logging.getLogger(__name__)

# Initialize OpenAI
openai_client = None
if OPENAI_API_KEY:
    from openai import AsyncOpenAI
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=API_CONNECT_TIMEOUT,
            read=API_TIMEOUT,
            write=API_TIMEOUT,
            pool=API_TIMEOUT
        )
    )
    openai_client = AsyncOpenAI(api_key=OPENAI_API_KEY, http_client=http_client)
    logger.info(f"OpenAI initialized with {API_TIMEOUT}s timeout")

# Initialize Supabase (auth)
supabase_client: Client = None
if SUPABASE_URL and SUPABASE_KEY:
    try:
        supabase_client = create_client(SUPABASE_URL, SUPABASE_KEY)
        logger.info("Supabase initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize Supabase: {e}")
