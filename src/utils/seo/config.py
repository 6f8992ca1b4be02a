import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.auth.factory import create_auth_client

logger = logging.getLogger(__name__)

load_dotenv()

SERVICE_NAME = "seo"
CAPSOLVER_SERVICE_NAME = "capsolver"

CAPSOLVER_API_URL = "https://api.capsolver.com"
TURNSTILE_TASK_TYPE = "AntiTurnstileTaskProxyLess"
AHREFS_SITE_KEY = "0x4AAAAAAAAzi9ITzSN9xKMi"  # Turnstile site key for ahrefs.com
POLL_INTERVAL_SECONDS = 1
MAX_POLL_ATTEMPTS = 30

AHREFS_BASE_URL = "https://ahrefs.com"
AHREFS_API_URL = f"{AHREFS_BASE_URL}/v4"
REQUEST_TIMEOUT_SECONDS = 30.0

# Project root directory (the one holding src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def get_cache_file() -> Path:
    """Location of the signature cache file"""
    override = os.environ.get("SEO_MCP_CACHE_FILE")
    if override:
        return Path(override)
    return PROJECT_ROOT / ".cache" / "signature_cache.json"


def get_capsolver_api_key(
    user_id: str = "local", api_key: Optional[str] = None
) -> Optional[str]:
    """
    Resolve the CapSolver API key

    Args:
        user_id: User whose locally saved credentials are consulted
        api_key: Key supplied with the server session, wins over everything else

    Returns:
        The API key, or None when it is not configured anywhere
    """
    if api_key:
        return api_key

    env_key = os.environ.get("CAPSOLVER_API_KEY")
    if env_key:
        return env_key

    try:
        auth_client = create_auth_client()
        credentials_data = auth_client.get_user_credentials(
            CAPSOLVER_SERVICE_NAME, user_id
        )
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read saved CapSolver credentials: {e}")
        return None

    if not credentials_data:
        return None

    if isinstance(credentials_data, str):
        return credentials_data
    return credentials_data.get("api_key") or None


def authenticate_and_save_capsolver_key(user_id: str) -> str:
    """Prompt for a CapSolver API key and save it for the user"""
    logger.info(f"Starting CapSolver authentication for user {user_id}...")

    auth_client = create_auth_client()
    api_key = input("Please enter your CapSolver API key: ").strip()

    if not api_key:
        raise ValueError("API key cannot be empty")

    auth_client.save_user_credentials(
        CAPSOLVER_SERVICE_NAME, user_id, {"api_key": api_key}
    )
    logger.info(
        f"CapSolver API key saved for user {user_id}. You can now run the server."
    )
    return api_key
