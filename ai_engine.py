import os
import logging
import typing_extensions as typing # For TypedDict compatibility
from dotenv import load_dotenv
from google import genai

from utils.errors import ConfigurationError

# Load Environment
load_dotenv()

logger = logging.getLogger(__name__)

# Overridable per deployment
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "imagen-4.0-generate-001")
TEXT_MODEL = os.getenv("TEXT_MODEL", "gemini-2.5-flash")

# --- Schema Definitions ---
# Using TypedDict for Gemini response_schema

class ImageMetadata(typing.TypedDict):
    alt: str          # Accessibility text
    title: str        # Short, SEO-friendly title
    caption: str      # One sentence shown under the image
    description: str  # 2-3 sentences of context


def get_api_key() -> str:
    """
    Reads GOOGLE_API_KEY from the environment (.env is loaded on import).
    Raises ConfigurationError if it is missing or blank.
    """
    api_key = os.getenv("GOOGLE_API_KEY", "").strip()
    if not api_key:
        logger.critical("GOOGLE_API_KEY environment variable is missing.")
        raise ConfigurationError("GOOGLE_API_KEY environment variable is missing. Please check Secrets/Env Vars.")
    return api_key


def build_client(api_key: str | None = None) -> genai.Client:
    """Creates the GenAI client. Called once at startup by the app and the CLI."""
    return genai.Client(api_key=api_key or get_api_key())
