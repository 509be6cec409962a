"""
Gemini model manager - cached model instance shared by every feature.

Supports two backends:
  1. Vertex AI SDK (deployed) - uses GOOGLE_CLOUD_PROJECT + service account
  2. google-generativeai (local dev) - uses GOOGLE_API_KEY
"""

from __future__ import annotations

import os
from functools import lru_cache

from sophera.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL
from sophera.observability.logging import get_logger

logger = get_logger(__name__)

# Which backend initialized, so get_gemini_model_with_options can reuse it
_backend: str | None = None  # "vertexai" or "genai"


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def get_gemini_model():
    """
    Get or create the shared Gemini model instance (no system instruction).

    Tries Vertex AI when GOOGLE_CLOUD_PROJECT is set, then google-generativeai
    with GOOGLE_API_KEY.

    Raises:
        GeminiInitializationError: If no backend can be initialized
    """
    global _backend
    # Read env fresh: settings may have been imported before load_dotenv()
    project = os.getenv("GOOGLE_CLOUD_PROJECT")
    location = os.getenv("GEMINI_LOCATION") or GEMINI_LOCATION

    if project:
        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel

            vertexai.init(project=project, location=location)
            model = GenerativeModel(GEMINI_MODEL)
            _backend = "vertexai"

            logger.info(
                "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
                project,
                location,
                GEMINI_MODEL,
            )
            return model

        except ImportError:
            logger.info("Vertex AI SDK not installed, trying google-generativeai fallback")

    try:
        import google.generativeai as genai

        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise GeminiInitializationError(
                "Neither GOOGLE_CLOUD_PROJECT (Vertex AI) nor GOOGLE_API_KEY is configured."
            )

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(GEMINI_MODEL)
        _backend = "genai"

        logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
        return model

    except ImportError as e:
        raise GeminiInitializationError(
            "No Gemini SDK available. Install google-cloud-aiplatform or google-generativeai."
        ) from e
    except GeminiInitializationError:
        raise
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e


def get_gemini_model_with_options(system_instruction: str | None = None) -> object:
    """Gemini model carrying a system instruction.

    System instructions are per model instance in the Gemini API, so a fresh
    GenerativeModel is built when one is given. Without one the cached
    singleton is returned.
    """
    if system_instruction is None:
        return get_gemini_model()

    # Make sure _backend is set
    get_gemini_model()

    if _backend == "vertexai":
        from vertexai.generative_models import GenerativeModel

        return GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)

    import google.generativeai as genai

    return genai.GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)

