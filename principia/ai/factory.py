from functools import lru_cache

from principia.ai.content_service import ContentService
from principia.ai.gemini import GeminiContentService
from principia.config import Settings


@lru_cache(maxsize=1)
def _get_content_service(settings: Settings) -> ContentService:
  """Return the shared content backend; raises ``ValueError`` when no API key is configured."""

  return GeminiContentService(settings)
