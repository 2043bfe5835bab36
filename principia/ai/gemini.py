"""Gemini-backed content service using the google-genai SDK."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any

from google import genai

from principia.ai.content_service import ContentService, ContentShapeError, QuizContent, QuizPrinciple, TopicContent, ValidationReport, parse_quiz_content, parse_topic_content, parse_validation_report
from principia.ai.prompts import QUIZ_RESPONSE_SCHEMA, TOPIC_RESPONSE_SCHEMA, VALIDATION_RESPONSE_SCHEMA, render_generate_prompt, render_quiz_prompt, render_validate_prompt
from principia.config import Settings

logger = logging.getLogger(__name__)


def _strip_json_fences(text: str) -> str:
  cleaned = text.strip()
  if cleaned.startswith("```"):
    cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
    if cleaned.rstrip().endswith("```"):
      cleaned = cleaned.rstrip()[:-3]
  return cleaned.strip()


class GeminiContentService(ContentService):
  """Generate topic content, fact-checks and quizzes with Gemini JSON mode."""

  def __init__(self, settings: Settings, *, client: Any | None = None) -> None:
    if client is None:
      if not settings.gemini_api_key:
        raise ValueError("GEMINI_API_KEY environment variable is required")
      client = genai.Client(api_key=settings.gemini_api_key)
    self._client = client
    self._model = settings.gemini_model

  async def generate(self, title: str) -> TopicContent:
    payload = await self._generate_json(render_generate_prompt(title), TOPIC_RESPONSE_SCHEMA)
    return parse_topic_content(payload)

  async def validate(self, title: str, content: TopicContent) -> ValidationReport:
    payload = await self._generate_json(render_validate_prompt(title, content), VALIDATION_RESPONSE_SCHEMA)
    return parse_validation_report(payload)

  async def generate_quiz(self, title: str, principles: list[QuizPrinciple]) -> QuizContent:
    payload = await self._generate_json(render_quiz_prompt(title, principles), QUIZ_RESPONSE_SCHEMA)
    return parse_quiz_content(payload)

  async def _generate_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
    # Use the async client to avoid blocking the asyncio event loop.
    response = await _with_backoff(self._client.aio.models.generate_content, model=self._model, contents=prompt, config={"response_mime_type": "application/json", "response_schema": schema})
    logger.debug("Gemini structured response (raw):\n%s", response.text)

    try:
      parsed = json.loads(_strip_json_fences(response.text or ""))
    except json.JSONDecodeError as exc:
      raise ContentShapeError(f"Gemini returned invalid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
      raise ContentShapeError("Gemini returned a JSON value that is not an object.")
    return parsed


async def _with_backoff(func, *args, **kwargs):
  # Absorb short rate-limit bursts here; everything else is left to the job-level retry.
  retries = 3
  base_delay = 1
  for i in range(retries):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      if "429" in str(e) or "Too Many Requests" in str(e):
        if i == retries - 1:
          raise
        delay = base_delay * (2**i) + random.uniform(0, 1)
        logger.warning("Gemini rate limited, retrying in %.1fs.", delay)
        await asyncio.sleep(delay)
      else:
        raise
