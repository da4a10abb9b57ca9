"""Anthropic Messages API breakdown provider."""

import json
import logging

import httpx
from pydantic import ValidationError

from scrum_master.errors import ParseError, ProviderError
from scrum_master.models import Breakdown
from scrum_master.providers.base import BreakdownProvider
from scrum_master.settings import ScrumSettings

logger = logging.getLogger(__name__)

ENDPOINT = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"

_RESPONSE_SHAPE = """\
{{
  "project_name": "{project_name_hint}",
  "overview": "{overview_hint}",
  "epics": [
    {{
      "title": "{epic_title_hint}",
      "description": "Detailed epic description",
      "priority": "High|Medium|Low",
      "stories": [
        {{
          "title": "User story title",
          "description": "As a [user type], I want [goal] so that [benefit]",
          "priority": "High|Medium|Low",
          "story_points": 1-8,
          "acceptance_criteria": ["criteria1", "criteria2"],
          "dependencies": ["optional dependency references"]
        }}
      ]
    }}
  ]
}}"""

_SINGLE_PROMPT = """\
You are a senior project manager and technical lead. Analyze the following project description \
and break it down into actionable epics and user stories for a development team.

Project Description:
{content}

Please respond with a JSON object that follows this exact structure:
{shape}

Guidelines:
- Create 3-7 epics that represent major functional areas
- Each epic should have 3-8 user stories
- Story points should follow Fibonacci sequence (1,2,3,5,8)
- Write clear acceptance criteria for each story
- Identify dependencies between stories where relevant
- Prioritize based on business value and technical dependencies
- Use proper user story format: "As a [persona], I want [goal] so that [benefit]"

Respond ONLY with valid JSON. Do not include any markdown formatting or explanations."""

_CHUNK_PROMPT = """\
You are analyzing chunk {chunk_index} of {total_chunks} from a larger project description. \
Focus on the content in this chunk while being aware it's part of a larger project.

Content to analyze:
{content}

Please respond with a JSON object focusing on epics and stories that can be derived from THIS SPECIFIC CONTENT:
{shape}

Guidelines for chunk processing:
- Focus only on what's clearly described in this chunk
- Create 1-4 epics based on the chunk content
- Each epic should have 2-6 user stories
- Use story points (1,2,3,5,8) appropriate for individual stories
- Be specific about acceptance criteria based on chunk content
- If the chunk seems incomplete, create stories for what IS described

Respond ONLY with valid JSON. Do not include any markdown formatting or explanations."""


def build_prompt(content: str, chunk_index: int, total_chunks: int) -> str:
    if total_chunks == 1:
        shape = _RESPONSE_SHAPE.format(
            project_name_hint="string",
            overview_hint="brief project overview",
            epic_title_hint="Epic title",
        )
        return _SINGLE_PROMPT.format(content=content, shape=shape)
    shape = _RESPONSE_SHAPE.format(
        project_name_hint="string (extract from content or use generic name)",
        overview_hint="brief overview based on this chunk",
        epic_title_hint="Epic title (specific to this chunk's content)",
    )
    return _CHUNK_PROMPT.format(chunk_index=chunk_index, total_chunks=total_chunks, content=content, shape=shape)


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence, if present."""
    cleaned = text.strip()
    for prefix in ("```json", "```JSON", "```"):
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :]
            break
    cleaned = cleaned.removesuffix("```")
    return cleaned.strip()


def parse_breakdown(text: str) -> Breakdown:
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"failed to parse AI response as JSON: {exc}\nResponse: {cleaned[:500]}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    try:
        return Breakdown.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"AI response does not match the breakdown shape: {exc}") from exc


class AnthropicProvider(BreakdownProvider):
    def __init__(self, settings: ScrumSettings) -> None:
        if not settings.anthropic_api_key:
            raise RuntimeError("anthropic_api_key is required")
        self._api_key = settings.anthropic_api_key.get_secret_value()
        self._model = settings.anthropic_model
        self._max_tokens = settings.anthropic_max_tokens
        self._timeout = settings.anthropic_timeout_seconds

    def _complete(self, prompt: str) -> str:
        try:
            response = httpx.post(
                ENDPOINT,
                json={
                    "model": self._model,
                    "max_tokens": self._max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": API_VERSION,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"API request failed: {exc}") from exc

        logger.debug("anthropic responded %s", response.status_code)
        if response.status_code != 200:
            raise ProviderError(f"API request failed with status {response.status_code}: {response.text}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(f"failed to decode API response: {exc}") from exc
        blocks = (payload.get("content") or []) if isinstance(payload, dict) else []
        text = "".join(block.get("text", "") for block in blocks if block.get("type", "text") == "text")
        if not text.strip():
            raise ProviderError("empty response from API")
        return text

    def breakdown(self, content: str, chunk_index: int, total_chunks: int) -> Breakdown:
        return parse_breakdown(self._complete(build_prompt(content, chunk_index, total_chunks)))
