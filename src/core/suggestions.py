"""AI sub-task suggestions.

Breaks a task title into smaller actionable steps via the configured LLM.
Failures surface as exactly three kinds so the bot can give actionable
guidance: missing credential, invalid credential, anything else.
"""

from __future__ import annotations

import asyncio
import json
import logging

from src.core.llm import complete

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You help a busy professional balancing work and home life. "
    "Break the given task into a short list of smaller, actionable sub-tasks. "
    'Respond with JSON of the form {"subtasks": ["...", "..."]}.'
)

_INVALID_KEY_MARKERS = (
    "api key not valid",
    "api_key_invalid",
    "invalid api key",
    "invalid x-api-key",
    "incorrect api key",
)

# HTTP statuses the provider SDKs attach to rejected-credential errors
_AUTH_STATUSES = (401, 403)


class SuggestionError(Exception):
    """Base class for suggestion failures shown to the user."""


class MissingCredentialError(SuggestionError):
    def __init__(self) -> None:
        super().__init__("API Key is not set. Please configure it with /setkey.")


class InvalidCredentialError(SuggestionError):
    def __init__(self) -> None:
        super().__init__("The provided API Key is invalid. Please check it with /setkey.")


class SuggestionFailedError(SuggestionError):
    def __init__(self) -> None:
        super().__init__("Failed to get AI suggestions. Please try again later.")


def parse_subtasks(raw: str) -> list[str]:
    """Extract the sub-task list from the model's JSON reply.

    Raises ValueError on malformed JSON.
    """
    if not raw or not raw.strip():
        return []
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    subtasks = data.get("subtasks") or []
    return [str(s).strip() for s in subtasks if str(s).strip()]


def _is_invalid_key(exc: Exception) -> bool:
    # openai, anthropic and cohere errors carry .status_code; google api_core errors carry .code
    for attr in ("status_code", "code"):
        status = getattr(exc, attr, None)
        if isinstance(status, int) and status in _AUTH_STATUSES:
            return True
    message = str(exc).lower()
    return any(marker in message for marker in _INVALID_KEY_MARKERS)


async def suggest_subtasks(
    task_title: str,
    api_key: str,
    timeout: float | None = None,
) -> list[str]:
    """Return suggested sub-tasks for a task title.

    Raises:
        MissingCredentialError: no API key configured.
        InvalidCredentialError: the provider rejected the key.
        SuggestionFailedError: any other failure, including timeouts.
    """
    if not api_key:
        raise MissingCredentialError()

    if timeout is None:
        from src.config import settings
        timeout = settings.SUGGESTION_TIMEOUT_SECONDS

    try:
        raw = await asyncio.wait_for(
            complete(
                system=_SYSTEM_PROMPT,
                user_message=f'Break down the task "{task_title}".',
                api_key=api_key,
                max_tokens=512,
                json_output=True,
            ),
            timeout=timeout,
        )
        return parse_subtasks(raw)
    except Exception as exc:
        logger.error("Suggestion request failed for '%s': %s", task_title, exc)
        if _is_invalid_key(exc):
            raise InvalidCredentialError() from exc
        raise SuggestionFailedError() from exc
