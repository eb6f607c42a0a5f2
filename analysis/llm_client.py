from __future__ import annotations

import logging
from typing import Any

import httpx

from common.config import LLMSettings
from common.errors import ConfigurationError, UnparsableAnalysis, classify_upstream_error

logger = logging.getLogger(__name__)


async def chat_completion(
    messages: list[dict[str, Any]],
    settings: LLMSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Call an OpenAI-compatible /chat/completions endpoint and return the assistant message content."""
    settings = settings or LLMSettings()
    if not settings.api_key:
        raise ConfigurationError("LLM_API_KEY not configured")

    payload = {
        "model": settings.model_name,
        "messages": messages,
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
    headers = {"Authorization": f"Bearer {settings.api_key}"}

    if client is None:
        async with httpx.AsyncClient(timeout=settings.timeout_s) as owned:
            resp = await owned.post(settings.api_url, json=payload, headers=headers)
    else:
        resp = await client.post(settings.api_url, json=payload, headers=headers)

    if resp.status_code != 200:
        logger.error("AI analysis error: %d %s", resp.status_code, resp.text[:500])
        raise classify_upstream_error("analysis", resp.status_code, resp.text)

    try:
        data = resp.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        raise UnparsableAnalysis(resp.text[:200])

    finish_reason = data["choices"][0].get("finish_reason")
    if finish_reason == "length":
        logger.warning("Analysis output hit the token limit (%d); repair may be needed", settings.max_tokens)
    logger.info("Received AI response (%d chars)", len(content or ""))
    return content or ""
