"""
LLM Client
==========
Asynchronous chat-completion client for an OpenAI-compatible endpoint.

Contract:
    - One call per analysis; there is NO retry policy. A failed call is a
      terminal failure for that event and surfaces as LLMError.
    - Returns the raw assistant text. Parsing (fenced blocks, confidence)
      belongs to the patch extractor, not to the transport.
    - The model may answer with zero, one or many fenced blocks mixed with prose.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from healer.core.config import (
    OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL,
    LLM_TIMEOUT, LLM_MAX_TOKENS, LLM_TEMPERATURE,
)

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The model call failed (transport, HTTP status or empty answer)."""


# ---------------------------------------------------------------------------
# Provider Configuration
# ---------------------------------------------------------------------------
@dataclass
class ProviderConfig:
    """Configuration for the chat-completion provider."""
    name: str
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float = 60.0
    max_tokens: int = 2000
    temperature: float = 0.1


DEFAULT_PROVIDER = ProviderConfig(
    name="openai",
    api_key=OPENAI_API_KEY or "",
    base_url=OPENAI_BASE_URL,
    model=OPENAI_MODEL,
    timeout_seconds=LLM_TIMEOUT,
    max_tokens=LLM_MAX_TOKENS,
    temperature=LLM_TEMPERATURE,
)


# ---------------------------------------------------------------------------
# LLM Client
# ---------------------------------------------------------------------------
class LLMClient:
    """
    Async HTTP client for an OpenAI-compatible chat-completion API.

    Usage:
        client = LLMClient()
        text = await client.complete("Fix this code...", "You are...")
        await client.close()
    """

    def __init__(self, provider: Optional[ProviderConfig] = None) -> None:
        self.provider = provider or DEFAULT_PROVIDER
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self.provider.timeout_seconds))
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def complete(self, user_prompt: str, system_prompt: str) -> str:
        """
        Send one chat-completion request and return the assistant text.

        Raises
        ------
        LLMError
            On timeout, HTTP error status, transport failure or empty answer.
        """
        provider = self.provider
        http = await self._get_http()
        url = f"{provider.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": provider.temperature,
            "max_tokens": provider.max_tokens,
        }

        try:
            resp = await http.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            logger.warning("Provider %s: timeout", provider.name)
            raise LLMError(f"{provider.name} timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("Provider %s: HTTP %d", provider.name, status)
            raise LLMError(f"{provider.name} returned HTTP {status}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Provider %s: %s", provider.name, e)
            raise LLMError(f"{provider.name} request failed: {e}") from e

        text = ""
        try:
            choices = data.get("choices", [])
            if choices:
                text = choices[0].get("message", {}).get("content") or ""
        except (AttributeError, IndexError, KeyError, TypeError):
            text = ""

        if not text.strip():
            raise LLMError(f"{provider.name} returned an empty response")
        logger.debug("Provider %s returned %d chars", provider.name, len(text))
        return text
