"""
LLM Client Tests
================
All HTTP calls are patched — no real API calls.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from healer.llm.client import LLMClient, LLMError, ProviderConfig
from healer.llm.prompts import SYSTEM_PROMPT, build_analysis_prompt
from healer.models.error_location import ErrorLocation
from healer.services.fix_history import FixHistoryEntry

PROVIDER = ProviderConfig(name="test", api_key="sk-test", base_url="https://llm.example/v1/", model="m")


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status = MagicMock()
    return resp


def _complete(client):
    async def run():
        try:
            return await client.complete("user", "system")
        finally:
            await client.close()
    return asyncio.run(run())


class TestComplete:

    def test_returns_assistant_text(self):
        payload = {"choices": [{"message": {"content": "```js\nfix()\n```"}}]}
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(payload)
            text = _complete(LLMClient(PROVIDER))

        assert text == "```js\nfix()\n```"
        args, kwargs = mock_post.call_args
        assert args[0] == "https://llm.example/v1/chat/completions"
        assert kwargs["json"]["model"] == "m"
        assert kwargs["json"]["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    def test_empty_answer_raises(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response({"choices": []})
            with pytest.raises(LLMError):
                _complete(LLMClient(PROVIDER))

    def test_http_status_error(self):
        request = httpx.Request("POST", "https://llm.example/v1/chat/completions")
        error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, request=request))
        resp = _response({})
        resp.raise_for_status.side_effect = error
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = resp
            with pytest.raises(LLMError, match="HTTP 503"):
                _complete(LLMClient(PROVIDER))

    def test_timeout(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ReadTimeout("slow")
            with pytest.raises(LLMError, match="timed out"):
                _complete(LLMClient(PROVIDER))

    def test_no_retry(self):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ConnectError("refused")
            with pytest.raises(LLMError):
                _complete(LLMClient(PROVIDER))
        assert mock_post.await_count == 1


class TestPrompts:

    def test_prompt_structure(self):
        location = ErrorLocation(file="src/a.js", line=7, function="run", error_type="TypeError", error_message="x")
        prompt = build_analysis_prompt(location, "CTX")
        assert "Error Type: TypeError" in prompt
        assert "File: src/a.js" in prompt
        assert "Line: 7" in prompt
        assert "Function: run" in prompt
        assert "CTX" in prompt
        assert "Root Cause Analysis" in prompt
        assert "Historical Fix Reference" not in prompt

    def test_historical_reference(self):
        entry = FixHistoryEntry(code="guard(x);", explanation="added guard", confidence=0.8)
        prompt = build_analysis_prompt(ErrorLocation(file="a.js"), "", entry)
        assert "Code: guard(x);" in prompt
        assert "Line: unknown" in prompt

    def test_system_prompt_mentions_error_handling(self):
        assert "error handling" in SYSTEM_PROMPT
