from __future__ import annotations

import logging

import httpx

from agent.errors import UpstreamUnavailable
from agent.types import ChatCompletion
from app.core.config import get_settings


logger = logging.getLogger("lazya-backend.chat_llm")

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert assistant agent. Always provide clear, precise responses. "
    "When asked for JSON, return ONLY valid JSON with no markdown formatting or extra text."
)
_EXPECTED_FINISH_REASONS = {"stop", "length"}


def _status_message(status_code: int) -> str:
    if status_code == 401:
        return "Invalid LLM API key"
    if status_code == 429:
        return "LLM rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "LLM service is temporarily unavailable"
    return f"LLM API failed: http_{status_code}"


class ChatLLMClient:
    """OpenAI-compatible chat-completion endpoint, one prompt in, one text out."""

    def __init__(self, api_key: str | None, base_url: str, model: str, timeout: float = 30.0):
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatCompletion:
        if not self._api_key:
            raise UpstreamUnavailable("LLM_API_KEY is not configured")
        if not user_prompt or not isinstance(user_prompt, str):
            raise ValueError("user_prompt must be a non-empty string")

        request_payload = {
            "model": self._model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions", headers=headers, json=request_payload
                )
        except httpx.HTTPError as exc:
            logger.warning("llm_transport_error error=%s", type(exc).__name__)
            raise UpstreamUnavailable(f"LLM API failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.warning("llm_http_error status=%s", response.status_code)
            raise UpstreamUnavailable(_status_message(response.status_code), status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("LLM API returned a non-JSON response") from exc

        choice = (data.get("choices") or [{}])[0] if isinstance(data, dict) else {}
        content = ((choice.get("message") or {}).get("content") or "").strip()
        finish_reason = choice.get("finish_reason")
        if not content:
            raise UpstreamUnavailable("No content in LLM response")
        if finish_reason not in _EXPECTED_FINISH_REASONS:
            logger.warning("llm_unexpected_finish_reason reason=%s", finish_reason)
        return ChatCompletion(text=content, finish_reason=finish_reason)


def get_chat_llm_client() -> ChatLLMClient:
    settings = get_settings()
    return ChatLLMClient(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
    )
