"""
Completion client: one system turn plus one user turn against an
OpenAI-compatible chat-completions endpoint (Groq by default).
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from wa_relay.errors import CompletionError, ConfigError
from wa_relay.transport.http import DEFAULT_TIMEOUT, HttpClient

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama3-8b-8192"
DEFAULT_SYSTEM_PROMPT = (
    "Kamu adalah ZYD-AI, asisten yang pintar, ramah, dan senang membantu orang lain. "
    "Jawab dengan jelas dan sopan, dan biasakan menggunakan bahasa Indonesia."
)


class SamplingParams(BaseModel):
    temperature: float = 0.5
    max_tokens: int = 1024
    top_p: float = 1.0


class CompletionResult:
    __slots__ = ("ok", "text", "error")

    def __init__(self, ok: bool, text: Optional[str] = None, error: Optional[str] = None):
        self.ok = ok
        self.text = text
        self.error = error

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(True, text=text)

    @classmethod
    def failure(cls, error: str) -> "CompletionResult":
        return cls(False, error=error)

    def __repr__(self) -> str:
        return f"CompletionResult(ok={self.ok!r}, error={self.error!r})"


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        sampling: Optional[SamplingParams] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._system_prompt = system_prompt
        self._sampling = sampling or SamplingParams()
        self._http = HttpClient(base_url, token=api_key, timeout=timeout, transport=transport)

    @property
    def model(self) -> str:
        return self._model

    def build_request(self, text: str) -> dict[str, Any]:
        return {
            "messages": [
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": text},
            ],
            "model": self._model,
            **self._sampling.model_dump(),
            "stream": False,
            "stop": None,
        }

    async def complete(self, text: str) -> CompletionResult:
        """Generate a reply for ``text``.

        Service failures come back as a failed result. A missing API key
        raises ``ConfigError`` since no later call can succeed either.
        """
        if not self._api_key:
            raise ConfigError("Completion API key is not configured (set GROQ_API_KEY)")
        try:
            data = await self._http.post("/chat/completions", self.build_request(text))
        except CompletionError as e:
            log.warning("Completion request failed: %s", e)
            return CompletionResult.failure(str(e))
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            log.warning("Malformed completion response: %.200r", data)
            return CompletionResult.failure("malformed completion response")
        if not content:
            return CompletionResult.failure("empty completion")
        return CompletionResult.success(content)

    async def close(self) -> None:
        await self._http.close()
