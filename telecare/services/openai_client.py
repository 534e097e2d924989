"""Chat-completions client used by the symptom analysis engine."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from telecare.utils.config import Settings, settings as default_settings
from telecare.utils.exceptions import BackendUnavailable

logger = logging.getLogger("telecare")


class AnalysisBackend(Protocol):
    async def complete(self, system: str, prompt: str) -> str:
        ...


class OpenAIChatBackend:
    """Minimal async client for an OpenAI-compatible /chat/completions endpoint.

    Requests a JSON object response. Errors propagate as httpx exceptions or
    BackendUnavailable; the engine decides what to do with them.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.2,
        max_tokens: int = 800,
        timeout_s: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self._transport = transport

    def _payload(self, system: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

    async def complete(self, system: str, prompt: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            r = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self._payload(system, prompt),
            )
            r.raise_for_status()
            data = r.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise BackendUnavailable("Backend response had no message content") from exc
        if not isinstance(content, str) or not content.strip():
            raise BackendUnavailable("Backend returned an empty message")
        return content


def build_backend(config: Optional[Settings] = None) -> Optional[OpenAIChatBackend]:
    """Return a configured backend, or None when no API key is set (demo mode)."""
    cfg = config or default_settings
    api_key = cfg.openai_api_key
    if not api_key:
        logger.debug({"function": "build_backend", "mode": "demo", "reason": "OPENAI_API_KEY not set"})
        return None
    return OpenAIChatBackend(
        api_key=api_key,
        model=cfg.openai_model,
        base_url=cfg.openai_base_url,
        temperature=cfg.ai_temperature,
        max_tokens=cfg.ai_max_tokens,
        timeout_s=cfg.ai_timeout_seconds,
    )
