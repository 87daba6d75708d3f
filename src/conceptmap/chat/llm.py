from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class LLMError(RuntimeError):
    pass


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


class OllamaChatClient:
    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        timeout_s: float = 120.0,
        options: dict[str, Any] | None = None,
        response_format: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = float(timeout_s)
        self.options = dict(options or {})
        # "json" asks Ollama to constrain the reply to a JSON document.
        self.response_format = response_format
        self._transport = transport

    def chat(self, messages: list[ChatMessage]) -> str:
        url = f"{self.base_url}/api/chat"
        payload: dict[str, Any] = {
            "model": self.model,
            "stream": False,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if self.options:
            payload["options"] = self.options
        if self.response_format:
            payload["format"] = self.response_format

        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                r = client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise LLMError(f"Ollama at {self.base_url} did not answer within {self.timeout_s:g}s") from e
        except httpx.HTTPError as e:
            raise LLMError(
                f"Failed to connect to Ollama at {self.base_url}. Is it running? ({e})"
            ) from e

        if r.status_code != 200:
            raise LLMError(f"Ollama error {r.status_code}: {r.text}")

        data = r.json()
        msg = data.get("message") or {}
        content = msg.get("content")
        if not isinstance(content, str):
            raise LLMError(f"Unexpected Ollama response: {data}")
        return content

    def list_models(self) -> list[str]:
        try:
            with httpx.Client(timeout=5.0, transport=self._transport) as client:
                r = client.get(f"{self.base_url}/api/tags")
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise LLMError(f"Ollama not reachable at {self.base_url}: {e}") from e
        data = r.json()
        return [m.get("name") for m in (data.get("models") or []) if isinstance(m, dict)]
