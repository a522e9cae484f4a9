from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from adaptive_tutor.config.schema import ModelConfig


class CompletionClient(Protocol):
    """Boundary to the hosted chat-completion service."""

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """Return `{"choices": [{"message": {"content": str}}]}`."""
        ...


def completion_text(response: Dict[str, Any]) -> str:
    """Extract the first choice's message content, or an empty string."""
    choices = response.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return message.get("content") or ""


class OpenAICompletionClient:
    """Minimal helper for issuing chat completions against the OpenAI API."""

    def __init__(
        self,
        config: ModelConfig,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.config = config
        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key and client is None:
            raise RuntimeError("OPENAI_API_KEY must be set or an OpenAI client provided.")
        self.client = client or AsyncOpenAI(api_key=key, timeout=config.request_timeout_seconds)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.config.name,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.model_dump()
