# FILE: econrag/providers/openai_provider.py
"""
OpenAI generation adapter (AsyncOpenAI chat completions).

Satisfies GenerationProvider. Timeouts and retries are owned by the
orchestrator; this adapter makes exactly one request per call and raises
on any failure so the orchestrator can classify it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from econrag.config import GENERATION_MODEL, SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


class ProviderUnavailable(RuntimeError):
    """Raised when the SDK or API key is missing."""


def _build_messages(system_prompt: Optional[str], context: str, user_input: str) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    if context:
        messages.append({"role": "user", "content": f"Context:\n{context}"})
    messages.append({"role": "user", "content": user_input})
    return messages


class OpenAIGenerationProvider:
    def __init__(
        self,
        model_id: str = GENERATION_MODEL,
        *,
        api_key: Optional[str] = None,
        system_prompt: str = SYSTEM_INSTRUCTION,
        temperature: float = 0.4,
        max_tokens: int = 2048,
        client: Any = None,
    ):
        self.model_id = model_id
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        api_key = (self._api_key or os.getenv("OPENAI_API_KEY", "")).strip()
        if not api_key:
            raise ProviderUnavailable("OPENAI_API_KEY not set")
        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ProviderUnavailable("openai package not installed") from exc
        self._client = AsyncOpenAI(api_key=api_key)
        return self._client

    async def generate(self, context: str, user_input: str) -> str:
        client = self._get_client()
        resp = await client.chat.completions.create(
            model=self.model_id,
            messages=_build_messages(self.system_prompt, context, user_input),
            temperature=self.temperature,
            max_tokens=int(self.max_tokens),
        )
        content = ""
        if resp.choices:
            content = resp.choices[0].message.content or ""
        if not content.strip():
            raise RuntimeError(f"empty completion from {self.model_id}")
        logger.debug("[providers] openai %s returned %d chars", self.model_id, len(content))
        return content
