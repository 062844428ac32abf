from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI

from ..metrics import AI_REQUESTS, AI_TOKENS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    text: str
    tokens_in: int
    tokens_out: int
    source: str

    @property
    def offline(self) -> bool:
        return self.source == "offline"


class OpenAIClient:
    """Thin wrapper above the OpenAI async SDK with graceful degradation."""

    def __init__(self, api_key: str | None, *, model: str = "gpt-4o-mini") -> None:
        self._api_key = api_key
        self._model = model
        self._client = AsyncOpenAI(api_key=api_key) if api_key else None

    @property
    def available(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        *,
        kind: str,
        system: str,
        prompt: str,
        max_tokens: int,
        temperature: float = 0.2,
    ) -> Completion:
        """Run one chat completion; without credentials return an empty offline result."""

        tokens_in = max(1, int(len(prompt.split()) * 1.2))

        if not self._client:
            # Callers build a local fallback from the offline marker
            await asyncio.sleep(0)
            AI_REQUESTS.labels(kind=kind, source="offline").inc()
            return Completion(text="", tokens_in=tokens_in, tokens_out=0, source="offline")

        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        message = completion.choices[0].message.content or ""
        usage = completion.usage
        if usage is not None:
            tokens_in = int(getattr(usage, "prompt_tokens", tokens_in) or tokens_in)
            tokens_out = int(getattr(usage, "completion_tokens", 0) or 0)
        else:
            tokens_out = max(1, int(len(message.split()) * 1.2))

        AI_REQUESTS.labels(kind=kind, source="openai").inc()
        AI_TOKENS.labels(direction="in").inc(tokens_in)
        AI_TOKENS.labels(direction="out").inc(tokens_out)
        logger.info(
            "language model completion",
            extra={"extra_fields": {"kind": kind, "tokens_in": tokens_in, "tokens_out": tokens_out}},
        )
        return Completion(
            text=message.strip(),
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            source="openai",
        )
