from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

from loguru import logger

from advisor_chat.memory.models import Message

DEFAULT_DELAY_SECONDS = 0.05


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ResponseStreamer:
    """Reveals an already complete response one word at a time.

    Words are split on single spaces and re-joined with single spaces, so
    intermediate prefixes do not preserve the original whitespace. Callers
    overwrite the target with the exact text once the reveal finishes.
    """

    def __init__(
        self,
        *,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep

    async def reveal(
        self,
        full_text: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        words = full_text.split(" ")
        for i in range(len(words)):
            await self._sleep(self._delay_seconds)
            if cancel_token is not None and cancel_token.cancelled:
                logger.debug(f"Reveal cancelled after {i} of {len(words)} words")
                return
            yield " ".join(words[: i + 1])

    async def stream(
        self,
        full_text: str,
        target: Message,
        *,
        on_reveal: Callable[[str], None] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        async for visible in self.reveal(full_text, cancel_token=cancel_token):
            target.content = visible
            if on_reveal is not None:
                on_reveal(visible)
