from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from urllib.parse import urlparse

import httpx
from loguru import logger

from advisor_chat.subscriptions import Listeners, Subscription


class ReachabilitySignal:
    """Online/offline flag written asynchronously, read synchronously."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: Listeners[bool] = Listeners()

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info(f"Network is now {'online' if online else 'offline'}")
        self._listeners.notify(online)

    def subscribe(self, listener: Callable[[bool], None]) -> Subscription:
        return self._listeners.subscribe(listener)


def probe_url_for(endpoint_url: str) -> str:
    parsed = urlparse(endpoint_url)
    return f"{parsed.scheme}://{parsed.netloc}/"


class ReachabilityProbe:
    """Polls the endpoint host and feeds the result into a ReachabilitySignal.

    Any HTTP response counts as online; only transport failures mark the
    network offline.
    """

    def __init__(
        self,
        signal: ReachabilitySignal,
        url: str,
        *,
        interval_seconds: float = 15.0,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._signal = signal
        self._url = url
        self._interval_seconds = max(0.05, interval_seconds)
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    async def check_once(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                await client.head(self._url)
            online = True
        except httpx.TransportError as ex:
            logger.debug(f"Reachability check failed: {type(ex).__name__}: {ex}")
            online = False
        self._signal.set_online(online)
        return online

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def __aenter__(self) -> ReachabilityProbe:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self._interval_seconds)
