from __future__ import annotations

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

DEFAULT_USER_ID = "default_user"


class ChatServiceError(Exception):
    """The chat endpoint could not be reached or returned an unusable reply."""


def _on_retry(retry_state):
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.0f}s (attempt {attempt})...")


class ChatClient:
    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout_seconds: float | None = None,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoint_url = endpoint_url
        self._max_retries = max(0, max_retries)
        self._client = httpx.AsyncClient(
            timeout=timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    async def send(self, message: str, user_id: str = DEFAULT_USER_ID) -> str:
        """POST the message and return the `response` field of the reply.

        Raises ChatServiceError on transport failures, malformed endpoint URLs,
        non-2xx statuses and bodies without a string `response`.
        """
        try:
            response = await self._post_with_retry({"message": message, "user_id": user_id})
        except (httpx.HTTPError, httpx.InvalidURL) as ex:
            logger.warning(f"Chat request failed: {type(ex).__name__}: {ex}")
            raise ChatServiceError(f"Failed to send message: {ex}") from ex

        if not response.is_success:
            logger.warning(f"Chat endpoint returned HTTP {response.status_code}")
            raise ChatServiceError(f"Failed to send message: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as ex:
            raise ChatServiceError("Chat endpoint returned invalid JSON") from ex
        reply = data.get("response") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            raise ChatServiceError("Chat endpoint reply is missing a 'response' string")

        logger.debug(f"Chat response: status={response.status_code}, chars={len(reply)}")
        return reply

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post_with_retry(self, payload: dict) -> httpx.Response:
        logger.debug(f"Chat request: url={self._endpoint_url}, chars={len(payload['message'])}")
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            stop=stop_after_attempt(self._max_retries + 1),
            before_sleep=_on_retry,
            reraise=True,
        ):
            with attempt:
                response = await self._client.post(self._endpoint_url, json=payload)
        return response
