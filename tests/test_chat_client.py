import asyncio
import json
import unittest

import httpx

from advisor_chat.chat_client import ChatClient, ChatServiceError


class ChatClientTests(unittest.TestCase):
    def _send(self, handler, message: str = "Should I buy bonds?", **kwargs) -> str:
        async def scenario() -> str:
            client = ChatClient(
                "https://assistant.test/chat",
                transport=httpx.MockTransport(handler),
                **kwargs,
            )
            try:
                return await client.send(message)
            finally:
                await client.aclose()

        return asyncio.run(scenario())

    def test_send_posts_message_and_user_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"response": "Bonds are generally lower risk."})

        reply = self._send(handler)

        self.assertEqual("Bonds are generally lower risk.", reply)
        self.assertEqual(1, len(seen))
        self.assertEqual("POST", seen[0].method)
        self.assertEqual("https://assistant.test/chat", str(seen[0].url))
        self.assertEqual("application/json", seen[0].headers["content-type"])
        self.assertEqual(
            {"message": "Should I buy bonds?", "user_id": "default_user"},
            json.loads(seen[0].content),
        )

    def test_non_success_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"})

        with self.assertRaises(ChatServiceError) as ctx:
            self._send(handler)
        self.assertIn("500", str(ctx.exception))

    def test_transport_failure_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(ChatServiceError):
            self._send(handler)

    def test_malformed_endpoint_url_raises_service_error(self) -> None:
        async def scenario() -> None:
            client = ChatClient("http://exa mple.com:bad/chat")
            try:
                await client.send("hi")
            finally:
                await client.aclose()

        with self.assertRaises(ChatServiceError):
            asyncio.run(scenario())

    def test_reply_without_response_field_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"answer": "wrong key"})

        with self.assertRaises(ChatServiceError):
            self._send(handler)

    def test_invalid_json_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>gateway</html>")

        with self.assertRaises(ChatServiceError):
            self._send(handler)

    def test_transport_error_is_retried_when_configured(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"response": "second time lucky"})

        reply = self._send(handler, max_retries=1)

        self.assertEqual("second time lucky", reply)
        self.assertEqual(2, attempts)

    def test_no_retry_by_default(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(ChatServiceError):
            self._send(handler)
        self.assertEqual(1, attempts)


if __name__ == "__main__":
    unittest.main()
