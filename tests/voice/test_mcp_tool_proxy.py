import asyncio
import unittest
from types import SimpleNamespace
from typing import Any

from mcp.types import TextContent

from advisor_chat.mcp.mcp_tool_proxy import McpToolProxy


class _FakeSession:
    def __init__(self, result: Any):
        self._result = result
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def call_tool(self, name: str, arguments: dict[str, Any]):
        self.calls.append((name, arguments))
        return self._result


class McpToolProxyTests(unittest.TestCase):
    def test_name_is_server_qualified_and_text_blocks_are_joined(self) -> None:
        session = _FakeSession(
            SimpleNamespace(
                content=[TextContent(type="text", text='{"session_id":'), TextContent(type="text", text='"s-1"}')],
                isError=False,
            )
        )
        proxy = McpToolProxy("speech", "stt_start_session", session)

        output = asyncio.run(proxy.execute({"source": "microphone"}))

        self.assertEqual("speech__stt_start_session", proxy.name)
        self.assertEqual('{"session_id":\n"s-1"}', output)
        self.assertEqual([("stt_start_session", {"source": "microphone"})], session.calls)

    def test_tool_error_raises(self) -> None:
        session = _FakeSession(SimpleNamespace(content=[TextContent(type="text", text="no microphone")], isError=True))
        proxy = McpToolProxy("speech", "stt_start_session", session)

        with self.assertRaises(RuntimeError) as ctx:
            asyncio.run(proxy.execute({}))

        self.assertEqual("no microphone", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
