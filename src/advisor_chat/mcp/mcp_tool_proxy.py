import json
from typing import Any

from loguru import logger
from mcp import ClientSession
from mcp.types import TextContent


class McpToolProxy:
    """Exposes one MCP tool as a JSON-in / text-out callable."""

    def __init__(self, server_name: str, tool_name: str, session: ClientSession):
        self._server_name = server_name
        self._tool_name = tool_name
        self._session = session

    @property
    def name(self) -> str:
        return f"{self._server_name}__{self._tool_name}"

    async def execute(self, tool_input: dict[str, Any]) -> str:
        logger.debug("MCP tool call: {name} | input: {input}", name=self.name, input=json.dumps(tool_input, default=str))
        result = await self._session.call_tool(self._tool_name, arguments=tool_input)
        text_parts = [block.text for block in result.content if isinstance(block, TextContent)]
        output = "\n".join(text_parts) if text_parts else "(no output)"
        if result.isError:
            logger.warning("MCP tool error: {name} | result: {output}", name=self.name, output=output[:500])
            raise RuntimeError(output)
        return output
