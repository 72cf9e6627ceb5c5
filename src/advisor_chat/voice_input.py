from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from loguru import logger


class SpeechRecognitionError(Exception):
    pass


@runtime_checkable
class JsonTool(Protocol):
    @property
    def name(self) -> str: ...

    async def execute(self, tool_input: dict[str, Any]) -> str: ...


@runtime_checkable
class SpeechRecognizer(Protocol):
    async def recognize(self) -> str:
        """Capture one utterance and return its final transcript."""
        ...


class McpSpeechRecognizer:
    """Speech-to-text backed by the `stt_*` tools of an MCP server."""

    _REQUIRED_TOOLS = {
        "start": "__stt_start_session",
        "updates": "__stt_get_updates",
        "stop": "__stt_stop_session",
    }

    def __init__(
        self,
        *,
        tool_map: dict[str, JsonTool],
        source: str = "microphone",
        timeout_seconds: float = 30.0,
        poll_interval_seconds: float = 0.2,
    ):
        self._tool_map = tool_map
        self._source = source
        self._timeout_seconds = timeout_seconds
        self._poll_interval_seconds = poll_interval_seconds

    @property
    def available(self) -> bool:
        return all(name is not None for name in self._resolve_tool_names().values())

    async def recognize(self) -> str:
        tool_names = self._resolve_tool_names()
        missing = [key for key, resolved in tool_names.items() if resolved is None]
        if missing:
            raise SpeechRecognitionError(
                f"Speech unavailable: missing MCP tools {', '.join('stt_' + n for n in missing)}"
            )

        payload = await self._call_json_tool(tool_names["start"] or "", {"source": self._source})
        session_id = str(payload.get("session_id", "")).strip()
        if not session_id:
            raise SpeechRecognitionError("Speech failed: start response missing session_id")
        logger.debug(f"Speech session {session_id} started ({self._source})")

        try:
            return await self._wait_for_transcript(tool_names["updates"] or "", session_id)
        finally:
            with contextlib.suppress(Exception):
                await self._call_json_tool(tool_names["stop"] or "", {"session_id": session_id})

    async def _wait_for_transcript(self, updates_tool: str, session_id: str) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout_seconds
        last_seq = 0
        while True:
            payload = await self._call_json_tool(
                updates_tool,
                {"session_id": session_id, "since_seq": last_seq, "limit": 100},
            )
            events = payload.get("events") or []
            if not isinstance(events, list):
                raise SpeechRecognitionError("Speech updates response has no event list")
            for event in events:
                seq = _event_seq(event)
                if seq > last_seq:
                    last_seq = seq
                event_type = event.get("type")
                if event_type == "error":
                    raise SpeechRecognitionError(str(event.get("message", "speech recognition error")))
                if event_type == "utterance_final":
                    text = str(event.get("text", "")).strip()
                    if text:
                        return text
            if loop.time() >= deadline:
                raise SpeechRecognitionError("No speech was detected")
            await asyncio.sleep(self._poll_interval_seconds)

    def _resolve_tool_names(self) -> dict[str, str | None]:
        resolved: dict[str, str | None] = {}
        for key, suffix in self._REQUIRED_TOOLS.items():
            resolved[key] = next((name for name in self._tool_map if name.endswith(suffix)), None)
        return resolved

    async def _call_json_tool(self, tool_name: str, tool_input: dict[str, Any]) -> dict[str, Any]:
        tool = self._tool_map.get(tool_name)
        if tool is None:
            raise SpeechRecognitionError(f"Tool not found: {tool_name}")
        try:
            raw = await tool.execute(tool_input)
        except Exception as ex:
            raise SpeechRecognitionError(f"Speech tool {tool_name} failed: {ex}") from ex
        return _parse_json_object(raw)


def _event_seq(event: object) -> int:
    if not isinstance(event, dict):
        raise SpeechRecognitionError(f"Malformed speech event: {event!r}")
    try:
        return int(event.get("seq", 0))
    except (TypeError, ValueError) as ex:
        raise SpeechRecognitionError(f"Malformed speech event seq: {event.get('seq')!r}") from ex


def _parse_json_object(raw: str) -> dict[str, Any]:
    text = raw.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if len(lines) >= 3:
            text = "\n".join(lines[1:-1]).strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as ex:
        raise SpeechRecognitionError("Speech tool response was not valid JSON") from ex
    if not isinstance(parsed, dict):
        raise SpeechRecognitionError("Speech tool response was not a JSON object")
    return parsed


class VoiceInput:
    """Runs at most one recognition at a time and routes its result."""

    def __init__(
        self,
        recognizer: SpeechRecognizer | None,
        *,
        on_transcript: Callable[[str], None],
        on_error: Callable[[str], None],
    ):
        self._recognizer = recognizer
        self._on_transcript = on_transcript
        self._on_error = on_error
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def supported(self) -> bool:
        return self._recognizer is not None

    async def capture(self) -> str | None:
        if self._recognizer is None:
            self._on_error("Speech recognition is not supported in this setup.")
            return None
        if self._recording:
            logger.debug("Ignoring voice capture: a recognition is already active")
            return None

        self._recording = True
        try:
            transcript = await self._recognizer.recognize()
        except SpeechRecognitionError as ex:
            logger.error(f"Speech recognition error: {ex}")
            self._on_error(str(ex))
            return None
        finally:
            self._recording = False

        self._on_transcript(transcript)
        return transcript
