from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from advisor_chat.app_config import AppConfig
from advisor_chat.chat_app import ChatApp
from advisor_chat.chat_client import ChatClient
from advisor_chat.logging_config import setup_logging
from advisor_chat.mcp.mcp_manager import McpManager
from advisor_chat.memory import MemoryStore, Preferences, SessionStore
from advisor_chat.reachability import ReachabilityProbe, ReachabilitySignal, probe_url_for
from advisor_chat.streaming import ResponseStreamer
from advisor_chat.voice_input import McpSpeechRecognizer


@dataclass
class AppRuntime:
    app: ChatApp
    client: ChatClient
    memory_store: MemoryStore
    session_store: SessionStore
    preferences: Preferences
    reachability_probe: ReachabilityProbe | None
    mcp_manager: McpManager | None
    speech_enabled: bool
    log_descriptions: list[str]

    async def close(self) -> None:
        await self.app.shutdown()
        if self.reachability_probe is not None:
            await self.reachability_probe.stop()
        if self.mcp_manager is not None:
            await self.mcp_manager.close()
        await self.client.aclose()
        self.memory_store.close()


async def bootstrap_runtime(config: AppConfig) -> AppRuntime:
    log_descriptions = setup_logging(level=config.log_level, consumers=config.log_consumers)

    db_path = Path(config.storage_db_path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    memory_store = MemoryStore(str(db_path))
    session_store = SessionStore(memory_store)
    session_store.load()
    preferences = Preferences(memory_store)

    client = ChatClient(
        config.endpoint_url,
        timeout_seconds=config.request_timeout_seconds,
        max_retries=config.max_retries,
    )

    reachability = ReachabilitySignal(online=True)
    reachability_probe: ReachabilityProbe | None = None
    if config.reachability_probe_enabled:
        reachability_probe = ReachabilityProbe(
            reachability,
            probe_url_for(config.endpoint_url),
            interval_seconds=config.reachability_interval_seconds,
        )
        await reachability_probe.check_once()
        await reachability_probe.start()

    mcp_manager: McpManager | None = None
    recognizer: McpSpeechRecognizer | None = None
    if config.mcp_server_configs:
        mcp_manager = McpManager(config.mcp_server_configs)
        tool_map = await mcp_manager.connect_all()
        candidate = McpSpeechRecognizer(tool_map=tool_map, timeout_seconds=config.speech_timeout_seconds)
        if candidate.available:
            recognizer = candidate
        else:
            logger.warning("MCP servers are configured but none provides the stt_* speech tools")

    app = ChatApp(
        store=session_store,
        preferences=preferences,
        client=client,
        reachability=reachability,
        streamer=ResponseStreamer(delay_seconds=config.stream_delay_ms / 1000),
        recognizer=recognizer,
        user_id=config.user_id,
    )

    return AppRuntime(
        app=app,
        client=client,
        memory_store=memory_store,
        session_store=session_store,
        preferences=preferences,
        reachability_probe=reachability_probe,
        mcp_manager=mcp_manager,
        speech_enabled=recognizer is not None,
        log_descriptions=log_descriptions,
    )
