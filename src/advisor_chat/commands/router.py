from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    """Dispatches `/command args` lines; anything else is a chat message."""

    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_new: Callable[[], Awaitable[None]],
        on_list: Callable[[], Awaitable[None]],
        on_select: Callable[[str], Awaitable[None]],
        on_delete: Callable[[str], Awaitable[None]],
        on_rename: Callable[[str], Awaitable[None]],
        on_history: Callable[[], Awaitable[None]],
        on_voice: Callable[[], Awaitable[None]],
        on_theme: Callable[[], Awaitable[None]],
        on_status: Callable[[], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._no_arg: dict[str, Callable[[], Awaitable[None]]] = {
            "/help": on_help,
            "/new": on_new,
            "/list": on_list,
            "/history": on_history,
            "/voice": on_voice,
            "/theme": on_theme,
            "/status": on_status,
        }
        self._with_arg: dict[str, Callable[[str], Awaitable[None]]] = {
            "/select": on_select,
            "/delete": on_delete,
            "/rename": on_rename,
        }
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command, _, argument = trimmed.partition(" ")
        command = command.lower()
        if command in self._no_arg:
            await self._no_arg[command]()
            return True
        if command in self._with_arg:
            await self._with_arg[command](argument.strip())
            return True

        self._on_unknown(trimmed)
        return True
