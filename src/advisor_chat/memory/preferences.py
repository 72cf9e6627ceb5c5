from __future__ import annotations

from advisor_chat.memory.store import KeyValueStore

DARK_MODE_KEY = "darkMode"


class Preferences:
    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    @property
    def dark_mode(self) -> bool:
        return self._kv.get(DARK_MODE_KEY) == "true"

    @dark_mode.setter
    def dark_mode(self, value: bool) -> None:
        self._kv.set(DARK_MODE_KEY, "true" if value else "false")

    def toggle_dark_mode(self) -> bool:
        enabled = not self.dark_mode
        self.dark_mode = enabled
        return enabled
