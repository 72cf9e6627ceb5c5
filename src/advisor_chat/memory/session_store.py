from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterable

from loguru import logger

from advisor_chat.memory.models import Message, Session, utc_now
from advisor_chat.memory.store import KeyValueStore
from advisor_chat.subscriptions import Listeners, Subscription

SESSIONS_KEY = "chats"


class SessionStore:
    """Durable list of chat sessions, newest first.

    Every mutation rewrites the whole list under `SESSIONS_KEY` and then
    notifies change listeners with a snapshot of the new list.
    """

    def __init__(self, kv: KeyValueStore, *, key: str = SESSIONS_KEY, clock: Callable[[], float] = time.time):
        self._kv = kv
        self._key = key
        self._clock = clock
        self._sessions: list[Session] = []
        # Highest id handed out or loaded; ids are never reused.
        self._last_id = 0
        self._listeners: Listeners[list[Session]] = Listeners()

    @property
    def sessions(self) -> list[Session]:
        return [s.copy() for s in self._sessions]

    def subscribe(self, listener: Callable[[list[Session]], None]) -> Subscription:
        return self._listeners.subscribe(listener)

    def load(self) -> list[Session]:
        self._sessions = self._read()
        self._track_ids(self._sessions)
        logger.debug(f"Loaded {len(self._sessions)} session(s) from storage")
        return self.sessions

    def save(self, sessions: Iterable[Session]) -> None:
        self._sessions = [s.copy() for s in sessions]
        self._track_ids(self._sessions)
        payload = json.dumps([s.to_dict() for s in self._sessions], ensure_ascii=True)
        self._kv.set(self._key, payload)
        self._listeners.notify(self.sessions)

    def get(self, session_id: str) -> Session | None:
        session = self._find(session_id)
        return session.copy() if session is not None else None

    def create(self) -> Session:
        session = Session(id=self._next_id(), timestamp=utc_now())
        self.save([session, *self._sessions])
        logger.info(f"Created session {session.id}")
        return session.copy()

    def delete(self, session_id: str) -> None:
        remaining = [s for s in self._sessions if s.id != session_id]
        if len(remaining) == len(self._sessions):
            return
        self.save(remaining)
        logger.info(f"Deleted session {session_id}")

    def update_messages(self, session_id: str, messages: Iterable[Message]) -> None:
        session = self._find(session_id)
        if session is None:
            logger.debug(f"Ignoring message update for unknown session {session_id}")
            return
        session.messages = [m.copy() for m in messages]
        self.save(self._sessions)

    def update_title(self, session_id: str, title: str) -> None:
        session = self._find(session_id)
        if session is None:
            logger.debug(f"Ignoring title update for unknown session {session_id}")
            return
        session.title = title
        self.save(self._sessions)

    def _find(self, session_id: str) -> Session | None:
        return next((s for s in self._sessions if s.id == session_id), None)

    def _next_id(self) -> str:
        candidate = max(int(self._clock() * 1000), self._last_id + 1)
        used = {s.id for s in self._sessions}
        while str(candidate) in used:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _track_ids(self, sessions: list[Session]) -> None:
        numeric = [int(s.id) for s in sessions if s.id.isascii() and s.id.isdigit()]
        if numeric:
            self._last_id = max(self._last_id, *numeric)

    def _read(self) -> list[Session]:
        raw = self._kv.get(self._key)
        if raw is None:
            return []
        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, list):
                raise ValueError("stored sessions are not a list")
            return [Session.from_dict(item) for item in parsed]
        except (ValueError, KeyError, TypeError, RecursionError) as ex:
            logger.warning(f"Stored sessions are malformed, starting empty: {ex}")
            return []
