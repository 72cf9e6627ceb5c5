from __future__ import annotations

from loguru import logger

from advisor_chat.memory.models import Message, Session, derive_title
from advisor_chat.memory.session_store import SessionStore


class ConversationController:
    """Owns the message list of the session currently on screen.

    The list is reconciled into the store when the user switches away from
    the session. Deleting the active session discards its unsaved messages.
    """

    def __init__(self, store: SessionStore):
        self._store = store
        self._active_session_id: str | None = None
        self._messages: list[Message] = []

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    @property
    def active_session(self) -> Session | None:
        if self._active_session_id is None:
            return None
        return self._store.get(self._active_session_id)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def new_conversation(self) -> Session:
        if self._active_session_id is not None and self._messages:
            # Recomputed on every call, not only the first one.
            self._store.update_title(self._active_session_id, derive_title(self._messages[0].content))
            self._store.update_messages(self._active_session_id, self._messages)

        session = self._store.create()
        self._active_session_id = session.id
        self._messages = []
        logger.debug(f"Active session is now {session.id} (new)")
        return session

    def select_conversation(self, session_id: str) -> bool:
        if self._active_session_id is not None and self._messages:
            self._store.update_messages(self._active_session_id, self._messages)

        session = self._store.get(session_id)
        if session is None:
            logger.debug(f"Cannot select unknown session {session_id}")
            return False

        self._active_session_id = session.id
        self._messages = session.messages
        logger.debug(f"Active session is now {session.id} ({len(self._messages)} messages)")
        return True

    def delete_conversation(self, session_id: str) -> None:
        self._store.delete(session_id)
        if session_id == self._active_session_id:
            self._active_session_id = None
            self._messages = []
            logger.debug(f"Cleared active session {session_id} after delete")

    def rename_conversation(self, session_id: str, title: str) -> None:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Session title must not be empty")
        self._store.update_title(session_id, cleaned)
