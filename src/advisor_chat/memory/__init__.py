from advisor_chat.memory.models import Message, Session, derive_title
from advisor_chat.memory.preferences import Preferences
from advisor_chat.memory.session_store import SessionStore
from advisor_chat.memory.store import KeyValueStore, MemoryStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "Message",
    "Preferences",
    "Session",
    "SessionStore",
    "derive_title",
]
