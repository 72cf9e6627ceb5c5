from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

USER = "user"
ASSISTANT = "assistant"

DEFAULT_TITLE = "New Chat"
TITLE_PREFIX_CHARS = 30

# Older clients stored assistant replies with role "bot".
_ROLE_ALIASES = {"bot": ASSISTANT}


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


def derive_title(content: str) -> str:
    return content[:TITLE_PREFIX_CHARS] + "..."


def normalize_role(role: str) -> str:
    resolved = _ROLE_ALIASES.get(role, role)
    if resolved not in (USER, ASSISTANT):
        raise ValueError(f"Unknown message role: {role!r}")
    return resolved


@dataclass
class Message:
    role: str
    content: str
    timestamp: str = field(default_factory=utc_now)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=USER, content=content)

    @classmethod
    def assistant(cls, content: str = "") -> Message:
        return cls(role=ASSISTANT, content=content)

    def copy(self) -> Message:
        return Message(role=self.role, content=self.content, timestamp=self.timestamp)

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        content = data["content"]
        timestamp = data["timestamp"]
        if not isinstance(content, str) or not isinstance(timestamp, str):
            raise ValueError("Message content and timestamp must be strings")
        return cls(role=normalize_role(str(data["role"])), content=content, timestamp=timestamp)


@dataclass
class Session:
    id: str
    title: str = DEFAULT_TITLE
    messages: list[Message] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_now)

    def copy(self) -> Session:
        return Session(
            id=self.id,
            title=self.title,
            messages=[m.copy() for m in self.messages],
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        raw_messages = data["messages"]
        if not isinstance(raw_messages, list):
            raise ValueError("Session messages must be a list")
        title = data["title"]
        timestamp = data["timestamp"]
        if not isinstance(title, str) or not isinstance(timestamp, str):
            raise ValueError("Session title and timestamp must be strings")
        return cls(
            id=str(data["id"]),
            title=title,
            messages=[Message.from_dict(m) for m in raw_messages],
            timestamp=timestamp,
        )
