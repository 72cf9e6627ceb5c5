from __future__ import annotations

from advisor_chat.memory.models import Session


class SessionListing:
    """Text formatting for the session sidebar shown by /list."""

    def __init__(self, *, line_prefix: str, title_width: int = 40):
        self._line_prefix = line_prefix
        self._title_width = title_width

    def format_entry(self, index: int, session: Session, *, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        title = session.title
        if len(title) > self._title_width:
            title = title[: self._title_width - 1] + "…"
        created = session.timestamp[:16].replace("T", " ")
        return (
            f"{self._line_prefix}{marker} {index:>2}. {title} "
            f"(id={session.id}, messages={len(session.messages)}, created={created})"
        )

    def format_list(self, sessions: list[Session], *, active_session_id: str | None) -> list[str]:
        if not sessions:
            return [f"{self._line_prefix}No conversations yet. Type a message or /new to start one."]
        lines = [f"{self._line_prefix}Conversations:"]
        for index, session in enumerate(sessions, start=1):
            lines.append(self.format_entry(index, session, active_session_id=active_session_id))
        return lines

    def resolve(self, sessions: list[Session], identifier: str) -> Session | None:
        """Match a 1-based list position or an exact session id."""
        identifier = identifier.strip()
        if identifier.isdigit():
            position = int(identifier)
            if 1 <= position <= len(sessions) and not any(s.id == identifier for s in sessions):
                return sessions[position - 1]
        return next((s for s in sessions if s.id == identifier), None)
