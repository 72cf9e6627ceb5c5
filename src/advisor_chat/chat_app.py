from __future__ import annotations

from typing import TextIO

from loguru import logger
from rich.text import Text

from advisor_chat.chat_client import DEFAULT_USER_ID, ChatClient
from advisor_chat.commands.router import CommandRouter
from advisor_chat.conversation import ConversationController
from advisor_chat.display import RevealPrinter, Spinner, make_console, render_markdown
from advisor_chat.memory.models import USER
from advisor_chat.memory.preferences import Preferences
from advisor_chat.memory.session_store import SessionStore
from advisor_chat.reachability import ReachabilitySignal
from advisor_chat.services.session_listing import SessionListing
from advisor_chat.streaming import ResponseStreamer
from advisor_chat.submission import APOLOGY_MESSAGE, SubmissionOutcome, SubmissionPipeline, SubmissionState
from advisor_chat.voice_input import SpeechRecognizer, VoiceInput

OFFLINE_BANNER = "You are currently offline. Chat functionality is limited."


class ChatApp:
    _LINE_PREFIX = "assistant> "
    _USER_PROMPT = "you> "

    def __init__(
        self,
        *,
        store: SessionStore,
        preferences: Preferences,
        client: ChatClient,
        reachability: ReachabilitySignal,
        streamer: ResponseStreamer,
        recognizer: SpeechRecognizer | None = None,
        user_id: str = DEFAULT_USER_ID,
        out: TextIO | None = None,
    ):
        self._store = store
        self._preferences = preferences
        self._reachability = reachability
        self._out = out
        self._console = make_console(out)
        self._draft: str | None = None

        self._conversation = ConversationController(store)
        self._listing = SessionListing(line_prefix=self._LINE_PREFIX)
        self._spinner = Spinner(prefix=self._LINE_PREFIX)
        self._reveal_printer = RevealPrinter(out)

        self._pipeline = SubmissionPipeline(
            conversation=self._conversation,
            store=store,
            client=client,
            streamer=streamer,
            reachability=reachability,
            user_id=user_id,
            on_state_change=self._on_submission_state,
            on_reveal=self._reveal_printer.show,
        )

        self._voice = VoiceInput(
            recognizer,
            on_transcript=self._on_transcript,
            on_error=self._on_voice_error,
        )

        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_new=self._on_new,
            on_list=self._on_list,
            on_select=self._on_select,
            on_delete=self._on_delete,
            on_rename=self._on_rename,
            on_history=self._on_history,
            on_voice=self._on_voice,
            on_theme=self._on_theme,
            on_status=self._on_status,
            on_unknown=self._on_unknown_command,
        )
        self._reachability_subscription = reachability.subscribe(self._on_reachability_change)

    @property
    def conversation(self) -> ConversationController:
        return self._conversation

    @property
    def pipeline(self) -> SubmissionPipeline:
        return self._pipeline

    @property
    def draft(self) -> str | None:
        return self._draft

    async def run(self, user_input: str) -> SubmissionOutcome | None:
        """Handle one line typed at the prompt."""
        if await self._command_router.try_handle(user_input):
            return None

        text = user_input
        if not text.strip() and self._draft:
            text = self._draft
        if not text.strip():
            return None

        if not self._reachability.is_online:
            self._print(OFFLINE_BANNER)
            return SubmissionOutcome.REJECTED

        self._draft = None
        self._reveal_printer.reset()
        outcome = await self._pipeline.submit(text)
        if outcome == SubmissionOutcome.FAILED:
            self._write(APOLOGY_MESSAGE + "\n")
        elif outcome == SubmissionOutcome.COMPLETED:
            self._write("\n")
        return outcome

    async def shutdown(self) -> None:
        self._pipeline.cancel_stream()
        self._spinner.stop()
        self._reachability_subscription.close()

    def _on_submission_state(self, state: SubmissionState) -> None:
        if state == SubmissionState.SENDING:
            self._write(self._LINE_PREFIX)
            if self._out is None:
                self._spinner.start()
        elif self._spinner.running:
            self._spinner.stop()

    def _on_reachability_change(self, online: bool) -> None:
        if online:
            self._print("Back online.")
        else:
            self._print(OFFLINE_BANNER)

    def _on_transcript(self, transcript: str) -> None:
        self._draft = transcript
        self._print(f"Heard: {transcript}")
        self._print("Press Enter on an empty line to send it, or type a new message.")

    def _on_voice_error(self, message: str) -> None:
        self._print(f"Voice input failed: {message}")

    async def _on_help(self) -> None:
        self._print("Available commands:")
        self._print("- /new                start a new conversation")
        self._print("- /list               list saved conversations")
        self._print("- /select <n|id>      open a conversation")
        self._print("- /delete <n|id>      delete a conversation")
        self._print("- /rename <title>     rename the open conversation")
        self._print("- /history            show the open conversation")
        self._print("- /voice              dictate a message")
        self._print("- /theme              toggle dark mode")
        self._print("- /status             show connection and session status")

    async def _on_new(self) -> None:
        session = self._conversation.new_conversation()
        self._print(f"Started new conversation (id={session.id})")

    async def _on_list(self) -> None:
        for line in self._listing.format_list(
            self._store.sessions,
            active_session_id=self._conversation.active_session_id,
        ):
            self._print_raw(line)

    async def _on_select(self, identifier: str) -> None:
        if not identifier:
            self._print("Usage: /select <n|id>")
            return
        session = self._listing.resolve(self._store.sessions, identifier)
        if session is None or not self._conversation.select_conversation(session.id):
            self._print(f"Conversation not found: {identifier}")
            return
        self._print(f"Opened {session.title} ({len(self._conversation.messages)} messages)")
        await self._on_history()

    async def _on_delete(self, identifier: str) -> None:
        if not identifier:
            self._print("Usage: /delete <n|id>")
            return
        session = self._listing.resolve(self._store.sessions, identifier)
        if session is None:
            self._print(f"Conversation not found: {identifier}")
            return
        self._conversation.delete_conversation(session.id)
        self._print(f"Deleted {session.title}")

    async def _on_rename(self, title: str) -> None:
        session_id = self._conversation.active_session_id
        if session_id is None:
            self._print("No open conversation to rename")
            return
        if not title.strip():
            self._print("Usage: /rename <title>")
            return
        self._conversation.rename_conversation(session_id, title)
        self._print(f"Renamed to {title.strip()}")

    async def _on_history(self) -> None:
        messages = self._conversation.messages
        if not messages:
            self._print("This conversation is empty.")
            return
        dark_mode = self._preferences.dark_mode
        for message in messages:
            time_label = message.timestamp[11:19]
            if message.role == USER:
                self._console.print(Text.assemble((self._USER_PROMPT, "bold"), message.content, " ", (time_label, "dim")))
            else:
                self._console.print(Text.assemble((self._LINE_PREFIX, "bold"), (time_label, "dim")))
                self._console.print(render_markdown(message.content, dark_mode=dark_mode))

    async def _on_voice(self) -> None:
        if not self._reachability.is_online or self._pipeline.is_loading:
            self._print("Voice input is unavailable right now.")
            return
        self._print("Listening...")
        await self._voice.capture()

    async def _on_theme(self) -> None:
        enabled = self._preferences.toggle_dark_mode()
        self._print(f"Dark mode {'on' if enabled else 'off'}")

    async def _on_status(self) -> None:
        session = self._conversation.active_session
        self._print(f"Network: {'online' if self._reachability.is_online else 'offline'}")
        if session is None:
            self._print("Conversation: none")
        else:
            self._print(f"Conversation: {session.title} (id={session.id}, {len(self._conversation.messages)} messages)")
        self._print(f"Saved conversations: {len(self._store.sessions)}")

    def _on_unknown_command(self, trimmed: str) -> None:
        logger.debug(f"Unknown command: {trimmed}")
        self._print(f"Unknown command: {trimmed} (try /help)")

    def _print(self, text: str) -> None:
        self._print_raw(f"{self._LINE_PREFIX}{text}")

    def _print_raw(self, line: str) -> None:
        print(line, file=self._out, flush=True)

    def _write(self, text: str) -> None:
        print(text, end="", file=self._out, flush=True)
