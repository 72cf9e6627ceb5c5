from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from loguru import logger

from advisor_chat.chat_client import DEFAULT_USER_ID, ChatClient, ChatServiceError
from advisor_chat.conversation import ConversationController
from advisor_chat.memory.models import Message, derive_title
from advisor_chat.memory.session_store import SessionStore
from advisor_chat.reachability import ReachabilitySignal
from advisor_chat.streaming import CancellationToken, ResponseStreamer

APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble connecting to the server. Please try again later."
)


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ENSURING_SESSION = "ensuring_session"
    SENDING = "sending"
    STREAMING = "streaming"
    COMMITTING = "committing"
    FAILED = "failed"


class SubmissionOutcome(str, Enum):
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"


class SubmissionPipeline:
    """Runs one user submission from validation to the durable commit.

    Only one submission may be loading at a time. The pipeline commits to the
    session that was active when the submission started, even if the user
    switches sessions while the reply is in flight.
    """

    def __init__(
        self,
        *,
        conversation: ConversationController,
        store: SessionStore,
        client: ChatClient,
        streamer: ResponseStreamer,
        reachability: ReachabilitySignal,
        user_id: str = DEFAULT_USER_ID,
        on_state_change: Callable[[SubmissionState], None] | None = None,
        on_reveal: Callable[[str], None] | None = None,
    ):
        self._conversation = conversation
        self._store = store
        self._client = client
        self._streamer = streamer
        self._reachability = reachability
        self._user_id = user_id
        self._on_state_change = on_state_change
        self._on_reveal = on_reveal
        self._state = SubmissionState.IDLE
        self._loading = False
        self._cancel_token: CancellationToken | None = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._loading

    def can_submit(self, text: str) -> bool:
        return bool(text.strip()) and self._reachability.is_online and not self._loading

    def cancel_stream(self) -> None:
        if self._cancel_token is not None:
            self._cancel_token.cancel()

    async def submit(self, text: str) -> SubmissionOutcome:
        if self._loading:
            logger.debug("Submission rejected: another submission is in flight")
            return SubmissionOutcome.REJECTED

        self._set_state(SubmissionState.VALIDATING)
        if not self.can_submit(text):
            logger.debug("Submission rejected: empty input or offline")
            self._set_state(SubmissionState.IDLE)
            return SubmissionOutcome.REJECTED

        self._set_state(SubmissionState.ENSURING_SESSION)
        if self._conversation.active_session_id is None:
            self._conversation.new_conversation()
        session_id = self._conversation.active_session_id
        assert session_id is not None

        previous = self._conversation.messages
        user_message = self._conversation.append(Message.user(text))
        self._loading = True
        try:
            if not previous:
                self._store.update_title(session_id, derive_title(text))

            self._set_state(SubmissionState.SENDING)
            try:
                reply = await self._client.send(text, self._user_id)
            except ChatServiceError as ex:
                logger.warning(f"Submission to session {session_id} failed: {ex}")
                self._set_state(SubmissionState.FAILED)
                apology = self._show(session_id, Message.assistant(APOLOGY_MESSAGE))
                self._store.update_messages(session_id, [*previous, user_message, apology])
                return SubmissionOutcome.FAILED

            self._set_state(SubmissionState.STREAMING)
            placeholder = self._show(session_id, Message.assistant())
            self._cancel_token = CancellationToken()
            await self._streamer.stream(
                reply,
                placeholder,
                on_reveal=self._on_reveal,
                cancel_token=self._cancel_token,
            )

            self._set_state(SubmissionState.COMMITTING)
            placeholder.content = reply
            self._store.update_messages(session_id, [*previous, user_message, placeholder])
            logger.info(f"Committed reply to session {session_id} ({len(reply)} chars)")
            return SubmissionOutcome.COMPLETED
        finally:
            self._cancel_token = None
            self._loading = False
            self._set_state(SubmissionState.IDLE)

    def _set_state(self, state: SubmissionState) -> None:
        if state == self._state:
            return
        logger.debug(f"Submission state: {self._state.value} -> {state.value}")
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _show(self, session_id: str, message: Message) -> Message:
        # A reply for a session the user has left is only committed, not shown.
        if self._conversation.active_session_id == session_id:
            self._conversation.append(message)
        return message
