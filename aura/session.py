"""Chat session: submission, processing flag and event handler wiring."""

import asyncio
from collections.abc import Callable

from aura.accumulator import TurnAccumulator
from aura.config import Config, get_config
from aura.conversation import ConversationLog, Message, Role
from aura.events import (
    ActionSignal,
    EventChannel,
    FragmentReceived,
    SessionUpdate,
    TurnCompleted,
    UpdateKind,
    UpdateListener,
)
from aura.gate import ConfirmationGate, Executor
from aura.llm import Responder
from aura.logging import get_logger
from aura.tools.registry import ToolResult

log = get_logger(__name__)


class ChatSession:
    """One conversation between the user and the responder.

    All conversation state is owned here and changed only by ``submit``, the
    gate decisions and the three responder event handlers.
    """

    def __init__(
        self,
        channel: EventChannel,
        responder: Responder,
        executor: Executor,
        *,
        config: Config | None = None,
        listener: UpdateListener | None = None,
    ):
        cfg = config or get_config()
        self.channel = channel
        self.responder = responder
        self.conversation = ConversationLog()
        self._listeners: list[UpdateListener] = [listener] if listener else []
        self._idle = asyncio.Event()
        self._idle.set()
        self._unsubscribers: list[Callable[[], None]] = []

        self.gate = ConfirmationGate(
            self.conversation,
            executor,
            feedback_seconds=cfg.tools.feedback_seconds,
            listener=self._publish,
        )
        self.accumulator = TurnAccumulator(
            self.conversation,
            self.gate,
            action_fields=cfg.tools.action_fields,
            on_turn_closed=self._finish_processing,
            listener=self._publish,
        )

    @property
    def processing(self) -> bool:
        """True between an accepted submission and the end of its turn."""
        return not self._idle.is_set()

    @property
    def is_open(self) -> bool:
        return bool(self._unsubscribers)

    def add_listener(self, listener: UpdateListener) -> None:
        self._listeners.append(listener)

    def _publish(self, update: SessionUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as e:
                log.warning("Session listener failed", kind=update.kind, error=str(e))

    def _finish_processing(self) -> None:
        self._idle.set()

    def open(self) -> None:
        """Register the responder event handlers for the session lifetime."""
        if self.is_open:
            return
        self._unsubscribers = [
            self.channel.subscribe(FragmentReceived.name, self.accumulator.on_fragment),
            self.channel.subscribe(ActionSignal.name, self.accumulator.on_action),
            self.channel.subscribe(TurnCompleted.name, self.accumulator.on_completed),
        ]

    def close(self) -> None:
        """Deregister the handlers and stop the acknowledgment timer."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.gate.close()

    async def __aenter__(self) -> "ChatSession":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def submit(self, text: str) -> bool:
        """Send a user message to the responder.

        Returns:
            False if rejected (blank input or a turn still in progress)
        """
        if not text.strip():
            return False
        if self.processing:
            log.debug("Submission rejected while processing")
            return False

        self.gate.implicit_deny()
        message = Message(role=Role.USER, content=text)
        self.conversation.append(message)
        self._idle.clear()
        self._publish(SessionUpdate(UpdateKind.MESSAGE_SENT, message=message))

        try:
            await self.responder.submit(text)
        except Exception as e:
            log.error("Submission failed", error=str(e))
            self._finish_processing()
            failure = Message(role=Role.ASSISTANT, content=f"Error: {e}")
            self.conversation.append(failure)
            self._publish(SessionUpdate(UpdateKind.MESSAGE_APPENDED, message=failure))
        return True

    async def confirm(self) -> ToolResult | None:
        """Confirm the pending action request (no-op when none is pending)."""
        return await self.gate.confirm()

    def deny(self) -> bool:
        """Deny the pending action request (no-op when none is pending)."""
        return self.gate.deny()

    async def wait_idle(self) -> None:
        """Wait until the current turn, if any, has completed."""
        await self._idle.wait()
