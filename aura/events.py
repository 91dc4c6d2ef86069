"""Responder events, session updates and the ordered event channel."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from aura.conversation import Message
from aura.logging import get_logger

log = get_logger(__name__)


@dataclass
class ActionRequest:
    """A named request for a privileged operation."""

    tool_name: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class FragmentReceived:
    """An incremental slice of the assistant's reply."""

    name: ClassVar[str] = "fragment"

    text: str


@dataclass
class ActionSignal:
    """Explicit side-channel notice that the responder wants an action run."""

    name: ClassVar[str] = "action"

    tool_name: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def request(self) -> ActionRequest:
        return ActionRequest(tool_name=self.tool_name, params=dict(self.params))


@dataclass
class TurnCompleted:
    """End of the assistant turn; always the last event of a turn."""

    name: ClassVar[str] = "turn_completed"


ResponderEvent = Union[FragmentReceived, ActionSignal, TurnCompleted]
EventHandler = Callable[[Any], Awaitable[None] | None]


class UpdateKind:
    """Session updates published to the UI."""

    MESSAGE_SENT = "message_sent"
    MESSAGE_RECEIVED = "message_received"
    FRAGMENT = "fragment"
    TURN_FINISHED = "turn_finished"
    MESSAGE_APPENDED = "message_appended"
    ACTION_PENDING = "action_pending"
    ACTION_EXECUTED = "action_executed"
    FEEDBACK_CLEARED = "feedback_cleared"


@dataclass
class SessionUpdate:
    kind: str
    text: str = ""
    message: Message | None = None
    request: ActionRequest | None = None


UpdateListener = Callable[[SessionUpdate], None]


class EventChannel:
    """Ordered in-process channel between the responder and the session.

    Events are queued by ``emit`` and dispatched one at a time by ``pump``,
    so every handler runs on a single processing sequence.
    """

    def __init__(self):
        self._queue: asyncio.Queue[ResponderEvent] = asyncio.Queue()
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, name: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for an event name.

        Returns:
            Callable that removes the handler again
        """
        handlers = self._handlers.setdefault(name, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            try:
                handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def handler_count(self, name: str) -> int:
        return len(self._handlers.get(name, []))

    def emit(self, event: ResponderEvent) -> None:
        """Queue an event for dispatch."""
        self._queue.put_nowait(event)

    async def dispatch(self, event: ResponderEvent) -> None:
        """Run every handler subscribed to the event, in subscription order."""
        handlers = list(self._handlers.get(event.name, []))
        if not handlers:
            log.debug("No handler for event", event_name=event.name)
            return
        for handler in handlers:
            result = handler(event)
            if inspect.isawaitable(result):
                await result

    async def pump(self) -> None:
        """Dispatch queued events until cancelled."""
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception as e:
                log.error("Event handler failed", event_name=event.name, error=str(e))
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._queue.join()
