"""Folds responder events into the conversation log."""

from collections.abc import Callable, Sequence

from aura.conversation import ConversationLog
from aura.events import (
    ActionSignal,
    FragmentReceived,
    SessionUpdate,
    TurnCompleted,
    UpdateKind,
    UpdateListener,
)
from aura.gate import ConfirmationGate
from aura.logging import get_logger
from aura.tool_intent import DEFAULT_ACTION_FIELDS, parse_action_descriptor

log = get_logger(__name__)


class TurnAccumulator:
    """Builds one assistant message per turn from streamed fragments."""

    def __init__(
        self,
        conversation: ConversationLog,
        gate: ConfirmationGate,
        *,
        action_fields: Sequence[str] = DEFAULT_ACTION_FIELDS,
        on_turn_closed: Callable[[], None] | None = None,
        listener: UpdateListener | None = None,
    ):
        self.conversation = conversation
        self.gate = gate
        self.action_fields = tuple(action_fields)
        self._on_turn_closed = on_turn_closed
        self._listener = listener

    def _publish(self, update: SessionUpdate) -> None:
        if self._listener is not None:
            self._listener(update)

    def on_fragment(self, event: FragmentReceived) -> None:
        if not event.text:
            return
        if self.conversation.active_turn is not None:
            self.conversation.extend_turn(event.text)
        else:
            # First fragment of a turn: the only place "received" fires.
            turn = self.conversation.start_turn(event.text)
            self._publish(SessionUpdate(UpdateKind.MESSAGE_RECEIVED, message=turn))
        self._publish(SessionUpdate(UpdateKind.FRAGMENT, text=event.text))

    def on_action(self, event: ActionSignal) -> None:
        self.gate.signal(event.request)

    def on_completed(self, event: TurnCompleted) -> None:
        finished = self.conversation.close_turn()
        if self._on_turn_closed is not None:
            self._on_turn_closed()

        descriptor = None
        if finished is not None:
            descriptor = parse_action_descriptor(finished.content, self.action_fields)
            if descriptor is not None:
                self.conversation.drop_last()
                log.info("Suppressed action descriptor from transcript", tool=descriptor.tool_name)
                finished = None

        self._publish(SessionUpdate(UpdateKind.TURN_FINISHED, message=finished))
        for message in self.conversation.release_held():
            self._publish(SessionUpdate(UpdateKind.MESSAGE_APPENDED, message=message))
        if descriptor is not None:
            self.gate.signal(descriptor)
