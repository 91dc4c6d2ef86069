"""Conversation log: the ordered record the UI renders."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Message author."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A message in the conversation.

    ``complete`` is False only while an assistant turn is still receiving
    fragments.
    """

    role: Role
    content: str
    complete: bool = True


class ConversationLog:
    """Append / replace-last message log.

    At most the last message may be incomplete. A complete message appended
    while a turn is open is held back and released once that turn closes.
    """

    def __init__(self):
        self._messages: list[Message] = []
        self._held: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the log in display order."""
        return list(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    @property
    def active_turn(self) -> Message | None:
        """The open assistant message, if a turn is streaming."""
        last = self.last
        if last is not None and last.role == Role.ASSISTANT and not last.complete:
            return last
        return None

    @property
    def held(self) -> list[Message]:
        return list(self._held)

    def append(self, message: Message) -> bool:
        """Append a finished message.

        Returns:
            True if appended now, False if held until the open turn closes
        """
        if not message.complete:
            raise ValueError("Only start_turn() may add an incomplete message")
        if self.active_turn is not None:
            self._held.append(message)
            return False
        self._messages.append(message)
        return True

    def start_turn(self, text: str) -> Message:
        """Open a new assistant turn with its first fragment."""
        if self.active_turn is not None:
            raise ValueError("An assistant turn is already open")
        message = Message(role=Role.ASSISTANT, content=text, complete=False)
        self._messages.append(message)
        return message

    def extend_turn(self, text: str) -> Message:
        """Append fragment text to the open turn."""
        turn = self.active_turn
        if turn is None:
            raise ValueError("No assistant turn is open")
        turn.content += text
        return turn

    def close_turn(self) -> Message | None:
        """Mark the open turn complete and return it (None if nothing was open)."""
        turn = self.active_turn
        if turn is None:
            return None
        turn.complete = True
        return turn

    def drop_last(self) -> Message:
        """Remove and return the last message."""
        if not self._messages:
            raise IndexError("Conversation log is empty")
        return self._messages.pop()

    def release_held(self) -> list[Message]:
        """Append messages held back during the last open turn."""
        if self.active_turn is not None or not self._held:
            return []
        released = self._held
        self._held = []
        self._messages.extend(released)
        return released

    def is_consistent(self) -> bool:
        """Check that no message before the last one is incomplete."""
        return all(message.complete for message in self._messages[:-1])
