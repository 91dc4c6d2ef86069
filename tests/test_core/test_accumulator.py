from aura.accumulator import TurnAccumulator
from aura.conversation import ConversationLog, Message, Role
from aura.events import ActionRequest, ActionSignal, FragmentReceived, SessionUpdate, TurnCompleted, UpdateKind
from aura.gate import CANCELLED_NOTICE, ConfirmationGate
from aura.tools.registry import ToolResult


class NullExecutor:
    async def execute(self, name, arguments=None):
        return ToolResult(success=True)


class Harness:
    def __init__(self):
        self.updates: list[SessionUpdate] = []
        self.closed_turns = 0
        self.log = ConversationLog()
        self.gate = ConfirmationGate(self.log, NullExecutor(), listener=self.updates.append)
        self.accumulator = TurnAccumulator(
            self.log,
            self.gate,
            on_turn_closed=self._closed,
            listener=self.updates.append,
        )

    def _closed(self) -> None:
        self.closed_turns += 1

    def stream(self, *fragments: str) -> None:
        for text in fragments:
            self.accumulator.on_fragment(FragmentReceived(text))
        self.accumulator.on_completed(TurnCompleted())

    def count(self, kind: str) -> int:
        return sum(1 for update in self.updates if update.kind == kind)


def test_fragments_are_concatenated_into_one_complete_message():
    h = Harness()
    h.log.append(Message(role=Role.USER, content="hi"))

    h.stream("Hel", "lo ", "there")

    assert len(h.log) == 2
    last = h.log.last
    assert last.role == Role.ASSISTANT
    assert last.content == "Hello there"
    assert last.complete is True
    assert h.closed_turns == 1


def test_message_is_open_until_completion():
    h = Harness()
    h.accumulator.on_fragment(FragmentReceived("partial"))
    assert h.log.last.complete is False
    h.accumulator.on_fragment(FragmentReceived(" more"))
    assert h.log.last.content == "partial more"
    assert len(h.log) == 1


def test_received_notification_fires_once_per_turn():
    h = Harness()
    h.stream("only")
    assert h.count(UpdateKind.MESSAGE_RECEIVED) == 1

    h.stream(*["x"] * 50)
    assert h.count(UpdateKind.MESSAGE_RECEIVED) == 2
    assert h.log.last.content == "x" * 50
    assert h.count(UpdateKind.FRAGMENT) == 51


def test_empty_fragment_does_not_open_a_turn():
    h = Harness()
    h.accumulator.on_fragment(FragmentReceived(""))
    assert len(h.log) == 0
    assert h.count(UpdateKind.MESSAGE_RECEIVED) == 0


def test_action_descriptor_turn_is_removed_and_signalled():
    h = Harness()
    h.log.append(Message(role=Role.USER, content="list it"))

    h.stream('{"tool":', '"list_dir"}')

    assert [m.content for m in h.log] == ["list it"]
    assert h.gate.pending == ActionRequest("list_dir", {})
    finished = [u for u in h.updates if u.kind == UpdateKind.TURN_FINISHED]
    assert len(finished) == 1 and finished[0].message is None
    kinds = [u.kind for u in h.updates]
    assert kinds.index(UpdateKind.TURN_FINISHED) < kinds.index(UpdateKind.ACTION_PENDING)


def test_unrelated_json_stays_in_the_log_unchanged():
    h = Harness()
    h.stream('{"temperature": 21}')
    assert h.log.last.content == '{"temperature": 21}'
    assert h.log.last.complete is True
    assert h.gate.pending is None


def test_explicit_signal_is_forwarded_without_deduplication():
    h = Harness()
    h.accumulator.on_fragment(FragmentReceived("Locking now."))
    h.accumulator.on_action(ActionSignal("lock", {}))
    assert h.gate.pending == ActionRequest("lock", {})
    h.accumulator.on_completed(TurnCompleted())

    assert h.log.last.content == "Locking now."
    assert h.gate.pending == ActionRequest("lock", {})
    assert h.count(UpdateKind.ACTION_PENDING) == 1


def test_filter_result_wins_over_earlier_signal():
    h = Harness()
    h.accumulator.on_action(ActionSignal("mute", {}))
    h.stream('{"tool": "dark_mode"}')
    assert h.gate.pending == ActionRequest("dark_mode", {})
    assert len(h.log) == 0


def test_completion_without_fragments_only_clears_processing():
    h = Harness()
    h.log.append(Message(role=Role.USER, content="hi"))
    h.accumulator.on_completed(TurnCompleted())

    assert h.closed_turns == 1
    assert [m.content for m in h.log] == ["hi"]
    finished = [u for u in h.updates if u.kind == UpdateKind.TURN_FINISHED]
    assert finished[0].message is None


def test_notice_held_during_turn_is_released_after_filtering():
    h = Harness()
    h.accumulator.on_action(ActionSignal("mute", {}))
    h.accumulator.on_fragment(FragmentReceived('{"tool": "mute"}'))
    h.gate.deny()
    assert h.log.is_consistent()

    h.accumulator.on_completed(TurnCompleted())

    assert [m.content for m in h.log] == [CANCELLED_NOTICE]
    assert h.log.is_consistent()
    appended = [u for u in h.updates if u.kind == UpdateKind.MESSAGE_APPENDED]
    assert [u.message.content for u in appended] == [CANCELLED_NOTICE]


def test_descriptor_reply_with_matching_signal_is_announced_once():
    h = Harness()
    h.accumulator.on_fragment(FragmentReceived('{"tool": "mute"}'))
    h.accumulator.on_action(ActionSignal("mute", {}))
    h.accumulator.on_completed(TurnCompleted())

    assert len(h.log) == 0
    assert h.gate.pending == ActionRequest("mute", {})
    assert h.count(UpdateKind.ACTION_PENDING) == 1
