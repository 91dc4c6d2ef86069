import pytest

from aura.cli import TerminalUI
from aura.config import Config, set_config
from aura.conversation import Message, Role
from aura.events import ActionRequest, SessionUpdate, UpdateKind


@pytest.fixture
def ui() -> TerminalUI:
    set_config(Config())
    return TerminalUI()


def _stream(ui: TerminalUI, *parts: str) -> None:
    ui.handle_update(SessionUpdate(UpdateKind.MESSAGE_RECEIVED, message=Message(Role.ASSISTANT, parts[0])))
    for part in parts:
        ui.handle_update(SessionUpdate(UpdateKind.FRAGMENT, text=part))


def test_special_command_completion(ui):
    assert ui._complete_special_command("/c", 0) == "/confirm"
    assert ui._complete_special_command("/c", 1) is None
    assert ui._complete_special_command("hello", 0) is None


def test_special_commands_map_to_tokens(ui, capsys):
    assert ui.handle_special_command("  hello there ") == "hello there"
    assert ui.handle_special_command("/confirm") == "CONFIRM"
    assert ui.handle_special_command("/y") == "CONFIRM"
    assert ui.handle_special_command("/deny") == "DENY"
    assert ui.handle_special_command("/quit") == "EXIT"
    assert ui.handle_special_command("/help") is None
    assert ui.handle_special_command("/teleport") is None

    out = capsys.readouterr().out
    assert "/confirm" in out
    assert "Unknown command: /teleport" in out


def test_plain_reply_streams_as_it_arrives(ui, capsys):
    _stream(ui, "Hel", "lo")
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, "Hello")))

    out = capsys.readouterr().out
    assert out.count("Hello") == 1
    assert out.startswith(":) Hel")


def test_descriptor_reply_is_never_printed(ui, capsys):
    _stream(ui, '{"tool":', ' "lock"}')
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=None))
    ui.handle_update(SessionUpdate(UpdateKind.ACTION_PENDING, request=ActionRequest("lock", {})))

    out = capsys.readouterr().out
    assert '"tool"' not in out
    assert "[PERMISSION REQUEST] tool: lock" in out
    assert "/confirm" in out


def test_json_looking_reply_that_survives_is_printed_at_end(ui, capsys):
    _stream(ui, '{"answer": 42}')
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, '{"answer": 42}')))

    out = capsys.readouterr().out
    assert out.count('{"answer": 42}') == 1


def test_non_streaming_prints_whole_reply(capsys):
    cfg = Config()
    cfg.ui.streaming = False
    set_config(cfg)
    ui = TerminalUI()

    _stream(ui, "Rea", "dy.")
    assert capsys.readouterr().out == ""

    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, "Ready.")))
    assert capsys.readouterr().out == ":) Ready.\n"


def test_appended_notice_and_execution_feedback(ui, capsys):
    ui.handle_update(
        SessionUpdate(UpdateKind.MESSAGE_APPENDED, message=Message(Role.ASSISTANT, "(Action cancelled by user)"))
    )
    ui.handle_update(SessionUpdate(UpdateKind.ACTION_EXECUTED, text="mute"))

    out = capsys.readouterr().out
    assert ":) (Action cancelled by user)" in out
    assert "OK: Executed: MUTE" in out


def test_permission_request_shows_params(ui, capsys):
    ui.print_permission_request(ActionRequest("clean_desktop", {"desktop": "/tmp/d"}))
    out = capsys.readouterr().out
    assert "tool: clean_desktop {'desktop': '/tmp/d'}" in out


def test_prose_reply_with_action_is_printed_once(ui, capsys):
    text = 'Muting now.\n{"tool": "mute"}'
    _stream(ui, "Muting now.\n", '{"tool": "mute"}')
    ui.handle_update(SessionUpdate(UpdateKind.ACTION_PENDING, request=ActionRequest("mute", {})))
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, text)))

    out = capsys.readouterr().out
    assert out.count("Muting now.") == 1
    assert out.count("[PERMISSION REQUEST] tool: mute") == 1


def test_fragments_after_permission_request_are_not_replayed(ui, capsys):
    _stream(ui, "Locking.")
    ui.handle_update(SessionUpdate(UpdateKind.ACTION_PENDING, request=ActionRequest("lock", {})))
    ui.handle_update(SessionUpdate(UpdateKind.FRAGMENT, text=" Done."))
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, "Locking. Done.")))

    out = capsys.readouterr().out
    assert out.count("Locking.") == 1


def test_next_reply_streams_after_an_interrupted_one(ui, capsys):
    _stream(ui, "Muting.")
    ui.handle_update(SessionUpdate(UpdateKind.ACTION_PENDING, request=ActionRequest("mute", {})))
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, "Muting.")))
    capsys.readouterr()

    _stream(ui, "Ready.")
    ui.handle_update(SessionUpdate(UpdateKind.TURN_FINISHED, message=Message(Role.ASSISTANT, "Ready.")))

    assert capsys.readouterr().out == ":) Ready.\n"
