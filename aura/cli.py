"""Terminal UI for Aura."""

import atexit
import os
import sys
from pathlib import Path
from typing import Any

from aura.config import get_config
from aura.events import ActionRequest, SessionUpdate, UpdateKind
from aura.logging import get_logger

log = get_logger(__name__)


class TerminalUI:
    """Line-oriented terminal renderer for a chat session."""

    def __init__(self):
        self.config = get_config()
        self._special_commands = [
            "/help",
            "/confirm",
            "/deny",
            "/exit",
            "/quit",
        ]
        self._readline = None
        self._history_file = Path("~/.aura/history").expanduser()
        self._ansi_enabled = sys.stdout.isatty() and not bool(os.environ.get("NO_COLOR"))
        self._streaming = bool(self.config.ui.streaming)
        self._bell = bool(self.config.ui.bell)
        self._thinking = False
        self._stream_buffer = ""
        self._stream_started = False
        # Set once the current reply has been written to the terminal.
        self._stream_shown = False
        self._setup_readline()

    def _setup_readline(self) -> None:
        """Set up line editing, history, and command completion."""
        try:
            import readline  # type: ignore
        except Exception:
            return

        self._readline = readline

        try:
            self._history_file.parent.mkdir(parents=True, exist_ok=True)
            if self._history_file.exists():
                readline.read_history_file(str(self._history_file))
            readline.set_history_length(1000)
            readline.parse_and_bind("tab: complete")
            readline.set_completer(self._complete_special_command)
            atexit.register(self._save_history)
        except Exception as e:
            log.debug("Readline setup failed", error=str(e))

    def _save_history(self) -> None:
        if self._readline is None:
            return
        try:
            self._readline.write_history_file(str(self._history_file))
        except Exception as e:
            log.debug("Failed to save history", error=str(e))

    def _complete_special_command(self, text: str, state: int) -> str | None:
        """Readline completer for slash commands."""
        if not text.startswith("/"):
            return None
        matches = [cmd for cmd in self._special_commands if cmd.startswith(text)]
        if state < len(matches):
            return matches[state]
        return None

    def _styled_role_prefix(self, role: str) -> str:
        if not self._ansi_enabled:
            return {"user": ">", "assistant": ":)"}.get(role.lower(), f"[{role.upper()}]")
        styles = {
            "user": "\033[97;44m > \033[0m",
            "assistant": "\033[30;102m :) \033[0m",
        }
        return styles.get(role.lower(), f"[{role.upper()}]")

    def _ring(self) -> None:
        if self._bell:
            sys.stdout.write("\a")
            sys.stdout.flush()

    def print_welcome(self) -> None:
        print("=== Aura ===")
        print("Aura initialized. Ready for commands.")
        print("Type '/help' for commands.\n")

    def print_help(self) -> None:
        print(
            """
Commands:
  /confirm        - Run the pending action
  /deny           - Cancel the pending action
  /help           - Show this help message
  /exit, /quit    - Exit the application

  Sending a new message while an action is pending cancels it.
"""
        )

    def print_message(self, role: str, content: str) -> None:
        print(f"{self._styled_role_prefix(role)} {content}")

    def print_error(self, error: str) -> None:
        print(f"Error: {error}")

    def print_success(self, message: str) -> None:
        if self._ansi_enabled:
            print(f"\033[30;42m {message} \033[0m")
            return
        print(f"OK: {message}")

    def show_thinking(self) -> None:
        self._thinking = True
        if self._ansi_enabled:
            sys.stdout.write("\033[2mThinking...\033[0m")
            sys.stdout.flush()
            return
        print("Thinking...")

    def clear_thinking(self) -> None:
        if not self._thinking:
            return
        self._thinking = False
        if self._ansi_enabled:
            sys.stdout.write("\r\033[2K")
            sys.stdout.flush()

    def print_permission_request(self, request: ActionRequest) -> None:
        params = f" {request.params}" if request.params else ""
        if self._ansi_enabled:
            print(f"\033[30;103m PERMISSION REQUEST \033[0m tool: {request.tool_name}{params}")
        else:
            print(f"[PERMISSION REQUEST] tool: {request.tool_name}{params}")
        print("Type /confirm to run it or /deny to cancel.")

    def _begin_stream(self) -> None:
        self._stream_started = True
        self._stream_shown = True
        print(f"{self._styled_role_prefix('assistant')} {self._stream_buffer}", end="", flush=True)

    def _reset_stream(self) -> None:
        self._stream_buffer = ""
        self._stream_started = False
        self._stream_shown = False

    def _on_fragment(self, text: str) -> None:
        self._stream_buffer += text
        if self._stream_started:
            print(text, end="", flush=True)
            return
        if not self._streaming or self._stream_shown:
            return
        head = self._stream_buffer.lstrip()
        # A reply that opens like JSON may be an action descriptor; show it only once it is final.
        if head and not head.startswith("{"):
            self._begin_stream()

    def _on_turn_finished(self, update: SessionUpdate) -> None:
        self.clear_thinking()
        if self._stream_started:
            print()
        elif update.message is not None and not self._stream_shown:
            self.print_message("assistant", update.message.content)
        self._reset_stream()

    def handle_update(self, update: SessionUpdate) -> None:
        """Render a session update."""
        kind = update.kind
        if kind == UpdateKind.MESSAGE_SENT:
            self._ring()
            self.show_thinking()
        elif kind == UpdateKind.MESSAGE_RECEIVED:
            self._ring()
            self.clear_thinking()
            self._reset_stream()
        elif kind == UpdateKind.FRAGMENT:
            self._on_fragment(update.text)
        elif kind == UpdateKind.TURN_FINISHED:
            self._on_turn_finished(update)
        elif kind == UpdateKind.MESSAGE_APPENDED and update.message is not None:
            self.clear_thinking()
            self.print_message(update.message.role.value, update.message.content)
        elif kind == UpdateKind.ACTION_PENDING and update.request is not None:
            if self._stream_started:
                # The reply stays shown; later fragments of it are not echoed.
                print()
                self._stream_started = False
            self.print_permission_request(update.request)
        elif kind == UpdateKind.ACTION_EXECUTED:
            self._ring()
            self.print_success(f"Executed: {update.text.upper()}")

    def prompt(self, prompt_text: str = "> ") -> str:
        value = input(prompt_text)
        if self._readline and value.strip():
            try:
                self._readline.add_history(value)
            except Exception:
                pass
        return value

    def handle_special_command(self, cmd: str) -> str | None:
        """Translate slash commands.

        Returns:
            The message text, a command token (CONFIRM, DENY, EXIT), or None
            when the input was handled here
        """
        cmd = cmd.strip()

        if not cmd.startswith("/"):
            return cmd

        command = cmd.split(None, 1)[0].lower()

        if command in ("/help", "/h", "/?"):
            self.print_help()
            return None
        elif command in ("/confirm", "/yes", "/y"):
            return "CONFIRM"
        elif command in ("/deny", "/no", "/n"):
            return "DENY"
        elif command in ("/exit", "/quit", "/q"):
            return "EXIT"
        else:
            self.print_error(f"Unknown command: {command}")
            return None


# Global UI instance
_ui: "TerminalUI | None" = None


def get_ui() -> TerminalUI:
    """Get the global UI instance."""
    global _ui
    if _ui is None:
        _ui = TerminalUI()
    return _ui


def set_ui(ui: Any) -> None:
    """Set the global UI instance."""
    global _ui
    _ui = ui
