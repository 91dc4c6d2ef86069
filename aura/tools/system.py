"""System-control tools: audio, screen lock, desktop cleanup, dark mode."""

import asyncio
import shutil
import sys
from pathlib import Path
from typing import Any

from aura.logging import get_logger
from aura.tools.registry import Tool, ToolResult

log = get_logger(__name__)

_WINDOWS_MUTE = "$w = new-object -com wscript.shell; $w.sendkeys([char]0xAD)"
_WINDOWS_DARK_MODE = (
    "Set-ItemProperty -Path HKCU:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Themes\\Personalize "
    "-Name AppsUseLightTheme -Value 0; "
    "Set-ItemProperty -Path HKCU:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Themes\\Personalize "
    "-Name SystemUsesLightTheme -Value 0"
)


def _platform_key() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


async def run_command(argv: list[str], timeout: float = 15.0) -> tuple[int, str]:
    """Run a command and return (returncode, combined output).

    Raises:
        FileNotFoundError if the executable does not exist
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, f"Command timed out after {timeout}s"

    output = stdout.decode("utf-8", errors="replace").strip()
    stderr_text = stderr.decode("utf-8", errors="replace").strip()
    if stderr_text:
        output += f"\n[stderr] {stderr_text}" if output else stderr_text
    return process.returncode or 0, output


class SystemCommandTool(Tool):
    """Tool backed by one platform command per OS.

    When the platform has no command, or its executable is missing, the
    action is reported as simulated instead of failing.
    """

    commands: dict[str, list[str]] = {}
    done_message: str = ""

    async def execute(self, **kwargs: Any) -> ToolResult:
        argv = self.commands.get(_platform_key())
        if not argv:
            return ToolResult(content=f"{self.done_message} (simulated)")

        try:
            returncode, output = await run_command(argv, timeout=self.timeout_seconds)
        except FileNotFoundError:
            log.info("System command unavailable, simulating", tool=self.name, command=argv[0])
            return ToolResult(content=f"{self.done_message} (simulated - {argv[0]} not found)")

        if returncode != 0:
            return ToolResult(success=False, error=output or f"{argv[0]} exited with {returncode}")
        return ToolResult(content=output or self.done_message)


class MuteTool(SystemCommandTool):
    name = "mute"
    description = "Mute or unmute audio output."
    timeout_seconds = 15.0
    done_message = "Audio muted"
    commands = {
        "windows": ["powershell", "-Command", _WINDOWS_MUTE],
        "linux": ["amixer", "set", "Master", "toggle"],
        "macos": [
            "osascript",
            "-e",
            "set volume output muted not (output muted of (get volume settings))",
        ],
    }


class LockTool(SystemCommandTool):
    name = "lock"
    description = "Lock the workstation."
    timeout_seconds = 15.0
    done_message = "Screen locked"
    commands = {
        "windows": ["rundll32.exe", "user32.dll,LockWorkStation"],
        "linux": ["xdg-screensaver", "lock"],
        "macos": ["pmset", "displaysleepnow"],
    }


class DarkModeTool(SystemCommandTool):
    name = "dark_mode"
    description = "Enable dark mode."
    timeout_seconds = 15.0
    done_message = "Dark mode enabled"
    commands = {
        "windows": ["powershell", "-Command", _WINDOWS_DARK_MODE],
        "linux": ["gsettings", "set", "org.gnome.desktop.interface", "color-scheme", "prefer-dark"],
        "macos": [
            "osascript",
            "-e",
            'tell application "System Events" to tell appearance preferences to set dark mode to true',
        ],
    }


class CleanDesktopTool(Tool):
    """Move everything on the desktop into an archive folder."""

    name = "clean_desktop"
    description = "Move all files from Desktop to Documents/DesktopArchive."
    timeout_seconds = 60.0
    parameters = {
        "type": "object",
        "properties": {
            "desktop": {"type": "string", "description": "Desktop folder (default ~/Desktop)"},
            "archive": {
                "type": "string",
                "description": "Archive folder (default ~/Documents/DesktopArchive)",
            },
        },
        "required": [],
    }

    async def execute(
        self,
        desktop: str | None = None,
        archive: str | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        source = Path(desktop or "~/Desktop").expanduser()
        target = Path(archive or "~/Documents/DesktopArchive").expanduser()
        if not source.is_dir():
            return ToolResult(success=False, error=f"Desktop folder not found: {source}")

        target.mkdir(parents=True, exist_ok=True)
        moved = 0
        for entry in sorted(source.iterdir()):
            destination = target / entry.name
            if destination.exists():
                # Keep both instead of overwriting an earlier archive.
                suffix = 1
                while (target / f"{entry.stem}_{suffix}{entry.suffix}").exists():
                    suffix += 1
                destination = target / f"{entry.stem}_{suffix}{entry.suffix}"
            await asyncio.to_thread(shutil.move, str(entry), str(destination))
            moved += 1

        log.info("Desktop cleaned", moved=moved, archive=str(target))
        return ToolResult(content=f"Desktop cleaned: moved {moved} item(s) to {target}")
