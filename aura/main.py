"""Main entry point for Aura."""

import asyncio
import sys
from pathlib import Path

import typer

from aura.cli import get_ui
from aura.config import Config, get_config, set_config
from aura.events import EventChannel
from aura.llm import create_responder
from aura.logging import configure_logging, log
from aura.session import ChatSession
from aura.tools import create_tool_registry

app = typer.Typer(help="Aura - a chat assistant that asks before it acts")


async def run_interactive() -> None:
    """Run the interactive chat loop."""
    ui = get_ui()
    cfg = get_config()
    channel = EventChannel()
    registry = create_tool_registry(cfg)
    responder = create_responder(
        channel,
        cfg,
        tools=registry.get_definitions() if cfg.model.native_tools else None,
    )
    pump = asyncio.create_task(channel.pump())

    ui.print_welcome()
    try:
        async with ChatSession(
            channel,
            responder,
            registry,
            config=cfg,
            listener=ui.handle_update,
        ) as session:
            while True:
                # Threaded so the event pump keeps running while waiting for input.
                user_input = await asyncio.to_thread(ui.prompt)
                result = ui.handle_special_command(user_input)

                if result is None:
                    continue
                elif result == "EXIT":
                    log.info("User requested exit")
                    break
                elif result == "CONFIRM":
                    if not session.gate.is_pending:
                        ui.print_error("No action is pending")
                        continue
                    await session.confirm()
                    continue
                elif result == "DENY":
                    if not session.deny():
                        ui.print_error("No action is pending")
                    continue

                if await session.submit(result):
                    await session.wait_idle()
                    await channel.drain()
    finally:
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        await responder.close()


def main(
    config: str = "",
    model: str = "",
    no_stream: bool = False,
    verbose: bool = False,
) -> None:
    """Start an interactive Aura session."""
    if config:
        try:
            cfg = Config.from_yaml(Path(config))
        except Exception as e:
            print(f"Failed to load config {config}: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        cfg = Config.load()

    if model:
        cfg.model.model = model
    if no_stream:
        cfg.ui.streaming = False

    set_config(cfg)
    configure_logging("DEBUG" if verbose else None)

    try:
        asyncio.run(run_interactive())
    except (KeyboardInterrupt, EOFError):
        log.info("Shutting down...")
        sys.exit(0)
    except Exception as e:
        log.error("Fatal error", error=str(e))
        sys.exit(1)


@app.command()
def run(
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    no_stream: bool = typer.Option(False, "--no-stream", help="Show replies only once complete"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Chat with the assistant."""
    main(config, model, no_stream, verbose)


@app.command()
def version() -> None:
    """Show version information."""
    from aura import __version__

    print(f"Aura v{__version__}")


if __name__ == "__main__":
    app()
