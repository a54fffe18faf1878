"""Client bootstrap entrypoint for supervisor/dispatcher/console wiring."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import Optional, Sequence, TextIO, Type

from pydantic import ValidationError
from prompt_toolkit.patch_stdout import patch_stdout

from bridge_cli import __version__
from bridge_cli.cli import parse_args, settings_overrides
from bridge_cli.config import ClientSettings, load_settings
from bridge_cli.console.compositor import CompositorLogHandler, OutputCompositor
from bridge_cli.console.input import LineSource, default_line_source
from bridge_cli.console.repl import LineInputLoop
from bridge_cli.console.theme import YELLOW, banner, help_text
from bridge_cli.dispatch import FrameDispatcher
from bridge_cli.handlers import FrameHandlers
from bridge_cli.network.supervisor import ConnectionSupervisor, SupervisorStopped
from bridge_cli.network.transport.base import BaseTransport
from bridge_cli.network.transport.memory import MemoryTransport
from bridge_cli.network.transport.websocket import WebSocketTransport
from bridge_cli.session import ChatSession

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: ClientSettings, compositor: OutputCompositor) -> None:
    """Send records to ``log_file`` when set, otherwise above the prompt."""

    if settings.log_file is not None:
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    else:
        handler = CompositorLogHandler(compositor)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        handlers=[handler],
        force=True,
    )


def transport_class(settings: ClientSettings) -> Type[BaseTransport]:
    return WebSocketTransport if settings.transport == "websocket" else MemoryTransport


async def _report_first_attempt(
    future: "asyncio.Future[Optional[str]]",
    supervisor: ConnectionSupervisor,
    compositor: OutputCompositor,
) -> None:
    try:
        await future
    except SupervisorStopped:
        return
    except Exception as exc:  # noqa: BLE001
        LOGGER.info("Initial connection attempt failed: %s", exc)
        compositor.log(
            "⚠",
            f"Could not reach {supervisor.server_url} ({exc}); retrying in the background",
            style=YELLOW,
        )


async def run(
    settings: ClientSettings,
    *,
    source: Optional[LineSource] = None,
    stream: Optional[TextIO] = None,
) -> int:
    """Wire the client together, run the input loop, then shut everything down."""

    source = source or default_line_source()
    target = stream if stream is not None else sys.stdout
    compositor = OutputCompositor(
        stream,
        manage_prompt=not source.draws_prompt,
        color=source.draws_prompt or target.isatty(),
    )
    configure_logging(settings, compositor)

    session = ChatSession(monitor=settings.monitor)
    dispatcher = FrameDispatcher(monitor=lambda: session.monitor)
    resolved_cls = transport_class(settings)
    LOGGER.debug("Initialising bridge connection via %s", resolved_cls.__name__)
    supervisor = ConnectionSupervisor(
        settings,
        transport_factory=lambda s: resolved_cls(s),
        on_frame=dispatcher.feed,
    )
    handlers = FrameHandlers(session, compositor, supervisor, domain=settings.domain)
    handlers.register(dispatcher)
    dispatcher.set_fallbacks(on_unknown=handlers.on_unknown, on_malformed=handlers.on_malformed)
    supervisor.set_listeners(
        on_connection_lost=handlers.on_connection_lost,
        on_retry_scheduled=handlers.on_retry_scheduled,
    )
    repl = LineInputLoop(supervisor, session, compositor, source, settings)

    context = patch_stdout(raw=True) if source.draws_prompt else contextlib.nullcontext()
    with context:
        compositor.block(banner(__version__, color=compositor.color), reprompt=False)
        compositor.block(help_text(monitor=session.monitor, color=compositor.color), reprompt=False)
        compositor.info(f"Connecting to {supervisor.server_url}...", reprompt=False)
        dispatcher.start()
        first = supervisor.start()
        reporter = asyncio.create_task(_report_first_attempt(first, supervisor, compositor), name="first-connect")
        try:
            return await repl.run()
        finally:
            await supervisor.stop()
            await dispatcher.stop()
            reporter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reporter


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(**settings_overrides(args))
    except (ValidationError, ValueError, RuntimeError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    try:
        return asyncio.run(run(settings))
    except KeyboardInterrupt:
        return 0
    except Exception:  # noqa: BLE001
        LOGGER.exception("Mesh Bridge client crashed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
