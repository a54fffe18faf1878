import io
import logging

from bridge_cli.console.compositor import CompositorLogHandler, OutputCompositor
from bridge_cli.console.theme import CLEAR_LINE

PROMPT = "you> "


def _compositor(**kwargs) -> tuple[OutputCompositor, io.StringIO]:
    stream = io.StringIO()
    kwargs.setdefault("color", False)
    compositor = OutputCompositor(stream, prompt=PROMPT, clock=lambda: "12:00:00", **kwargs)
    return compositor, stream


def test_async_line_clears_prompt_and_redraws_it():
    compositor, stream = _compositor()
    compositor.begin_prompt()

    compositor.log("←", "hello")

    assert stream.getvalue() == PROMPT + CLEAR_LINE + "12:00:00 ← hello\n" + PROMPT


def test_no_redraw_without_active_prompt():
    compositor, stream = _compositor()

    compositor.log("←", "hello")

    assert stream.getvalue() == CLEAR_LINE + "12:00:00 ← hello\n"


def test_reprompt_false_leaves_prompt_to_the_reader():
    compositor, stream = _compositor()
    compositor.begin_prompt()
    compositor.end_prompt()

    compositor.log("→", "sent", reprompt=False)

    assert stream.getvalue().endswith("sent\n")


def test_every_line_is_timestamped_and_prefixed():
    compositor, stream = _compositor()

    compositor.info("one")
    compositor.warn("two")
    compositor.error("three")

    lines = stream.getvalue().replace(CLEAR_LINE, "").splitlines()
    assert lines == ["12:00:00 • one", "12:00:00 ! two", "12:00:00 ✗ three"]


def test_unmanaged_prompt_writes_plain_lines():
    compositor, stream = _compositor(manage_prompt=False)
    compositor.begin_prompt()

    compositor.log("←", "hello")
    compositor.block("multi\nline")

    assert stream.getvalue() == "12:00:00 ← hello\nmulti\nline\n"


def test_color_wraps_prefix():
    compositor, stream = _compositor(color=True)

    compositor.log("!", "careful", style="\x1b[33m")

    assert "\x1b[33m!\x1b[0m careful" in stream.getvalue()


def test_log_handler_routes_records_through_compositor():
    compositor, stream = _compositor()
    handler = CompositorLogHandler(compositor)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    logger = logging.getLogger("bridge_cli.tests.compositor")
    logger.propagate = False
    logger.addHandler(handler)
    try:
        logger.warning("disk %s", "full")
    finally:
        logger.removeHandler(handler)

    assert "12:00:00 [log] WARNING disk full\n" in stream.getvalue()
