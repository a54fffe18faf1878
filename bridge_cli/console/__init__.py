"""Terminal output, input sources and the interactive loop."""

from bridge_cli.console.compositor import CompositorLogHandler, OutputCompositor
from bridge_cli.console.input import LineSource, PromptToolkitLineSource, StreamLineSource, default_line_source

__all__ = [
    "CompositorLogHandler",
    "OutputCompositor",
    "LineSource",
    "PromptToolkitLineSource",
    "StreamLineSource",
    "default_line_source",
]
