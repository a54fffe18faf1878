"""Terminal colors, banner and help text."""

from __future__ import annotations

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
BLUE = "\x1b[34m"
MAGENTA = "\x1b[35m"
CYAN = "\x1b[36m"
GRAY = "\x1b[90m"

CLEAR_LINE = "\x1b[2K\r"

PROMPT = f"{GREEN}you ❯{RESET} "


def paint(text: str, *styles: str, color: bool = True) -> str:
    if not color or not styles:
        return text
    return "".join(styles) + text + RESET


def banner(version: str, *, color: bool = True) -> str:
    title = paint("MESH BRIDGE", BOLD, color=color)
    subtitle = paint(f"Interactive client v{version}", DIM, color=color)
    rule = paint("=" * 44, GREEN, color=color)
    return f"{rule}\n  {title}\n  {subtitle}\n{rule}"


HELP_ROWS = (
    ("/help", "/h", "Show this help"),
    ("/new", "/n", "Start a new conversation thread"),
    ("/monitor", "/m", "Toggle monitor mode (show unrecognized frames)"),
    ("/status", "/s", "Show connection status"),
    ("/reconnect", "/r", "Reconnect now, skipping the backoff wait"),
    ("/quit", "/q", "Exit"),
)


def help_text(*, monitor: bool, color: bool = True) -> str:
    lines = [paint("Commands:", CYAN, color=color)]
    for command, alias, description in HELP_ROWS:
        lines.append(f"  {paint(f'{command:<12}', BOLD, color=color)} {alias:<4} {description}")
    lines.append("")
    lines.append(paint("Tips:", CYAN, color=color))
    lines.append("  Type a message and press Enter to send it to the agent.")
    if monitor:
        lines.append(f"  {paint('Monitor mode is ON', GREEN, color=color)}")
    else:
        lines.append("  Use /monitor to see every frame the bridge sends.")
    return "\n".join(lines)
