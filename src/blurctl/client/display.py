"""Rich rendering of session status for the terminal front-end."""

from __future__ import annotations

from io import StringIO
from threading import Lock
from typing import Any

from prompt_toolkit.formatted_text import ANSI  # type: ignore
from prompt_toolkit.shortcuts import print_formatted_text  # type: ignore
from rich.console import Console
from rich.table import Table
from rich.text import Text

from blurctl.capabilities import Capability, CapabilityBitmask
from blurctl.session import SessionStatus, StatusKind

_render_buffer = StringIO()
_render_console = Console(
    file=_render_buffer,
    force_terminal=True,
    color_system="standard",
    markup=False,
    highlight=False,
)
_render_lock = Lock()

_STATUS_STYLES = {
    StatusKind.READY: "green",
    StatusKind.APPLIED: "green",
    StatusKind.CLEARED: "cyan",
    StatusKind.FAILED: "red",
    StatusKind.UNINITIALIZED: "white",
}


def render_to_ansi(*renderables: Any) -> str:
    with _render_lock:
        _render_buffer.seek(0)
        _render_buffer.truncate(0)
        _render_console.print(*renderables)
        return _render_buffer.getvalue()


def _print(*renderables: Any) -> None:
    output = render_to_ansi(*renderables)
    if output:
        print_formatted_text(ANSI(output), end="")


def status_text(status: SessionStatus) -> Text:
    style = _STATUS_STYLES.get(status.kind, "yellow")
    return Text(status.describe(), style=style)


def capabilities_table(caps: CapabilityBitmask | None) -> Table:
    table = Table(title="Capabilities", show_header=True, box=None, border_style="cyan")
    table.add_column("Bit", style="cyan", justify="right")
    table.add_column("Feature")
    table.add_column("Supported")
    for cap in Capability:
        supported = caps is not None and cap in caps
        table.add_row(str(cap.value), cap.name, Text("yes", style="green") if supported else Text("no", style="red"))
    return table


def print_message(message: str) -> None:
    style = "red" if message.startswith("Error:") else None
    _print(Text(message, style=style) if style else Text(message))


def print_status(status: SessionStatus, *, caps_line: str, version_line: str) -> None:
    _print(status_text(status), Text(caps_line, style="#aaaaaa"), Text(version_line, style="#aaaaaa"))


def print_capabilities(caps: CapabilityBitmask | None) -> None:
    _print(capabilities_table(caps))
