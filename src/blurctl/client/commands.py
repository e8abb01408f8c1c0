"""Command registry and dispatch for the interactive front-end."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from blurctl.client.display import print_capabilities, print_message, print_status
from blurctl.client.panel import BlurPanel

logger = logging.getLogger(__name__)

QUIT = "__QUIT__"

CommandHandler = Callable[[BlurPanel, str], Awaitable[str | None] | str | None]


@dataclass
class CommandDef:
    description: str
    hint: str
    handler: CommandHandler


COMMANDS: dict[str, CommandDef] = {}


def register_command(name: str, description: str, hint: str) -> Callable[[CommandHandler], CommandHandler]:
    """Decorator to register a front-end command."""

    def _decorator(func: CommandHandler) -> CommandHandler:
        COMMANDS[name] = CommandDef(description=description, hint=hint, handler=func)
        return func

    return _decorator


@register_command("help", description="Show available commands.", hint="help")
def _handle_help(_panel: BlurPanel, _argument: str) -> None:
    lines = ["Available commands:"]
    lines.extend(f"{entry.hint:<28} - {entry.description}" for entry in COMMANDS.values())
    print_message("\n".join(lines))
    return None


@register_command("init", description="Initialize the native blur library.", hint="init")
async def _handle_init(panel: BlurPanel, _argument: str) -> str:
    message = await panel.on_init()
    print_message(message)
    if panel.session.version is not None:
        print_message(panel.version_text())
        print_message(panel.caps_text())
    return message


@register_command(
    "apply",
    description="Apply blur (intensity 0-100, ARGB hex color).",
    hint="apply [intensity] [color]",
)
async def _handle_apply(panel: BlurPanel, argument: str) -> str:
    parts = argument.split()
    if len(parts) > 2:
        message = "Error: usage: apply [intensity] [color]"
        print_message(message)
        return message
    intensity = parts[0] if parts else None
    color = parts[1] if len(parts) > 1 else None
    if color is not None and panel.session.capabilities is not None and not panel.color_enabled:
        logger.info("Native side does not report color control; tint may be ignored")
    message = await panel.on_apply(intensity, color)
    print_message(message)
    return message


@register_command("clear", description="Remove the blur effect.", hint="clear")
async def _handle_clear(panel: BlurPanel, _argument: str) -> str:
    message = await panel.on_clear()
    print_message(message)
    return message


@register_command("shutdown", description="Tear down the native library.", hint="shutdown")
async def _handle_shutdown(panel: BlurPanel, _argument: str) -> str:
    message = await panel.on_shutdown()
    print_message(message)
    return message


@register_command("status", description="Show the session status.", hint="status")
def _handle_status(panel: BlurPanel, _argument: str) -> None:
    print_status(panel.status, caps_line=panel.caps_text(), version_line=panel.version_text())
    return None


@register_command("caps", description="List capability bits.", hint="caps")
def _handle_caps(panel: BlurPanel, _argument: str) -> None:
    print_capabilities(panel.session.capabilities)
    return None


@register_command("history", description="Show recent action results.", hint="history")
def _handle_history(panel: BlurPanel, _argument: str) -> None:
    print_message("\n".join(panel.history) if panel.history else "No actions yet")
    return None


@register_command("quit", description="Exit the client.", hint="quit")
def _handle_quit(_panel: BlurPanel, _argument: str) -> str:
    return QUIT


async def handle_command(line: str, panel: BlurPanel) -> str | None:
    """Run one input line; returns the handler's message, ``QUIT``, or None."""

    text = line.strip()
    if not text:
        return None
    name, _, argument = text.partition(" ")
    entry = COMMANDS.get(name.lower())
    if entry is None:
        message = f"Unknown command: {name}. Send help for a list."
        print_message(message)
        return message
    result = entry.handler(panel, argument.strip())
    if inspect.isawaitable(result):
        result = await result
    return result
