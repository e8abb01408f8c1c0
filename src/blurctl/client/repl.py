"""Interactive prompt loop driving a BlurPanel."""

from __future__ import annotations

import sys

from prompt_toolkit import PromptSession  # type: ignore
from prompt_toolkit.completion import WordCompleter  # type: ignore

from blurctl.client.commands import COMMANDS, QUIT, handle_command
from blurctl.client.panel import BlurPanel


def _prompt_label(panel: BlurPanel) -> str:
    return f"blur|{panel.status.kind.value}> "


async def interactive_loop(panel: BlurPanel) -> None:
    session: PromptSession = PromptSession(completer=WordCompleter(list(COMMANDS), ignore_case=True))
    print(f"{panel.message}. Send help for commands.")

    while True:
        try:
            line = await session.prompt_async(_prompt_label(panel))
        except EOFError:
            break
        except KeyboardInterrupt:
            print("", file=sys.stderr)
            continue

        if line.strip().lower() in {"exit", "quit"} or await handle_command(line, panel) == QUIT:
            break
