"""Terminal blur controller: wires a channel, a session and the prompt loop."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from pydantic import ValidationError as SettingsError

from blurctl.channel import CommandChannel, StdioCommandChannel, native_logger
from blurctl.client.panel import BlurPanel
from blurctl.client.repl import interactive_loop
from blurctl.config import BlurSettings, load_settings
from blurctl.errors import BlurError, ChannelError
from blurctl.log_utils import build_log_config, configure_logging
from blurctl.native_host import SimulatedBlurHost
from blurctl.protocol import NativeLogLevel
from blurctl.session import BlurSession, StatusKind

logger = logging.getLogger(__name__)


def _forward_native_log(level: NativeLogLevel, message: str) -> None:
    native_logger.log(level.to_logging(), message)


def build_channel(settings: BlurSettings) -> CommandChannel:
    """Pick the transport described by the settings (simulated or stdio host)."""
    if settings.simulate:
        host = SimulatedBlurHost(log_level=settings.native_log_level, log_sink=_forward_native_log)
        return host.bind()
    if not settings.host_program:
        raise ChannelError("No native host configured; pass a host program or --simulate")
    env = {**os.environ, "BLURCTL_NATIVE_LOG_LEVEL": str(int(settings.native_log_level))}
    return StdioCommandChannel(settings.host_program, settings.host_args, env=env)


async def run_client(settings: BlurSettings) -> int:
    _setup_client_logging()

    try:
        channel = build_channel(settings)
        if isinstance(channel, StdioCommandChannel):
            await channel.start()
    except ChannelError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    session = BlurSession(channel)
    panel = BlurPanel(
        session,
        default_intensity=settings.default_intensity,
        default_color=settings.default_color,
    )
    try:
        await interactive_loop(panel)
        return 0
    except KeyboardInterrupt:
        return 130
    finally:
        status = session.current_status()
        if status.kind is not StatusKind.UNINITIALIZED and not status.is_transient:
            try:
                await session.shutdown()
            except BlurError as exc:
                logger.warning("Shutdown on exit failed: %s", exc)
        if isinstance(channel, StdioCommandChannel):
            await channel.close()


async def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Control the native window blur from a terminal.")
    parser.add_argument("--simulate", action="store_true", default=None, help="Use the built-in simulated host.")
    parser.add_argument("--intensity", type=float, help="Default intensity percent for apply (0-100).")
    parser.add_argument("--color", type=str, help="Default ARGB hex color for apply, e.g. 80000000.")
    parser.add_argument(
        "--native-log-level",
        type=str,
        help="Highest native log level to forward: error, warn, info, debug.",
    )
    parser.add_argument("host_program", nargs="?", help="Native host program speaking JSON lines on stdio")
    parser.add_argument("host_args", nargs=argparse.REMAINDER, help="Arguments for the native host")
    args = parser.parse_args(argv[1:])

    try:
        settings = load_settings(
            simulate=args.simulate,
            default_intensity=args.intensity,
            default_color=args.color,
            native_log_level=args.native_log_level,
            host_program=args.host_program,
            host_args=args.host_args or None,
        )
    except SettingsError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 2

    return await run_client(settings)


def _setup_client_logging() -> None:
    configure_logging(build_log_config(log_file_name="blurctl_client.log"))
