"""Simulated native blur component.

Mirrors the contract of the native blur library closely enough to drive a
session without the real DLL: initialization is single-shot until shutdown,
apply/clear require initialization, intensity is range-checked and re-applying
simply updates the parameters. The host can be bound to a ``LoopbackChannel``
or served over stdio (``python -m blurctl.native_host``) for
``StdioCommandChannel``.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, Callable, TextIO

from blurctl.capabilities import DEFAULT_NATIVE_CAPABILITIES
from blurctl.channel import LoopbackChannel
from blurctl.params import MAX_COLOR
from blurctl.protocol import (
    CMD_APPLY,
    CMD_CLEAR,
    CMD_INIT,
    CMD_SHUTDOWN,
    CMD_VERSION,
    CommandResponse,
    LogMessage,
    NativeLog,
    NativeLogLevel,
    NativeStatus,
    decode_request,
    encode_line,
)

DEFAULT_VERSION = "1.0.0"

LogSink = Callable[[NativeLogLevel, str], None]


class NativeError(Exception):
    def __init__(self, message: str, code: NativeStatus | None = None) -> None:
        super().__init__(message)
        self.code = int(code) if code is not None else None


class SimulatedBlurHost:
    def __init__(
        self,
        *,
        capabilities: int = DEFAULT_NATIVE_CAPABILITIES,
        version: str = DEFAULT_VERSION,
        log_level: NativeLogLevel = NativeLogLevel.WARN,
        log_sink: LogSink | None = None,
    ) -> None:
        self.capabilities = capabilities
        self.version = version
        self.log_level = log_level
        self.log_sink = log_sink
        self.initialized = False
        self.applied: dict[str, Any] | None = None
        self._injected: dict[str, tuple[str, NativeStatus]] = {}

    def inject_failure(
        self, command: str, message: str, code: NativeStatus = NativeStatus.INTERNAL_ERROR
    ) -> None:
        """Make the next call of ``command`` fail with ``message`` and ``code``."""
        self._injected[command] = (message, code)

    def handlers(self) -> dict[str, Callable[[dict[str, Any]], Any]]:
        return {
            CMD_INIT: self.init_lib,
            CMD_VERSION: self.get_version,
            CMD_APPLY: self.apply_blur,
            CMD_CLEAR: self.clear_blur,
            CMD_SHUTDOWN: self.shutdown,
        }

    def bind(self, channel: LoopbackChannel | None = None) -> LoopbackChannel:
        channel = channel or LoopbackChannel()
        for command, handler in self.handlers().items():
            channel.register(command, self._guarded(command, handler))
        return channel

    def dispatch(self, command: str, args: dict[str, Any]) -> Any:
        handler = self.handlers().get(command)
        if handler is None:
            raise NativeError(f"unknown: {command}")
        return self._guarded(command, handler)(args)

    def init_lib(self, _args: dict[str, Any]) -> int:
        if self.initialized:
            raise NativeError("Already initialized")
        self._log(NativeLogLevel.INFO, "Initializing blur_lib...")
        self.initialized = True
        self._log(NativeLogLevel.INFO, f"blur_lib initialized with capabilities: 0x{self.capabilities:08X}")
        return self.capabilities

    def get_version(self, _args: dict[str, Any]) -> str:
        return self.version

    def apply_blur(self, args: dict[str, Any]) -> None:
        self._require_init()
        intensity = args.get("intensity")
        color = args.get("color")
        if isinstance(intensity, bool) or not isinstance(intensity, (int, float)) or not 0.0 <= intensity <= 1.0:
            self._log(NativeLogLevel.ERROR, "Intensity must be between 0.0 and 1.0")
            raise NativeError("Intensity must be between 0.0 and 1.0", NativeStatus.INVALID_PARAMS)
        if isinstance(color, bool) or not isinstance(color, int) or not 0 <= color <= MAX_COLOR:
            self._log(NativeLogLevel.ERROR, "Invalid color")
            raise NativeError("Invalid color", NativeStatus.INVALID_PARAMS)
        if self.applied is not None:
            self._log(NativeLogLevel.DEBUG, "Blur already applied, clearing first to update params")
        self.applied = {"intensity": float(intensity), "color": color}
        self._log(NativeLogLevel.INFO, "Blur applied")

    def clear_blur(self, _args: dict[str, Any]) -> None:
        self._require_init()
        if self.applied is None:
            return
        self.applied = None
        self._log(NativeLogLevel.INFO, "Blur cleared from window")

    def shutdown(self, _args: dict[str, Any]) -> None:
        if not self.initialized:
            return
        self._log(NativeLogLevel.INFO, "Shutting down blur_lib...")
        self.applied = None
        self.initialized = False

    def _require_init(self) -> None:
        if not self.initialized:
            self._log(NativeLogLevel.ERROR, "Library not initialized")
            raise NativeError("Library not initialized", NativeStatus.NOT_INITIALIZED)

    def _guarded(self, command: str, handler: Callable[[dict[str, Any]], Any]) -> Callable[[dict[str, Any]], Any]:
        def _call(args: dict[str, Any]) -> Any:
            injected = self._injected.pop(command, None)
            if injected is not None:
                message, code = injected
                self._log(NativeLogLevel.ERROR, message)
                raise NativeError(message, code)
            return handler(args)

        return _call

    def _log(self, level: NativeLogLevel, message: str) -> None:
        if level > self.log_level or self.log_sink is None:
            return
        self.log_sink(level, message)


def serve_stdio(host: SimulatedBlurHost, stdin: TextIO, stdout: TextIO) -> int:
    """Answer JSON-line requests from ``stdin`` until it closes."""

    def _write(data: bytes) -> None:
        stdout.write(data.decode("utf-8"))
        stdout.flush()

    host.log_sink = lambda level, message: _write(
        encode_line(LogMessage(log=NativeLog(level=level, message=message)))
    )

    for line in stdin:
        if not line.strip():
            continue
        try:
            request = decode_request(line)
        except ValueError as exc:
            host.log_sink(NativeLogLevel.ERROR, f"malformed request: {exc}")
            continue
        try:
            result = host.dispatch(request.cmd, request.args)
        except NativeError as exc:
            response = CommandResponse.failure(request.id, str(exc), exc.code)
        else:
            response = CommandResponse.success(request.id, result)
        _write(encode_line(response))
    return 0


def _env_log_level(value: str | None) -> int:
    name = (value or "").strip().upper()
    if name.isdigit() and int(name) in NativeLogLevel._value2member_map_:
        return int(name)
    if name in NativeLogLevel.__members__:
        return int(NativeLogLevel[name])
    return int(NativeLogLevel.WARN)


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Serve a simulated native blur component over stdio.")
    parser.add_argument(
        "--caps",
        type=lambda value: int(value, 0),
        default=DEFAULT_NATIVE_CAPABILITIES,
        help="Capability bitmask to report (e.g. 0x0007).",
    )
    parser.add_argument("--version", dest="lib_version", default=DEFAULT_VERSION, help="Version string to report.")
    parser.add_argument(
        "--log-level",
        type=int,
        choices=[int(level) for level in NativeLogLevel],
        default=_env_log_level(os.getenv("BLURCTL_NATIVE_LOG_LEVEL")),
        help="Highest native log level forwarded (0=error .. 3=debug).",
    )
    args = parser.parse_args(argv[1:])
    host = SimulatedBlurHost(
        capabilities=args.caps,
        version=args.lib_version,
        log_level=NativeLogLevel(args.log_level),
    )
    return serve_stdio(host, sys.stdin, sys.stdout)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
