"""Command channels that carry blur commands to the native component."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import itertools
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Protocol

import asyncio.subprocess as aio_subprocess

from blurctl.errors import ChannelError
from blurctl.log_utils import log_event
from blurctl.protocol import (
    CommandRequest,
    CommandResponse,
    LogMessage,
    decode_inbound,
    encode_line,
)

logger = logging.getLogger(__name__)
native_logger = logging.getLogger("blurctl.native")

CommandHandler = Callable[[dict[str, Any]], Awaitable[Any] | Any]

DEFAULT_CLOSE_TIMEOUT_S = 2.0


class CommandChannel(Protocol):
    async def call(self, command: str, args: Mapping[str, Any] | None = None) -> Any: ...


class LoopbackChannel:
    """In-process channel dispatching commands to registered handlers."""

    def __init__(self, handlers: Mapping[str, CommandHandler] | None = None) -> None:
        self._handlers: dict[str, CommandHandler] = dict(handlers or {})

    def register(self, command: str, handler: CommandHandler) -> None:
        self._handlers[command] = handler

    async def call(self, command: str, args: Mapping[str, Any] | None = None) -> Any:
        handler = self._handlers.get(command)
        if handler is None:
            raise ChannelError(f"unknown command: {command}")
        log_event(logger, "channel.call", level=logging.DEBUG, command=command, transport="loopback")
        try:
            result = handler(dict(args or {}))
            if inspect.isawaitable(result):
                result = await result
        except ChannelError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ChannelError(str(exc) or exc.__class__.__name__, code=getattr(exc, "code", None)) from exc
        return result


class StdioCommandChannel:
    """Channel speaking JSON lines to a native host process over stdio."""

    def __init__(
        self,
        program: str,
        args: Iterable[str] = (),
        *,
        env: Mapping[str, str] | None = None,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT_S,
    ) -> None:
        self._program = program
        self._args = list(args)
        self._env = dict(env) if env is not None else None
        self._close_timeout = close_timeout
        self._proc: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[CommandResponse]] = {}
        self._ids = itertools.count(1)
        self._exit_reason: str | None = None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None and self._exit_reason is None

    async def start(self) -> None:
        if self._proc is not None:
            return
        program_path = Path(self._program)
        spawn_program = self._program
        spawn_args = list(self._args)
        if program_path.exists() and not os.access(program_path, os.X_OK):
            spawn_program = sys.executable
            spawn_args = [str(program_path), *spawn_args]

        try:
            proc = await asyncio.create_subprocess_exec(
                spawn_program,
                *spawn_args,
                stdin=aio_subprocess.PIPE,
                stdout=aio_subprocess.PIPE,
                env=self._env,
            )
        except OSError as exc:
            raise ChannelError(f"failed to start native host {self._program}: {exc}") from exc
        if proc.stdin is None or proc.stdout is None:
            raise ChannelError("native host does not expose stdio pipes")
        self._proc = proc
        self._reader_task = asyncio.create_task(self._read_loop(proc.stdout))
        log_event(logger, "channel.start", program=spawn_program, pid=proc.pid)

    async def call(self, command: str, args: Mapping[str, Any] | None = None) -> Any:
        proc = self._proc
        if proc is None or proc.stdin is None or not self.running:
            raise ChannelError(self._exit_reason or "native host is not running")

        msg_id = next(self._ids)
        future: asyncio.Future[CommandResponse] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future
        request = CommandRequest(id=msg_id, cmd=command, args=dict(args or {}))
        log_event(logger, "channel.call", level=logging.DEBUG, command=command, id=msg_id)
        try:
            proc.stdin.write(encode_line(request))
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            self._pending.pop(msg_id, None)
            raise ChannelError(f"native host pipe closed: {exc}") from exc

        response = await future
        if not response.ok:
            raise ChannelError(response.error or "Unknown error", code=response.code)
        return response.result

    async def close(self) -> None:
        proc = self._proc
        if proc is None:
            return
        if proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._close_timeout)
        except asyncio.TimeoutError:
            proc.terminate()
            with contextlib.suppress(ProcessLookupError):
                await proc.wait()
        if self._reader_task is not None:
            await self._reader_task
        self._fail_pending("native host closed")
        log_event(logger, "channel.close", returncode=proc.returncode)

    async def __aenter__(self) -> "StdioCommandChannel":
        await self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def _read_loop(self, stdout: asyncio.StreamReader) -> None:
        reason: str | None = None
        try:
            while True:
                line = await stdout.readline()
                if not line:
                    break
                if not line.strip():
                    continue
                try:
                    message = decode_inbound(line)
                except ValueError as exc:
                    logger.warning("Ignoring malformed line from native host: %s", exc)
                    continue
                if isinstance(message, LogMessage):
                    native_logger.log(message.log.level.to_logging(), message.log.message)
                    continue
                future = self._pending.pop(message.id, None)
                if future is None:
                    logger.warning("Response for unknown request id %s", message.id)
                    continue
                if not future.done():
                    future.set_result(message)
        except Exception as exc:  # noqa: BLE001
            # e.g. a line over the StreamReader limit; the host is unusable from here on.
            logger.exception("Reading from native host failed")
            reason = f"native host stream failed: {exc}"
        finally:
            if reason is None:
                code = self._proc.returncode if self._proc is not None else None
                reason = "native host exited" if code is None else f"native host exited with code {code}"
            self._exit_reason = reason
            self._fail_pending(reason)

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ChannelError(reason))
