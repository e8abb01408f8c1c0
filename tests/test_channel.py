from __future__ import annotations

import logging
import sys

import pytest

from blurctl.channel import LoopbackChannel, StdioCommandChannel
from blurctl.errors import ChannelError
from blurctl.native_host import NativeError
from blurctl.protocol import NativeStatus
from blurctl.session import BlurSession, StatusKind

HOST_ARGS = ["-m", "blurctl.native_host", "--caps", "0x0007", "--version", "1.2.0", "--log-level", "3"]


@pytest.mark.asyncio
async def test_loopback_dispatches_sync_and_async_handlers() -> None:
    async def _version(_args: dict) -> str:
        return "2.0.0"

    channel = LoopbackChannel({"blur_init_lib": lambda _args: 3})
    channel.register("get_blur_version", _version)

    assert await channel.call("blur_init_lib") == 3
    assert await channel.call("get_blur_version", {}) == "2.0.0"


@pytest.mark.asyncio
async def test_loopback_passes_argument_copy() -> None:
    seen: list[dict] = []
    channel = LoopbackChannel({"apply_blur": seen.append})
    args = {"intensity": 0.5, "color": 1}

    await channel.call("apply_blur", args)

    assert seen == [args]
    assert seen[0] is not args


@pytest.mark.asyncio
async def test_loopback_unknown_command() -> None:
    with pytest.raises(ChannelError, match="unknown command: clear_blur"):
        await LoopbackChannel().call("clear_blur")


@pytest.mark.asyncio
async def test_loopback_wraps_handler_errors_with_code() -> None:
    def _fail(_args: dict) -> None:
        raise NativeError("Library not initialized", NativeStatus.NOT_INITIALIZED)

    channel = LoopbackChannel({"clear_blur": _fail})

    with pytest.raises(ChannelError) as excinfo:
        await channel.call("clear_blur")

    assert excinfo.value.message == "Library not initialized"
    assert excinfo.value.code == NativeStatus.NOT_INITIALIZED


@pytest.mark.asyncio
async def test_stdio_round_trip_and_native_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="blurctl.native")

    async with StdioCommandChannel(sys.executable, HOST_ARGS) as channel:
        assert await channel.call("blur_init_lib") == 7
        assert await channel.call("get_blur_version") == "1.2.0"
        assert await channel.call("apply_blur", {"intensity": 0.25, "color": 0x80000000}) is None
        assert await channel.call("clear_blur") is None

    assert "blur_lib initialized with capabilities: 0x00000007" in caplog.messages
    assert "Blur applied" in caplog.messages


@pytest.mark.asyncio
async def test_stdio_error_response_carries_code() -> None:
    async with StdioCommandChannel(sys.executable, HOST_ARGS) as channel:
        with pytest.raises(ChannelError) as excinfo:
            await channel.call("apply_blur", {"intensity": 0.5, "color": 0})

    assert excinfo.value.message == "Library not initialized"
    assert excinfo.value.code == NativeStatus.NOT_INITIALIZED


@pytest.mark.asyncio
async def test_stdio_host_exit_fails_outstanding_call() -> None:
    channel = StdioCommandChannel(sys.executable, ["-c", "import sys; sys.stdin.readline()"])
    await channel.start()
    try:
        with pytest.raises(ChannelError, match="native host exited"):
            await channel.call("blur_init_lib")
        with pytest.raises(ChannelError, match="native host exited"):
            await channel.call("blur_init_lib")
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_stdio_call_before_start() -> None:
    channel = StdioCommandChannel(sys.executable, HOST_ARGS)

    with pytest.raises(ChannelError, match="not running"):
        await channel.call("blur_init_lib")


@pytest.mark.asyncio
async def test_stdio_missing_program() -> None:
    channel = StdioCommandChannel("/nonexistent/blur-host")

    with pytest.raises(ChannelError, match="failed to start native host"):
        await channel.start()


@pytest.mark.asyncio
async def test_session_over_stdio_host() -> None:
    async with StdioCommandChannel(sys.executable, HOST_ARGS) as channel:
        session = BlurSession(channel)

        ready = await session.initialize()
        applied = await session.apply(75, "FF112233")
        cleared = await session.clear()
        await session.shutdown()

    assert ready.kind is StatusKind.READY
    assert ready.capabilities is not None and ready.capabilities.bits() == frozenset({0, 1, 2})
    assert ready.version == "1.2.0"
    assert applied.kind is StatusKind.APPLIED
    assert cleared.kind is StatusKind.CLEARED


ALREADY_APPLIED_HOST = """
import json, sys
replies = {
    "blur_init_lib": {"ok": True, "result": 7},
    "get_blur_version": {"ok": True, "result": "1.0.0"},
    "apply_blur": {"ok": False, "error": "Blur already applied", "code": 9},
}
for line in sys.stdin:
    request = json.loads(line)
    print(json.dumps({"id": request["id"], **replies.get(request["cmd"], {"ok": True})}), flush=True)
"""


@pytest.mark.asyncio
async def test_session_treats_already_applied_reply_as_success() -> None:
    async with StdioCommandChannel(sys.executable, ["-c", ALREADY_APPLIED_HOST]) as channel:
        with pytest.raises(ChannelError) as excinfo:
            await channel.call("apply_blur", {"intensity": 0.5, "color": 0})
        assert excinfo.value.code == NativeStatus.ALREADY_APPLIED

        session = BlurSession(channel)
        await session.initialize()
        status = await session.apply(50, "80000000")

    assert status.kind is StatusKind.APPLIED


@pytest.mark.asyncio
async def test_oversized_line_fails_calls_and_close_stays_clean(caplog: pytest.LogCaptureFixture) -> None:
    script = "import sys; sys.stdout.write('x' * 100000 + '\\n'); sys.stdout.flush(); sys.stdin.readline()"
    channel = StdioCommandChannel(sys.executable, ["-c", script], close_timeout=1.0)
    await channel.start()
    try:
        with pytest.raises(ChannelError, match="native host stream failed"):
            await channel.call("blur_init_lib")
    finally:
        await channel.close()

    assert not channel.running
    assert "Reading from native host failed" in caplog.messages
