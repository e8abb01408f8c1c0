"""Wire contract with the native blur component.

Commands travel as JSON lines. A request carries an id, the command name and an
argument mapping; the native side answers with a response bearing the same id.
Log lines emitted by the native library may be interleaved with responses.
"""

from __future__ import annotations

import json
import logging
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field

CMD_INIT = "blur_init_lib"
CMD_VERSION = "get_blur_version"
CMD_APPLY = "apply_blur"
CMD_CLEAR = "clear_blur"
CMD_SHUTDOWN = "blur_shutdown"

COMMANDS = (CMD_INIT, CMD_VERSION, CMD_APPLY, CMD_CLEAR, CMD_SHUTDOWN)


class NativeStatus(IntEnum):
    SUCCESS = 0
    NOT_INITIALIZED = 1
    INVALID_HANDLE = 2
    PERMISSION_DENIED = 3
    API_UNSUPPORTED = 4
    TIMEOUT = 5
    OUT_OF_MEMORY = 6
    INTERNAL_ERROR = 7
    INVALID_PARAMS = 8
    ALREADY_APPLIED = 9


class NativeLogLevel(IntEnum):
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3

    def to_logging(self) -> int:
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    NativeLogLevel.ERROR: logging.ERROR,
    NativeLogLevel.WARN: logging.WARNING,
    NativeLogLevel.INFO: logging.INFO,
    NativeLogLevel.DEBUG: logging.DEBUG,
}


class CommandRequest(BaseModel):
    id: int
    cmd: str
    args: dict[str, Any] = Field(default_factory=dict)


class CommandResponse(BaseModel):
    id: int
    ok: bool
    result: Any = None
    error: str | None = None
    code: int | None = None

    @classmethod
    def success(cls, msg_id: int, result: Any = None) -> "CommandResponse":
        return cls(id=msg_id, ok=True, result=result)

    @classmethod
    def failure(cls, msg_id: int, error: str, code: int | None = None) -> "CommandResponse":
        return cls(id=msg_id, ok=False, error=error, code=code)


class NativeLog(BaseModel):
    level: NativeLogLevel = NativeLogLevel.INFO
    message: str


class LogMessage(BaseModel):
    log: NativeLog


def encode_line(message: BaseModel) -> bytes:
    return (message.model_dump_json(exclude_none=True) + "\n").encode("utf-8")


def decode_inbound(line: bytes | str) -> CommandResponse | LogMessage:
    """Parse one line sent by the native side into a response or a log record."""
    data = json.loads(line)
    if isinstance(data, dict) and "log" in data:
        return LogMessage.model_validate(data)
    return CommandResponse.model_validate(data)


def decode_request(line: bytes | str) -> CommandRequest:
    return CommandRequest.model_validate_json(line)


__all__ = [
    "CMD_APPLY",
    "CMD_CLEAR",
    "CMD_INIT",
    "CMD_SHUTDOWN",
    "CMD_VERSION",
    "COMMANDS",
    "CommandRequest",
    "CommandResponse",
    "LogMessage",
    "NativeLog",
    "NativeLogLevel",
    "NativeStatus",
    "decode_inbound",
    "decode_request",
    "encode_line",
]
