"""Client-side control of a native window-blur component."""

from blurctl.capabilities import Capability, CapabilityBitmask, decode, supports  # noqa: F401
from blurctl.channel import CommandChannel, LoopbackChannel, StdioCommandChannel  # noqa: F401
from blurctl.errors import (  # noqa: F401
    AlreadyInitialized,
    BlurError,
    ChannelError,
    InvalidColor,
    InvalidIntensity,
    NotInitialized,
    SessionBusy,
    ValidationError,
)
from blurctl.params import BlurParameters, encode  # noqa: F401
from blurctl.session import BlurSession, SessionStatus, StatusKind  # noqa: F401

__all__ = [
    "AlreadyInitialized",
    "BlurError",
    "BlurParameters",
    "BlurSession",
    "Capability",
    "CapabilityBitmask",
    "ChannelError",
    "CommandChannel",
    "InvalidColor",
    "InvalidIntensity",
    "LoopbackChannel",
    "NotInitialized",
    "SessionBusy",
    "SessionStatus",
    "StatusKind",
    "StdioCommandChannel",
    "ValidationError",
    "decode",
    "encode",
    "supports",
]
