"""Blur control session: sequences init/apply/clear against a command channel.

The session is the single writer of its status. Every operation checks the
current state synchronously, enters its transient state before the first
await, and resolves to a stable state (``READY``, ``APPLIED``, ``CLEARED``,
``UNINITIALIZED`` or ``FAILED``) once the channel answers. A request made while
another one is outstanding raises ``SessionBusy`` instead of being queued.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator

from blurctl.capabilities import CapabilityBitmask, decode
from blurctl.channel import CommandChannel
from blurctl.errors import AlreadyInitialized, ChannelError, NotInitialized, SessionBusy
from blurctl.log_utils import log_context, log_event
from blurctl.params import encode
from blurctl.protocol import CMD_APPLY, CMD_CLEAR, CMD_INIT, CMD_SHUTDOWN, CMD_VERSION, NativeStatus

logger = logging.getLogger(__name__)


class StatusKind(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    APPLYING = "applying"
    APPLIED = "applied"
    CLEARING = "clearing"
    CLEARED = "cleared"
    SHUTTING_DOWN = "shutting_down"
    FAILED = "failed"


TRANSIENT_KINDS = frozenset(
    {StatusKind.INITIALIZING, StatusKind.APPLYING, StatusKind.CLEARING, StatusKind.SHUTTING_DOWN}
)
OPERATIONAL_KINDS = frozenset({StatusKind.READY, StatusKind.APPLIED, StatusKind.CLEARED})

_DESCRIPTIONS = {
    StatusKind.UNINITIALIZED: "Not initialized",
    StatusKind.INITIALIZING: "Initializing...",
    StatusKind.READY: "Library initialized",
    StatusKind.APPLYING: "Applying blur...",
    StatusKind.APPLIED: "Blur applied!",
    StatusKind.CLEARING: "Clearing blur...",
    StatusKind.CLEARED: "Blur cleared",
    StatusKind.SHUTTING_DOWN: "Shutting down...",
}


@dataclass(frozen=True)
class SessionStatus:
    kind: StatusKind
    capabilities: CapabilityBitmask | None = None
    version: str | None = None
    message: str | None = None

    @classmethod
    def ready(cls, capabilities: CapabilityBitmask, version: str) -> "SessionStatus":
        return cls(StatusKind.READY, capabilities=capabilities, version=version)

    @classmethod
    def failed(cls, message: str) -> "SessionStatus":
        return cls(StatusKind.FAILED, message=message)

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    @property
    def is_operational(self) -> bool:
        return self.kind in OPERATIONAL_KINDS

    def describe(self) -> str:
        if self.kind is StatusKind.FAILED:
            return f"Error: {self.message}"
        return _DESCRIPTIONS[self.kind]


StatusListener = Callable[[SessionStatus], Any]


class BlurSession:
    """Client-side state machine for one native blur component."""

    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel
        self._status = SessionStatus(StatusKind.UNINITIALIZED)
        self._capabilities: CapabilityBitmask | None = None
        self._version: str | None = None
        self._native_initialized = False
        self._listeners: list[StatusListener] = []

    def current_status(self) -> SessionStatus:
        return self._status

    @property
    def capabilities(self) -> CapabilityBitmask | None:
        return self._capabilities

    @property
    def version(self) -> str | None:
        return self._version

    def supports(self, feature_bit: int) -> bool:
        return self._capabilities is not None and feature_bit in self._capabilities

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback run after every transition; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def initialize(self) -> SessionStatus:
        """Query capabilities and version; valid from UNINITIALIZED or FAILED."""
        self._ensure_idle("initialize")
        if self._status.is_operational:
            raise AlreadyInitialized("Already initialized")

        with log_context(operation="initialize"):
            self._transition(SessionStatus(StatusKind.INITIALIZING))
            with self._failing_on_error():
                if self._native_initialized:
                    # A failed apply/clear/shutdown leaves the native library initialized.
                    await self._channel.call(CMD_SHUTDOWN)
                    self._native_initialized = False
                raw = await self._channel.call(CMD_INIT)
                self._native_initialized = True
                capabilities = _decode_capabilities(raw)
                version = await self._channel.call(CMD_VERSION)

            self._capabilities = capabilities
            self._version = version if isinstance(version, str) else str(version)
            log_event(
                logger,
                "session.ready",
                capabilities=capabilities.hex,
                version=self._version,
            )
            self._transition(SessionStatus.ready(capabilities, self._version))
        return self._status

    async def apply(self, intensity_percent: Any, color_text: Any) -> SessionStatus:
        """Validate the inputs and ask the native side to blur the window.

        A native ``ALREADY_APPLIED`` answer counts as success.
        """
        self._ensure_idle("apply")
        self._ensure_operational("apply")
        params = encode(intensity_percent, color_text)

        with log_context(operation="apply"):
            self._transition(SessionStatus(StatusKind.APPLYING))
            with self._failing_on_error():
                try:
                    await self._channel.call(CMD_APPLY, params.to_wire())
                except ChannelError as exc:
                    if exc.code != NativeStatus.ALREADY_APPLIED:
                        raise
                    log_event(logger, "session.already_applied", level=logging.DEBUG, error=exc.message)
            self._transition(SessionStatus(StatusKind.APPLIED))
        return self._status

    async def clear(self) -> SessionStatus:
        self._ensure_idle("clear")
        self._ensure_operational("clear")

        with log_context(operation="clear"):
            self._transition(SessionStatus(StatusKind.CLEARING))
            with self._failing_on_error():
                await self._channel.call(CMD_CLEAR)
            self._transition(SessionStatus(StatusKind.CLEARED))
        return self._status

    async def shutdown(self) -> SessionStatus:
        """Tear the native library down so initialize() may run again."""
        self._ensure_idle("shutdown")
        if self._status.kind is StatusKind.UNINITIALIZED:
            return self._status

        with log_context(operation="shutdown"):
            self._transition(SessionStatus(StatusKind.SHUTTING_DOWN))
            if self._native_initialized:
                with self._failing_on_error():
                    await self._channel.call(CMD_SHUTDOWN)
                self._native_initialized = False
            self._capabilities = None
            self._version = None
            self._transition(SessionStatus(StatusKind.UNINITIALIZED))
        return self._status

    def _ensure_idle(self, operation: str) -> None:
        if self._status.is_transient:
            log_event(
                logger,
                "session.busy",
                level=logging.WARNING,
                operation=operation,
                state=self._status.kind.value,
            )
            raise SessionBusy(f"Cannot {operation} while {self._status.kind.value}")

    def _ensure_operational(self, operation: str) -> None:
        if not self._status.is_operational:
            raise NotInitialized(f"Cannot {operation}: library not initialized")

    @contextlib.contextmanager
    def _failing_on_error(self) -> Iterator[None]:
        """Resolve the transient state to FAILED on any error, cancellation included."""
        try:
            yield
        except ChannelError as exc:
            self._fail(exc.message, code=exc.code)
            raise
        except BaseException as exc:
            self._fail(str(exc) or exc.__class__.__name__)
            raise

    def _fail(self, message: str, *, code: int | None = None) -> None:
        log_event(logger, "session.failed", level=logging.ERROR, error=message, code=code)
        self._transition(SessionStatus.failed(message))

    def _transition(self, status: SessionStatus) -> None:
        previous = self._status
        self._status = status
        log_event(
            logger,
            "session.transition",
            level=logging.DEBUG,
            from_state=previous.kind.value,
            to_state=status.kind.value,
        )
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:  # noqa: BLE001
                logger.exception("Status listener failed on %s", status.kind.value)


def _decode_capabilities(raw: Any) -> CapabilityBitmask:
    try:
        return decode(raw)
    except (TypeError, ValueError) as exc:
        raise ChannelError(f"Invalid capability value from native side: {raw!r}") from exc


__all__ = [
    "BlurSession",
    "OPERATIONAL_KINDS",
    "SessionStatus",
    "StatusKind",
    "TRANSIENT_KINDS",
]
