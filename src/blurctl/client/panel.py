"""Presentation adapter between a front-end and an injected BlurSession."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from blurctl.capabilities import Capability
from blurctl.errors import BlurError
from blurctl.params import DEFAULT_COLOR_TEXT, DEFAULT_INTENSITY_PERCENT
from blurctl.session import BlurSession, SessionStatus, StatusKind

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


@dataclass
class BlurPanel:
    """Turns button-style actions into session calls and keeps the last message.

    The panel never reaches for global state: the session is handed in by
    whoever builds the front-end.
    """

    session: BlurSession
    default_intensity: float = DEFAULT_INTENSITY_PERCENT
    default_color: str = DEFAULT_COLOR_TEXT
    message: str = ""
    history: deque[str] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))

    def __post_init__(self) -> None:
        self.message = self.session.current_status().describe()

    @property
    def status(self) -> SessionStatus:
        return self.session.current_status()

    @property
    def init_enabled(self) -> bool:
        return self.status.kind in {StatusKind.UNINITIALIZED, StatusKind.FAILED}

    @property
    def color_enabled(self) -> bool:
        # Color tint is only honoured when the native side reports COLOR_CONTROL.
        return self.session.supports(Capability.COLOR_CONTROL)

    def caps_text(self) -> str:
        caps = self.session.capabilities
        return f"Capabilities: {caps.hex}" if caps is not None else "Capabilities: n/a"

    def version_text(self) -> str:
        version = self.session.version
        return f"blur_lib v{version}" if version is not None else "blur_lib version unknown"

    async def on_init(self) -> str:
        try:
            await self.session.initialize()
        except BlurError as exc:
            return self._report(exc)
        return self._update(self.status.describe())

    async def on_apply(self, intensity: str | float | None = None, color: str | None = None) -> str:
        intensity_value = self.default_intensity if intensity in (None, "") else intensity
        color_value = color or self.default_color
        try:
            await self.session.apply(intensity_value, color_value)
        except BlurError as exc:
            return self._report(exc)
        return self._update(self.status.describe())

    async def on_clear(self) -> str:
        try:
            await self.session.clear()
        except BlurError as exc:
            return self._report(exc)
        return self._update(self.status.describe())

    async def on_shutdown(self) -> str:
        try:
            await self.session.shutdown()
        except BlurError as exc:
            return self._report(exc)
        return self._update("Library shut down")

    def _report(self, exc: BlurError) -> str:
        logger.info("Blur action rejected: %s", exc)
        return self._update(f"Error: {exc}")

    def _update(self, message: str) -> str:
        self.message = message
        self.history.append(message)
        return message
