"""Validation and wire encoding of user-facing blur parameters."""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from blurctl.errors import InvalidColor, InvalidIntensity

DEFAULT_INTENSITY_PERCENT = 100.0
DEFAULT_COLOR_TEXT = "80000000"
MAX_COLOR = 0xFFFFFFFF

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class BlurParameters(BaseModel):
    """Encoded parameters for a single ``apply_blur`` call."""

    model_config = ConfigDict(frozen=True)

    intensity: float = Field(ge=0.0, le=1.0)
    color: int = Field(ge=0, le=MAX_COLOR)

    def to_wire(self) -> dict[str, Any]:
        return {"intensity": self.intensity, "color": self.color}


def parse_intensity(value: Any) -> float:
    """Parse an intensity percentage and return it scaled to [0.0, 1.0]."""
    if isinstance(value, bool):
        raise InvalidIntensity(f"Invalid intensity: {value!r}")
    if isinstance(value, (int, float)):
        percent = float(value)
    elif isinstance(value, str):
        try:
            percent = float(value.strip())
        except ValueError:
            raise InvalidIntensity(f"Invalid intensity: {value!r}") from None
    else:
        raise InvalidIntensity(f"Invalid intensity: {value!r}")
    if not math.isfinite(percent) or not 0.0 <= percent <= 100.0:
        raise InvalidIntensity(f"Intensity must be between 0 and 100, got {value!r}")
    return percent / 100


def parse_color(text: Any) -> int:
    """Parse ARGB hex text such as ``"80000000"``; ``0x``/``#`` prefixes are allowed."""
    if not isinstance(text, str):
        raise InvalidColor(f"Invalid color: {text!r}")
    digits = text.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]
    elif digits.startswith("#"):
        digits = digits[1:]
    if not _HEX_RE.fullmatch(digits):
        raise InvalidColor(f"Invalid color: {text!r}")
    color = int(digits, 16)
    if color > MAX_COLOR:
        raise InvalidColor(f"Color does not fit in 32 bits: {text!r}")
    return color


def encode(intensity_percent: Any, color_text: Any) -> BlurParameters:
    """Validate raw UI input and build the parameters sent to the native side.

    Raises ``InvalidIntensity`` or ``InvalidColor`` without side effects.
    """
    intensity = parse_intensity(intensity_percent)
    color = parse_color(color_text)
    return BlurParameters(intensity=intensity, color=color)


__all__ = [
    "BlurParameters",
    "DEFAULT_COLOR_TEXT",
    "DEFAULT_INTENSITY_PERCENT",
    "encode",
    "parse_color",
    "parse_intensity",
]
