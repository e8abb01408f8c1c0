"""Capability bitmask decoding for the native blur component."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

CAPABILITY_MASK = 0xFFFF
CAPABILITY_BITS = 16


class Capability(IntEnum):
    """Bit index of each feature reported by ``blur_init_lib``."""

    SET_WINDOW_COMPOSITION = 0
    DWM_BLUR = 1
    OVERLAY_FALLBACK = 2
    COLOR_CONTROL = 3
    ANIMATION_CONTROL = 4
    D2D_BLUR = 5

    @property
    def mask(self) -> int:
        return 1 << self.value


DEFAULT_NATIVE_CAPABILITIES = (
    Capability.SET_WINDOW_COMPOSITION.mask
    | Capability.DWM_BLUR.mask
    | Capability.COLOR_CONTROL.mask
    | Capability.ANIMATION_CONTROL.mask
    | Capability.D2D_BLUR.mask
)


@dataclass(frozen=True)
class CapabilityBitmask:
    """Immutable 16-bit set of supported features."""

    raw: int

    def bits(self) -> frozenset[int]:
        return frozenset(idx for idx in range(CAPABILITY_BITS) if self.raw & (1 << idx))

    def names(self) -> list[str]:
        """Names of the known features that are set, in bit order."""
        return [cap.name for cap in Capability if self.raw & cap.mask]

    @property
    def hex(self) -> str:
        return f"0x{self.raw:04x}"

    def __contains__(self, feature_bit: object) -> bool:
        return isinstance(feature_bit, int) and supports(self, feature_bit)


def decode(raw: int) -> CapabilityBitmask:
    """Decode the raw capability value; bits above 16 are reserved and dropped."""
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError(f"capability value must be an integer, got {type(raw).__name__}")
    if raw < 0:
        raise ValueError(f"capability value must be non-negative, got {raw}")
    return CapabilityBitmask(raw & CAPABILITY_MASK)


def supports(bitmask: CapabilityBitmask, feature_bit: int) -> bool:
    """Return True if the feature at bit index ``feature_bit`` is set."""
    if not 0 <= feature_bit < CAPABILITY_BITS:
        return False
    return bool(bitmask.raw & (1 << feature_bit))


__all__ = [
    "CAPABILITY_MASK",
    "Capability",
    "CapabilityBitmask",
    "DEFAULT_NATIVE_CAPABILITIES",
    "decode",
    "supports",
]
