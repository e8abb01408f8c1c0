from __future__ import annotations

import pytest

from blurctl.errors import InvalidColor, InvalidIntensity, ValidationError
from blurctl.params import BlurParameters, encode, parse_color, parse_intensity


def test_encode_half_intensity_default_color() -> None:
    params = encode(50, "80000000")

    assert params == BlurParameters(intensity=0.5, color=0x80000000)
    assert params.to_wire() == {"intensity": 0.5, "color": 0x80000000}


def test_encode_accepts_numeric_strings_and_prefixes() -> None:
    assert encode("75", "FF112233").to_wire() == {"intensity": 0.75, "color": 0xFF112233}
    assert parse_color("0xff112233") == 0xFF112233
    assert parse_color("#00000000") == 0
    assert parse_color("  1a  ") == 0x1A


def test_encode_accepts_bounds_and_transparent_color() -> None:
    assert encode(0, "00000000").to_wire() == {"intensity": 0.0, "color": 0}
    assert encode(100.0, "FFFFFFFF").to_wire() == {"intensity": 1.0, "color": 0xFFFFFFFF}


def test_encode_is_deterministic() -> None:
    assert encode("33", "12345678") == encode("33", "12345678")


@pytest.mark.parametrize(
    "value",
    [-0.1, 100.5, 1e9, float("nan"), float("inf"), "abc", "", "50%", None, True, [50]],
)
def test_invalid_intensity(value) -> None:
    with pytest.raises(InvalidIntensity):
        parse_intensity(value)


@pytest.mark.parametrize(
    "text",
    ["", "zz", "0x", "#", "12 34", "-1", "1_000", "100000000", "FFFFFFFFF", None, 0x80000000],
)
def test_invalid_color(text) -> None:
    with pytest.raises(InvalidColor):
        parse_color(text)


def test_intensity_is_checked_before_color() -> None:
    with pytest.raises(InvalidIntensity):
        encode(150, "not-hex")


def test_validation_errors_share_a_base() -> None:
    assert issubclass(InvalidIntensity, ValidationError)
    assert issubclass(InvalidColor, ValidationError)
