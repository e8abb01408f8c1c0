"""Runtime settings loaded from the environment and ``.env`` files."""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from blurctl.errors import InvalidColor
from blurctl.params import DEFAULT_COLOR_TEXT, DEFAULT_INTENSITY_PERCENT, parse_color
from blurctl.paths import env_file
from blurctl.protocol import NativeLogLevel

ENV_PREFIX = "BLURCTL_"


class BlurSettings(BaseModel):
    host_program: str | None = None
    host_args: list[str] = Field(default_factory=list)
    simulate: bool = False
    default_intensity: float = Field(default=DEFAULT_INTENSITY_PERCENT, ge=0.0, le=100.0)
    default_color: str = DEFAULT_COLOR_TEXT
    native_log_level: NativeLogLevel = NativeLogLevel.WARN

    @field_validator("default_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        try:
            parse_color(value)
        except InvalidColor as exc:
            raise ValueError(str(exc)) from exc
        return value.strip()

    @field_validator("native_log_level", mode="before")
    @classmethod
    def _coerce_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            name = value.strip().upper()
            if name.isdigit():
                return int(name)
            if name == "WARNING":
                name = "WARN"
            if name in NativeLogLevel.__members__:
                return NativeLogLevel[name]
        return value


def _settings_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    program = environ.get(f"{ENV_PREFIX}HOST_PROGRAM")
    if program:
        data["host_program"] = program
    host_args = environ.get(f"{ENV_PREFIX}HOST_ARGS")
    if host_args:
        data["host_args"] = shlex.split(host_args)
    simulate = environ.get(f"{ENV_PREFIX}SIMULATE")
    if simulate is not None:
        data["simulate"] = simulate.strip().lower() in {"1", "true", "yes", "on"}
    intensity = environ.get(f"{ENV_PREFIX}DEFAULT_INTENSITY")
    if intensity:
        data["default_intensity"] = intensity
    color = environ.get(f"{ENV_PREFIX}DEFAULT_COLOR")
    if color:
        data["default_color"] = color
    log_level = environ.get(f"{ENV_PREFIX}NATIVE_LOG_LEVEL")
    if log_level:
        data["native_log_level"] = log_level
    return data


def load_settings(*, cwd: Path | None = None, **overrides: Any) -> BlurSettings:
    """Load settings: user ``.env``, then ``./.env``, then real env vars, then overrides.

    ``.env`` values never replace variables already present in the process
    environment. Raises ``pydantic.ValidationError`` on bad values.
    """

    load_dotenv(env_file(), override=False)
    load_dotenv((cwd or Path.cwd()) / ".env", override=False)
    data = _settings_from_env(os.environ)
    data.update({key: value for key, value in overrides.items() if value is not None})
    return BlurSettings.model_validate(data)
