from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from blurctl.channel import LoopbackChannel
from blurctl.native_host import SimulatedBlurHost
from blurctl.session import BlurSession


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path_factory, monkeypatch):
    """Force tests to use a temporary HOME/XDG dirs and a clean BLURCTL_* environment.

    ``load_dotenv`` writes straight into ``os.environ``, so the whole mapping is
    restored after each test.
    """
    base = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(Path, "home", lambda: base)
    with patch.dict(os.environ):
        for name in [key for key in os.environ if key.startswith("BLURCTL_")]:
            del os.environ[name]
        os.environ.update(
            {
                "HOME": str(base),
                "XDG_CONFIG_HOME": str(base / ".config"),
                "XDG_STATE_HOME": str(base / ".local" / "state"),
                "XDG_DATA_HOME": str(base / ".local" / "share"),
                "XDG_CACHE_HOME": str(base / ".cache"),
            }
        )
        yield base


@pytest.fixture
def host() -> SimulatedBlurHost:
    return SimulatedBlurHost(capabilities=0x0007, version="1.2.0")


@pytest.fixture
def loopback(host: SimulatedBlurHost) -> LoopbackChannel:
    return host.bind()


@pytest.fixture
def session(loopback: LoopbackChannel) -> BlurSession:
    return BlurSession(loopback)
