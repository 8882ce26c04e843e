import pytest
from fastapi.testclient import TestClient

from pintodo.core.limits import limiter
from pintodo.core.settings import Settings
from pintodo.main import create_app

PIN = "1234"


class Clock:
    """Hand-driven replacement for ``AttemptTracker._now``."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def make_app(tmp_path):
    def _make(**overrides):
        values = {
            "data_dir": str(tmp_path),
            "verify_delay_min_ms": 0,
            "verify_delay_max_ms": 0,
        }
        values.update(overrides)
        return create_app(Settings(**values))

    return _make


@pytest.fixture
def pin_app(make_app):
    return make_app(pin=PIN)


@pytest.fixture
def clock(pin_app, monkeypatch):
    c = Clock()
    monkeypatch.setattr(pin_app.state.attempts, "_now", c)
    return c


@pytest.fixture
def client(pin_app):
    with TestClient(pin_app) as c:
        yield c
