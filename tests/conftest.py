"""Root-level pytest fixtures for all tests.

Provides shared fixtures for the client test suite:
- Fresh client stores
- Deterministic id and clock sources
- Isolation from any real config file or D1DOCTOR_ env vars
"""

import itertools
import logging
import os

import pytest

from src.stores import ClientState


# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a running daemon"
    )


# ============================================================================
# Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path_factory):
    """Keep user config and D1DOCTOR_ overrides out of every test."""
    for key in list(os.environ):
        if key.startswith("D1DOCTOR_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))


# ============================================================================
# State Fixtures
# ============================================================================


@pytest.fixture
def client_state() -> ClientState:
    """Fresh set of stores with the default credit maximum."""
    return ClientState.create()


@pytest.fixture
def id_factory():
    """Deterministic ids: msg-1, msg-2, ..."""
    counter = itertools.count(1)
    return lambda: f"msg-{next(counter)}"


@pytest.fixture
def fixed_clock():
    """Clock frozen at 1_718_000_000_000 ms."""
    return lambda: 1_718_000_000_000


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI commands reconfigure logging; put it back after each test."""
    loggers = [logging.getLogger(), logging.getLogger("src")]
    saved = [(lg.handlers[:], lg.level) for lg in loggers]
    yield
    for lg, (handlers, level) in zip(loggers, saved):
        for handler in lg.handlers:
            if handler not in handlers:
                handler.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
