"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and recording test
doubles for guarded-scope tests. Isolation fixtures are autouse.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from castor.config import Settings
from castor.failure import Failure

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class Recorder:
    """Ordered event log shared by operations, handlers and cleanup actions.

    Every helper appends a label so tests can assert on both which steps ran
    and the order they ran in.
    """

    events: list[str] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    def operation(self, value: Any = None, *, raises: BaseException | None = None):
        def _op() -> Any:
            self.events.append("operation")
            if raises is not None:
                raise raises
            return value

        return _op

    def response(self, label: str, value: Any = None):
        def _respond(failure: Failure) -> Any:
            self.events.append(label)
            self.failures.append(failure)
            return value

        _respond.__name__ = label
        return _respond

    def cleanup(self, *, raises: BaseException | None = None):
        def _cleanup() -> None:
            self.events.append("cleanup")
            if raises is not None:
                raise raises

        return _cleanup

    def count(self, label: str) -> int:
        return self.events.count(label)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the process environment."""
    return Settings()


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_castor_env(request, monkeypatch):
    """Clear CASTOR_* variables so settings resolve to defaults.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("CASTOR_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def castor_debug_logging():
    """Let caplog observe castor's debug records."""
    logging.getLogger("castor").setLevel(logging.DEBUG)


def pytest_configure(config):
    config.addinivalue_line("markers", "allow_dotenv: let python-dotenv read .env")
    config.addinivalue_line(
        "markers", "allow_env_pollution: keep CASTOR_* variables from the environment"
    )
