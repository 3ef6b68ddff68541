"""
Shared test configuration and fixtures.

Provides a scripted generation provider so tests never hit the network, a
fixed clock, and a temporary project root.
"""

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from debtcrasher.generation import GenerationProvider

logger = logging.getLogger(__name__)


class MockGenerationProvider(GenerationProvider):
    """
    Generation provider returning canned responses in order.

    Records every prompt pair it receives. Raises the queued exception when a
    response entry is an Exception instance.
    """

    name = "mock"
    default_reasoning_model = "mock-reasoning"
    default_note_model = "mock-note"

    def __init__(self, responses: list | None = None):
        super().__init__()
        self.responses = list(responses or [])
        self.calls: list[dict] = []
        self.closed = False

    async def complete(self, system_prompt: str, user_prompt: str, *, model: str | None = None) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        response = self.responses.pop(0) if self.responses else ""
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 10, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_provider() -> MockGenerationProvider:
    return MockGenerationProvider()


@pytest.fixture
def provider_factory():
    """Factory for scripted providers: ``provider_factory([response, ...])``."""
    return MockGenerationProvider
