"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment the settings module needs before anything imports it.
"""

import os
from typing import Any, Iterable

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")


class FakeAsyncStream:
    """Stand-in for openai.AsyncStream: async iterable and async context manager."""

    def __init__(self, items: Iterable[Any]) -> None:
        self._items = list(items)
        self.closed = False

    async def __aenter__(self) -> "FakeAsyncStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


@pytest.fixture
def fake_stream() -> type[FakeAsyncStream]:
    """Expose FakeAsyncStream to tests without importing conftest."""
    return FakeAsyncStream
