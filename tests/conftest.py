"""
tests/conftest.py -- Shared test fixtures.

This module provides:
  - _reset_settings (autouse): clears the get_settings() cache around every
    test so monkeypatched VULNSRC_* variables take effect
  - store: an isolated in-memory VulnStore
  - fake_response: factory for stand-ins of requests.Response, used to
    patch get_with_user_agent in the updater modules

No test touches the network: every updater test patches
<module>.get_with_user_agent with fake_response objects.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator

import pytest

from core.config import get_settings
from vulndb.store import VulnStore


class FakeResponse:
    """Minimal requests.Response stand-in: status, body, context manager, iter_content."""

    def __init__(self, content: bytes = b"", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code
        self.closed = False

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> bool:
        self.closed = True
        return False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i : i + chunk_size]


@pytest.fixture(autouse=True)
def _reset_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> Generator[VulnStore, None, None]:
    s = VulnStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def fake_response():
    return FakeResponse
