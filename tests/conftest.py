"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest

from doc_query.core.connection import StoreConfig
from doc_query.core.engine import Engine
from doc_query.core.registry import ModelRegistry


@pytest.fixture
def memory_config() -> StoreConfig:
    """Process-local memory store config."""
    return StoreConfig(driver="memory")


@pytest.fixture
def sqlite_config() -> StoreConfig:
    """SQLite in-memory store config."""
    return StoreConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
async def engine(memory_config: StoreConfig) -> AsyncIterator[Engine]:
    """Fresh memory-backed engine per test."""
    eng = Engine.from_config(memory_config)
    yield eng
    await eng.close()


@pytest.fixture
def registry(engine: Engine) -> ModelRegistry:
    """Empty model registry bound to the test engine."""
    return ModelRegistry(engine)


@pytest.fixture
def find_calls(engine: Engine, monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Record the collection of every ``Engine.find`` round-trip.

    Usage:
        await User.with_("posts").fetch()
        assert find_calls == ["users", "posts"]
    """
    calls: list[str] = []
    original = engine.find

    async def _find(collection: str, *args: Any, **kwargs: Any) -> Any:
        calls.append(collection)
        return await original(collection, *args, **kwargs)

    monkeypatch.setattr(engine, "find", _find)
    return calls
