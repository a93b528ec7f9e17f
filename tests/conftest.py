from __future__ import annotations

import pytest


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record backoff waits instead of sleeping through them."""
    delays: list[float] = []

    async def fake_sleep(delay: float, result: object = None) -> object:
        delays.append(delay)
        return result

    monkeypatch.setattr("docstore_sdk.engine.asyncio.sleep", fake_sleep)
    return delays
