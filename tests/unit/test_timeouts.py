from __future__ import annotations

import pytest

from daybook.app.utils.timeouts import retry_async


@pytest.mark.anyio
async def test_retry_async_success() -> None:
    calls = {"count": 0}

    async def _fn() -> str:
        calls["count"] += 1
        return "ok"

    result = await retry_async(_fn, attempts=3, delay=0.01)

    assert result == "ok"
    assert calls["count"] == 1


@pytest.mark.anyio
async def test_retry_async_exhausts_attempts() -> None:
    calls = {"count": 0}

    async def _fn() -> None:
        calls["count"] += 1
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await retry_async(_fn, attempts=2, delay=0)
    assert calls["count"] == 2


@pytest.mark.anyio
async def test_retry_async_recovers_after_transient_failure() -> None:
    calls = {"count": 0}

    async def _fn() -> str:
        calls["count"] += 1
        if calls["count"] < 3:
            raise ConnectionError("flaky")
        return "done"

    assert await retry_async(_fn, attempts=3, delay=0, retry_on=(ConnectionError,)) == "done"
    assert calls["count"] == 3


@pytest.mark.anyio
async def test_retry_async_does_not_retry_other_errors() -> None:
    calls = {"count": 0}

    async def _fn() -> None:
        calls["count"] += 1
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await retry_async(_fn, attempts=5, delay=0, retry_on=(ConnectionError,))
    assert calls["count"] == 1
