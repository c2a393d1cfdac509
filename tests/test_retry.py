"""Tests for the retry-on-conflict helper."""

from unittest.mock import AsyncMock

import pytest

from prd_history.errors import NotFound, StorageFailure, VersionConflict
from prd_history.retry import retry_on_conflict


class TestRetryOnConflict:
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        operation = AsyncMock(return_value="v2")
        assert await retry_on_conflict(operation) == "v2"
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_conflicts_until_success(self):
        operation = AsyncMock(side_effect=[
            VersionConflict("doc-1", 1, 2),
            VersionConflict("doc-1", 2, 3),
            "v4",
        ])
        assert await retry_on_conflict(operation, attempts=3) == "v4"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_and_reraises(self):
        operation = AsyncMock(side_effect=VersionConflict("doc-1", 1, 5))
        with pytest.raises(VersionConflict) as exc_info:
            await retry_on_conflict(operation, attempts=2)
        assert exc_info.value.current_version == 5
        assert operation.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NotFound("doc-1"), StorageFailure("db down")])
    async def test_other_errors_not_retried(self, error):
        operation = AsyncMock(side_effect=error)
        with pytest.raises(type(error)):
            await retry_on_conflict(operation, attempts=5)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            await retry_on_conflict(AsyncMock(), attempts=0)
