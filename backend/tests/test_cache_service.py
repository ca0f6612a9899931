"""Tests for the hire listing cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from onboarding_api.models.dto.hire import HireListResponse
from onboarding_api.services.cache_service import (
    CacheService,
    cache_database_url,
    hires_key,
)


class TestKeys:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("redis://cache:6379", "redis://cache:6379/0"),
            ("redis://cache:6379/", "redis://cache:6379/0"),
            ("redis://cache:6379/3", "redis://cache:6379/3"),
        ],
    )
    def test_database_url(self, url: str, expected: str) -> None:
        assert cache_database_url(url) == expected

    def test_hires_key_is_stable_and_prefixed(self) -> None:
        key = hires_key('{"search": "jane"}')
        assert key.startswith("hires:")
        assert key == hires_key('{"search": "jane"}')
        assert key != hires_key('{"search": "john"}')


class TestDisabled:
    @pytest.mark.asyncio
    async def test_every_call_is_a_miss(self) -> None:
        cache = CacheService()

        assert cache.is_connected is False
        assert await cache.get_hires("k") is None
        assert await cache.set_hires("k", {"items": []}) is False
        assert await cache.invalidate_hires() == 0
        await cache.close()


class TestConnected:
    @pytest.fixture
    def client(self) -> MagicMock:
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.setex = AsyncMock()
        client.delete = AsyncMock(return_value=2)
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_set_uses_ttl(self, client: MagicMock) -> None:
        cache = CacheService(client, ttl=45)

        stored = await cache.set_hires("k", HireListResponse(items=[], total=0))

        assert stored is True
        key, ttl, payload = client.setex.await_args.args
        assert key == hires_key("k")
        assert ttl == 45
        assert '"total":0' in payload

    @pytest.mark.asyncio
    async def test_get_parses_json(self, client: MagicMock) -> None:
        client.get.return_value = '{"items": [], "total": 0}'
        cache = CacheService(client)

        assert await cache.get_hires("k") == {"items": [], "total": 0}

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, client: MagicMock) -> None:
        client.get.return_value = "{not json"
        assert await CacheService(client).get_hires("k") is None

    @pytest.mark.asyncio
    async def test_redis_error_is_a_miss(self, client: MagicMock) -> None:
        client.get.side_effect = redis.RedisError("down")
        assert await CacheService(client).get_hires("k") is None

    @pytest.mark.asyncio
    async def test_invalidate_deletes_scanned_keys(self, client: MagicMock) -> None:
        async def scan_iter(match: str):
            assert match == "hires:*"
            for key in ("hires:a", "hires:b"):
                yield key

        client.scan_iter = scan_iter

        assert await CacheService(client).invalidate_hires() == 2
        client.delete.assert_awaited_once_with("hires:a", "hires:b")

    @pytest.mark.asyncio
    async def test_close_releases_client(self, client: MagicMock) -> None:
        cache = CacheService(client)
        await cache.close()

        client.aclose.assert_awaited_once()
        assert cache.is_connected is False
