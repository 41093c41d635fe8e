"""Tests for the read path: cache-aside lookup, expiry and click accounting."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from shortener.exceptions import LinkExpired, LinkNotFound
from shortener.store import IdentityStore


@pytest.mark.asyncio
async def test_resolve_returns_target_and_counts(db_session, shortening_factory, resolution_factory) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    resolver = resolution_factory(db_session)

    stats = await resolver.get_stats(link.short_code)
    assert stats.click_count == 0

    assert await resolver.resolve(link.short_code) == "https://example.com/x"

    stats = await resolver.get_stats(link.short_code)
    assert stats.click_count == 1
    assert stats.short_url == f"http://sho.rt/{link.short_code}"
    assert stats.is_expired is False


@pytest.mark.asyncio
async def test_miss_populates_cache_then_hits(db_session, shortening_factory, resolution_factory, fake_redis, settings) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    resolver = resolution_factory(db_session)

    await resolver.resolve(link.short_code)
    assert fake_redis.keys() == [f"{settings.CACHE_KEY_PREFIX}:{link.short_code}"]

    with patch.object(IdentityStore, "find_by_code", new=AsyncMock()) as find_by_code:
        assert await resolver.resolve(link.short_code) == "https://example.com/x"
    find_by_code.assert_not_called()

    assert (await resolver.get_stats(link.short_code)).click_count == 2


@pytest.mark.asyncio
async def test_unknown_code_not_found(db_session, resolution_factory, fake_redis) -> None:
    with pytest.raises(LinkNotFound, match="nope"):
        await resolution_factory(db_session).resolve("nope")
    assert fake_redis.keys() == []


@pytest.mark.asyncio
async def test_unknown_code_resolves_after_creation(db_session, shortening_factory, resolution_factory) -> None:
    resolver = resolution_factory(db_session)
    with pytest.raises(LinkNotFound):
        await resolver.resolve("later")

    await shortening_factory(db_session).shorten("https://example.com/later", custom_alias="later")

    assert await resolver.resolve("later") == "https://example.com/later"


@pytest.mark.asyncio
async def test_stats_unknown_code(db_session, resolution_factory) -> None:
    with pytest.raises(LinkNotFound):
        await resolution_factory(db_session).get_stats("nope")


@pytest.mark.asyncio
async def test_expired_link_on_miss(db_session, shortening_factory, resolution_factory, clock) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x", expires_in_hours=1)
    resolver = resolution_factory(db_session)

    clock.advance(hours=1, seconds=1)

    with pytest.raises(LinkExpired):
        await resolver.resolve(link.short_code)
    stats = await resolver.get_stats(link.short_code)
    assert stats.click_count == 0
    assert stats.is_expired is True


@pytest.mark.asyncio
async def test_expired_link_on_cache_hit(db_session, shortening_factory, resolution_factory, clock, fake_redis) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x", expires_in_hours=2)
    resolver = resolution_factory(db_session)
    assert await resolver.resolve(link.short_code) == "https://example.com/x"

    # Still inside the cache TTL window, but past the link's own expiry.
    clock.advance(hours=2)

    with patch.object(IdentityStore, "find_by_code", new=AsyncMock()) as find_by_code:
        with pytest.raises(LinkExpired):
            await resolver.resolve(link.short_code)
    find_by_code.assert_not_called()
    assert (await resolver.get_stats(link.short_code)).click_count == 1


@pytest.mark.asyncio
async def test_cache_outage_falls_through_to_store(db_session, shortening_factory, resolution_factory, fake_redis) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    fake_redis.fail = True
    resolver = resolution_factory(db_session)

    assert await resolver.resolve(link.short_code) == "https://example.com/x"
    assert await resolver.resolve(link.short_code) == "https://example.com/x"
    assert (await resolver.get_stats(link.short_code)).click_count == 2


@pytest.mark.asyncio
async def test_stats_bypass_cache(db_session, shortening_factory, resolution_factory, fake_redis) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    fake_redis.fail = True

    stats = await resolution_factory(db_session).get_stats(link.short_code)

    assert stats.target_url == "https://example.com/x"
    assert fake_redis.set_calls == 0


@pytest.mark.asyncio
async def test_click_failure_does_not_block_redirect(db_session, shortening_factory, resolution_factory) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    resolver = resolution_factory(db_session)
    failure = OperationalError("UPDATE", {}, Exception("connection lost"))

    with patch.object(IdentityStore, "increment_clicks", new=AsyncMock(side_effect=failure)):
        assert await resolver.resolve(link.short_code) == "https://example.com/x"

    assert (await resolver.get_stats(link.short_code)).click_count == 0


@pytest.mark.asyncio
async def test_store_failure_on_lookup_is_fatal(db_session, resolution_factory) -> None:
    failure = OperationalError("SELECT", {}, Exception("connection lost"))

    with patch.object(IdentityStore, "find_by_code", new=AsyncMock(side_effect=failure)):
        with pytest.raises(OperationalError):
            await resolution_factory(db_session).resolve("abc")


@pytest.mark.asyncio
async def test_concurrent_resolutions_lose_no_clicks(sessions, shortening_factory, resolution_factory) -> None:
    async with sessions() as session:
        link = await shortening_factory(session).shorten("https://example.com/hot")

    async def resolve_once() -> str:
        async with sessions() as session:
            return await resolution_factory(session).resolve(link.short_code)

    results = await asyncio.gather(*(resolve_once() for _ in range(100)))

    assert results == ["https://example.com/hot"] * 100
    async with sessions() as session:
        stats = await resolution_factory(session).get_stats(link.short_code)
    assert stats.click_count == 100


@pytest.mark.asyncio
async def test_evict_removes_cache_entry(db_session, shortening_factory, resolution_factory, fake_redis) -> None:
    link = await shortening_factory(db_session).shorten("https://example.com/x")
    resolver = resolution_factory(db_session)
    await resolver.resolve(link.short_code)

    assert await resolver.evict(link.short_code) is True
    assert fake_redis.keys() == []
