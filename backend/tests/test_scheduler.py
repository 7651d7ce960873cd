"""
Unit tests for the refresh scheduler.
"""

import asyncio

import pytest
from unittest.mock import patch

from conftest import LONDON, NYC, settle
from weatherdash.errors import NetworkError
from weatherdash.models.location import UnitSystem
from weatherdash.models.weather import CacheKey, FetchStatus
from weatherdash.services.registry import LocationRegistry
from weatherdash.services.scheduler import JOB_ID, RefreshScheduler


@pytest.fixture
def registry():
    registry = LocationRegistry()
    registry.add(NYC)
    registry.add(LONDON)
    return registry


@pytest.fixture
def scheduler(coordinator, registry):
    return RefreshScheduler(coordinator, registry, units=lambda: UnitSystem.METRIC, interval_seconds=60)


# =============================================================================
# Test: Manual Refresh
# =============================================================================

@pytest.mark.asyncio
async def test_refresh_all_tracked_locations(scheduler, provider, state):
    results = await scheduler.refresh_now()

    assert results == {"nyc": True, LONDON.id: True}
    assert sorted(provider.calls) == sorted([(NYC.lat, NYC.lon), (LONDON.lat, LONDON.lon)])
    assert state.get("nyc_metric").status == FetchStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_refresh_one_location(scheduler, provider):
    results = await scheduler.refresh_now("nyc")

    assert results == {"nyc": True}
    assert provider.calls == [(NYC.lat, NYC.lon)]


@pytest.mark.asyncio
async def test_refresh_untracked_location_is_skipped(scheduler, provider):
    assert await scheduler.refresh_now("atlantis") == {}
    assert provider.calls == []


@pytest.mark.asyncio
async def test_manual_refresh_respects_fresh_cache(scheduler, provider, clock):
    """Test that refreshing again within the TTL does not call upstream"""
    await scheduler.refresh_now()
    clock.advance(30)
    await scheduler.refresh_now()

    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_refresh_uses_current_units(coordinator, registry, provider, state):
    units = {"value": UnitSystem.METRIC}
    scheduler = RefreshScheduler(coordinator, registry, units=lambda: units["value"])

    units["value"] = UnitSystem.IMPERIAL
    await scheduler.refresh_now("nyc")

    assert state.get("nyc_imperial").snapshot.units == UnitSystem.IMPERIAL


@pytest.mark.asyncio
async def test_failure_does_not_stop_other_locations(scheduler, provider, state):
    """Test that one failing location does not block the rest of the tick"""
    provider.errors[(LONDON.lat, LONDON.lon)] = NetworkError("Open-Meteo request timed out after 10.0s")

    results = await scheduler.refresh_now()

    assert results == {"nyc": True, LONDON.id: False}
    assert state.get("nyc_metric").status == FetchStatus.SUCCEEDED
    assert state.get(f"{LONDON.id}_metric").status == FetchStatus.FAILED


@pytest.mark.asyncio
async def test_refresh_job_never_raises(scheduler, provider):
    provider.errors[(NYC.lat, NYC.lon)] = NetworkError("down")
    provider.errors[(LONDON.lat, LONDON.lon)] = NetworkError("down")

    await scheduler.refresh_job()

    assert len(provider.calls) == 2


# =============================================================================
# Test: Start / Stop
# =============================================================================

@pytest.mark.asyncio
async def test_start_registers_interval_job(scheduler):
    scheduler.start()
    try:
        assert scheduler.running
        job = scheduler._scheduler.get_job(JOB_ID)
        assert job.trigger.interval.total_seconds() == 60
        assert scheduler.next_run_time is not None
    finally:
        scheduler.stop()

    assert not scheduler.running
    assert scheduler.next_run_time is None


@pytest.mark.asyncio
async def test_start_twice_keeps_one_scheduler(scheduler):
    scheduler.start()
    first = scheduler._scheduler
    scheduler.start()
    try:
        assert scheduler._scheduler is first
    finally:
        scheduler.stop()


@pytest.mark.asyncio
async def test_stop_is_idempotent(scheduler):
    scheduler.stop()
    scheduler.start()
    scheduler.stop()
    scheduler.stop()

    assert not scheduler.running


@pytest.mark.asyncio
async def test_stop_lets_dispatched_fetches_finish(scheduler, coordinator, provider, state, cache):
    """Test that stopping cancels timers but not fetches already running"""
    provider.gate = asyncio.Event()
    scheduler.start()

    refresh = asyncio.ensure_future(scheduler.refresh_now("nyc"))
    await settle()
    scheduler.stop()

    provider.gate.set()
    assert await refresh == {"nyc": True}
    assert state.get("nyc_metric").status == FetchStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_stop_during_scheduled_tick_lets_fetch_finish(coordinator, registry, provider, state, cache):
    """Test that a fetch started by a timer tick survives the scheduler shutdown"""
    provider.gate = asyncio.Event()
    scheduler = RefreshScheduler(coordinator, registry, units=lambda: UnitSystem.METRIC, interval_seconds=1)
    scheduler.start()

    for _ in range(50):
        if len(provider.calls) == 2:
            break
        await asyncio.sleep(0.1)
    assert len(provider.calls) == 2

    scheduler.stop()
    await settle()
    provider.gate.set()
    await coordinator.drain()

    assert state.get("nyc_metric").status == FetchStatus.SUCCEEDED
    assert state.get(f"{LONDON.id}_metric").status == FetchStatus.SUCCEEDED
    assert await cache.get_entry(CacheKey("nyc", UnitSystem.METRIC)) is not None


@pytest.mark.asyncio
async def test_tick_calls_refresh_all(scheduler):
    with patch.object(scheduler, "refresh_now", return_value={"nyc": True}) as refresh_now:
        await scheduler.refresh_job()

    refresh_now.assert_called_once_with()
