"""
Failure Injection Tests.

Validates that broadcast, geofence and store failures degrade the way
ingestion promises: recording wins, everything else is a warning.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from backend.app.core.config import settings
from backend.app.core.exceptions import StoreFailureError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from backend.app.services import location_store
from backend.app.services.broadcast import LocationBroadcaster
from backend.app.services.geofence_engine import GeofenceEngine
from helpers import auth_headers, location_payload


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)
    
    async def failing_func():
        raise ValueError("Boom")
    
    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)
    
    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=1)
    
    async def failing_func():
        raise ValueError("Boom")
    
    async def ok_func():
        return "ok"
    
    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"
    
    cb.last_failure_time -= 2
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_circuit_breaker_ignores_isolated_failures():
    cb = CircuitBreaker(failure_threshold=3, reset_timeout=60)
    
    async def failing_func():
        raise ConnectionError("blip")
    
    async def ok_func():
        return "ok"
    
    for _ in range(5):
        with pytest.raises(ConnectionError):
            await cb.call(failing_func)
        assert await cb.call(ok_func) == "ok"
    
    assert cb.state == "CLOSED"
    assert cb.failures == 0
    
    for _ in range(3):
        with pytest.raises(ConnectionError):
            await cb.call(failing_func)
    assert cb.state == "OPEN"


def _sample(location_id=1, delivery_id=None):
    location = MagicMock()
    location.id = location_id
    location.driver_id = 7
    location.delivery_id = delivery_id
    location.latitude = 25.0
    location.longitude = 55.0
    location.accuracy = None
    location.heading = None
    location.speed = None
    location.captured_at = None
    return location


@pytest.mark.asyncio
async def test_broadcaster_stops_calling_redis_when_circuit_opens():
    redis = MagicMock()
    redis.publish = AsyncMock(side_effect=ConnectionError("down"))
    broadcaster = LocationBroadcaster(redis, breaker=CircuitBreaker(failure_threshold=2, reset_timeout=60))
    
    results = [await broadcaster.publish_location(_sample(i)) for i in range(4)]
    
    assert results == [False, False, False, False]
    assert redis.publish.await_count == 2


@pytest.mark.asyncio
async def test_broadcaster_publishes_driver_and_delivery_channels():
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    broadcaster = LocationBroadcaster(redis, breaker=CircuitBreaker())
    
    assert await broadcaster.publish_location(_sample(delivery_id=3)) is True
    channels = [call.args[0] for call in redis.publish.await_args_list]
    assert channels == ["tracking:driver:7:location", "tracking:delivery:3:location"]


@pytest.mark.asyncio
async def test_broadcast_failure_does_not_fail_ingestion(client, users, mock_redis):
    driver = users["driver"]
    mock_redis.fail_publish = True
    
    response = await client.post(
        "/v1/driver/location", json=location_payload(25.2, 55.3), headers=auth_headers(driver)
    )
    
    assert response.status_code == 200
    assert response.json()["warnings"]
    
    current = await client.get(f"/v1/drivers/{driver.id}/location", headers=auth_headers(driver))
    assert current.status_code == 200


@pytest.mark.asyncio
async def test_broadcast_disabled(client, users, mock_redis, monkeypatch):
    monkeypatch.setattr(settings, "broadcast_enabled", False)
    
    response = await client.post(
        "/v1/driver/location", json=location_payload(25.2, 55.3), headers=auth_headers(users["driver"])
    )
    
    assert response.status_code == 200
    assert response.json()["warnings"] == []
    assert mock_redis.published == []


@pytest.mark.asyncio
async def test_geofence_failure_is_a_warning(client, users, deliveries, mocker):
    driver = users["driver"]
    mocker.patch.object(GeofenceEngine, "evaluate", side_effect=RuntimeError("malformed fence"))
    
    response = await client.post(
        "/v1/driver/location",
        json=location_payload(25.2, 55.3, delivery_id=deliveries["d1"].id),
        headers=auth_headers(driver)
    )
    
    assert response.status_code == 200
    data = response.json()
    assert data["geofence_events"] == []
    assert any("Geofence evaluation failed" in w for w in data["warnings"])
    
    current = await client.get(f"/v1/drivers/{driver.id}/location", headers=auth_headers(driver))
    assert current.json()["latitude"] == 25.2


@pytest.mark.asyncio
async def test_store_failure_on_single_sample(client, users, mocker):
    mocker.patch.object(
        location_store, "record_sample", side_effect=StoreFailureError("record_sample", "disk full")
    )
    
    response = await client.post(
        "/v1/driver/location", json=location_payload(25.2, 55.3), headers=auth_headers(users["driver"])
    )
    
    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_STORE_001"


@pytest.mark.asyncio
async def test_store_failure_only_fails_its_batch_item(client, users, mocker):
    original = location_store.record_sample
    calls = {"n": 0}
    
    async def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise StoreFailureError("record_sample", "deadlock")
        return await original(*args, **kwargs)
    
    mocker.patch.object(location_store, "record_sample", new=flaky)
    
    batch = {"locations": [location_payload(25.0 + i * 0.01, 55.0, offset_seconds=i) for i in range(3)]}
    response = await client.post("/v1/driver/location/batch", json=batch, headers=auth_headers(users["driver"]))
    
    assert response.status_code == 207
    data = response.json()
    assert data["success_count"] == 2
    assert data["failures"] == [{"index": 1, "reason": "Storage failure during record_sample", "errors": []}]
