"""
Integration tests for location history and current-location reads.
"""

import pytest

from helpers import auth_headers, location_payload


@pytest.fixture
async def recorded(client, users):
    """Five samples for the driver, one minute apart, oldest first."""
    driver = users["driver"]
    batch = {
        "locations": [
            location_payload(25.0 + i * 0.01, 55.0, offset_seconds=(i - 5) * 60)
            for i in range(5)
        ]
    }
    response = await client.post("/v1/driver/location/batch", json=batch, headers=auth_headers(driver))
    assert response.status_code == 200
    return response.json()["location_ids"]


@pytest.mark.asyncio
async def test_history_is_newest_first(client, users, recorded):
    driver = users["driver"]
    response = await client.get(f"/v1/drivers/{driver.id}/location/history", headers=auth_headers(driver))
    
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 5
    captured = [h["captured_at"] for h in data["history"]]
    assert captured == sorted(captured, reverse=True)
    assert data["history"][0]["id"] == recorded[-1]


@pytest.mark.asyncio
async def test_history_limit(client, users, recorded):
    driver = users["driver"]
    response = await client.get(
        f"/v1/drivers/{driver.id}/location/history?limit=2", headers=auth_headers(driver)
    )
    assert [h["id"] for h in response.json()["history"]] == [recorded[4], recorded[3]]


@pytest.mark.asyncio
async def test_history_limit_bounds(client, users):
    driver = users["driver"]
    for limit in (0, 1001):
        response = await client.get(
            f"/v1/drivers/{driver.id}/location/history?limit={limit}", headers=auth_headers(driver)
        )
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_history_time_window(client, users, recorded):
    """from/to are inclusive bounds on the device timestamp."""
    driver = users["driver"]
    headers = auth_headers(driver)
    
    newest_first = (await client.get(f"/v1/drivers/{driver.id}/location/history", headers=headers)).json()["history"]
    start = newest_first[3]["captured_at"]
    end = newest_first[1]["captured_at"]
    
    response = await client.get(
        f"/v1/drivers/{driver.id}/location/history",
        params={"from": start, "to": end},
        headers=headers
    )
    
    assert response.status_code == 200
    assert [h["id"] for h in response.json()["history"]] == [recorded[3], recorded[2], recorded[1]]


@pytest.mark.asyncio
async def test_history_read_is_idempotent(client, users, recorded):
    driver = users["driver"]
    url = f"/v1/drivers/{driver.id}/location/history?limit=10"
    
    first = await client.get(url, headers=auth_headers(driver))
    second = await client.get(url, headers=auth_headers(driver))
    
    assert first.json() == second.json()


@pytest.mark.asyncio
async def test_admin_reads_any_history(client, users, recorded):
    response = await client.get(
        f"/v1/drivers/{users['driver'].id}/location/history", headers=auth_headers(users["admin"])
    )
    assert response.status_code == 200
    assert response.json()["count"] == 5


@pytest.mark.asyncio
async def test_other_driver_cannot_read_history(client, users, recorded):
    response = await client.get(
        f"/v1/drivers/{users['driver'].id}/location/history", headers=auth_headers(users["driver2"])
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_business_cannot_read_driver_history(client, users, recorded):
    response = await client.get(
        f"/v1/drivers/{users['driver'].id}/location/history", headers=auth_headers(users["business"])
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_empty_history(client, users):
    driver = users["driver2"]
    response = await client.get(f"/v1/drivers/{driver.id}/location/history", headers=auth_headers(driver))
    assert response.json() == {"driver_id": driver.id, "history": [], "count": 0}


@pytest.mark.asyncio
async def test_current_location_is_last_write_by_arrival(client, users):
    """A late-arriving older sample still replaces the single-sample projection."""
    driver = users["driver"]
    headers = auth_headers(driver)
    
    await client.post("/v1/driver/location", json=location_payload(25.5, 55.5), headers=headers)
    await client.post("/v1/driver/location", json=location_payload(25.4, 55.4, offset_seconds=-300), headers=headers)
    
    current = await client.get(f"/v1/drivers/{driver.id}/location", headers=headers)
    assert current.json()["latitude"] == 25.4


@pytest.mark.asyncio
async def test_delivery_location_visibility(client, users, deliveries):
    driver = users["driver"]
    delivery = deliveries["d1"]
    await client.post(
        "/v1/driver/location",
        json=location_payload(25.276987, 55.296249, delivery_id=delivery.id),
        headers=auth_headers(driver)
    )
    
    for role in ("driver", "admin", "business"):
        response = await client.get(f"/v1/deliveries/{delivery.id}/location", headers=auth_headers(users[role]))
        assert response.status_code == 200, role
    
    data = response.json()
    assert data["driver_id"] == driver.id
    assert data["status"] == "assigned"
    assert data["distance_to_destination_meters"] > 20000
    
    response = await client.get(f"/v1/deliveries/{delivery.id}/location", headers=auth_headers(users["driver2"]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delivery_location_before_any_sample(client, users, deliveries):
    response = await client.get(
        f"/v1/deliveries/{deliveries['d2'].id}/location", headers=auth_headers(users["admin"])
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_history_returns_metadata_under_submitted_name(client, users):
    driver = users["driver"]
    headers = auth_headers(driver)
    payload = location_payload(25.1, 55.1, metadata={"battery": 81, "source": "app"})
    
    submitted = await client.post("/v1/driver/location", json=payload, headers=headers)
    assert submitted.status_code == 200
    
    response = await client.get(f"/v1/drivers/{driver.id}/location/history", headers=headers)
    [entry] = response.json()["history"]
    assert entry["metadata"] == {"battery": 81, "source": "app"}
    assert "meta_data" not in entry
