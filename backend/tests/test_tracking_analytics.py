"""
Integration tests for admin tracking analytics and the driver status board.
"""

from datetime import datetime, timedelta

import pytest

from backend.app.models.current_location import DriverCurrentLocation
from helpers import auth_headers, location_payload


@pytest.fixture
async def activity(client, db_session, users, deliveries):
    """
    driver: reporting now, one route, two active fences on d1.
    driver2: last seen 20 minutes ago, no samples in the window.
    """
    driver = users["driver"]
    headers = auth_headers(driver)
    
    response = await client.post("/v1/driver/location", json=location_payload(25.2, 55.3), headers=headers)
    assert response.status_code == 200
    
    for fence_type in ("delivery", "pickup"):
        await client.post(
            f"/v1/deliveries/{deliveries['d1'].id}/geofences",
            json={"latitude": 25.08, "longitude": 55.14, "radius": 200, "type": fence_type},
            headers=headers
        )
    retired = await client.post(
        f"/v1/deliveries/{deliveries['d2'].id}/geofences",
        json={"latitude": 25.19, "longitude": 55.27, "radius": 200, "type": "hub"},
        headers=headers
    )
    await client.post(f"/v1/geofences/{retired.json()['geofence_id']}/deactivate", headers=headers)
    
    route = await client.post(
        "/v1/driver/route/optimize",
        json={"delivery_ids": [deliveries["d1"].id, deliveries["d2"].id], "start_location": {"latitude": 25.2, "longitude": 55.3}},
        headers=headers
    )
    assert route.status_code == 200
    
    db_session.add(DriverCurrentLocation(
        driver_id=users["driver2"].id,
        latitude=25.0,
        longitude=55.0,
        updated_at=datetime.utcnow() - timedelta(minutes=20)
    ))
    await db_session.commit()
    return route.json()["route"]


@pytest.mark.asyncio
async def test_tracking_analytics(client, users, activity):
    response = await client.get("/v1/admin/tracking/analytics", headers=auth_headers(users["admin"]))
    
    assert response.status_code == 200
    data = response.json()
    
    assert data["drivers"] == {"total_tracked": 2, "online": 1, "offline": 1}
    
    assert data["locations"]["total_last_24h"] == 1
    assert data["locations"]["tracked_drivers"] == 1
    assert sum(h["count"] for h in data["locations"]["hourly_updates"]) == 1
    
    assert data["routes"]["total_routes"] == 1
    assert data["routes"]["avg_distance_meters"] == pytest.approx(activity["total_distance_meters"])
    assert data["routes"]["avg_optimization_score"] == pytest.approx(activity["optimization_score"])
    
    assert data["geofences"]["total_active"] == 2
    assert data["geofences"]["deliveries_covered"] == 1
    assert data["geofences"]["by_type"] == {"delivery": 1, "pickup": 1}


@pytest.mark.asyncio
async def test_analytics_on_empty_system(client, users):
    response = await client.get("/v1/admin/tracking/analytics", headers=auth_headers(users["admin"]))
    
    assert response.status_code == 200
    data = response.json()
    assert data["drivers"]["total_tracked"] == 0
    assert data["locations"]["hourly_updates"] == []
    assert data["routes"]["total_routes"] == 0
    assert data["routes"]["avg_distance_meters"] == 0.0
    assert data["geofences"]["by_type"] == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["driver", "business"])
async def test_analytics_is_admin_only(client, users, role):
    response = await client.get("/v1/admin/tracking/analytics", headers=auth_headers(users[role]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_driver_status_board(client, users, activity):
    response = await client.get("/v1/admin/tracking/drivers", headers=auth_headers(users["admin"]))
    
    assert response.status_code == 200
    data = response.json()
    statuses = {d["driver_id"]: d["status"] for d in data["drivers"]}
    assert statuses == {users["driver"].id: "online", users["driver2"].id: "idle"}
    assert data["counts"] == {"online": 1, "idle": 1, "offline": 0}


@pytest.mark.asyncio
async def test_driver_without_location_is_offline(client, users):
    response = await client.get("/v1/admin/tracking/drivers", headers=auth_headers(users["admin"]))
    
    entries = response.json()["drivers"]
    assert len(entries) == 2
    assert all(e["status"] == "offline" and e["latitude"] is None for e in entries)
