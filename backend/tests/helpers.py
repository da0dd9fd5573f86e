"""
Shared test helpers (request builders, auth headers).
"""

from datetime import datetime, timedelta

from backend.app.core.jwt import create_access_token


def access_token(user) -> str:
    """Token for a user, as the platform identity service would issue it."""
    return create_access_token(data={
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value
    })


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {access_token(user)}"}


def location_payload(latitude, longitude, accuracy=None, delivery_id=None, offset_seconds=0, **extra):
    """Single-sample body stamped `offset_seconds` from now (UTC)."""
    captured_at = datetime.utcnow() + timedelta(seconds=offset_seconds)
    payload = {
        "latitude": latitude,
        "longitude": longitude,
        "timestamp": captured_at.isoformat() + "Z",
    }
    if accuracy is not None:
        payload["accuracy"] = accuracy
    if delivery_id is not None:
        payload["delivery_id"] = delivery_id
    payload.update(extra)
    return payload
