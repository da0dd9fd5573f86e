"""
Request logging and correlation headers.
"""

import logging

import pytest

REQUEST_LOGGER = "gps_tracking.requests"


def _request_records(caplog):
    return [r for r in caplog.records if r.name == REQUEST_LOGGER]


@pytest.mark.asyncio
async def test_request_log_line_carries_request_fields(client, caplog):
    caplog.set_level(logging.INFO, logger=REQUEST_LOGGER)

    response = await client.get("/health", headers={"X-Correlation-ID": "cid-123"})

    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"] == "cid-123"
    assert "X-Process-Time" in response.headers

    [record] = _request_records(caplog)
    message = record.getMessage()
    assert record.levelno == logging.INFO
    assert message.startswith("GET /health 200 ")
    assert "cid=cid-123" in message
    assert record.correlation_id == "cid-123"


@pytest.mark.asyncio
async def test_client_errors_log_at_warning(client, caplog):
    caplog.set_level(logging.INFO, logger=REQUEST_LOGGER)

    response = await client.get("/v1/admin/tracking/analytics")

    [record] = _request_records(caplog)
    assert record.levelno == logging.WARNING
    assert f"GET /v1/admin/tracking/analytics {response.status_code} " in record.getMessage()
    # A correlation id is generated when the caller sends none
    assert f"cid={response.headers['X-Correlation-ID']}" in record.getMessage()
