"""
Structured logging tests: correlation ID binding and field redaction.
"""

import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from shared.api.middleware import CorrelationIDMiddleware
from shared.infrastructure.logging import (
    CorrelationIdFilter,
    CustomJsonFormatter,
    bind_correlation_id,
    current_correlation_id,
    reset_correlation_id,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("locates", logging.INFO, __file__, 1, "Locates refreshed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_stamps_bound_correlation_id():
    token = bind_correlation_id("req-123")
    try:
        record = _record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-123"
    finally:
        reset_correlation_id(token)

    assert current_correlation_id() is None


def test_filter_keeps_explicit_correlation_id():
    token = bind_correlation_id("req-123")
    try:
        record = _record(correlation_id="explicit")
        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "explicit"
    finally:
        reset_correlation_id(token)


def test_formatter_redacts_secrets_and_adds_environment():
    formatter = CustomJsonFormatter("%(name)s %(levelname)s %(message)s", environment="test")

    output = json.loads(formatter.format(_record(locates_api_token="secret", record_count=3)))

    assert output["message"] == "Locates refreshed"
    assert output["locates_api_token"] == "***REDACTED***"
    assert output["record_count"] == 3
    assert output["environment"] == "test"
    assert "timestamp" in output


def test_middleware_echoes_correlation_header():
    app = FastAPI()
    app.add_middleware(CorrelationIDMiddleware)

    @app.get("/ping")
    async def ping():
        return {"correlation_id": current_correlation_id()}

    with TestClient(app) as client:
        response = client.get("/ping", headers={"X-Correlation-ID": "abc"})

    assert response.headers["X-Correlation-ID"] == "abc"
    assert response.json() == {"correlation_id": "abc"}
