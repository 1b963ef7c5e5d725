"""Tests for value objects, the message bus and the API exception handler."""

from __future__ import annotations

import io
import json
import logging
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
import structlog
from django.conf import settings
from rest_framework import exceptions

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent
from shared.domain.exceptions import InsufficientInventory, NotFound, ProviderRejected
from shared.domain.value_objects import DateRange, Money
from shared.infrastructure.exception_handler import exception_handler


def test_date_range_is_half_open():
    stay = DateRange(date(2025, 5, 1), date(2025, 5, 3))

    assert list(stay.nights()) == [date(2025, 5, 1), date(2025, 5, 2)]
    assert len(stay) == 2
    assert not stay.contains(date(2025, 5, 3))
    assert not stay.overlaps_with(DateRange(date(2025, 5, 3), date(2025, 5, 4)))
    with pytest.raises(ValueError):
        DateRange(date(2025, 5, 3), date(2025, 5, 3))


def test_money_arithmetic():
    total = Money(Decimal("100.00"), "USD") * 3 + Money(Decimal("50.50"), "USD")

    assert total == Money(Decimal("350.50"), "USD")
    with pytest.raises(ValueError):
        Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")


def test_failing_handler_does_not_stop_others():
    bus = MessageBus()
    calls = []

    def broken(event):
        raise RuntimeError("boom")

    def recorder(event):
        calls.append(event)

    bus.subscribe(DomainEvent, broken)
    bus.subscribe(DomainEvent, recorder)
    bus.subscribe(DomainEvent, recorder)
    event = DomainEvent()

    bus.publish_events([event])

    assert calls == [event]


def test_domain_errors_render_their_status():
    response = exception_handler(
        InsufficientInventory("sold out", unavailable_dates=[date(2025, 5, 1)]), {}
    )

    assert response.status_code == 409
    assert response.data == {
        "error": "sold out",
        "code": "insufficient_inventory",
        "unavailableDates": ["2025-05-01"],
    }
    assert exception_handler(NotFound("nope"), {}).status_code == 404
    assert exception_handler(ProviderRejected("bad", provider_status=422), {}).status_code == 422


def test_validation_errors_keep_details():
    response = exception_handler(exceptions.ValidationError({"checkInDate": ["This field is required."]}), {})

    assert response.status_code == 400
    assert response.data["error"] == "This field is required."
    assert response.data["code"] == "invalid_input"
    assert "checkInDate" in response.data["details"]


def test_unexpected_errors_are_hidden_and_logged():
    with mock.patch("shared.infrastructure.exception_handler.logger") as logger:
        response = exception_handler(RuntimeError("secret stack"), {"view": None, "request": None})

    assert response.status_code == 500
    assert response.data == {"error": "Internal Server Error", "code": "internal_error"}
    logger.error.assert_called_once()


def test_unhandled_error_is_logged_with_traceback_and_request():
    options = {k: v for k, v in settings.LOGGING["formatters"]["json"].items() if k != "()"}
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(**options))
    log = logging.getLogger("shared.infrastructure.exception_handler")
    log.addHandler(handler)
    try:
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            exception_handler(exc, {"request": mock.Mock(path="/api/v1/bookings/", method="POST")})
    finally:
        log.removeHandler(handler)

    entry = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert entry["level"] == "error"
    assert "Traceback (most recent call last)" in entry["exception"]
    assert "RuntimeError: boom" in entry["exception"]
    assert "exc_info" not in entry
    assert entry["path"] == "/api/v1/bookings/"
    assert entry["method"] == "POST"
