"""Tests for the AFS flight gateway, with the HTTP session mocked."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
import requests

from apps.flights.gateway import AFSFlightGateway, Traveler, booking_result_from_payload
from shared.domain.exceptions import InvalidInput, ProviderRejected, ProviderUnavailable


def fake_response(status_code=200, payload=None, text=None):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    if text is not None:
        response.content = text.encode()
        response.text = text
        response.json.side_effect = ValueError("not json")
    elif payload is None:
        response.content = b""
        response.text = ""
    else:
        response.content = b"{...}"
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def gateway(session):
    return AFSFlightGateway(base_url="http://afs.test/", api_key="secret", timeout=3, session=session)


TRAVELER = Traveler(first_name="Ada", last_name="Lovelace", email="ada@example.com")


def test_search_sends_key_and_timeout(gateway, session):
    session.request.return_value = fake_response(
        payload=[
            {
                "id": "FL-1",
                "flightNumber": "AC100",
                "origin": {"code": "YYZ", "city": "Toronto", "country": "Canada"},
                "destination": {"code": "JFK", "city": "New York", "country": "USA"},
                "price": 199.99,
                "availableSeats": 12,
            }
        ]
    )

    offers = gateway.search("YYZ", "JFK", date(2025, 5, 1))

    method, url = session.request.call_args.args
    kwargs = session.request.call_args.kwargs
    assert (method, url) == ("GET", "http://afs.test/api/flights")
    assert kwargs["params"] == {"origin": "YYZ", "destination": "JFK", "date": "2025-05-01"}
    assert kwargs["headers"]["x-api-key"] == "secret"
    assert kwargs["timeout"] == 3
    assert len(offers) == 1
    assert offers[0].origin == "YYZ (Toronto, Canada)"
    assert offers[0].price == Decimal("199.99")
    assert offers[0].to_dict()["availableSeats"] == 12


def test_search_flattens_grouped_results(gateway, session):
    session.request.return_value = fake_response(
        payload={"results": [{"flights": [{"id": "A"}, {"id": "B"}]}, {"flights": [{"id": "C"}]}]}
    )

    offers = gateway.search("YYZ", "JFK", date(2025, 5, 1))

    assert [offer.id for offer in offers] == ["A", "B", "C"]


def test_book_posts_traveler(gateway, session):
    session.request.return_value = fake_response(
        status_code=201,
        payload={"bookingReference": "AFS-1", "status": "CONFIRMED", "flights": [{"id": "FL-1"}]},
    )

    result = gateway.book(TRAVELER, "AB123456", ["FL-1"])

    assert session.request.call_args.args == ("POST", "http://afs.test/api/bookings")
    assert session.request.call_args.kwargs["json"] == {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "passportNumber": "AB123456",
        "flightIds": ["FL-1"],
    }
    assert result.reference == "AFS-1"
    assert [offer.id for offer in result.flights] == ["FL-1"]


def test_book_requires_flights_and_passport(gateway, session):
    with pytest.raises(InvalidInput):
        gateway.book(TRAVELER, "", ["FL-1"])
    with pytest.raises(InvalidInput):
        gateway.book(TRAVELER, "AB123456", [])
    session.request.assert_not_called()


def test_client_error_passes_status_through(gateway, session):
    session.request.return_value = fake_response(status_code=409, payload={"error": "Flight is full"})

    with pytest.raises(ProviderRejected) as excinfo:
        gateway.book(TRAVELER, "AB123456", ["FL-1"])

    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Flight is full"
    assert excinfo.value.to_dict()["providerResponse"] == {"error": "Flight is full"}


def test_server_error_is_unavailable(gateway, session):
    session.request.return_value = fake_response(status_code=502, text="<html>Bad gateway</html>")

    with pytest.raises(ProviderUnavailable) as excinfo:
        gateway.search("YYZ", "JFK", date(2025, 5, 1))

    assert excinfo.value.status_code == 503
    assert excinfo.value.payload == {"raw": "<html>Bad gateway</html>"}
    assert excinfo.value.timed_out is False


def test_timeout_is_flagged_and_not_retried(gateway, session):
    session.request.side_effect = requests.exceptions.ReadTimeout("slow")

    with pytest.raises(ProviderUnavailable) as excinfo:
        gateway.book(TRAVELER, "AB123456", ["FL-1"])

    assert excinfo.value.timed_out is True
    assert session.request.call_count == 1


def test_connection_error_is_unavailable(gateway, session):
    session.request.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(ProviderUnavailable) as excinfo:
        gateway.verify("Lovelace", "AFS-1")

    assert excinfo.value.timed_out is False


def test_verify_falls_back_to_requested_reference(gateway, session):
    session.request.return_value = fake_response(payload={"status": "CONFIRMED", "flights": []})

    result = gateway.verify("Lovelace", "AFS-9")

    assert session.request.call_args.kwargs["params"] == {"lastName": "Lovelace", "bookingReference": "AFS-9"}
    assert result.reference == "AFS-9"


def test_payload_without_reference_uses_fallback():
    result = booking_result_from_payload({}, fallback_reference="X")

    assert result.reference == "X"
    assert result.flights == []
