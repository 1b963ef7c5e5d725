"""
AFS (Advanced Flights System) gateway.

The only module that talks to the external flight provider. Every call
sends the ``x-api-key`` header and a bounded timeout, and every failure is
mapped into the domain error taxonomy:

- provider 4xx                    -> ProviderRejected (status and payload kept)
- provider 5xx, connection errors -> ProviderUnavailable
- timeouts                        -> ProviderUnavailable(timed_out=True)

``book`` is never retried here. After a timeout the booking may exist on
the provider side, so callers must ``verify`` before trying again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings  # type: ignore
from django.utils.dateparse import parse_datetime  # type: ignore

from shared.domain.exceptions import InvalidInput, ProviderRejected, ProviderUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Traveler:
    first_name: str
    last_name: str
    email: str


@dataclass
class FlightOffer:
    """Provider schedule and price snapshot of one flight"""
    id: str
    flight_number: str = ''
    airline: str = ''
    origin: str = ''
    destination: str = ''
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Decimal = Decimal('0.00')
    currency: str = ''
    available_seats: Optional[int] = None
    status: str = ''
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'FlightOffer':
        airline = data.get('airline') or ''
        if isinstance(airline, dict):
            airline = airline.get('name') or airline.get('code') or ''
        return cls(
            id=str(data.get('id', '')),
            flight_number=str(data.get('flightNumber') or ''),
            airline=str(airline),
            origin=_place(data.get('origin')),
            destination=_place(data.get('destination')),
            departure_time=_datetime(data.get('departureTime')),
            arrival_time=_datetime(data.get('arrivalTime')),
            price=_decimal(data.get('price')),
            currency=_currency(data.get('currency')),
            available_seats=data.get('availableSeats'),
            status=str(data.get('status') or ''),
            raw=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'flightNumber': self.flight_number,
            'airline': self.airline,
            'origin': self.origin,
            'destination': self.destination,
            'departureTime': self.departure_time.isoformat() if self.departure_time else None,
            'arrivalTime': self.arrival_time.isoformat() if self.arrival_time else None,
            'price': str(self.price),
            'currency': self.currency,
            'availableSeats': self.available_seats,
            'status': self.status,
        }


@dataclass
class ProviderBookingResult:
    reference: str
    status: str
    flights: List[FlightOffer]
    payload: Dict[str, Any]


def _place(value) -> str:
    """Render a provider airport object as ``CODE (City, Country)``"""
    if isinstance(value, dict):
        code = value.get('code', '')
        details = ', '.join(part for part in (value.get('city'), value.get('country')) if part)
        return f"{code} ({details})" if details else str(code)
    return str(value or '')


def _datetime(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_datetime(str(value))
    except ValueError:
        return None


def _currency(value) -> str:
    code = str(value or '').strip().upper()
    return code if len(code) == 3 else ''


def _decimal(value) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal('0.00')
    except InvalidOperation:
        return Decimal('0.00')


def _flights_in(payload) -> List[Dict[str, Any]]:
    """Flatten the flights of a search or booking payload"""
    if isinstance(payload, list):
        flights = []
        for item in payload:
            if isinstance(item, dict) and 'flights' in item:
                flights.extend(_flights_in(item))
            elif isinstance(item, dict):
                flights.append(item)
        return flights
    if isinstance(payload, dict):
        if 'results' in payload:
            return _flights_in(payload['results'])
        if 'flights' in payload:
            return [f for f in payload['flights'] if isinstance(f, dict)]
    return []


class AFSFlightGateway:
    """
    HTTP client for the AFS API.

    Usage:
        gateway = AFSFlightGateway()
        offers = gateway.search("YYZ", "JFK", date(2025, 5, 1))
        result = gateway.book(traveler, "AB123456", [offers[0].id])
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.AFS_BASE_URL).rstrip('/')
        self.api_key = api_key if api_key is not None else settings.AFS_API_KEY
        self.timeout = timeout if timeout is not None else settings.AFS_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    # ----- Public API -----

    def search(self, origin: str, destination: str, day: date) -> List[FlightOffer]:
        if not origin or not destination or not day:
            raise InvalidInput("origin, destination and date are required")
        payload = self._request(
            'GET',
            '/api/flights',
            params={'origin': origin, 'destination': destination, 'date': _iso(day)},
        )
        offers = [FlightOffer.from_payload(item) for item in _flights_in(payload)]
        logger.info(f"AFS search {origin}->{destination} on {_iso(day)}: {len(offers)} flights")
        return offers

    def book(self, traveler: Traveler, passport_number: str, flight_ids: List[str]) -> ProviderBookingResult:
        if not flight_ids or not passport_number:
            raise InvalidInput("flightIds and passportNumber are required")
        payload = self._request(
            'POST',
            '/api/bookings',
            json={
                'firstName': traveler.first_name,
                'lastName': traveler.last_name,
                'email': traveler.email,
                'passportNumber': passport_number,
                'flightIds': list(flight_ids),
            },
        )
        result = booking_result_from_payload(payload)
        logger.info(f"AFS booked {len(flight_ids)} flights, reference {result.reference}")
        return result

    def verify(self, last_name: str, booking_reference: str) -> ProviderBookingResult:
        if not booking_reference:
            raise InvalidInput("bookingReference is required")
        payload = self._request(
            'GET',
            '/api/bookings/retrieve',
            params={'lastName': last_name, 'bookingReference': booking_reference},
        )
        return booking_result_from_payload(payload, fallback_reference=booking_reference)

    # ----- Internals -----

    def _request(self, method: str, path: str, *, params=None, json=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={'x-api-key': self.api_key, 'Accept': 'application/json'},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"AFS {method} {path} timed out after {self.timeout}s")
            raise ProviderUnavailable(
                f"Flight provider timed out after {self.timeout}s", timed_out=True
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"AFS {method} {path} failed: {e}")
            raise ProviderUnavailable(f"Flight provider unreachable: {e}") from e

        payload = self._decode(response)

        if response.status_code >= 500:
            logger.error(f"AFS {method} {path} returned {response.status_code}: {payload}")
            raise ProviderUnavailable(
                f"Flight provider error ({response.status_code})",
                provider_status=response.status_code,
                payload=payload,
            )
        if response.status_code >= 400:
            logger.warning(f"AFS {method} {path} rejected with {response.status_code}: {payload}")
            message = payload.get('error') or payload.get('message') if isinstance(payload, dict) else None
            raise ProviderRejected(
                str(message or f"Flight provider rejected the request ({response.status_code})"),
                provider_status=response.status_code,
                payload=payload,
            )
        return payload

    @staticmethod
    def _decode(response):
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {'raw': response.text}


def booking_result_from_payload(payload, fallback_reference: str = '') -> ProviderBookingResult:
    """Normalise a provider booking payload, also used on journalled payloads"""
    data = payload if isinstance(payload, dict) else {'flights': payload}
    reference = (
        data.get('bookingReference')
        or data.get('reference')
        or data.get('id')
        or fallback_reference
    )
    return ProviderBookingResult(
        reference=str(reference or ''),
        status=str(data.get('status') or 'CONFIRMED'),
        flights=[FlightOffer.from_payload(item) for item in _flights_in(data)],
        payload=data,
    )


def _iso(day) -> str:
    return day.isoformat() if hasattr(day, 'isoformat') else str(day)


@lru_cache(maxsize=1)
def get_flight_gateway() -> AFSFlightGateway:
    """Process-wide gateway sharing one HTTP session"""
    return AFSFlightGateway()
