"""Wiring of booking use cases to their collaborators."""

from __future__ import annotations

from apps.bookings.application.aggregator import BookingAggregator
from apps.bookings.application.command_handlers import ReservationCommitter
from apps.bookings.services import InventoryLedger
from apps.flights.gateway import get_flight_gateway


def get_booking_aggregator() -> BookingAggregator:
    return BookingAggregator(
        gateway=get_flight_gateway(),
        committer=ReservationCommitter(),
        ledger=InventoryLedger(),
    )
