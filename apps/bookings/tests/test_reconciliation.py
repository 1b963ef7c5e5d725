"""Tests for the provider booking reconciliation task."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from apps.bookings.application.aggregator import BookingAggregator
from apps.bookings.application.command_handlers import ReservationCommitter
from apps.bookings.models import Booking, ProviderBooking
from apps.bookings.services import InventoryLedger
from apps.bookings.tasks import reconcile_provider_bookings
from apps.flights.gateway import booking_result_from_payload
from shared.domain.exceptions import ProviderRejected, ProviderUnavailable

pytestmark = pytest.mark.django_db

PAYLOAD = {
    "bookingReference": "AFS-R1",
    "flights": [{"id": "FL-9", "flightNumber": "WS12", "origin": "YYC", "destination": "YVR", "price": "120.00"}],
}


@pytest.fixture
def gateway():
    return mock.Mock()


@pytest.fixture(autouse=True)
def aggregator(gateway):
    aggregator = BookingAggregator(gateway, ReservationCommitter(), InventoryLedger())
    with mock.patch("apps.bookings.tasks.get_booking_aggregator", return_value=aggregator):
        yield aggregator


def journal(user, status, **fields):
    return ProviderBooking.objects.create(user=user, flight_ids=["FL-9"], status=status, **fields)


def age(entry, minutes):
    ProviderBooking.objects.filter(pk=entry.pk).update(updated_at=timezone.now() - timedelta(minutes=minutes))


def test_partial_failure_is_committed(traveller):
    entry = journal(
        traveller,
        ProviderBooking.Status.PARTIAL_FAILURE,
        provider_reference="AFS-R1",
        provider_payload=PAYLOAD,
        attempts=1,
    )

    counts = reconcile_provider_bookings()

    assert counts["resumed"] == 1
    entry.refresh_from_db()
    assert entry.status == ProviderBooking.Status.COMPLETED
    assert entry.booking.flights.get().flight_number == "WS12"


def test_exhausted_partial_failure_is_left_for_review(traveller, settings):
    settings.RECONCILIATION_MAX_ATTEMPTS = 2
    entry = journal(
        traveller,
        ProviderBooking.Status.PARTIAL_FAILURE,
        provider_reference="AFS-R1",
        provider_payload=PAYLOAD,
        attempts=2,
    )

    counts = reconcile_provider_bookings()

    assert counts == {"resumed": 0, "resolved": 0, "failed": 0, "unresolved": 1}
    entry.refresh_from_db()
    assert entry.status == ProviderBooking.Status.PARTIAL_FAILURE


def test_row_settled_by_another_worker_is_skipped(traveller, aggregator):
    first = journal(
        traveller,
        ProviderBooking.Status.PARTIAL_FAILURE,
        provider_reference="AFS-R1",
        provider_payload=PAYLOAD,
        attempts=1,
    )
    second = journal(
        traveller,
        ProviderBooking.Status.PARTIAL_FAILURE,
        provider_reference="AFS-R2",
        provider_payload={**PAYLOAD, "bookingReference": "AFS-R2"},
        attempts=1,
    )
    real_resume = aggregator.resume

    # another worker finishes whichever row this run reaches second
    def settle_the_other(entry):
        other = second if entry.pk == first.pk else first
        ProviderBooking.objects.filter(pk=other.pk).update(status=ProviderBooking.Status.COMPLETED)
        return real_resume(entry)

    with mock.patch.object(aggregator, "resume", side_effect=settle_the_other) as resume:
        counts = reconcile_provider_bookings()

    assert resume.call_count == 1
    assert counts["resumed"] == 1
    assert counts["failed"] == 0
    assert Booking.objects.count() == 1


def test_unknown_outcome_verified_as_booked(traveller, gateway):
    entry = journal(traveller, ProviderBooking.Status.PROVIDER_UNKNOWN, provider_reference="AFS-R1")
    gateway.verify.return_value = booking_result_from_payload(PAYLOAD)

    counts = reconcile_provider_bookings()

    gateway.verify.assert_called_once_with("Lovelace", "AFS-R1")
    assert counts["resumed"] == 1
    entry.refresh_from_db()
    assert entry.status == ProviderBooking.Status.COMPLETED


def test_provider_404_resolves_entry(traveller, gateway):
    entry = journal(traveller, ProviderBooking.Status.PROVIDER_PENDING, provider_reference="AFS-GONE")
    age(entry, 60)
    gateway.verify.side_effect = ProviderRejected("Booking not found", provider_status=404)

    counts = reconcile_provider_bookings()

    assert counts["resolved"] == 1
    entry.refresh_from_db()
    assert entry.status == ProviderBooking.Status.RESOLVED


def test_fresh_pending_entry_is_not_touched(traveller, gateway):
    journal(traveller, ProviderBooking.Status.PROVIDER_PENDING, provider_reference="AFS-NEW")

    counts = reconcile_provider_bookings()

    gateway.verify.assert_not_called()
    assert not any(counts.values())


def test_unknown_without_reference_needs_review(traveller, gateway):
    journal(traveller, ProviderBooking.Status.PROVIDER_UNKNOWN)

    counts = reconcile_provider_bookings()

    gateway.verify.assert_not_called()
    assert counts["unresolved"] == 1


def test_provider_still_down(traveller, gateway):
    entry = journal(traveller, ProviderBooking.Status.PROVIDER_UNKNOWN, provider_reference="AFS-R1")
    gateway.verify.side_effect = ProviderUnavailable("down")

    counts = reconcile_provider_bookings()

    assert counts["unresolved"] == 1
    entry.refresh_from_db()
    assert entry.status == ProviderBooking.Status.PROVIDER_UNKNOWN
