"""Invoice emission."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking, Reservation
from apps.bookings.services import _lock_queryset_if_possible
from apps.notifications.models import Notification
from apps.notifications.services import notify
from shared.domain.exceptions import InvalidState, NotFound

from .models import Invoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceResult:
    invoice: Invoice
    status: str  # "existing" or "created"


class InvoiceEmitter:
    """
    Idempotently issue the invoice of a confirmed booking.

    The booking row is locked while the invoice is looked up and written, so
    two concurrent calls produce one invoice. Where row locks are not
    available the unique booking constraint still holds and the loser of the
    race returns the winner's row.
    """

    template_name = "invoices/invoice.html"

    def ensure_invoice(self, booking_id) -> InvoiceResult:
        try:
            with transaction.atomic():
                result = self._ensure(booking_id)
        except IntegrityError:
            invoice = Invoice.objects.filter(booking_id=booking_id).first()
            if invoice is None:
                raise
            logger.info(f"Invoice for booking {booking_id} was issued concurrently")
            return InvoiceResult(invoice=invoice, status="existing")

        if result.status == "created":
            notify(
                result.invoice.booking.user_id,
                f"Your invoice {result.invoice.number} is ready",
                Notification.Type.INVOICE_READY,
            )
        return result

    def _ensure(self, booking_id) -> InvoiceResult:
        booking = (
            _lock_queryset_if_possible(Booking.objects.filter(pk=booking_id))
            .select_related("user")
            .first()
        )
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        if booking.status != Booking.Status.CONFIRMED:
            raise InvalidState(f"Booking {booking.booking_code} is {booking.status}, not CONFIRMED")

        existing = Invoice.objects.filter(booking=booking).first()
        if existing is not None:
            return InvoiceResult(invoice=existing, status="existing")

        number = f"INV-{booking.booking_code}"
        document = render_to_string(
            self.template_name,
            {
                "booking": booking,
                "number": number,
                "issued_on": timezone.now().date(),
                "reservations": booking.reservations.select_related("room_type__hotel").filter(
                    status=Reservation.Status.CONFIRMED
                ),
                "flights": booking.flights.filter(status=Booking.Status.CONFIRMED),
            },
        )
        invoice = Invoice.objects.create(
            booking=booking,
            number=number,
            amount=booking.total_price,
            currency=booking.currency,
            document=document,
        )
        logger.info(f"Invoice {invoice.number} issued for booking {booking.pk}")
        return InvoiceResult(invoice=invoice, status="created")
