"""Celery tasks for invoices."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.domain.exceptions import DomainError

from .services import InvoiceEmitter

logger = logging.getLogger(__name__)


@shared_task(name="invoices.ensure_invoice")
def ensure_invoice_task(booking_id: str) -> str | None:
    """Issue the invoice of a freshly confirmed booking. Returns the invoice id."""
    try:
        result = InvoiceEmitter().ensure_invoice(booking_id)
    except DomainError as e:
        logger.warning(f"Invoice for booking {booking_id} not issued: {e.message}")
        return None
    return str(result.invoice.pk)
