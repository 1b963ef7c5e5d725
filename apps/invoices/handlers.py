"""Domain event handlers owned by the invoices app."""

from __future__ import annotations

from .tasks import ensure_invoice_task


def schedule_invoice(event) -> None:
    ensure_invoice_task.delay(str(event.booking_id))
