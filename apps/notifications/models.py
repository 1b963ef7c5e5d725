"""Notification model.

In-app messages about bookings, cancellations, flights and invoices.
Notifications are written by domain services and read by their recipient,
who can mark them as read.
"""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        BOOKING_CONFIRMED = 'BOOKING_CONFIRMED', _('Booking confirmed')
        BOOKING_CANCELLED = 'BOOKING_CANCELLED', _('Booking cancelled')
        HOTEL_BOOKING = 'HOTEL_BOOKING', _('Hotel booking')
        FLIGHT_CHANGE = 'FLIGHT_CHANGE', _('Flight change')
        INVOICE_READY = 'INVOICE_READY', _('Invoice ready')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        'users.CustomUser', on_delete=models.CASCADE, related_name='notifications'
    )
    type = models.CharField(max_length=32, choices=Type.choices)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.type}"
