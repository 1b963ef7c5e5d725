"""Booking models for TripDesk.

A ``Booking`` owns its hotel ``Reservation`` rows and its ``Flight`` rows.
``ProviderBooking`` journals every call to the flight provider so that a
provider booking without a matching local booking can always be found
and reconciled.
"""

from __future__ import annotations

import secrets
import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        CONFIRMED = "CONFIRMED", _("Confirmed")
        CANCELLED = "CANCELLED", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    cancelled_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Unpaid PENDING bookings release their rooms after this moment."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"]),
            models.Index(fields=["booking_code"]),
            models.Index(fields=["status", "expires_at"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} ({self.status})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def is_confirmed(self) -> bool:
        return self.status == self.Status.CONFIRMED

    def should_expire(self) -> bool:
        return (
            self.status == self.Status.PENDING
            and self.expires_at is not None
            and self.expires_at <= timezone.now()
        )

    def mark_cancelled(self) -> None:
        self.status = self.Status.CANCELLED
        self.cancelled_at = timezone.now()
        self.save(update_fields=["status", "cancelled_at", "updated_at"])


class Reservation(models.Model):
    class Status(models.TextChoices):
        CONFIRMED = "CONFIRMED", _("Confirmed")
        CANCELLED = "CANCELLED", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="reservations")
    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    room = models.ForeignKey(
        "hotels.Room",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
    )
    check_in_date = models.DateField()
    check_out_date = models.DateField()
    rooms_booked = models.PositiveIntegerField(default=1)
    price_per_night = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Nightly price at the moment of booking."),
    )
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.CONFIRMED)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["check_in_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out_date__gt=models.F("check_in_date")),
                name="reservation_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(rooms_booked__gte=1),
                name="reservation_rooms_booked_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "status", "check_in_date", "check_out_date"]),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id}: {self.check_in_date} - {self.check_out_date} x{self.rooms_booked}"

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def total_cost(self) -> Decimal:
        return self.price_per_night * self.nights * self.rooms_booked


class Flight(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="flights")
    afs_flight_id = models.CharField(max_length=64)
    provider_reference = models.CharField(max_length=64, blank=True)
    flight_number = models.CharField(max_length=20, blank=True)
    airline = models.CharField(max_length=100, blank=True)
    source = models.CharField(max_length=255)
    destination = models.CharField(max_length=255)
    departure_time = models.DateTimeField(null=True, blank=True)
    arrival_time = models.DateTimeField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, blank=True, help_text=_("Currency the provider quoted the price in."))
    status = models.CharField(max_length=16, choices=Booking.Status.choices, default=Booking.Status.CONFIRMED)
    snapshot = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Flight")
        verbose_name_plural = _("Flights")
        ordering = ["departure_time"]
        indexes = [
            models.Index(fields=["provider_reference"]),
        ]

    def __str__(self) -> str:
        return f"{self.flight_number or self.afs_flight_id}: {self.source} -> {self.destination}"


class ProviderBooking(models.Model):
    """Journal entry for one flight provider booking attempt."""

    class Status(models.TextChoices):
        PROVIDER_PENDING = "provider_pending", _("Sent to provider")
        PROVIDER_CONFIRMED = "provider_confirmed", _("Confirmed by provider")
        PROVIDER_REJECTED = "provider_rejected", _("Rejected by provider")
        PROVIDER_UNKNOWN = "provider_unknown", _("Provider outcome unknown")
        COMPLETED = "completed", _("Committed locally")
        PARTIAL_FAILURE = "partial_failure", _("Provider booked, local commit failed")
        RESOLVED = "resolved", _("Resolved")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="provider_bookings",
    )
    flight_ids = models.JSONField(default=list)
    hotel_legs = models.JSONField(default=list, blank=True)
    provider_reference = models.CharField(max_length=64, blank=True)
    provider_payload = models.JSONField(null=True, blank=True)
    status = models.CharField(
        max_length=24,
        choices=Status.choices,
        default=Status.PROVIDER_PENDING,
    )
    booking = models.OneToOneField(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="provider_booking",
    )
    last_error = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Provider booking")
        verbose_name_plural = _("Provider bookings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "updated_at"]),
            models.Index(fields=["provider_reference"]),
        ]

    def __str__(self) -> str:
        return f"{self.provider_reference or self.pk} ({self.status})"

    def transition(self, status: str, **fields) -> None:
        self.status = status
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=["status", "updated_at", *fields.keys()])
