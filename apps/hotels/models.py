"""Hotel inventory models.

A ``RoomType`` is the unit of inventory: it has ``total_rooms`` identical
rooms and a nightly price. ``RoomAvailability`` rows override the computed
availability of one room type on one date. Individual ``Room`` rows exist
for hotels that hand out concrete room numbers.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Hotel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="hotels",
    )
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    country = models.CharField(max_length=100, blank=True)
    star_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Hotel")
        verbose_name_plural = _("Hotels")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["city"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.city})"


class RoomType(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name="room_types")
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    price_per_night = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    currency = models.CharField(max_length=3, default="USD")
    total_rooms = models.PositiveIntegerField(default=0)
    capacity = models.PositiveSmallIntegerField(default=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Room type")
        verbose_name_plural = _("Room types")
        ordering = ["hotel", "name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_rooms__gte=0),
                name="room_type_total_rooms_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.hotel.name}: {self.name}"


class Room(models.Model):
    class AvailabilityStatus(models.TextChoices):
        AVAILABLE = "available", _("Available")
        BOOKED = "booked", _("Booked")
        MAINTENANCE = "maintenance", _("Maintenance")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_type = models.ForeignKey(RoomType, on_delete=models.CASCADE, related_name="rooms")
    number = models.CharField(max_length=20)
    availability_status = models.CharField(
        max_length=20,
        choices=AvailabilityStatus.choices,
        default=AvailabilityStatus.AVAILABLE,
    )

    class Meta:
        verbose_name = _("Room")
        verbose_name_plural = _("Rooms")
        ordering = ["room_type", "number"]
        constraints = [
            models.UniqueConstraint(fields=["room_type", "number"], name="unique_room_number_per_type"),
        ]

    def __str__(self) -> str:
        return f"{self.room_type} #{self.number}"

    @property
    def is_available(self) -> bool:
        return self.availability_status == self.AvailabilityStatus.AVAILABLE


class RoomAvailability(models.Model):
    """Explicit number of rooms still available for a room type on a date."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_type = models.ForeignKey(
        RoomType,
        on_delete=models.CASCADE,
        related_name="availability_overrides",
    )
    date = models.DateField()
    available_rooms = models.PositiveIntegerField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Room availability")
        verbose_name_plural = _("Room availability")
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(fields=["room_type", "date"], name="unique_availability_per_day"),
            models.CheckConstraint(
                condition=models.Q(available_rooms__gte=0),
                name="availability_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id} {self.date}: {self.available_rooms}"
