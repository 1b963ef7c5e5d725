"""Django-backed repository for the room inventory aggregate."""

from __future__ import annotations

import logging
from uuid import UUID

from apps.bookings.domain.inventory import Allocation, RoomInventory
from apps.bookings.models import Reservation
from apps.hotels.models import RoomAvailability, RoomType
from shared.domain.exceptions import NotFound
from shared.domain.value_objects import DateRange

from .services import _lock_queryset_if_possible

logger = logging.getLogger(__name__)


class DjangoInventoryRepository:
    """
    Loads a RoomInventory for a window of nights and writes back the
    override rows it changed. Reservation rows are written by the
    committer; the aggregate only decides whether they fit.
    """

    def get(self, room_type_id: UUID, dates: DateRange, lock: bool = False) -> RoomInventory:
        queryset = RoomType.objects.filter(pk=room_type_id)
        if lock:
            # Serialises every writer of this room type until commit
            queryset = _lock_queryset_if_possible(queryset)

        room_type = queryset.first()
        if room_type is None:
            raise NotFound(f"Room type {room_type_id} not found")

        overrides = dict(
            RoomAvailability.objects.filter(
                room_type_id=room_type_id,
                date__gte=dates.start_date,
                date__lt=dates.end_date,
            ).values_list("date", "available_rooms")
        )

        reservations = Reservation.objects.filter(
            room_type_id=room_type_id,
            status=Reservation.Status.CONFIRMED,
            check_in_date__lt=dates.end_date,
            check_out_date__gt=dates.start_date,
        ).values_list("id", "booking_id", "check_in_date", "check_out_date", "rooms_booked")

        allocations = [
            Allocation(
                reservation_id=reservation_id,
                booking_id=booking_id,
                dates=DateRange(check_in, check_out),
                quantity=rooms_booked,
            )
            for reservation_id, booking_id, check_in, check_out, rooms_booked in reservations
        ]

        return RoomInventory(
            room_type_id=room_type.pk,
            total_rooms=room_type.total_rooms,
            window=dates,
            overrides=overrides,
            allocations=allocations,
        )

    def save(self, inventory: RoomInventory) -> None:
        for day in sorted(inventory.changed_dates):
            RoomAvailability.objects.update_or_create(
                room_type_id=inventory.room_type_id,
                date=day,
                defaults={"available_rooms": inventory.overrides[day]},
            )
        if inventory.changed_dates:
            logger.debug(
                f"Saved {len(inventory.changed_dates)} availability overrides "
                f"for room type {inventory.room_type_id}"
            )
        inventory.mark_clean()
