"""Tests for committing hotel and flight legs into bookings."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock
from uuid import uuid4

import pytest

from apps.bookings.application.command_handlers import (
    CommitBookingCommand,
    CommitReservationCommand,
    ReservationCommitter,
)
from apps.bookings.domain.entities import FlightLeg, HotelLeg
from apps.bookings.domain.events import BookingConfirmed
from apps.bookings.models import Booking, Flight, Reservation
from apps.bookings.services import InventoryLedger
from apps.hotels.models import Room, RoomAvailability, RoomType
from apps.notifications.models import Notification
from shared.application.message_bus import message_bus
from shared.domain.exceptions import InsufficientInventory, InvalidInput, NotFound

pytestmark = pytest.mark.django_db


def commit(user, room_type, stay, rooms=1, **kwargs):
    check_in, check_out = stay
    return ReservationCommitter().commit(
        CommitReservationCommand(
            user_id=user.pk,
            room_type_id=room_type.pk,
            check_in=check_in,
            check_out=check_out,
            rooms_booked=rooms,
            **kwargs,
        )
    )


def test_commit_creates_confirmed_booking(traveller, room_type, stay):
    booking = commit(traveller, room_type, stay, rooms=2)

    assert booking.status == Booking.Status.CONFIRMED
    assert booking.total_price == Decimal("600.00")  # 3 nights x 2 rooms x 100
    assert booking.currency == "USD"
    reservation = booking.reservations.get()
    assert reservation.rooms_booked == 2
    assert reservation.price_per_night == Decimal("100.00")
    assert Notification.objects.filter(
        user=traveller, type=Notification.Type.HOTEL_BOOKING
    ).exists()


def test_commit_never_oversells(traveller, room_type, stay):
    commit(traveller, room_type, stay, rooms=2)

    with pytest.raises(InsufficientInventory) as excinfo:
        commit(traveller, room_type, stay, rooms=1)

    assert excinfo.value.unavailable_dates == [stay[0] + timedelta(days=n) for n in range(3)]
    assert Booking.objects.count() == 1
    assert Reservation.objects.count() == 1


def test_failed_leg_leaves_no_rows(traveller, hotel, room_type, stay):
    sold_out = RoomType.objects.create(
        hotel=hotel, name="Suite", price_per_night=Decimal("300.00"), total_rooms=1
    )
    RoomAvailability.objects.create(room_type=room_type, date=stay[0], available_rooms=2)
    RoomAvailability.objects.create(room_type=sold_out, date=stay[0], available_rooms=0)

    with pytest.raises(InsufficientInventory):
        ReservationCommitter().commit_booking(
            CommitBookingCommand(
                user_id=traveller.pk,
                hotel_legs=[
                    HotelLeg(room_type_id=room_type.pk, check_in=stay[0], check_out=stay[1]),
                    HotelLeg(room_type_id=sold_out.pk, check_in=stay[0], check_out=stay[1]),
                ],
            )
        )

    assert Booking.objects.count() == 0
    assert Reservation.objects.count() == 0
    assert Notification.objects.count() == 0
    # nothing was written for the first leg either
    assert RoomAvailability.objects.get(room_type=room_type, date=stay[0]).available_rooms == 2


def test_commit_decrements_existing_overrides(traveller, room_type, stay):
    RoomAvailability.objects.create(room_type=room_type, date=stay[0], available_rooms=1)

    commit(traveller, room_type, stay)

    assert RoomAvailability.objects.get(room_type=room_type, date=stay[0]).available_rooms == 0
    # nights without an override stay computed
    assert RoomAvailability.objects.filter(room_type=room_type).count() == 1
    assert InventoryLedger().availability(room_type.pk, *stay)[1] == (stay[0] + timedelta(days=1), 1)


def test_commit_by_room_marks_room_booked(traveller, room, stay):
    booking = commit_by_room(traveller, room, stay, update_room_status=True)

    room.refresh_from_db()
    assert room.availability_status == Room.AvailabilityStatus.BOOKED
    assert booking.reservations.get().room_id == room.pk

    with pytest.raises(InsufficientInventory):
        commit_by_room(traveller, room, stay)


def commit_by_room(user, room, stay, **kwargs):
    return ReservationCommitter().commit(
        CommitReservationCommand(
            user_id=user.pk,
            room_id=room.pk,
            check_in=stay[0],
            check_out=stay[1],
            **kwargs,
        )
    )


def test_unknown_room_type(traveller, stay):
    with pytest.raises(NotFound):
        ReservationCommitter().commit_booking(
            CommitBookingCommand(
                user_id=traveller.pk,
                hotel_legs=[HotelLeg(room_type_id=uuid4(), check_in=stay[0], check_out=stay[1])],
            )
        )


def test_commit_without_legs_is_invalid(traveller):
    with pytest.raises(InvalidInput):
        ReservationCommitter().commit_booking(CommitBookingCommand(user_id=traveller.pk))


def test_mixed_currencies_are_rejected(traveller, hotel, room_type, stay):
    euro = RoomType.objects.create(
        hotel=hotel, name="Euro room", price_per_night=Decimal("90.00"), currency="EUR", total_rooms=1
    )

    with pytest.raises(InvalidInput):
        ReservationCommitter().commit_booking(
            CommitBookingCommand(
                user_id=traveller.pk,
                hotel_legs=[
                    HotelLeg(room_type_id=room_type.pk, check_in=stay[0], check_out=stay[1]),
                    HotelLeg(room_type_id=euro.pk, check_in=stay[0], check_out=stay[1]),
                ],
            )
        )
    assert Booking.objects.count() == 0


def test_commit_with_flights_sums_prices(traveller, room_type, stay):
    flight = FlightLeg(
        afs_flight_id="FL-1",
        provider_reference="AFS123",
        source="YYZ (Toronto, Canada)",
        destination="JFK (New York, USA)",
        price=Decimal("250.50"),
        flight_number="AC100",
    )

    booking = ReservationCommitter().commit_booking(
        CommitBookingCommand(
            user_id=traveller.pk,
            hotel_legs=[HotelLeg(room_type_id=room_type.pk, check_in=stay[0], check_out=stay[1])],
            flight_legs=[flight],
            provider_reference="AFS123",
        )
    )

    assert booking.total_price == Decimal("550.50")
    saved = Flight.objects.get(booking=booking)
    assert saved.provider_reference == "AFS123"
    assert saved.status == Booking.Status.CONFIRMED
    assert Notification.objects.filter(type=Notification.Type.BOOKING_CONFIRMED).count() == 1


def test_booking_confirmed_published_after_commit(traveller, room_type, stay, django_capture_on_commit_callbacks):
    handler = mock.Mock(__name__="handler")
    message_bus.subscribe(BookingConfirmed, handler)
    try:
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            booking = commit(traveller, room_type, stay)
        handler.assert_not_called()

        for callback in callbacks:
            callback()
    finally:
        message_bus.unsubscribe(BookingConfirmed, handler)

    event = handler.call_args.args[0]
    assert event.booking_id == booking.pk
    assert event.total_price == booking.total_price
