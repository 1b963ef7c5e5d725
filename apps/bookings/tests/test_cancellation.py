"""Tests for cancelling bookings and pinning availability."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CommitBookingCommand,
    ReservationCommitter,
    SetAvailabilityCommand,
    SetAvailabilityHandler,
)
from apps.bookings.domain.entities import FlightLeg, HotelLeg
from apps.bookings.models import Booking, Reservation
from apps.bookings.services import InventoryLedger
from apps.hotels.models import Hotel, Room, RoomAvailability, RoomType
from apps.notifications.models import Notification
from apps.users.models import User
from shared.domain.exceptions import Forbidden, InsufficientInventory, InvalidInput, InvalidState, NotFound

pytestmark = pytest.mark.django_db


@pytest.fixture
def combined_booking(traveller, room_type, stay):
    return ReservationCommitter().commit_booking(
        CommitBookingCommand(
            user_id=traveller.pk,
            hotel_legs=[HotelLeg(room_type_id=room_type.pk, check_in=stay[0], check_out=stay[1])],
            flight_legs=[
                FlightLeg(
                    afs_flight_id="FL-1",
                    provider_reference="AFS123",
                    source="YYZ",
                    destination="JFK",
                    price=Decimal("200.00"),
                )
            ],
            provider_reference="AFS123",
        )
    )


def cancel(booking, user, **kwargs):
    return CancelBookingHandler().handle(
        CancelBookingCommand(
            booking_id=booking.pk,
            user_id=user.pk,
            is_hotel_owner=user.is_hotel_owner(),
            **kwargs,
        )
    )


def test_full_cancellation_releases_rooms(combined_booking, traveller, room_type, stay):
    result = cancel(combined_booking, traveller)

    assert result.fully_cancelled
    assert result.cancelled_reservations == 1
    assert result.cancelled_flights == 1
    combined_booking.refresh_from_db()
    assert combined_booking.status == Booking.Status.CANCELLED
    assert combined_booking.cancelled_at is not None
    assert all(count == 2 for _, count in InventoryLedger().availability(room_type.pk, *stay))
    assert Notification.objects.filter(user=traveller, type=Notification.Type.BOOKING_CANCELLED).exists()


def test_cancel_hotels_only_keeps_flights(combined_booking, traveller):
    result = cancel(combined_booking, traveller, cancel_hotels_only=True)

    assert not result.fully_cancelled
    combined_booking.refresh_from_db()
    assert combined_booking.status == Booking.Status.CONFIRMED
    assert combined_booking.reservations.get().status == Reservation.Status.CANCELLED
    assert combined_booking.flights.get().status == Booking.Status.CONFIRMED

    result = cancel(combined_booking, traveller, cancel_flights_only=True)
    assert result.fully_cancelled


def test_both_partial_flags_are_rejected(combined_booking, traveller):
    with pytest.raises(InvalidInput):
        cancel(combined_booking, traveller, cancel_hotels_only=True, cancel_flights_only=True)


def test_cancelling_twice_is_invalid_state(combined_booking, traveller):
    cancel(combined_booking, traveller)

    with pytest.raises(InvalidState):
        cancel(combined_booking, traveller)


def test_hotel_owner_cancels_only_own_reservations(combined_booking, hotel_owner):
    result = cancel(combined_booking, hotel_owner)

    assert result.cancelled_reservations == 1
    assert result.cancelled_flights == 0
    assert not result.fully_cancelled
    assert Notification.objects.filter(
        user=combined_booking.user, message__contains="cancelled by the hotel"
    ).exists()


def test_stranger_cannot_cancel(combined_booking):
    stranger = User.objects.create_user(
        email="other-owner@example.com", password="x", role=User.RoleChoices.HOTEL_OWNER
    )
    Hotel.objects.create(owner=stranger, name="Elsewhere", city="Ottawa")

    with pytest.raises(Forbidden):
        cancel(combined_booking, stranger)


def test_unknown_booking(traveller):
    with pytest.raises(NotFound):
        CancelBookingHandler().handle(CancelBookingCommand(booking_id="00000000-0000-0000-0000-000000000000", user_id=traveller.pk))


def test_cancel_frees_booked_room_and_override(traveller, room_type, room, stay):
    RoomAvailability.objects.create(room_type=room_type, date=stay[0], available_rooms=1)
    booking = ReservationCommitter().commit_booking(
        CommitBookingCommand(
            user_id=traveller.pk,
            hotel_legs=[HotelLeg(room_id=room.pk, check_in=stay[0], check_out=stay[1], update_room_status=True)],
        )
    )
    assert RoomAvailability.objects.get(room_type=room_type, date=stay[0]).available_rooms == 0

    cancel(booking, traveller)

    room.refresh_from_db()
    assert room.availability_status == Room.AvailabilityStatus.AVAILABLE
    assert RoomAvailability.objects.get(room_type=room_type, date=stay[0]).available_rooms == 1


def set_availability(user, room_type, start, days, rooms):
    return SetAvailabilityHandler().handle(
        SetAvailabilityCommand(
            user_id=user.pk,
            hotel_id=room_type.hotel_id,
            room_type_id=room_type.pk,
            start_date=start,
            end_date=start + timedelta(days=days),
            available_rooms=rooms,
        )
    )


def test_owner_sets_availability(hotel_owner, room_type, stay):
    availability = set_availability(hotel_owner, room_type, stay[0], 2, 1)

    assert availability == [(stay[0], 1), (stay[0] + timedelta(days=1), 1)]
    assert RoomAvailability.objects.filter(room_type=room_type).count() == 2


def test_availability_bounds_and_ownership(hotel_owner, traveller, room_type, stay):
    with pytest.raises(InvalidInput):
        set_availability(hotel_owner, room_type, stay[0], 1, room_type.total_rooms + 1)
    with pytest.raises(Forbidden):
        set_availability(traveller, room_type, stay[0], 1, 1)


def test_availability_requires_room_type_of_hotel(hotel_owner, room_type, stay):
    other_hotel = Hotel.objects.create(owner=hotel_owner, name="Second", city="Montreal")
    other = RoomType.objects.create(hotel=other_hotel, name="Twin", price_per_night=Decimal("80.00"), total_rooms=1)

    with pytest.raises(NotFound):
        SetAvailabilityHandler().handle(
            SetAvailabilityCommand(
                user_id=hotel_owner.pk,
                hotel_id=room_type.hotel_id,
                room_type_id=other.pk,
                start_date=stay[0],
                end_date=stay[1],
                available_rooms=1,
            )
        )


def test_override_cannot_reopen_booked_rooms(traveller, hotel_owner, room_type, stay):
    committer = ReservationCommitter()
    leg = HotelLeg(room_type_id=room_type.pk, check_in=stay[0], check_out=stay[1], rooms_booked=2)
    committer.commit_booking(CommitBookingCommand(user_id=traveller.pk, hotel_legs=[leg]))

    with pytest.raises(InvalidState):
        set_availability(hotel_owner, room_type, stay[0], 1, room_type.total_rooms)
    assert not RoomAvailability.objects.filter(room_type=room_type).exists()

    with pytest.raises(InsufficientInventory):
        committer.commit_booking(CommitBookingCommand(user_id=traveller.pk, hotel_legs=[leg]))
    booked = Reservation.objects.filter(room_type=room_type, status=Reservation.Status.CONFIRMED)
    assert sum(r.rooms_booked for r in booked) == room_type.total_rooms
