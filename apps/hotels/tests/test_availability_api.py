"""Integration tests for the room type availability endpoint."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking, Reservation
from apps.hotels.models import Hotel, RoomAvailability, RoomType
from apps.users.models import User


class RoomTypeAvailabilityAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.HOTEL_OWNER,
        )
        self.traveller = User.objects.create_user(email="guest@example.com", password="GuestPass123")
        self.hotel = Hotel.objects.create(owner=self.owner, name="Harbour Inn", city="Toronto")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel, name="Double", price_per_night=Decimal("100.00"), total_rooms=3
        )
        self.url = reverse(
            "room-type-availability",
            kwargs={"hotel_id": self.hotel.id, "room_type_id": self.room_type.id},
        )
        self.start = date.today() + timedelta(days=3)

    def test_get_is_public_and_counts_reservations(self) -> None:
        booking = Booking.objects.create(user=self.traveller, status=Booking.Status.CONFIRMED)
        Reservation.objects.create(
            booking=booking,
            room_type=self.room_type,
            check_in_date=self.start,
            check_out_date=self.start + timedelta(days=1),
            rooms_booked=2,
            price_per_night=Decimal("100.00"),
        )
        RoomAvailability.objects.create(
            room_type=self.room_type, date=self.start + timedelta(days=1), available_rooms=1
        )

        response = self.client.get(
            self.url, {"startDate": str(self.start), "endDate": str(self.start + timedelta(days=3))}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["totalRooms"], 3)
        self.assertEqual(
            [(day["availableRooms"], day["isOverride"]) for day in response.data["availability"]],
            [(1, False), (1, True), (3, False)],
        )

    def test_get_requires_dates(self) -> None:
        response = self.client.get(self.url, {"startDate": str(self.start)})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_unknown_room_type_in_hotel(self) -> None:
        other = Hotel.objects.create(owner=self.owner, name="Other", city="Ottawa")
        url = reverse(
            "room-type-availability",
            kwargs={"hotel_id": other.id, "room_type_id": self.room_type.id},
        )

        response = self.client.get(
            url, {"startDate": str(self.start), "endDate": str(self.start + timedelta(days=1))}
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

    def test_owner_sets_single_date(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.url, {"date": str(self.start), "availableRooms": 0}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["availability"], [{"date": str(self.start), "availableRooms": 0}])
        self.assertEqual(RoomAvailability.objects.get(room_type=self.room_type).date, self.start)

    def test_owner_sets_range(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            self.url,
            {
                "startDate": str(self.start),
                "endDate": str(self.start + timedelta(days=4)),
                "availableRooms": 2,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(RoomAvailability.objects.filter(room_type=self.room_type, available_rooms=2).count(), 4)

    def test_value_above_total_rooms_is_rejected(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.url, {"date": str(self.start), "availableRooms": 4}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertFalse(RoomAvailability.objects.exists())

    def test_only_owner_may_set(self) -> None:
        self.client.force_authenticate(self.traveller)

        response = self.client.post(self.url, {"date": str(self.start), "availableRooms": 1}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_cannot_set(self) -> None:
        response = self.client.post(self.url, {"date": str(self.start), "availableRooms": 1}, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
