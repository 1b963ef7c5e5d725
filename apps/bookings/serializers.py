"""Serializers for the booking domain.

Request serializers only validate shape; availability and ownership are
decided by the command handlers.
"""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from .domain.entities import HotelLeg
from .models import Booking, Flight, Reservation


class HotelLegSerializer(serializers.Serializer):
    roomId = serializers.UUIDField(required=False, allow_null=True)
    roomTypeId = serializers.UUIDField(required=False, allow_null=True)
    checkInDate = serializers.DateField()
    checkOutDate = serializers.DateField()
    roomsBooked = serializers.IntegerField(min_value=1, default=1)
    updateRoomStatus = serializers.BooleanField(default=False)

    def validate(self, attrs):  # type: ignore
        if not attrs.get("roomId") and not attrs.get("roomTypeId"):
            raise serializers.ValidationError("Either roomId or roomTypeId is required.")
        if attrs["checkOutDate"] <= attrs["checkInDate"]:
            raise serializers.ValidationError("Check-out date must be after check-in date.")
        return attrs

    @staticmethod
    def to_leg(data) -> HotelLeg:
        return HotelLeg(
            room_id=data.get("roomId"),
            room_type_id=data.get("roomTypeId"),
            check_in=data["checkInDate"],
            check_out=data["checkOutDate"],
            rooms_booked=data["roomsBooked"],
            update_room_status=data["updateRoomStatus"],
        )


class CombinedBookingSerializer(serializers.Serializer):
    flightIds = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    passportNumber = serializers.CharField(required=False, allow_blank=True, default="")
    hotelLegs = HotelLegSerializer(many=True, required=False, default=list)

    def validate(self, attrs):  # type: ignore
        if not attrs["flightIds"] and not attrs["hotelLegs"]:
            raise serializers.ValidationError("Select at least one flight or hotel.")
        return attrs


class FlightBookingSerializer(serializers.Serializer):
    flightIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    passportNumber = serializers.CharField()


class CartSerializer(serializers.Serializer):
    hotelLegs = HotelLegSerializer(many=True, allow_empty=False)


class CheckoutSerializer(serializers.Serializer):
    """Payment details are checked for shape only and never stored."""

    bookingIds = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, max_length=50)
    cardNumber = serializers.RegexField(r"^\d{13,19}$", error_messages={"invalid": "Invalid card number"})
    cardholderName = serializers.CharField(max_length=100)
    expiryDate = serializers.RegexField(
        r"^(0[1-9]|1[0-2])/(\d{2}|\d{4})$",
        error_messages={"invalid": "Invalid expiry date format"},
    )
    cvv = serializers.RegexField(r"^\d{3,4}$", error_messages={"invalid": "Invalid CVV"})

    def validate_expiryDate(self, value):  # type: ignore
        month, year = value.split("/")
        expiry_year = int(year) + (2000 if len(year) == 2 else 0)
        today = timezone.localdate()
        if (expiry_year, int(month)) < (today.year, today.month):
            raise serializers.ValidationError("Card expired")
        return value


class CancelBookingSerializer(serializers.Serializer):
    cancelHotelsOnly = serializers.BooleanField(default=False)
    cancelFlightsOnly = serializers.BooleanField(default=False)


class ReservationSerializer(serializers.ModelSerializer):
    hotelId = serializers.UUIDField(source="room_type.hotel_id", read_only=True)
    hotelName = serializers.CharField(source="room_type.hotel.name", read_only=True)
    roomTypeId = serializers.UUIDField(source="room_type_id", read_only=True)
    roomTypeName = serializers.CharField(source="room_type.name", read_only=True)
    roomId = serializers.UUIDField(source="room_id", read_only=True)
    checkInDate = serializers.DateField(source="check_in_date")
    checkOutDate = serializers.DateField(source="check_out_date")
    roomsBooked = serializers.IntegerField(source="rooms_booked")
    pricePerNight = serializers.DecimalField(source="price_per_night", max_digits=10, decimal_places=2)
    totalCost = serializers.DecimalField(source="total_cost", max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "hotelId",
            "hotelName",
            "roomTypeId",
            "roomTypeName",
            "roomId",
            "checkInDate",
            "checkOutDate",
            "roomsBooked",
            "pricePerNight",
            "totalCost",
            "status",
        ]
        read_only_fields = fields


class FlightSerializer(serializers.ModelSerializer):
    afsFlightId = serializers.CharField(source="afs_flight_id")
    providerReference = serializers.CharField(source="provider_reference")
    flightNumber = serializers.CharField(source="flight_number")
    departureTime = serializers.DateTimeField(source="departure_time")
    arrivalTime = serializers.DateTimeField(source="arrival_time")

    class Meta:
        model = Flight
        fields = [
            "id",
            "afsFlightId",
            "providerReference",
            "flightNumber",
            "airline",
            "source",
            "destination",
            "departureTime",
            "arrivalTime",
            "price",
            "currency",
            "status",
        ]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    bookingCode = serializers.CharField(source="booking_code", read_only=True)
    totalPrice = serializers.DecimalField(source="total_price", max_digits=12, decimal_places=2, read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    cancelledAt = serializers.DateTimeField(source="cancelled_at", read_only=True)
    expiresAt = serializers.DateTimeField(source="expires_at", read_only=True)
    reservations = ReservationSerializer(many=True, read_only=True)
    flights = FlightSerializer(many=True, read_only=True)
    invoiceId = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "bookingCode",
            "status",
            "totalPrice",
            "currency",
            "createdAt",
            "cancelledAt",
            "expiresAt",
            "reservations",
            "flights",
            "invoiceId",
        ]
        read_only_fields = fields

    def get_invoiceId(self, obj: Booking):  # type: ignore
        invoice = getattr(obj, "invoice", None)
        return str(invoice.pk) if invoice else None
