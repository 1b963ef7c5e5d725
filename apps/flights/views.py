"""API views for flights."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.aggregator import CombinedBookingRequest
from apps.bookings.bootstrap import get_booking_aggregator
from apps.bookings.serializers import FlightBookingSerializer
from apps.bookings.views import render_outcome
from apps.users.auth import require_identity

from .gateway import get_flight_gateway
from .serializers import FlightSearchSerializer, FlightVerifySerializer, RoundTripSearchSerializer


class FlightSearchView(APIView):
    """GET /api/v1/flights/search/?origin=YYZ&destination=JFK&date=2025-05-01"""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        serializer = FlightSearchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        offers = get_flight_gateway().search(data["origin"], data["destination"], data["date"])
        return Response({"flights": [offer.to_dict() for offer in offers], "count": len(offers)})


class RoundTripSearchView(APIView):
    """GET /api/v1/flights/roundtrip/?origin=YYZ&destination=JFK&departDate=2025-05-01&returnDate=2025-05-08"""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        serializer = RoundTripSearchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        gateway = get_flight_gateway()
        outbound = gateway.search(data["origin"], data["destination"], data["departDate"])
        inbound = gateway.search(data["destination"], data["origin"], data["returnDate"])
        return Response(
            {
                "outbound": [offer.to_dict() for offer in outbound],
                "return": [offer.to_dict() for offer in inbound],
            }
        )


class FlightBookView(APIView):
    """Book flights only; the booking is journalled like a combined one."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = FlightBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = get_booking_aggregator().book_combined(
            CombinedBookingRequest(
                identity=identity,
                flight_ids=list(serializer.validated_data["flightIds"]),
                passport_number=serializer.validated_data["passportNumber"],
            )
        )
        return render_outcome(outcome, {"request": request})


class FlightVerifyView(APIView):
    """Look a provider booking up under the caller's last name."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = FlightVerifySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        result = get_flight_gateway().verify(
            identity.last_name,
            serializer.validated_data["bookingReference"],
        )
        return Response(
            {
                "bookingReference": result.reference,
                "status": result.status,
                "flights": [offer.to_dict() for offer in result.flights],
            }
        )
