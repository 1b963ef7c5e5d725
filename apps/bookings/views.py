"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.hotels.models import Hotel
from apps.users.auth import require_identity
from shared.domain.exceptions import Forbidden, NotFound

from .application.aggregator import CombinedBookingRequest, Confirmed, PartialFailure
from .application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CheckoutCommand,
    CheckoutHandler,
    CommitBookingCommand,
    CommitReservationCommand,
    ReservationCommitter,
)
from .bootstrap import get_booking_aggregator
from .filters import BookingFilter
from .models import Booking
from .serializers import (
    BookingSerializer,
    CancelBookingSerializer,
    CartSerializer,
    CheckoutSerializer,
    CombinedBookingSerializer,
    HotelLegSerializer,
)


def render_outcome(outcome, context=None) -> Response:
    """Map an aggregator outcome onto an HTTP response.

    Rejections re-raise their domain error so the exception handler renders
    them with the usual status and body.
    """
    if isinstance(outcome, Confirmed):
        booking = Booking.objects.prefetch_related(
            "reservations__room_type__hotel", "flights"
        ).get(pk=outcome.booking.pk)
        return Response(
            {
                "bookingId": str(booking.pk),
                "bookingDetails": BookingSerializer(booking, context=context or {}).data,
            },
            status=status.HTTP_201_CREATED,
        )
    if isinstance(outcome, PartialFailure):
        return Response(outcome.to_dict(), status=status.HTTP_502_BAD_GATEWAY)
    raise outcome.error


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Bookings of the current user, plus the booking and cancellation commands."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"[0-9a-fA-F-]{36}"
    filterset_class = BookingFilter

    def get_queryset(self):  # type: ignore
        return Booking.objects.filter(user=self.request.user).prefetch_related(
            "reservations__room_type__hotel", "flights"
        )

    @action(detail=False, methods=["post"])
    def hotel(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = HotelLegSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = ReservationCommitter().commit(
            CommitReservationCommand(
                user_id=identity.user_id,
                check_in=data["checkInDate"],
                check_out=data["checkOutDate"],
                rooms_booked=data["roomsBooked"],
                room_type_id=data.get("roomTypeId"),
                room_id=data.get("roomId"),
                update_room_status=data["updateRoomStatus"],
            )
        )
        return render_outcome(Confirmed(booking), self.get_serializer_context())

    @action(detail=False, methods=["post"])
    def combined(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = CombinedBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        outcome = get_booking_aggregator().book_combined(
            CombinedBookingRequest(
                identity=identity,
                flight_ids=list(data["flightIds"]),
                passport_number=data["passportNumber"],
                hotel_legs=[HotelLegSerializer.to_leg(leg) for leg in data["hotelLegs"]],
            )
        )
        return render_outcome(outcome, self.get_serializer_context())

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        identity = require_identity(request)
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = CancelBookingHandler().handle(
            CancelBookingCommand(
                booking_id=pk,
                user_id=identity.user_id,
                cancel_hotels_only=serializer.validated_data["cancelHotelsOnly"],
                cancel_flights_only=serializer.validated_data["cancelFlightsOnly"],
                is_hotel_owner=identity.is_hotel_owner,
            )
        )
        return Response(
            {
                "bookingId": str(result.booking.pk),
                "status": result.booking.status,
                "cancelledReservations": result.cancelled_reservations,
                "cancelledFlights": result.cancelled_flights,
                "fullyCancelled": result.fully_cancelled,
            }
        )

    @action(detail=False, methods=["post"])
    def cart(self, request):  # type: ignore
        """Hold rooms as a PENDING booking until checkout or expiry."""
        identity = require_identity(request)
        serializer = CartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = ReservationCommitter().commit_booking(
            CommitBookingCommand(
                user_id=identity.user_id,
                hotel_legs=[HotelLegSerializer.to_leg(leg) for leg in serializer.validated_data["hotelLegs"]],
                hold_for_checkout=True,
            )
        )
        return render_outcome(Confirmed(booking), self.get_serializer_context())

    @action(detail=False, methods=["post"])
    def checkout(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = CheckoutHandler().handle(
            CheckoutCommand(
                user_id=identity.user_id,
                booking_ids=list(serializer.validated_data["bookingIds"]),
            )
        )
        return Response(
            {
                "bookings": [
                    {
                        "id": str(booking.pk),
                        "bookingCode": booking.booking_code,
                        "status": booking.status,
                        "totalPrice": str(booking.total_price),
                        "currency": booking.currency,
                    }
                    for booking in result.bookings
                ],
                "missingBookings": [str(booking_id) for booking_id in result.missing_booking_ids],
            }
        )

    @action(detail=False, methods=["get"], url_path="hotel-bookings")
    def hotel_bookings(self, request):  # type: ignore
        """Bookings with a reservation at any hotel the caller owns."""
        identity = require_identity(request)
        if not identity.is_hotel_owner:
            raise Forbidden("Only hotel owners can view hotel bookings")
        if not Hotel.objects.filter(owner_id=identity.user_id).exists():
            raise NotFound("No hotels found for this owner")

        qs = (
            Booking.objects.filter(reservations__room_type__hotel__owner_id=identity.user_id)
            .distinct()
            .prefetch_related("reservations__room_type__hotel", "flights")
            .order_by("-created_at")
        )
        qs = self.filter_queryset(qs)
        return Response(self.get_serializer(qs, many=True).data)
