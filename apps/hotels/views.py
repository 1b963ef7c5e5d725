"""API views for room type availability."""

from __future__ import annotations

from datetime import timedelta

from rest_framework import permissions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.command_handlers import SetAvailabilityCommand, SetAvailabilityHandler
from apps.bookings.services import InventoryLedger
from apps.users.auth import require_identity
from shared.domain.exceptions import NotFound

from .models import RoomType
from .serializers import AvailabilityQuerySerializer, AvailabilityUpdateSerializer


class RoomTypeAvailabilityView(APIView):
    """
    GET  ?startDate=&endDate=   available rooms per night, endDate exclusive
    POST {date | startDate, endDate, availableRooms}   hotel owner override
    """

    def get_permissions(self):  # type: ignore
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, hotel_id, room_type_id):  # type: ignore
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        room_type = RoomType.objects.filter(pk=room_type_id, hotel_id=hotel_id).first()
        if room_type is None:
            raise NotFound(f"Room type {room_type_id} not found in hotel {hotel_id}")

        calendar = InventoryLedger().calendar(
            room_type.pk,
            serializer.validated_data["startDate"],
            serializer.validated_data["endDate"],
        )
        return Response(
            {
                "roomTypeId": str(room_type.pk),
                "roomTypeName": room_type.name,
                "totalRooms": room_type.total_rooms,
                "availability": [
                    {"date": day.isoformat(), "availableRooms": count, "isOverride": pinned}
                    for day, count, pinned in calendar
                ],
            }
        )

    def post(self, request, hotel_id, room_type_id):  # type: ignore
        identity = require_identity(request)
        serializer = AvailabilityUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        start = data.get("date") or data["startDate"]
        end = start + timedelta(days=1) if data.get("date") else data["endDate"]

        availability = SetAvailabilityHandler().handle(
            SetAvailabilityCommand(
                user_id=identity.user_id,
                hotel_id=hotel_id,
                room_type_id=room_type_id,
                start_date=start,
                end_date=end,
                available_rooms=data["availableRooms"],
            )
        )
        return Response(
            {
                "roomTypeId": str(room_type_id),
                "availability": [
                    {"date": day.isoformat(), "availableRooms": count} for day, count in availability
                ],
            }
        )
