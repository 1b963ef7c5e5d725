"""URL routing for hotels."""

from django.urls import path  # type: ignore

from .views import RoomTypeAvailabilityView

urlpatterns = [
    path(
        "<uuid:hotel_id>/room-types/<uuid:room_type_id>/availability/",
        RoomTypeAvailabilityView.as_view(),
        name="room-type-availability",
    ),
]
