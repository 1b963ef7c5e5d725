import django_filters

from .models import Booking


class BookingFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    # Bookings with at least one reservation at this hotel
    hotel = django_filters.UUIDFilter(field_name="reservations__room_type__hotel", distinct=True)

    class Meta:
        model = Booking
        fields = ["status", "hotel"]
