"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, Flight, ProviderBooking, Reservation


class ReservationInline(admin.TabularInline):
    model = Reservation
    extra = 0
    readonly_fields = ("room_type", "room", "check_in_date", "check_out_date", "rooms_booked", "price_per_night")


class FlightInline(admin.TabularInline):
    model = Flight
    extra = 0
    fields = ("flight_number", "source", "destination", "departure_time", "price", "currency", "status")
    readonly_fields = fields


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("booking_code", "user", "status", "total_price", "currency", "expires_at", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("booking_code", "user__email")
    readonly_fields = ("booking_code", "created_at", "updated_at", "cancelled_at")
    inlines = [ReservationInline, FlightInline]


@admin.register(ProviderBooking)
class ProviderBookingAdmin(admin.ModelAdmin):
    list_display = ("provider_reference", "user", "status", "attempts", "booking", "updated_at")
    list_filter = ("status",)
    search_fields = ("provider_reference", "user__email")
    readonly_fields = ("flight_ids", "hotel_legs", "provider_payload", "created_at", "updated_at")
