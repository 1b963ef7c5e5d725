"""Admin registrations for hotels."""

from __future__ import annotations

from django.contrib import admin

from .models import Hotel, Room, RoomAvailability, RoomType


class RoomTypeInline(admin.TabularInline):
    model = RoomType
    extra = 0
    fields = ("name", "price_per_night", "currency", "total_rooms", "capacity")


@admin.register(Hotel)
class HotelAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "country", "star_rating", "owner")
    list_filter = ("city", "country", "star_rating")
    search_fields = ("name", "city", "owner__email")
    inlines = (RoomTypeInline,)
    readonly_fields = ("created_at", "updated_at")


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "hotel", "price_per_night", "currency", "total_rooms")
    search_fields = ("name", "hotel__name")


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("number", "room_type", "availability_status")
    list_filter = ("availability_status",)
    search_fields = ("number", "room_type__hotel__name")


@admin.register(RoomAvailability)
class RoomAvailabilityAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "available_rooms")
    list_filter = ("date",)
    search_fields = ("room_type__name", "room_type__hotel__name")
