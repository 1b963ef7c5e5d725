"""Admin registration for invoices."""

from __future__ import annotations

from django.contrib import admin

from .models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("number", "booking", "amount", "currency", "issued_at")
    search_fields = ("number", "booking__booking_code")
    readonly_fields = ("document", "issued_at")
