"""Serializers for invoices."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Invoice


class InvoiceSerializer(serializers.ModelSerializer):
    bookingId = serializers.UUIDField(source="booking_id", read_only=True)
    bookingCode = serializers.CharField(source="booking.booking_code", read_only=True)
    issuedAt = serializers.DateTimeField(source="issued_at", read_only=True)

    class Meta:
        model = Invoice
        fields = ["id", "number", "bookingId", "bookingCode", "amount", "currency", "issuedAt"]
        read_only_fields = fields


class InvoiceDetailSerializer(InvoiceSerializer):
    class Meta(InvoiceSerializer.Meta):
        fields = InvoiceSerializer.Meta.fields + ["document"]
        read_only_fields = fields


class GenerateInvoicesSerializer(serializers.Serializer):
    bookingIds = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, max_length=100)
