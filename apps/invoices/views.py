"""API views for invoices."""

from __future__ import annotations

from rest_framework import mixins, permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.models import Booking
from apps.users.auth import require_identity
from shared.domain.exceptions import DomainError

from .models import Invoice
from .serializers import GenerateInvoicesSerializer, InvoiceDetailSerializer, InvoiceSerializer
from .services import InvoiceEmitter


class InvoiceViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Invoices of the current user's bookings."""

    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Invoice.objects.filter(booking__user=self.request.user).select_related("booking")

    def get_serializer_class(self):  # type: ignore
        if self.action == "retrieve":
            return InvoiceDetailSerializer
        return InvoiceSerializer

    @action(detail=False, methods=["post"])
    def generate(self, request):  # type: ignore
        identity = require_identity(request)
        serializer = GenerateInvoicesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        emitter = InvoiceEmitter()
        own = set(
            Booking.objects.filter(
                user_id=identity.user_id,
                pk__in=serializer.validated_data["bookingIds"],
            ).values_list("pk", flat=True)
        )
        results = []
        for booking_id in serializer.validated_data["bookingIds"]:
            entry = {"bookingId": str(booking_id), "invoiceId": None}
            if booking_id not in own:
                entry.update(status="failed", error="Booking not found")
                results.append(entry)
                continue
            try:
                result = emitter.ensure_invoice(booking_id)
            except DomainError as e:
                entry.update(status="failed", error=e.message)
            else:
                entry.update(invoiceId=str(result.invoice.pk), status=result.status)
            results.append(entry)
        return Response({"invoices": results})
