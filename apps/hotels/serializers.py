"""Serializers for room type availability."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore


class AvailabilityQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["endDate"] <= attrs["startDate"]:
            raise serializers.ValidationError("endDate must be after startDate.")
        return attrs


class AvailabilityUpdateSerializer(serializers.Serializer):
    """Pin one date, or every night of [startDate, endDate)."""

    date = serializers.DateField(required=False)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    availableRooms = serializers.IntegerField(min_value=0)

    def validate(self, attrs):  # type: ignore
        if attrs.get("date"):
            if attrs.get("startDate") or attrs.get("endDate"):
                raise serializers.ValidationError("Send either date or startDate/endDate, not both.")
            return attrs
        if not attrs.get("startDate") or not attrs.get("endDate"):
            raise serializers.ValidationError("date or startDate and endDate are required.")
        if attrs["endDate"] <= attrs["startDate"]:
            raise serializers.ValidationError("endDate must be after startDate.")
        return attrs
