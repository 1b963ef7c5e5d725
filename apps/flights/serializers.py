"""Query serializers for the flight endpoints."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore


class RouteSerializer(serializers.Serializer):
    origin = serializers.CharField(max_length=8)
    destination = serializers.CharField(max_length=8)

    def validate(self, attrs):  # type: ignore
        attrs["origin"] = attrs["origin"].upper()
        attrs["destination"] = attrs["destination"].upper()
        if attrs["origin"] == attrs["destination"]:
            raise serializers.ValidationError("Origin and destination must differ.")
        return attrs


class FlightSearchSerializer(RouteSerializer):
    date = serializers.DateField()


class RoundTripSearchSerializer(RouteSerializer):
    departDate = serializers.DateField()
    returnDate = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        if attrs["returnDate"] < attrs["departDate"]:
            raise serializers.ValidationError("Return date cannot be before departure date.")
        return attrs


class FlightVerifySerializer(serializers.Serializer):
    bookingReference = serializers.CharField()
