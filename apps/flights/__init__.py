"""Flights app package: search, booking and verification against AFS."""
