"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.hotels.models import Hotel, Room, RoomType
from apps.users.models import User


@pytest.fixture
def traveller(db):
    return User.objects.create_user(
        email="traveller@example.com",
        password="TravelPass123",
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.fixture
def hotel_owner(db):
    return User.objects.create_user(
        email="owner@example.com",
        password="OwnerPass123",
        first_name="Olga",
        last_name="Owner",
        role=User.RoleChoices.HOTEL_OWNER,
    )


@pytest.fixture
def hotel(hotel_owner):
    return Hotel.objects.create(owner=hotel_owner, name="Harbour Inn", city="Toronto", country="Canada")


@pytest.fixture
def room_type(hotel):
    return RoomType.objects.create(
        hotel=hotel,
        name="Double",
        price_per_night=Decimal("100.00"),
        currency="USD",
        total_rooms=2,
    )


@pytest.fixture
def room(room_type):
    return Room.objects.create(room_type=room_type, number="101")


@pytest.fixture
def stay():
    """Three nights starting a week from today."""
    check_in = date.today() + timedelta(days=7)
    return check_in, check_in + timedelta(days=3)


@pytest.fixture
def api_client(traveller):
    client = APIClient()
    client.force_authenticate(traveller)
    return client
