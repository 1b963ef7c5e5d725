"""
Booking Domain Events

Published on the message bus after the transaction that produced them
has committed.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


# ===== Booking Events =====

@dataclass
class BookingConfirmed(DomainEvent):
    """
    Event: A booking became CONFIRMED, at commit or at checkout

    Triggers:
    - Invoice generation (Celery task)
    - Confirmation e-mail to the traveller
    """
    booking_id: Optional[UUID] = None
    user_id: Optional[int] = None
    total_price: Decimal = Decimal('0.00')
    currency: str = 'USD'
    provider_reference: str = ''


@dataclass
class BookingCancelled(DomainEvent):
    """Event: Some or all legs of a booking were cancelled"""
    booking_id: Optional[UUID] = None
    user_id: Optional[int] = None
    cancelled_reservation_ids: List[UUID] = field(default_factory=list)
    cancelled_flight_ids: List[UUID] = field(default_factory=list)
    fully_cancelled: bool = False


# ===== Inventory Events =====

@dataclass
class InventoryAllocated(DomainEvent):
    """Event: Rooms of a room type were taken for a date range"""
    room_type_id: Optional[UUID] = None
    reservation_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    dates: Optional[DateRange] = None
    quantity: int = 1


@dataclass
class InventoryReleased(DomainEvent):
    """Event: Rooms of a room type were given back for a date range"""
    room_type_id: Optional[UUID] = None
    reservation_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    dates: Optional[DateRange] = None
    quantity: int = 1
