"""
Booking Domain Value Objects

The legs a booking is committed from:
- HotelLeg: rooms of one room type for a date range
- FlightLeg: a seat already confirmed by the flight provider
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidInput, InvalidRange
from shared.domain.value_objects import DateRange, Money


@dataclass(frozen=True)
class HotelLeg(ValueObject):
    """
    A hotel stay requested by room type or by concrete room.

    Exactly one of room_type_id / room_id must be given. When booking by
    room the room type is resolved by the committer.
    """
    check_in: date
    check_out: date
    rooms_booked: int = 1
    room_type_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    update_room_status: bool = False

    def __post_init__(self):
        if self.room_type_id is None and self.room_id is None:
            raise InvalidInput("Either room_id or room_type_id is required")
        if self.check_out <= self.check_in:
            raise InvalidRange("Check-out date must be after check-in date")
        if self.rooms_booked < 1:
            raise InvalidInput("rooms_booked must be at least 1")

    @property
    def dates(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    def cost(self, price_per_night: Money) -> Money:
        return price_per_night * (len(self.dates) * self.rooms_booked)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'room_type_id': str(self.room_type_id) if self.room_type_id else None,
            'room_id': str(self.room_id) if self.room_id else None,
            'check_in': self.check_in.isoformat(),
            'check_out': self.check_out.isoformat(),
            'rooms_booked': self.rooms_booked,
            'update_room_status': self.update_room_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HotelLeg':
        return cls(
            room_type_id=UUID(data['room_type_id']) if data.get('room_type_id') else None,
            room_id=UUID(data['room_id']) if data.get('room_id') else None,
            check_in=date.fromisoformat(data['check_in']),
            check_out=date.fromisoformat(data['check_out']),
            rooms_booked=int(data.get('rooms_booked', 1)),
            update_room_status=bool(data.get('update_room_status', False)),
        )


@dataclass(frozen=True)
class FlightLeg(ValueObject):
    """A flight the provider has confirmed under ``provider_reference``"""
    afs_flight_id: str
    provider_reference: str
    source: str
    destination: str
    price: Decimal = Decimal('0.00')
    currency: str = ''
    flight_number: str = ''
    airline: str = ''
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    snapshot: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
