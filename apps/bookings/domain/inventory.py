"""
Room Inventory Aggregate

Every change to the number of rooms available for a room type goes
through this aggregate. It holds, for a window of nights:

- total_rooms: physical rooms of the type
- overrides: explicit available counts for single dates
- allocations: confirmed reservations overlapping the window

Available rooms on a night are the override when one exists, otherwise
total_rooms minus the rooms of every allocation covering that night.
Check-in is inclusive and checkout exclusive.

Loaded under a row lock on the room type, the aggregate is the
consistency boundary that stops two concurrent commits from overselling.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from shared.domain.base import Aggregate
from shared.domain.exceptions import InsufficientInventory, InvalidInput, InvalidState
from shared.domain.value_objects import DateRange


@dataclass
class Allocation:
    """Rooms held by one reservation"""
    reservation_id: UUID
    booking_id: Optional[UUID]
    dates: DateRange
    quantity: int = 1

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Allocation quantity must be at least 1")


@dataclass
class RoomInventory(Aggregate):
    """
    Inventory Aggregate Root for one room type

    Usage:
        inventory = inventory_repo.get(room_type_id, dates, lock=True)
        inventory.allocate(reservation_id, booking_id, dates, rooms)
        inventory_repo.save(inventory)
    """

    room_type_id: UUID
    total_rooms: int
    window: DateRange
    overrides: Dict[date, int] = field(default_factory=dict)
    allocations: List[Allocation] = field(default_factory=list)
    _dirty: Set[date] = field(default_factory=set, init=False, repr=False)

    @property
    def id(self) -> UUID:
        return self.room_type_id

    # ----- Queries -----

    def booked_on(self, day: date) -> int:
        return sum(a.quantity for a in self.allocations if a.dates.contains(day))

    def available_on(self, day: date) -> int:
        """Raw available count, may be negative after an override shrank capacity"""
        self._check_in_window(day)
        if day in self.overrides:
            return self.overrides[day]
        return self.total_rooms - self.booked_on(day)

    def availability(self, dates: DateRange) -> List[Tuple[date, int]]:
        """One (night, available) pair per night, clamped at zero"""
        return [(day, max(0, self.available_on(day))) for day in dates.nights()]

    def shortfall(self, dates: DateRange, quantity: int) -> List[date]:
        """Nights that cannot take ``quantity`` more rooms"""
        return [day for day in dates.nights() if self.available_on(day) - quantity < 0]

    def can_allocate(self, dates: DateRange, quantity: int = 1) -> bool:
        return not self.shortfall(dates, quantity)

    @property
    def changed_dates(self) -> Set[date]:
        return set(self._dirty)

    def mark_clean(self):
        self._dirty.clear()

    # ----- Commands -----

    def allocate(
        self,
        reservation_id: UUID,
        booking_id: Optional[UUID],
        dates: DateRange,
        quantity: int = 1,
    ) -> Allocation:
        """
        Take ``quantity`` rooms for every night in ``dates``.

        Existing override rows are decremented; nights without an override
        stay computed from reservations.

        Raises:
            InsufficientInventory: any night would drop below zero
        """
        if quantity < 1:
            raise InvalidInput("rooms_booked must be at least 1")

        unavailable = self.shortfall(dates, quantity)
        if unavailable:
            raise InsufficientInventory(
                f"Not enough rooms available for {dates}",
                unavailable_dates=unavailable,
            )

        allocation = Allocation(
            reservation_id=reservation_id,
            booking_id=booking_id,
            dates=dates,
            quantity=quantity,
        )
        self.allocations.append(allocation)

        for day in dates.nights():
            if day in self.overrides:
                self.overrides[day] -= quantity
                self._dirty.add(day)

        from apps.bookings.domain.events import InventoryAllocated

        self.add_event(InventoryAllocated(
            aggregate_id=self.room_type_id,
            room_type_id=self.room_type_id,
            reservation_id=reservation_id,
            booking_id=booking_id,
            dates=dates,
            quantity=quantity,
        ))
        return allocation

    def release(self, reservation_id: UUID, dates: DateRange, quantity: int = 1):
        """
        Give back the rooms of a cancelled reservation.

        Override rows are incremented but never above total_rooms.
        """
        allocation = next(
            (a for a in self.allocations if a.reservation_id == reservation_id),
            None,
        )
        if allocation is not None:
            self.allocations.remove(allocation)

        for day in dates.nights():
            if day in self.overrides:
                self.overrides[day] = min(self.total_rooms, self.overrides[day] + quantity)
                self._dirty.add(day)

        from apps.bookings.domain.events import InventoryReleased

        self.add_event(InventoryReleased(
            aggregate_id=self.room_type_id,
            room_type_id=self.room_type_id,
            reservation_id=reservation_id,
            booking_id=allocation.booking_id if allocation else None,
            dates=dates,
            quantity=quantity,
        ))

    def set_available(self, dates: DateRange, available_rooms: int):
        """
        Pin the available count of every night in ``dates``.

        A night can never offer more rooms than are left after its
        confirmed reservations.

        Raises:
            InvalidInput: outside 0..total_rooms
            InvalidState: some night already has too many rooms booked
        """
        if available_rooms < 0 or available_rooms > self.total_rooms:
            raise InvalidInput(
                f"available_rooms must be between 0 and {self.total_rooms}"
            )
        conflicting = [
            day for day in dates.nights()
            if available_rooms > self.total_rooms - self.booked_on(day)
        ]
        if conflicting:
            raise InvalidState(
                "Cannot set available rooms above what current bookings leave free",
                details={'conflictingDates': [day.isoformat() for day in conflicting]},
            )
        for day in dates.nights():
            self._check_in_window(day)
            self.overrides[day] = available_rooms
            self._dirty.add(day)

    def _check_in_window(self, day: date):
        if not self.window.contains(day):
            raise ValueError(f"{day} is outside the loaded window {self.window}")

    def __str__(self):
        return (
            f"RoomInventory(room_type={self.room_type_id}, total={self.total_rooms}, "
            f"window={self.window})"
        )
