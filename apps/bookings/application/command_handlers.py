"""
Booking Command Handlers

Use cases that change inventory. Each runs inside one DjangoUnitOfWork:
the room type rows involved are locked, availability is re-checked under
the lock, and all rows are written or none are.

Commands:
- CommitReservationCommand: book rooms of one room type (or one room)
- CommitBookingCommand: commit hotel legs and provider-confirmed flights as one booking
- CancelBookingCommand: cancel a booking, or only its hotels or flights
- CheckoutCommand: pay for PENDING bookings held in the cart
- SetAvailabilityCommand: pin the available rooms of a room type
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID, uuid4
import logging

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    Forbidden,
    InsufficientInventory,
    InvalidInput,
    InvalidState,
    NotFound,
)
from shared.domain.value_objects import SUPPORTED_CURRENCIES, DateRange, Money
from apps.bookings.domain.entities import FlightLeg, HotelLeg
from apps.bookings.domain.events import BookingCancelled, BookingConfirmed
from apps.bookings.models import Booking, Flight, Reservation
from apps.bookings.repositories import DjangoInventoryRepository
from apps.bookings.services import _lock_queryset_if_possible, date_range_or_error
from apps.hotels.models import Room, RoomType
from apps.notifications.models import Notification
from apps.notifications.services import notify

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CommitReservationCommand:
    """Book ``rooms_booked`` rooms of one room type, or one concrete room"""
    user_id: int
    check_in: date
    check_out: date
    rooms_booked: int = 1
    room_type_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    update_room_status: bool = False


@dataclass
class CommitBookingCommand:
    user_id: int
    hotel_legs: List[HotelLeg] = field(default_factory=list)
    flight_legs: List[FlightLeg] = field(default_factory=list)
    provider_reference: str = ''
    # Keep the booking PENDING until checkout instead of confirming it
    hold_for_checkout: bool = False


@dataclass
class CancelBookingCommand:
    booking_id: UUID
    user_id: int
    cancel_hotels_only: bool = False
    cancel_flights_only: bool = False
    is_hotel_owner: bool = False
    # Cancelled by the system because the cart hold ran out
    expired: bool = False


@dataclass
class SetAvailabilityCommand:
    user_id: int
    hotel_id: UUID
    room_type_id: UUID
    start_date: date
    end_date: date
    available_rooms: int


@dataclass
class CheckoutCommand:
    user_id: int
    booking_ids: List[UUID]


@dataclass
class CheckoutResult:
    bookings: List[Booking]
    missing_booking_ids: List[UUID]


@dataclass
class CancellationResult:
    booking: Booking
    cancelled_reservations: int
    cancelled_flights: int
    fully_cancelled: bool


# ===== Command Handlers =====

class ReservationCommitter:
    """
    Atomically turn validated legs into a CONFIRMED booking, or into a
    PENDING one held for checkout.

    Per attempt: VALIDATING -> LOCKED -> COMMITTED | REJECTED

    1. VALIDATING: legs are well formed (dates, quantities, at least one leg)
    2. LOCKED: room type rows are locked in sorted id order, then the rooms
       booked by number, and committed reservations are re-read under the lock
    3. REJECTED: any night short of rooms raises InsufficientInventory and
       the transaction rolls back, leaving no rows behind
    4. COMMITTED: booking, reservations, flights, override decrements, room
       statuses and the notification are written in one transaction

    Never retries. Events are published only after commit.
    """

    def __init__(self, inventory_repo=None):
        self.inventory_repo = inventory_repo or DjangoInventoryRepository()

    def commit(self, command: CommitReservationCommand) -> Booking:
        leg = HotelLeg(
            room_type_id=command.room_type_id,
            room_id=command.room_id,
            check_in=command.check_in,
            check_out=command.check_out,
            rooms_booked=command.rooms_booked,
            update_room_status=command.update_room_status,
        )
        return self.commit_booking(CommitBookingCommand(user_id=command.user_id, hotel_legs=[leg]))

    def validate(self, legs: List[HotelLeg]) -> List[HotelLeg]:
        """
        Catalogue checks that need no lock.

        Every room must belong to the room type it was booked under, every
        room type must exist and all of them must share one currency. The
        aggregator runs this before calling the flight provider; the commit
        repeats it under the lock.

        Returns the legs with room types resolved.
        """
        legs = self._resolve_room_types(legs)
        currencies = dict(
            RoomType.objects.filter(pk__in={leg.room_type_id for leg in legs}).values_list("id", "currency")
        )
        for leg in legs:
            if leg.room_type_id not in currencies:
                raise NotFound(f"Room type {leg.room_type_id} not found")
        _single_currency(currencies.values())
        return legs

    def commit_booking(self, command: CommitBookingCommand) -> Booking:
        if not command.hotel_legs and not command.flight_legs:
            raise InvalidInput("A booking needs at least one hotel or flight leg")
        if command.hold_for_checkout and command.flight_legs:
            raise InvalidInput("Flights are paid when booked and cannot be held for checkout")

        booking_id = uuid4()
        logger.info(
            f"Committing booking {booking_id} for user {command.user_id}: "
            f"{len(command.hotel_legs)} hotel legs, {len(command.flight_legs)} flights"
        )

        with DjangoUnitOfWork() as uow:
            legs = self._resolve_room_types(command.hotel_legs)
            room_types = self._lock_room_types(legs)
            rooms = self._lock_rooms(legs)

            inventories = {}
            for room_type_id in sorted(room_types, key=str):
                window = _window([leg.dates for leg in legs if leg.room_type_id == room_type_id])
                inventories[room_type_id] = self.inventory_repo.get(room_type_id, window, lock=False)

            reservations = []
            for leg in legs:
                room_type = room_types[leg.room_type_id]
                if leg.room_id is not None and not rooms[leg.room_id].is_available:
                    raise InsufficientInventory(
                        f"Room {rooms[leg.room_id].number} is not available",
                        unavailable_dates=list(leg.dates.nights()),
                    )
                reservation_id = uuid4()
                inventories[leg.room_type_id].allocate(
                    reservation_id, booking_id, leg.dates, leg.rooms_booked
                )
                reservations.append(Reservation(
                    id=reservation_id,
                    booking_id=booking_id,
                    room_type=room_type,
                    room_id=leg.room_id,
                    check_in_date=leg.check_in,
                    check_out_date=leg.check_out,
                    rooms_booked=leg.rooms_booked,
                    price_per_night=room_type.price_per_night,
                    status=Reservation.Status.CONFIRMED,
                ))

            total = self._total_price(legs, room_types, command.flight_legs)

            if command.hold_for_checkout:
                status = Booking.Status.PENDING
                expires_at = timezone.now() + timedelta(minutes=settings.CART_HOLD_MINUTES)
            else:
                status, expires_at = Booking.Status.CONFIRMED, None

            booking = Booking.objects.create(
                id=booking_id,
                user_id=command.user_id,
                status=status,
                total_price=total.amount,
                currency=total.currency,
                expires_at=expires_at,
            )
            Reservation.objects.bulk_create(reservations)
            Flight.objects.bulk_create([
                Flight(
                    booking=booking,
                    afs_flight_id=flight.afs_flight_id,
                    provider_reference=flight.provider_reference,
                    flight_number=flight.flight_number,
                    airline=flight.airline,
                    source=flight.source,
                    destination=flight.destination,
                    departure_time=flight.departure_time,
                    arrival_time=flight.arrival_time,
                    price=flight.price,
                    currency=flight.currency or total.currency,
                    status=Booking.Status.CONFIRMED,
                    snapshot=flight.snapshot,
                )
                for flight in command.flight_legs
            ])

            booked_room_ids = [leg.room_id for leg in legs if leg.room_id and leg.update_room_status]
            if booked_room_ids:
                Room.objects.filter(pk__in=booked_room_ids).update(
                    availability_status=Room.AvailabilityStatus.BOOKED
                )

            for inventory in inventories.values():
                self.inventory_repo.save(inventory)
                uow.collect_events(inventory)

            if booking.is_confirmed:
                notify(
                    command.user_id,
                    self._confirmation_message(booking, legs, room_types, command.flight_legs),
                    Notification.Type.BOOKING_CONFIRMED if command.flight_legs else Notification.Type.HOTEL_BOOKING,
                )
                uow.record(_confirmed_event(booking, command.provider_reference))

        logger.info(f"Booking {booking.id} ({booking.booking_code}) {booking.status.lower()}, total {total}")
        return booking

    def _resolve_room_types(self, legs: List[HotelLeg]) -> List[HotelLeg]:
        """Fill in room_type_id for legs booked by concrete room"""
        room_ids = [leg.room_id for leg in legs if leg.room_id is not None]
        room_type_by_room = dict(
            Room.objects.filter(pk__in=room_ids).values_list("id", "room_type_id")
        )
        resolved = []
        for leg in legs:
            if leg.room_id is None:
                resolved.append(leg)
                continue
            room_type_id = room_type_by_room.get(leg.room_id)
            if room_type_id is None:
                raise NotFound(f"Room {leg.room_id} not found")
            if leg.room_type_id is not None and leg.room_type_id != room_type_id:
                raise InvalidInput(f"Room {leg.room_id} does not belong to room type {leg.room_type_id}")
            resolved.append(HotelLeg(
                room_type_id=room_type_id,
                room_id=leg.room_id,
                check_in=leg.check_in,
                check_out=leg.check_out,
                rooms_booked=leg.rooms_booked,
                update_room_status=leg.update_room_status,
            ))
        return resolved

    def _lock_room_types(self, legs: List[HotelLeg]) -> Dict[UUID, RoomType]:
        room_types = {}
        for room_type_id in sorted({leg.room_type_id for leg in legs}, key=str):
            queryset = _lock_queryset_if_possible(
                RoomType.objects.select_related("hotel").filter(pk=room_type_id)
            )
            room_type = queryset.first()
            if room_type is None:
                raise NotFound(f"Room type {room_type_id} not found")
            room_types[room_type_id] = room_type
        return room_types

    def _lock_rooms(self, legs: List[HotelLeg]) -> Dict[UUID, Room]:
        room_ids = sorted({leg.room_id for leg in legs if leg.room_id is not None}, key=str)
        if not room_ids:
            return {}
        queryset = _lock_queryset_if_possible(Room.objects.filter(pk__in=room_ids).order_by("pk"))
        return {room.pk: room for room in queryset}

    @staticmethod
    def _total_price(legs, room_types, flight_legs) -> Money:
        """
        Hotels fix the booking currency; a flights-only booking takes the
        currency of its first priced flight. A flight quoted in another
        currency is stored with its own currency and left out of the total.
        """
        if legs:
            currency = _single_currency(room_types[leg.room_type_id].currency for leg in legs)
        else:
            currency = next(
                (flight.currency for flight in flight_legs if flight.currency in SUPPORTED_CURRENCIES),
                DEFAULT_CURRENCY,
            )
        try:
            total = Money.zero(currency)
            for leg in legs:
                total = total + leg.cost(Money(room_types[leg.room_type_id].price_per_night, currency))
            for flight in flight_legs:
                if flight.currency and flight.currency != currency:
                    logger.warning(
                        f"Flight {flight.afs_flight_id} ({flight.provider_reference}) is priced in "
                        f"{flight.currency}, booking in {currency}: left out of the total"
                    )
                    continue
                total = total + Money(Decimal(flight.price), currency)
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        return total

    @staticmethod
    def _confirmation_message(booking, legs, room_types, flight_legs) -> str:
        parts = []
        for leg in legs:
            hotel = room_types[leg.room_type_id].hotel
            parts.append(f"{hotel.name} from {leg.check_in.isoformat()} to {leg.check_out.isoformat()}")
        for flight in flight_legs:
            parts.append(f"flight {flight.flight_number or flight.afs_flight_id} {flight.source} to {flight.destination}")
        return f"Your booking {booking.booking_code} is confirmed: " + "; ".join(parts)


class CancelBookingHandler:
    """
    Cancel a booking or part of it.

    The booking owner may cancel everything, only the hotels, or only the
    flights. A hotel owner who is not the traveller may cancel only the
    reservations at hotels they own. Released capacity goes back to the
    room type. Flights are cancelled locally only; the provider offers no
    cancellation call.
    """

    def __init__(self, inventory_repo=None):
        self.inventory_repo = inventory_repo or DjangoInventoryRepository()

    def handle(self, command: CancelBookingCommand) -> CancellationResult:
        if command.cancel_hotels_only and command.cancel_flights_only:
            raise InvalidInput("cancelHotelsOnly and cancelFlightsOnly are mutually exclusive")

        with DjangoUnitOfWork() as uow:
            booking = _lock_queryset_if_possible(
                Booking.objects.filter(pk=command.booking_id)
            ).first()
            if booking is None:
                raise NotFound(f"Booking {command.booking_id} not found")

            active_reservations = list(
                booking.reservations.select_related("room_type__hotel")
                .filter(status=Reservation.Status.CONFIRMED)
            )
            active_flights = list(booking.flights.filter(status=Booking.Status.CONFIRMED))

            is_traveller = booking.user_id == command.user_id
            owned = [
                r for r in active_reservations
                if command.is_hotel_owner and r.room_type.hotel.owner_id == command.user_id
            ]
            if not is_traveller and not owned:
                raise Forbidden("You are not allowed to cancel this booking")

            if booking.status == Booking.Status.CANCELLED:
                raise InvalidState("Booking is already cancelled")
            if command.expired and not booking.should_expire():
                raise InvalidState("Booking is no longer waiting for payment")

            if is_traveller:
                reservations = [] if command.cancel_flights_only else active_reservations
                flights = [] if command.cancel_hotels_only else active_flights
            else:
                reservations, flights = owned, []

            if not reservations and not flights:
                raise InvalidState("Nothing left to cancel on this booking")

            self._release(reservations, uow)

            if flights:
                Flight.objects.filter(pk__in=[f.pk for f in flights]).update(
                    status=Booking.Status.CANCELLED
                )

            remaining = (len(active_reservations) - len(reservations)) + (len(active_flights) - len(flights))
            fully_cancelled = remaining == 0
            if fully_cancelled:
                booking.mark_cancelled()

            notify(
                booking.user_id,
                self._message(booking, is_traveller, fully_cancelled, len(reservations), command.expired),
                Notification.Type.BOOKING_CANCELLED,
            )

            uow.record(BookingCancelled(
                aggregate_id=booking.id,
                booking_id=booking.id,
                user_id=booking.user_id,
                cancelled_reservation_ids=[r.pk for r in reservations],
                cancelled_flight_ids=[f.pk for f in flights],
                fully_cancelled=fully_cancelled,
            ))

        logger.info(
            f"Booking {booking.id}: cancelled {len(reservations)} reservations and "
            f"{len(flights)} flights by user {command.user_id} (fully={fully_cancelled})"
        )
        return CancellationResult(
            booking=booking,
            cancelled_reservations=len(reservations),
            cancelled_flights=len(flights),
            fully_cancelled=fully_cancelled,
        )

    def _release(self, reservations: List[Reservation], uow):
        by_room_type: Dict[UUID, List[Reservation]] = {}
        for reservation in reservations:
            by_room_type.setdefault(reservation.room_type_id, []).append(reservation)

        for room_type_id in sorted(by_room_type, key=str):
            group = by_room_type[room_type_id]
            window = _window([DateRange(r.check_in_date, r.check_out_date) for r in group])
            inventory = self.inventory_repo.get(room_type_id, window, lock=True)
            for reservation in group:
                inventory.release(
                    reservation.pk,
                    DateRange(reservation.check_in_date, reservation.check_out_date),
                    reservation.rooms_booked,
                )
            self.inventory_repo.save(inventory)
            uow.collect_events(inventory)

        Reservation.objects.filter(pk__in=[r.pk for r in reservations]).update(
            status=Reservation.Status.CANCELLED
        )
        room_ids = [r.room_id for r in reservations if r.room_id]
        if room_ids:
            Room.objects.filter(
                pk__in=room_ids,
                availability_status=Room.AvailabilityStatus.BOOKED,
            ).update(availability_status=Room.AvailabilityStatus.AVAILABLE)

    @staticmethod
    def _message(booking, is_traveller, fully_cancelled, reservation_count, expired=False) -> str:
        if expired:
            return f"Your booking {booking.booking_code} was not paid in time and has been cancelled"
        if not is_traveller:
            noun = "reservations have" if reservation_count > 1 else "reservation has"
            return f"Your hotel {noun} been cancelled by the hotel (booking {booking.booking_code})"
        how = "completely" if fully_cancelled else "partially"
        return f"Your booking {booking.booking_code} has been {how} cancelled"


class SetAvailabilityHandler:
    """Pin available rooms for a room type over [start_date, end_date)"""

    def __init__(self, inventory_repo=None):
        self.inventory_repo = inventory_repo or DjangoInventoryRepository()

    def handle(self, command: SetAvailabilityCommand):
        dates = date_range_or_error(command.start_date, command.end_date)

        room_type = RoomType.objects.select_related("hotel").filter(
            pk=command.room_type_id, hotel_id=command.hotel_id
        ).first()
        if room_type is None:
            raise NotFound(f"Room type {command.room_type_id} not found in hotel {command.hotel_id}")
        if room_type.hotel.owner_id != command.user_id:
            raise Forbidden("Only the hotel owner can change availability")

        with DjangoUnitOfWork():
            inventory = self.inventory_repo.get(command.room_type_id, dates, lock=True)
            inventory.set_available(dates, command.available_rooms)
            self.inventory_repo.save(inventory)

        logger.info(
            f"Availability of room type {command.room_type_id} set to "
            f"{command.available_rooms} for {dates} by user {command.user_id}"
        )
        return inventory.availability(dates)


class CheckoutHandler:
    """
    Pay for bookings held in the cart.

    Only the caller's PENDING bookings whose hold has not run out are
    confirmed; any other requested id is reported back as missing. Card
    details are checked by the API layer and never reach this handler.
    Each confirmed booking gets a BOOKING_CONFIRMED notification and a
    BookingConfirmed event, which invoices it and sends the e-mail.
    """

    def handle(self, command: CheckoutCommand) -> CheckoutResult:
        with DjangoUnitOfWork() as uow:
            pending = _lock_queryset_if_possible(
                Booking.objects.filter(
                    pk__in=command.booking_ids,
                    user_id=command.user_id,
                    status=Booking.Status.PENDING,
                ).order_by("pk")
            )
            payable = [booking for booking in pending if not booking.should_expire()]
            if not payable:
                raise NotFound("No pending bookings found for checkout")

            for booking in payable:
                booking.status = Booking.Status.CONFIRMED
                booking.expires_at = None
                booking.save(update_fields=["status", "expires_at", "updated_at"])
                notify(
                    booking.user_id,
                    f"Your booking {booking.booking_code} has been confirmed.",
                    Notification.Type.BOOKING_CONFIRMED,
                )
                uow.record(_confirmed_event(booking))

        paid = {booking.pk for booking in payable}
        missing = [booking_id for booking_id in command.booking_ids if booking_id not in paid]
        logger.info(
            f"Checkout by user {command.user_id}: confirmed {len(payable)} bookings, "
            f"{len(missing)} not payable"
        )
        return CheckoutResult(bookings=payable, missing_booking_ids=missing)


DEFAULT_CURRENCY = "USD"


def _single_currency(currencies) -> str:
    found = sorted(set(currencies))
    if len(found) > 1:
        raise InvalidInput(f"Cannot combine room types priced in {found}")
    return found[0] if found else DEFAULT_CURRENCY


def _confirmed_event(booking: Booking, provider_reference: str = '') -> BookingConfirmed:
    return BookingConfirmed(
        aggregate_id=booking.id,
        booking_id=booking.id,
        user_id=booking.user_id,
        total_price=booking.total_price,
        currency=booking.currency,
        provider_reference=provider_reference,
    )


def _window(ranges: List[DateRange]) -> DateRange:
    window = ranges[0]
    for dates in ranges[1:]:
        window = window.union(dates)
    return window
