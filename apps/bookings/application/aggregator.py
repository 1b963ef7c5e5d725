"""
Booking Aggregator

Combines provider-booked flights and local hotel stays into one Booking.

The provider and the local database cannot share a transaction, so the
aggregator orders the two sides and journals the provider side:

1. validate and pre-check hotel availability (advisory, no side effects)
2. journal the attempt, then call the provider
3. commit flights and hotels locally in one transaction
4. if step 3 fails after step 2 succeeded, report PartialFailure and
   leave the journal row for reconciliation

A provider booking without a local booking is always visible through the
journal and the ``reconciliation`` log; it is never dropped silently.
"""

from dataclasses import dataclass, field
from typing import List, Union
from uuid import UUID
import logging

import structlog

from shared.domain.exceptions import (
    DomainError,
    InsufficientInventory,
    InvalidInput,
    InvalidState,
    ProviderRejected,
    ProviderUnavailable,
)
from apps.bookings.application.command_handlers import CommitBookingCommand
from apps.bookings.domain.entities import FlightLeg, HotelLeg
from apps.bookings.models import Booking, ProviderBooking
from apps.flights.gateway import ProviderBookingResult, Traveler, booking_result_from_payload
from apps.hotels.models import Room
from apps.users.auth import Identity

logger = logging.getLogger(__name__)
reconciliation_log = structlog.get_logger("reconciliation")


# ===== Request / Outcomes =====

@dataclass
class CombinedBookingRequest:
    identity: Identity
    flight_ids: List[str] = field(default_factory=list)
    passport_number: str = ''
    hotel_legs: List[HotelLeg] = field(default_factory=list)


@dataclass(frozen=True)
class Confirmed:
    booking: Booking


@dataclass(frozen=True)
class Rejected:
    error: DomainError

    @property
    def reason(self) -> str:
        return self.error.message


@dataclass(frozen=True)
class PartialFailure:
    """The provider holds a booking that has no local counterpart yet"""
    provider_reference: str
    local_error: str
    journal_id: UUID

    def to_dict(self) -> dict:
        return {
            'error': 'Flights were booked with the provider but the booking could not be saved',
            'code': 'partial_failure',
            'providerReference': self.provider_reference,
            'reconciliationId': str(self.journal_id),
            'detail': self.local_error,
        }


BookingOutcome = Union[Confirmed, Rejected, PartialFailure]

RESUMABLE = (
    ProviderBooking.Status.PARTIAL_FAILURE,
    ProviderBooking.Status.PROVIDER_CONFIRMED,
)


def flight_legs_from(result: ProviderBookingResult, flight_ids: List[str]) -> List[FlightLeg]:
    """Provider flights as committable legs, in the order they were requested"""
    offers = {offer.id: offer for offer in result.flights}
    legs = []
    for flight_id in flight_ids:
        offer = offers.get(str(flight_id))
        if offer is None:
            legs.append(FlightLeg(
                afs_flight_id=str(flight_id),
                provider_reference=result.reference,
                source='',
                destination='',
            ))
            continue
        legs.append(FlightLeg(
            afs_flight_id=offer.id,
            provider_reference=result.reference,
            source=offer.origin,
            destination=offer.destination,
            price=offer.price,
            currency=offer.currency,
            flight_number=offer.flight_number,
            airline=offer.airline,
            departure_time=offer.departure_time,
            arrival_time=offer.arrival_time,
            snapshot=offer.raw,
        ))
    return legs


class BookingAggregator:
    def __init__(self, gateway, committer, ledger):
        self.gateway = gateway
        self.committer = committer
        self.ledger = ledger

    def book_combined(self, request: CombinedBookingRequest) -> BookingOutcome:
        try:
            self._validate(request)
            self._precheck(request.hotel_legs)
        except DomainError as e:
            logger.info(f"Combined booking for user {request.identity.user_id} rejected before provider: {e.message}")
            return Rejected(e)

        if not request.flight_ids:
            try:
                booking = self.committer.commit_booking(CommitBookingCommand(
                    user_id=request.identity.user_id,
                    hotel_legs=request.hotel_legs,
                ))
            except DomainError as e:
                return Rejected(e)
            return Confirmed(booking)

        journal = ProviderBooking.objects.create(
            user_id=request.identity.user_id,
            flight_ids=[str(flight_id) for flight_id in request.flight_ids],
            hotel_legs=[leg.to_dict() for leg in request.hotel_legs],
            status=ProviderBooking.Status.PROVIDER_PENDING,
        )

        traveler = Traveler(
            first_name=request.identity.first_name,
            last_name=request.identity.last_name,
            email=request.identity.email,
        )
        try:
            result = self.gateway.book(traveler, request.passport_number, request.flight_ids)
        except ProviderRejected as e:
            journal.transition(
                ProviderBooking.Status.PROVIDER_REJECTED,
                last_error=e.message,
                provider_payload=e.payload if isinstance(e.payload, (dict, list)) else None,
            )
            return Rejected(e)
        except ProviderUnavailable as e:
            # The provider may have booked: reconciliation verifies later
            journal.transition(ProviderBooking.Status.PROVIDER_UNKNOWN, last_error=e.message)
            reconciliation_log.warning(
                "provider_outcome_unknown",
                journal_id=str(journal.pk),
                user_id=request.identity.user_id,
                flight_ids=journal.flight_ids,
                timed_out=e.timed_out,
            )
            raise

        journal.transition(
            ProviderBooking.Status.PROVIDER_CONFIRMED,
            provider_reference=result.reference,
            provider_payload=result.payload,
        )
        return self._commit_locally(journal, result, request.hotel_legs)

    def resume(self, journal: ProviderBooking) -> BookingOutcome:
        """
        Retry the local commit of a journalled provider booking.

        The caller holds the journal row lock; a row another worker already
        committed or resolved is refused.
        """
        if journal.status not in RESUMABLE or journal.booking_id is not None:
            raise InvalidState(f"Journal {journal.pk} is {journal.status} and cannot be resumed")
        result = booking_result_from_payload(
            journal.provider_payload or {}, fallback_reference=journal.provider_reference
        )
        hotel_legs = [HotelLeg.from_dict(data) for data in journal.hotel_legs]
        return self._commit_locally(journal, result, hotel_legs)

    def _commit_locally(self, journal, result: ProviderBookingResult, hotel_legs) -> BookingOutcome:
        command = CommitBookingCommand(
            user_id=journal.user_id,
            hotel_legs=hotel_legs,
            flight_legs=flight_legs_from(result, journal.flight_ids),
            provider_reference=result.reference,
        )
        try:
            booking = self.committer.commit_booking(command)
        except Exception as e:
            journal.transition(
                ProviderBooking.Status.PARTIAL_FAILURE,
                last_error=f"{e.__class__.__name__}: {e}",
                attempts=journal.attempts + 1,
            )
            logger.error(
                f"Local commit failed after provider booking {result.reference}: {e}",
                exc_info=True,
            )
            reconciliation_log.error(
                "partial_failure",
                journal_id=str(journal.pk),
                provider_reference=result.reference,
                user_id=journal.user_id,
                error=str(e),
                attempts=journal.attempts,
            )
            return PartialFailure(
                provider_reference=result.reference,
                local_error=str(e),
                journal_id=journal.pk,
            )

        journal.transition(
            ProviderBooking.Status.COMPLETED,
            booking=booking,
            attempts=journal.attempts + 1,
            last_error='',
        )
        return Confirmed(booking)

    @staticmethod
    def _validate(request: CombinedBookingRequest):
        if not request.flight_ids and not request.hotel_legs:
            raise InvalidInput("Select at least one flight or hotel")
        if request.flight_ids and not request.passport_number:
            raise InvalidInput("passportNumber is required to book flights")

    def _precheck(self, legs: List[HotelLeg]):
        legs = self.committer.validate(legs)
        rooms = Room.objects.in_bulk([leg.room_id for leg in legs if leg.room_id is not None])
        for leg in legs:
            room = rooms.get(leg.room_id)
            if room is not None and not room.is_available:
                raise InsufficientInventory(
                    f"Room {room.number} is not available",
                    unavailable_dates=list(leg.dates.nights()),
                )
            unavailable = self.ledger.unavailable_dates(
                leg.room_type_id, leg.check_in, leg.check_out, leg.rooms_booked
            )
            if unavailable:
                raise InsufficientInventory(
                    f"Not enough rooms available for {leg.dates}",
                    unavailable_dates=unavailable,
                )
