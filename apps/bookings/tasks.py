"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

import structlog
from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import DomainError, ProviderError, ProviderRejected

from .application.aggregator import RESUMABLE, Confirmed
from .application.command_handlers import CancelBookingCommand, CancelBookingHandler
from .bootstrap import get_booking_aggregator
from .models import Booking, ProviderBooking

logger = logging.getLogger(__name__)
reconciliation_log = structlog.get_logger("reconciliation")

UNCERTAIN = (
    ProviderBooking.Status.PROVIDER_UNKNOWN,
    ProviderBooking.Status.PROVIDER_PENDING,
)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.reconcile_provider_bookings")
def reconcile_provider_bookings() -> dict[str, int]:
    """
    Settle provider bookings that have no local booking yet.

    - partial_failure: retry the local commit from the journalled payload,
      up to RECONCILIATION_MAX_ATTEMPTS attempts
    - provider_confirmed left behind by a crashed worker: commit it
    - provider_unknown and stale provider_pending: ask the provider with
      ``verify``; a booking the provider does not know is resolved, a
      confirmed one is committed

    Every row is re-read under a skip-locked row lock and its status
    re-checked before it is changed, so overlapping runs never commit the
    same provider booking twice.

    Runs every 5 minutes through Celery Beat.

    Returns:
        dict: counts of resumed, resolved, failed and unresolved journal rows
    """
    aggregator = get_booking_aggregator()
    stale_before = timezone.now() - timedelta(minutes=settings.RECONCILIATION_STALE_MINUTES)
    max_attempts = settings.RECONCILIATION_MAX_ATTEMPTS
    counts = {"resumed": 0, "resolved": 0, "failed": 0, "unresolved": 0}

    retryable = ProviderBooking.objects.filter(
        status=ProviderBooking.Status.PARTIAL_FAILURE,
        attempts__lt=max_attempts,
    ) | ProviderBooking.objects.filter(
        status=ProviderBooking.Status.PROVIDER_CONFIRMED,
        updated_at__lte=stale_before,
    )
    for journal_pk in list(retryable.values_list("pk", flat=True)):
        _resume(aggregator, journal_pk, RESUMABLE, counts)

    uncertain = ProviderBooking.objects.filter(
        status=ProviderBooking.Status.PROVIDER_UNKNOWN,
    ) | ProviderBooking.objects.filter(
        status=ProviderBooking.Status.PROVIDER_PENDING,
        updated_at__lte=stale_before,
    )
    for journal in uncertain.select_related("user"):
        if not journal.provider_reference:
            counts["unresolved"] += 1
            reconciliation_log.warning(
                "manual_review_required",
                journal_id=str(journal.pk),
                user_id=journal.user_id,
                flight_ids=journal.flight_ids,
                status=journal.status,
            )
            continue
        try:
            result = aggregator.gateway.verify(journal.user.last_name, journal.provider_reference)
        except ProviderRejected as e:
            if e.provider_status == 404:
                if _resolve_unknown(journal.pk):
                    counts["resolved"] += 1
                    logger.info(f"Journal {journal.pk}: provider has no booking {journal.provider_reference}")
            else:
                counts["unresolved"] += 1
                logger.warning(f"Journal {journal.pk}: verify rejected: {e.message}")
            continue
        except ProviderError as e:
            counts["unresolved"] += 1
            logger.warning(f"Journal {journal.pk}: provider still unavailable: {e.message}")
            continue

        def confirm(claimed, result=result):
            claimed.transition(
                ProviderBooking.Status.PROVIDER_CONFIRMED,
                provider_reference=result.reference,
                provider_payload=result.payload,
            )

        _resume(aggregator, journal.pk, UNCERTAIN, counts, prepare=confirm)

    exhausted = ProviderBooking.objects.filter(
        status=ProviderBooking.Status.PARTIAL_FAILURE,
        attempts__gte=max_attempts,
    )
    for journal in exhausted:
        counts["unresolved"] += 1
        reconciliation_log.error(
            "reconciliation_exhausted",
            journal_id=str(journal.pk),
            provider_reference=journal.provider_reference,
            user_id=journal.user_id,
            attempts=journal.attempts,
            error=journal.last_error,
        )

    if any(counts.values()):
        logger.info(f"Reconciliation finished: {counts}")
    return counts


@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Cancel PENDING bookings whose cart hold ran out.

    Their rooms go back to the inventory and the traveller is notified.
    A booking paid in the meantime is left alone.

    Runs every minute through Celery Beat.

    Returns:
        dict: {"expired": number of cancelled bookings}
    """
    expired_count = 0

    expired_bookings = Booking.objects.filter(
        status=Booking.Status.PENDING,
        expires_at__lte=timezone.now(),
    ).values_list("pk", "user_id", "booking_code")

    for booking_id, user_id, booking_code in expired_bookings:
        try:
            CancelBookingHandler().handle(
                CancelBookingCommand(booking_id=booking_id, user_id=user_id, expired=True)
            )
        except DomainError as e:
            logger.info(f"Booking {booking_code} not expired: {e.message}")
            continue
        except Exception as e:
            logger.error(f"Error expiring booking {booking_id}: {e}", exc_info=True)
            continue

        expired_count += 1
        logger.info(f"Booking {booking_code} expired automatically")

    if expired_count > 0:
        logger.info(f"Expired {expired_count} pending bookings")

    return {"expired": expired_count}


def _claim(journal_pk, statuses):
    """The journal row locked for this worker, or None if another worker holds it or moved it on"""
    journal = (
        ProviderBooking.objects.select_for_update(skip_locked=True)
        .filter(pk=journal_pk)
        .first()
    )
    if journal is None or journal.status not in statuses:
        logger.info(f"Journal {journal_pk} is held or settled by another worker, skipped")
        return None
    return journal


def _resolve_unknown(journal_pk) -> bool:
    with transaction.atomic():
        journal = _claim(journal_pk, UNCERTAIN)
        if journal is None:
            return False
        journal.transition(ProviderBooking.Status.RESOLVED, last_error="Unknown to the provider")
    return True


def _resume(aggregator, journal_pk, statuses, counts: dict, prepare=None) -> None:
    try:
        with transaction.atomic():
            journal = _claim(journal_pk, statuses)
            if journal is None:
                return
            if prepare is not None:
                prepare(journal)
            outcome = aggregator.resume(journal)
    except Exception as e:
        counts["failed"] += 1
        logger.error(f"Error resuming journal {journal_pk}: {e}", exc_info=True)
        return

    if isinstance(outcome, Confirmed):
        counts["resumed"] += 1
        reconciliation_log.info(
            "partial_failure_resolved",
            journal_id=str(journal.pk),
            provider_reference=journal.provider_reference,
            booking_id=str(outcome.booking.pk),
        )
    else:
        counts["failed"] += 1
