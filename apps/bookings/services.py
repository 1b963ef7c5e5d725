"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Tuple
from uuid import UUID

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.exceptions import InvalidRange
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def date_range_or_error(check_in: date, check_out: date) -> DateRange:
    if check_out <= check_in:
        raise InvalidRange("Check-out date must be after check-in date")
    return DateRange(check_in, check_out)


class InventoryLedger:
    """
    Read-only availability view over the inventory repository.

    Results are advisory: they may be stale by the time a commit runs.
    Only the committer's check under the room type lock is authoritative.
    """

    def __init__(self, inventory_repo=None):
        if inventory_repo is None:
            from .repositories import DjangoInventoryRepository

            inventory_repo = DjangoInventoryRepository()
        self.inventory_repo = inventory_repo

    def availability(self, room_type_id: UUID, check_in: date, check_out: date) -> List[Tuple[date, int]]:
        """
        Available rooms for every night in [check_in, check_out).

        Raises:
            InvalidRange: check_out is not after check_in
            NotFound: unknown room type
        """
        dates = date_range_or_error(check_in, check_out)
        inventory = self.inventory_repo.get(room_type_id, dates, lock=False)
        return inventory.availability(dates)

    def unavailable_dates(self, room_type_id: UUID, check_in: date, check_out: date, quantity: int) -> List[date]:
        dates = date_range_or_error(check_in, check_out)
        inventory = self.inventory_repo.get(room_type_id, dates, lock=False)
        return inventory.shortfall(dates, quantity)

    def calendar(self, room_type_id: UUID, check_in: date, check_out: date) -> List[Tuple[date, int, bool]]:
        """Like ``availability``, flagging nights pinned by an override row"""
        dates = date_range_or_error(check_in, check_out)
        inventory = self.inventory_repo.get(room_type_id, dates, lock=False)
        return [(day, count, day in inventory.overrides) for day, count in inventory.availability(dates)]
