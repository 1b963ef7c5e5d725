"""Bookings app package.

Hotel reservations, provider-booked flights and the journal that ties a
provider booking to its local booking. Inventory changes run under row
locks on the room types involved, so concurrent bookings can never
oversell a night.
"""
