"""Bookings app package.

The direct-booking lifecycle: availability and pricing rules, the booking
state machine and its command handlers, the guest and host APIs and the
periodic sweeps. Double booking is prevented by a per-property critical
section rather than database exclusion constraints.
"""
