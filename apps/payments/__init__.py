"""Payments app package.

Wraps the external payment gateway (hold, capture, release, refund) and
keeps a booking's payment fields in step with gateway state.
"""
