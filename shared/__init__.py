"""
Shared Kernel

This module contains base classes and utilities shared across all domain contexts:
value objects, domain events, the unit of work and the message bus.
"""
