"""Properties app package.

Holds the property record (rate card, stay bounds, deposit fraction and
rotation settings) that the booking engine reads.
"""
