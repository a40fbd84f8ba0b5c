"""Notifications app package.

Turns booking events into guest emails and in-app notices for hosts.
"""
