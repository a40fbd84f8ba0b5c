"""
Row locking helpers.
"""

import logging

from django.db import NotSupportedError, connection, transaction

logger = logging.getLogger(__name__)


def lock_if_possible(queryset, of=()):
    """
    Apply select_for_update() when running inside an atomic block.

    SQLite has no row locks; there the queryset is returned unchanged and
    the compare-and-swap updates done by callers carry the guarantee.
    `of` limits the lock to the given relations ("self" for the base table)
    on backends that support it.
    """
    if not transaction.get_connection().in_atomic_block:
        return queryset
    if of and not connection.features.has_select_for_update_of:
        of = ()
    try:
        return queryset.select_for_update(of=of)
    except NotSupportedError:
        logger.debug("select_for_update not supported by backend, skipping row lock")
        return queryset
