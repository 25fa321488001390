"""Age-based expiry of unpinned history items."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from echoclip.config import DEFAULT_RETENTION_DAYS, MAX_RETENTION_DAYS, RETENTION_FOREVER
from echoclip.models import ClipboardItem

logger = logging.getLogger(__name__)


def normalize_retention_days(value) -> int:
    """Coerce a stored retention setting to a valid number of days.

    Unset, zero and unparseable values fall back to the default window.
    Windows longer than ``MAX_RETENTION_DAYS`` mean forever.
    """
    try:
        days = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_RETENTION_DAYS
    if days == RETENTION_FOREVER or days > MAX_RETENTION_DAYS:
        return RETENTION_FOREVER
    if days <= 0:
        return DEFAULT_RETENTION_DAYS
    return days


def retention_cutoff(retention_days: int, now: datetime) -> datetime | None:
    """Oldest creation time that survives, or None when nothing expires."""
    if retention_days == RETENTION_FOREVER:
        return None
    if retention_days <= 0:
        logger.warning("Ignoring invalid retention window of %r days", retention_days)
        return None
    try:
        return now - timedelta(days=retention_days)
    except OverflowError:
        # Cutoff before the representable range: nothing can be that old
        return None


def partition_expired(
    items: Iterable[ClipboardItem], retention_days: int, now: datetime
) -> tuple[list[ClipboardItem], list[ClipboardItem]]:
    """Split items into (keep, remove) for the given retention window."""
    cutoff = retention_cutoff(retention_days, now)
    keep: list[ClipboardItem] = []
    remove: list[ClipboardItem] = []
    for item in items:
        if cutoff is not None and not item.pinned and item.created_at < cutoff:
            remove.append(item)
        else:
            keep.append(item)
    return keep, remove
