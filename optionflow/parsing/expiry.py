"""
Expiry Filter

An option is expired once its expiry day has fully closed: the cutoff is
23:59:59 on the expiry date, and the record is expired iff that cutoff is
strictly earlier than the reference instant.

Unparseable expiries are never expired. Dropping a row needs a date we
actually understood.
"""

import logging
from datetime import datetime
from typing import Optional

import pytz

logger = logging.getLogger(__name__)


def expiry_cutoff(expiry: str) -> Optional[datetime]:
    """
    Parse an ``MM/DD/YYYY`` literal into the naive end-of-day cutoff.

    Returns None if the literal is not a three-part date or does not
    name a real calendar day.
    """
    if not expiry:
        return None

    parts = expiry.split("/")
    if len(parts) != 3:
        return None

    try:
        month, day, year = (int(p.strip()) for p in parts)
        return datetime(year, month, day, 23, 59, 59)
    except (ValueError, TypeError) as e:
        logger.debug(f"Unparseable expiry {expiry!r}: {e}")
        return None


def is_expired(
    expiry: str,
    now: Optional[datetime] = None,
    market_timezone: Optional[str] = None,
) -> bool:
    """
    Decide whether an expiry has passed relative to ``now``.

    Args:
        expiry: Expiry literal, ``MM/DD/YYYY``
        now: Reference instant. Naive instants are compared against the naive
             cutoff; timezone-aware instants are compared against the cutoff
             localized to ``market_timezone``. Defaults to local wall clock.
        market_timezone: Olson name used to localize the cutoff when ``now``
             is timezone-aware (e.g. "America/New_York").

    Returns:
        True only when the expiry was parsed and its cutoff is before ``now``.
    """
    cutoff = expiry_cutoff(expiry)
    if cutoff is None:
        return False

    if now is None:
        now = datetime.now()

    if now.tzinfo is not None:
        try:
            tz = pytz.timezone(market_timezone) if market_timezone else pytz.UTC
            cutoff = tz.localize(cutoff)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown market timezone {market_timezone!r}, comparing in UTC")
            cutoff = pytz.UTC.localize(cutoff)

    return cutoff < now
