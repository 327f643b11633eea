from datetime import datetime, timedelta

from iam_bridge.core.models.profile import Freshness


def is_stale(
    freshness: Freshness,
    uid: str,
    now: datetime,
    interval: timedelta,
    force: bool = False,
) -> bool:
    """Decide whether profile data bound to `uid` has to be fetched again.

    Stale when forced, when the account is linked to a different uid, when it
    was never refreshed, or when the last refresh is older than `interval`.
    """
    if force:
        return True
    if freshness.uid != uid:
        return True
    if freshness.last_refresh is None:
        return True
    return now - freshness.last_refresh > interval
