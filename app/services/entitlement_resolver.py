"""Entitlement checks for content gating.

Everything here works on an already loaded subscription snapshot and does
no I/O, so it is safe to call on every content request.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from app.database.base import as_utc, utcnow
from app.models.profile import Profile
from app.schemas.subscription import SubscriptionDetails

logger = logging.getLogger(__name__)

SubscriptionLike = Union[SubscriptionDetails, Mapping[str, Any], None]


def load_subscription(raw: SubscriptionLike) -> Optional[SubscriptionDetails]:
    """Parse a stored snapshot. An unreadable snapshot counts as no subscription."""
    if raw is None:
        return None
    if isinstance(raw, SubscriptionDetails):
        return raw
    try:
        return SubscriptionDetails.model_validate(raw)
    except ValidationError as e:
        logger.warning("Unreadable subscription snapshot", extra={"error": str(e)})
        return None


def has_access(
    subscription: SubscriptionLike,
    subject_id: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    """True when the subscription covers ``subject_id`` at ``now``.

    A platform-wide subscription covers every subject. A ``subject_id`` of
    None asks for platform-wide content, which only a platform-wide
    subscription covers.
    """
    sub = load_subscription(subscription)
    if sub is None or sub.status != "active":
        return False

    now = as_utc(now or utcnow())
    if now > as_utc(sub.end_date):
        return False

    if sub.is_platform_wide:
        return True
    return subject_id is not None and sub.subject_id == subject_id


def has_access_any(
    subscriptions: Iterable[SubscriptionLike],
    subject_id: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    now = now or utcnow()
    return any(has_access(sub, subject_id, now) for sub in subscriptions)


def profile_has_access(
    profile: Optional[Profile],
    subject_id: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    if profile is None:
        return False
    return has_access(profile.active_subscription, subject_id, now)
