"""Entitlement lookups used by content-gating pages."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.dependencies import AuthenticatedUser, get_current_user
from app.database.session import get_db
from app.models.profile import Profile
from app.schemas.subscription import SubscriptionDetails
from app.services.entitlement_resolver import load_subscription, profile_has_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entitlements", tags=["entitlements"])


class AccessResponse(BaseModel):
    subject_id: str | None = None
    has_access: bool


class CurrentSubscriptionResponse(BaseModel):
    subscription: SubscriptionDetails | None = None


def _load_profile(db: Session, user: AuthenticatedUser) -> Profile | None:
    try:
        user_id = uuid.UUID(user.id)
    except ValueError:
        logger.warning("Non-UUID user id on token", extra={"user_id": user.id})
        return None
    return db.get(Profile, user_id)


@router.get("/me", response_model=CurrentSubscriptionResponse)
def current_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = _load_profile(db, user)
    if profile is None:
        return CurrentSubscriptionResponse()
    return CurrentSubscriptionResponse(subscription=load_subscription(profile.active_subscription))


@router.get("/check", response_model=AccessResponse)
def check_access(
    subject_id: str | None = Query(None, description="Subject to gate; omit for platform-wide content"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = _load_profile(db, user)
    return AccessResponse(subject_id=subject_id, has_access=profile_has_access(profile, subject_id))
