"""Redemption of activation codes.

The coordinator is the only writer of code, profile subscription and
activation log state. A redemption runs in one database transaction:

  a. flip the code to used with ``UPDATE ... WHERE id = ? AND is_used = false``
  b. overwrite the profile's subscription snapshot
  c. append an activation log entry

Step (a) is the double-redemption guard. When it matches no row another
redemption got there first and nothing else is written.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database.base import as_utc, utcnow
from app.models.activation_code import ActivationCode
from app.models.activation_log import ActivationLog
from app.models.profile import Profile
from app.schemas.activation import RedemptionRequest, RedemptionResult
from app.schemas.subscription import SubscriptionDetails
from app.services.code_types import format_arabic_date, plan_name_for, requires_partition_choice
from app.services.code_validator import check_code
from app.services.entitlement_resolver import has_access
from app.services.errors import (
    ActivationError,
    CodeLookupError,
    CommitError,
    MissingPartitionChoiceError,
    MissingUserIdentityError,
    RaceLostError,
)

logger = logging.getLogger(__name__)


def _parse_uuid(value: str, error: type[ActivationError]) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise error() from None


class RedemptionService:
    def confirm_redemption(
        self,
        db: Session,
        request: RedemptionRequest,
        now: Optional[datetime] = None,
    ) -> RedemptionResult:
        """Redeem ``request.code_id`` for ``request.user_id``.

        Domain failures come back as ``success=False`` results with a
        specific ``reason``; nothing is raised to the caller.
        """
        now = as_utc(now or utcnow())
        try:
            return self._redeem(db, request, now)
        except ActivationError as e:
            db.rollback()
            logger.info(
                "Redemption rejected",
                extra={"reason": e.reason, "code_id": request.code_id, "user_id": request.user_id},
            )
            return RedemptionResult(success=False, reason=e.reason, message=e.message)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _redeem(self, db: Session, request: RedemptionRequest, now: datetime) -> RedemptionResult:
        if not request.user_id or not request.email or not request.code_id:
            raise MissingUserIdentityError()

        user_id = _parse_uuid(request.user_id, MissingUserIdentityError)
        code_id = _parse_uuid(request.code_id, CodeLookupError)

        code = (
            db.query(ActivationCode)
            .filter(ActivationCode.id == code_id)
            .populate_existing()
            .first()
        )
        if not code:
            raise CodeLookupError()

        check_code(code, now)

        chosen_id = (request.chosen_subject_id or "").strip() or None
        chosen_name = (request.chosen_subject_name or "").strip() or None
        if requires_partition_choice(code.type) and (not chosen_id or not chosen_name):
            raise MissingPartitionChoiceError()

        if chosen_id:
            subject_id, subject_name = chosen_id, chosen_name
        else:
            subject_id, subject_name = code.subject_id, code.subject_name

        plan_name = plan_name_for(code.type, code.subject_name, chosen_name)
        subscription = SubscriptionDetails(
            plan_id=code.type,
            plan_name=plan_name,
            start_date=now,
            end_date=code.valid_until,
            status="active",
            activation_code_id=str(code.id),
            subject_id=subject_id,
            subject_name=subject_name,
        )

        try:
            self._claim_code(db, code, user_id, subject_id, now)
            self._store_subscription(db, user_id, request.email, subscription, now)
            db.add(ActivationLog(
                user_id=user_id,
                code_id=code.id,
                subject_id=subject_id,
                email=request.email,
                code_type=code.type,
                plan_name=plan_name,
                activated_at=now,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "Activation commit failed; code, profile and log writes rolled back",
                exc_info=e,
                extra={"code_id": str(code_id), "user_id": str(user_id)},
            )
            raise CommitError()

        logger.info(
            "Activation code redeemed",
            extra={
                "code_id": str(code_id),
                "user_id": str(user_id),
                "subject_id": subject_id,
                "plan_id": code.type,
            },
        )

        return RedemptionResult(
            success=True,
            message=f"تم تفعيل اشتراكك \"{plan_name}\" بنجاح! ينتهي في {format_arabic_date(subscription.end_date)}",
            activated_plan_name=plan_name,
            subscription_end_date=subscription.end_date,
        )

    def _claim_code(
        self,
        db: Session,
        code: ActivationCode,
        user_id: uuid.UUID,
        subject_id: Optional[str],
        now: datetime,
    ) -> None:
        result = db.execute(
            update(ActivationCode)
            .where(ActivationCode.id == code.id, ActivationCode.is_used == False)  # noqa: E712
            .values(
                is_active=False,
                is_used=True,
                used_by_user_id=user_id,
                used_at=now,
                used_for_subject_id=subject_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Redemption lost race for activation code",
                extra={"code_id": str(code.id), "user_id": str(user_id)},
            )
            raise RaceLostError()
        db.expire(code)

    def _store_subscription(
        self,
        db: Session,
        user_id: uuid.UUID,
        email: str,
        subscription: SubscriptionDetails,
        now: datetime,
    ) -> None:
        profile = db.get(Profile, user_id)
        if profile is None:
            profile = Profile(id=user_id, email=email)
            db.add(profile)
        else:
            previous = self._previous_subscription(profile)
            if previous is not None and has_access(previous, previous.subject_id, now):
                # Single-slot snapshot: the newer redemption replaces a still-valid plan.
                logger.warning(
                    "Overwriting active subscription",
                    extra={
                        "user_id": str(user_id),
                        "previous_code_id": previous.activation_code_id,
                        "previous_end_date": previous.end_date.isoformat(),
                    },
                )
            if email and profile.email != email:
                profile.email = email

        profile.active_subscription = subscription.model_dump(mode="json")
        profile.updated_at = now
        db.flush()

    def _previous_subscription(self, profile: Profile) -> Optional[SubscriptionDetails]:
        if not profile.active_subscription:
            return None
        try:
            return SubscriptionDetails.model_validate(profile.active_subscription)
        except ValidationError as e:
            logger.warning(
                "Unreadable subscription snapshot on profile",
                extra={"user_id": str(profile.id), "error": str(e)},
            )
            return None


redemption_service = RedemptionService()
