"""Activation code validation.

``check_code`` is the single source of the redemption rules and raises the
specific ``ActivationError`` for the first rule a code breaks. The
redemption coordinator calls it again against the live row at commit time,
so a verdict from ``validate_code`` is advisory only.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.database.base import as_utc, utcnow
from app.models.activation_code import ActivationCode
from app.schemas.activation import CodeSnapshot, CodeValidationResult
from app.services.code_types import format_arabic_date, requires_partition_choice
from app.services.errors import (
    ActivationError,
    CodeAlreadyUsedError,
    CodeExpiredError,
    CodeInactiveError,
    CodeLookupError,
    CodeNotYetValidError,
    InputError,
)

logger = logging.getLogger(__name__)

VALID_MESSAGE = "الرمز صالح للتفعيل."
CHOICE_REQUIRED_MESSAGE = "الرمز صالح. يرجى اختيار المادة لتفعيل الاشتراك."


def check_code(code: ActivationCode, now: datetime) -> None:
    # A consumed code is also inactive; report it as used so retries read clearly.
    if code.is_used:
        raise CodeAlreadyUsedError()
    if not code.is_active:
        raise CodeInactiveError()

    now = as_utc(now)
    if now < as_utc(code.valid_from):
        raise CodeNotYetValidError(
            f"رمز التفعيل هذا غير صالح للاستخدام قبل تاريخ {format_arabic_date(code.valid_from)}."
        )
    if now > as_utc(code.valid_until):
        raise CodeExpiredError()


def find_code(db: Session, raw_code: Optional[str]) -> ActivationCode:
    if raw_code is None or not raw_code.strip():
        raise InputError()

    code = db.query(ActivationCode).filter(
        ActivationCode.encoded_value == raw_code.strip(),
    ).first()
    if not code:
        raise CodeLookupError()
    return code


def snapshot(code: ActivationCode) -> CodeSnapshot:
    return CodeSnapshot(
        id=str(code.id),
        encoded_value=code.encoded_value,
        name=code.name,
        type=code.type,
        subject_id=code.subject_id,
        subject_name=code.subject_name,
        valid_until=code.valid_until,
    )


def validate_code(db: Session, raw_code: Optional[str], now: Optional[datetime] = None) -> CodeValidationResult:
    """Check a user-submitted code string without mutating anything."""
    now = now or utcnow()
    try:
        code = find_code(db, raw_code)
        check_code(code, now)
    except ActivationError as e:
        logger.info("Activation code rejected", extra={"reason": e.reason})
        return CodeValidationResult(valid=False, reason=e.reason, message=e.message)

    needs_choice = requires_partition_choice(code.type)
    return CodeValidationResult(
        valid=True,
        requires_partition_choice=needs_choice,
        message=CHOICE_REQUIRED_MESSAGE if needs_choice else VALID_MESSAGE,
        code=snapshot(code),
    )
