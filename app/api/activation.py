"""Activation code check and redemption routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.dependencies import AuthenticatedUser, get_current_user
from app.database.session import get_db
from app.schemas.activation import CodeValidationResult, RedemptionRequest, RedemptionResult
from app.services.code_validator import validate_code
from app.services.redemption_service import redemption_service

router = APIRouter(prefix="/activation", tags=["activation"])

REASON_STATUS = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "missing_partition_choice": status.HTTP_400_BAD_REQUEST,
    "missing_user_identity": status.HTTP_400_BAD_REQUEST,
    "code_not_found": status.HTTP_404_NOT_FOUND,
    "code_inactive": status.HTTP_409_CONFLICT,
    "code_already_used": status.HTTP_409_CONFLICT,
    "code_not_yet_valid": status.HTTP_409_CONFLICT,
    "code_expired": status.HTTP_409_CONFLICT,
    "commit_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CheckCodeRequest(BaseModel):
    code: str


class ConfirmRedemptionRequest(BaseModel):
    code_id: str
    code_type: str | None = None
    code_valid_until: datetime | None = None
    chosen_subject_id: str | None = None
    chosen_subject_name: str | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/check", response_model=CodeValidationResult)
def check_code(
    body: CheckCodeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Validate a code without redeeming it. Rejections are still a 200."""
    return validate_code(db, body.code)


@router.post("/confirm", response_model=RedemptionResult)
def confirm_redemption(
    body: ConfirmRedemptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Redeem a checked code for the authenticated user."""
    result = redemption_service.confirm_redemption(
        db,
        RedemptionRequest(
            user_id=user.id,
            email=user.email,
            code_id=body.code_id,
            code_type=body.code_type,
            code_valid_until=body.code_valid_until,
            chosen_subject_id=body.chosen_subject_id,
            chosen_subject_name=body.chosen_subject_name,
        ),
    )
    if result.success:
        return result

    return JSONResponse(
        status_code=REASON_STATUS.get(result.reason, status.HTTP_400_BAD_REQUEST),
        content=jsonable_encoder(result),
    )
