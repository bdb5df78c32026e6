"""Server-side model of the enter code / choose subject / activated flow."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.schemas.activation import CodeSnapshot, RedemptionRequest, RedemptionResult
from app.services.code_validator import validate_code
from app.services.redemption_service import RedemptionService, redemption_service


class FlowState(str, enum.Enum):
    ENTER_CODE = "enter_code"
    CHOOSE_PARTITION = "choose_partition"
    ACTIVATED = "activated"


class RedemptionFlow:
    """One user's walk through redeeming a single code.

    Failed checks keep the flow at ``ENTER_CODE``; a failed commit after a
    subject choice keeps it at ``CHOOSE_PARTITION`` so the user can retry.
    """

    def __init__(
        self,
        db: Session,
        user_id: str,
        email: str,
        service: Optional[RedemptionService] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.email = email
        self.service = service or redemption_service
        self.state = FlowState.ENTER_CODE
        self.code: Optional[CodeSnapshot] = None
        self.error: Optional[str] = None
        self.result: Optional[RedemptionResult] = None

    def submit(self, raw_code: str, now: Optional[datetime] = None) -> FlowState:
        if self.state != FlowState.ENTER_CODE:
            raise RuntimeError(f"Cannot submit a code in state {self.state.value}")

        verdict = validate_code(self.db, raw_code, now)
        if not verdict.valid:
            self.error = verdict.message
            return self.state

        self.code = verdict.code
        self.error = None
        if verdict.requires_partition_choice:
            self.state = FlowState.CHOOSE_PARTITION
            return self.state
        return self._commit(None, None, now, fallback=FlowState.ENTER_CODE)

    def confirm(self, subject_id: str, subject_name: str, now: Optional[datetime] = None) -> FlowState:
        if self.state != FlowState.CHOOSE_PARTITION:
            raise RuntimeError(f"Cannot confirm a subject in state {self.state.value}")
        return self._commit(subject_id, subject_name, now, fallback=FlowState.CHOOSE_PARTITION)

    def reset(self) -> None:
        self.state = FlowState.ENTER_CODE
        self.code = None
        self.error = None
        self.result = None

    def _commit(
        self,
        subject_id: Optional[str],
        subject_name: Optional[str],
        now: Optional[datetime],
        fallback: FlowState,
    ) -> FlowState:
        result = self.service.confirm_redemption(
            self.db,
            RedemptionRequest(
                user_id=self.user_id,
                email=self.email,
                code_id=self.code.id,
                code_type=self.code.type,
                code_valid_until=self.code.valid_until,
                chosen_subject_id=subject_id,
                chosen_subject_name=subject_name,
            ),
            now,
        )
        self.result = result
        if result.success:
            self.error = None
            self.state = FlowState.ACTIVATED
        else:
            self.error = result.message
            self.state = fallback
        return self.state
