from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CodeSnapshot(BaseModel):
    """What the client may see of a code after a successful check."""

    id: str
    encoded_value: str
    name: str
    type: str
    subject_id: Optional[str] = None
    subject_name: Optional[str] = None
    valid_until: datetime


class CodeValidationResult(BaseModel):
    valid: bool
    requires_partition_choice: bool = False
    reason: Optional[str] = None
    message: str
    code: Optional[CodeSnapshot] = None


class RedemptionRequest(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    code_id: Optional[str] = None
    # Echoed back from the check step; informational only, the live row wins
    code_type: Optional[str] = None
    code_valid_until: Optional[datetime] = None
    chosen_subject_id: Optional[str] = None
    chosen_subject_name: Optional[str] = None


class RedemptionResult(BaseModel):
    success: bool
    reason: Optional[str] = None
    message: str
    activated_plan_name: Optional[str] = None
    subscription_end_date: Optional[datetime] = None
