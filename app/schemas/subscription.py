from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, model_validator

SubscriptionStatus = Literal["active", "expired", "cancelled", "trial"]


class SubscriptionDetails(BaseModel):
    """Subscription snapshot embedded in a profile's ``active_subscription``."""

    plan_id: str
    plan_name: str
    start_date: datetime
    end_date: datetime
    status: SubscriptionStatus
    activation_code_id: Optional[str] = None
    subject_id: Optional[str] = None  # None means platform-wide
    subject_name: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    @property
    def is_platform_wide(self) -> bool:
        return not self.subject_id or not self.subject_id.strip()
