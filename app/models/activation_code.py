import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, String, func

from app.database.base import Base, UTCDateTime, UUIDType


class ActivationCode(Base):
    __tablename__ = "activation_codes"
    __table_args__ = (
        CheckConstraint("valid_from <= valid_until", name="ck_activation_codes_validity_window"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4, index=True)
    encoded_value = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # general_monthly, choose_single_subject_yearly, trial_weekly
    subject_id = Column(String, nullable=True)
    subject_name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_used = Column(Boolean, nullable=False, default=False)
    used_by_user_id = Column(UUIDType, nullable=True, index=True)
    used_for_subject_id = Column(String, nullable=True)
    valid_from = Column(UTCDateTime, nullable=False)
    valid_until = Column(UTCDateTime, nullable=False)
    used_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
