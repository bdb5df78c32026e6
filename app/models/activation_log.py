import uuid

from sqlalchemy import Column, ForeignKey, String, func

from app.database.base import Base, UTCDateTime, UUIDType


class ActivationLog(Base):
    __tablename__ = "activation_logs"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUIDType, ForeignKey("profiles.id"), nullable=False, index=True)
    code_id = Column(UUIDType, ForeignKey("activation_codes.id"), nullable=False, index=True)
    subject_id = Column(String, nullable=True)  # null for platform-wide plans
    email = Column(String, nullable=False)
    code_type = Column(String, nullable=False)
    plan_name = Column(String, nullable=False)
    activated_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
