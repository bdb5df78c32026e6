from sqlalchemy import JSON, Column, String, func

from app.database.base import Base, UTCDateTime, UUIDType


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(UUIDType, primary_key=True, index=True)  # auth user id
    email = Column(String, nullable=False)
    # Embedded SubscriptionDetails snapshot, see app.schemas.subscription
    active_subscription = Column(JSON, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
