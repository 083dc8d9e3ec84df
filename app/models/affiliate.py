# app/models/affiliate.py
import uuid

from sqlalchemy import Column, String, Text, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from app.db.session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Affiliate(Base):
    __tablename__ = "affiliates"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive', 'suspended')", name="affiliates_status_check"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    referral_code = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, default="active", nullable=False, server_default="active")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    orders = relationship("Order", back_populates="affiliate", passive_deletes=True)
