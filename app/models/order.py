# app/models/order.py
from sqlalchemy import Column, Integer, Numeric, String, Text, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from .affiliate import _uuid


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("service_type IN ('dine-in', 'pickup', 'delivery')", name="orders_service_type_check"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'preparing', 'ready', 'delivered', 'cancelled')",
            name="orders_status_check",
        ),
        CheckConstraint("total >= 0", name="orders_total_check"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    customer_name = Column(String, nullable=False)
    contact_number = Column(String, nullable=False)
    service_type = Column(String, nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String, nullable=False)
    reference_number = Column(String, nullable=True)
    status = Column(String, default="pending", nullable=False, server_default="pending")

    # Referral snapshot: name and code stay on the order even if the affiliate is deleted
    referred_by = Column(String, nullable=True)
    referral_code = Column(String, nullable=True)
    affiliate_id = Column(String(36), ForeignKey("affiliates.id", ondelete="SET NULL"), nullable=True, index=True)

    delivery_address = Column(Text, nullable=True)
    pickup_time = Column(String, nullable=True)
    party_size = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    affiliate = relationship("Affiliate", back_populates="orders")
