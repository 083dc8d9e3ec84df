# app/models/menu.py
from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from .affiliate import _uuid


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=False, index=True)
    image = Column(String, nullable=True)
    popular = Column(Boolean, default=False, nullable=False, server_default="false")
    available = Column(Boolean, default=True, nullable=False, server_default="true")

    discount_price = Column(Numeric(10, 2), nullable=True)
    discount_start_date = Column(DateTime(timezone=True), nullable=True)
    discount_end_date = Column(DateTime(timezone=True), nullable=True)
    discount_active = Column(Boolean, default=False, nullable=False, server_default="false")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    variations = relationship("Variation", back_populates="menu_item", cascade="all, delete-orphan")
    add_ons = relationship("AddOn", back_populates="menu_item", cascade="all, delete-orphan")


class Variation(Base):
    __tablename__ = "variations"

    id = Column(String(36), primary_key=True, default=_uuid)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    menu_item = relationship("MenuItem", back_populates="variations")


class AddOn(Base):
    __tablename__ = "add_ons"

    id = Column(String(36), primary_key=True, default=_uuid)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False, server_default="0")
    category = Column(String, nullable=False, server_default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    menu_item = relationship("MenuItem", back_populates="add_ons")


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    # Short slug such as "gcash"; the checkout form sends it
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    account_number = Column(String, nullable=False, server_default="")
    account_name = Column(String, nullable=False, server_default="")
    qr_code_url = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False, server_default="true")
    sort_order = Column(Integer, default=0, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
