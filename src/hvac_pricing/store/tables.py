"""
SQLAlchemy ORM models for the pricing tool.

Users live in the external identity provider, so user ids are plain strings.
"""
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, Numeric,
    ForeignKey, Index, CheckConstraint, text
)
from sqlalchemy.orm import relationship

from .db import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InquiryStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = (InquiryStatus.APPROVED, InquiryStatus.REJECTED)

# Currency and coefficients; six decimal places survives SQLite's float storage
MONEY_PRECISION = 18
MONEY_SCALE = 6
Money = Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)


def money_overflow(value: Decimal) -> Optional[str]:
    """
    Describe why a Decimal cannot be stored in a Money column unchanged.

    Returns None when the value round-trips exactly.
    """
    exponent = value.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -MONEY_SCALE:
        return f"has more than {MONEY_SCALE} decimal places"
    if abs(value) >= Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE):
        return f"exceeds {MONEY_PRECISION - MONEY_SCALE} integer digits"
    return None


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    devices = relationship("DeviceRecord", back_populates="category")


class DeviceRecord(Base):
    __tablename__ = "devices"
    __table_args__ = (
        CheckConstraint("factory_price > 0", name="ck_devices_factory_price_positive"),
        CheckConstraint("length > 0", name="ck_devices_length_positive"),
        CheckConstraint("weight > 0", name="ck_devices_weight_positive"),
        Index("ix_devices_category_model", "category_id", "model_name"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    model_name = Column(String(255), nullable=False)
    factory_price = Column(Money, nullable=False)
    length = Column(Money, nullable=False)
    weight = Column(Money, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="devices")


class ParameterSetRecord(Base):
    """
    One version of the global pricing coefficients.

    Rows are never updated except to clear is_active when a newer version
    is published, and never deleted.
    """
    __tablename__ = "parameter_sets"

    id = Column(String(36), primary_key=True, default=new_id)
    discount_multiplier = Column(Money, nullable=False)
    freight_rate_per_length = Column(Money, nullable=False)
    customs_numerator = Column(Money, nullable=False)
    customs_denominator = Column(Money, nullable=False)
    warranty_rate = Column(Money, nullable=False)
    internal_commission_factor = Column(Money, nullable=False)
    company_cost_factor = Column(Money, nullable=False)
    profit_factor = Column(Money, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False, index=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    comments = relationship("Comment", back_populates="project", order_by="Comment.created_at")
    inquiries = relationship("InquiryLogRecord", back_populates="project")


class InquiryLogRecord(Base):
    """
    Immutable snapshot of one price request.

    Only status, admin_response_time and responded_by ever change, once.
    """
    __tablename__ = "inquiry_logs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_inquiry_logs_status",
        ),
        # At most one pending request per (user, device, project)
        Index(
            "uq_inquiry_logs_pending_triple",
            "user_id", "device_id", "project_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, index=True)
    device_id = Column(String(36), ForeignKey("devices.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    parameter_set_id = Column(String(36), ForeignKey("parameter_sets.id"), nullable=False)
    category_name_snapshot = Column(String(255), nullable=False)
    model_name_snapshot = Column(String(255), nullable=False)
    sell_price_snapshot = Column(Money, nullable=False)
    # Device inputs as priced, so the breakdown can be replayed later
    factory_price_snapshot = Column(Money, nullable=False)
    length_snapshot = Column(Money, nullable=False)
    weight_snapshot = Column(Money, nullable=False)
    status = Column(String(16), nullable=False, default=InquiryStatus.PENDING.value)
    admin_response_time = Column(DateTime(timezone=True), nullable=True)
    responded_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    project = relationship("Project", back_populates="inquiries")
    parameter_set = relationship("ParameterSetRecord")


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'employee')", name="ck_comments_role"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)
    user_full_name = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    project = relationship("Project", back_populates="comments")
