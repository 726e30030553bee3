import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    String,
    Integer,
    Numeric,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from rfq_api.database import Base

RFQ_STATUSES = ("draft", "published", "closed", "cancelled")
DISTRIBUTION_TYPES = ("all", "category", "specific")
RESPONSE_STATUSES = ("pending", "submitted", "accepted", "rejected")


def _new_id() -> str:
    return str(uuid.uuid4())


class Rfq(Base):
    __tablename__ = "rfqs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[Optional[str]] = mapped_column(String(36))
    category_id: Mapped[Optional[str]] = mapped_column(String(36))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False, default="pieces")
    budget_min: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False))
    budget_max: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False))
    delivery_location: Mapped[Optional[str]] = mapped_column(String(300))
    buyer_id: Mapped[Optional[str]] = mapped_column(String(36))
    admin_id: Mapped[Optional[str]] = mapped_column(String(36))
    contact_name: Mapped[Optional[str]] = mapped_column(String(200))
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    distribution_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="all"
    )
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    # JSON (not JSONB) keeps key insertion order.
    specifications: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    attachments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','published','closed','cancelled')",
            name="chk_rfq_status",
        ),
        CheckConstraint(
            "distribution_type IN ('all','category','specific')",
            name="chk_rfq_distribution_type",
        ),
        CheckConstraint("quantity >= 1", name="chk_rfq_quantity"),
        Index("idx_rfqs_buyer", "buyer_id"),
        Index("idx_rfqs_status", "status"),
        Index("idx_rfqs_created_at", "created_at"),
        Index("idx_rfqs_contact_email", "contact_email"),
    )


class RfqTargetSeller(Base):
    """Explicit seller allow-list. The composite key makes it a set."""

    __tablename__ = "rfq_target_sellers"

    rfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rfqs.id", ondelete="CASCADE"), primary_key=True
    )
    seller_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class RfqQuote(Base):
    """A seller's response to an RFQ; one row per (rfq, seller)."""

    __tablename__ = "rfq_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    rfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False
    )
    seller_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quote_price: Mapped[float] = mapped_column(
        Numeric(14, 2, asdecimal=False), nullable=False
    )
    quote_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    delivery_time_days: Mapped[Optional[int]] = mapped_column(Integer)
    message: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    # Not touched on resubmission, so ordering by it keeps a seller's slot.
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("rfq_id", "seller_id", name="uq_rfq_response_seller"),
        CheckConstraint("quote_price >= 0", name="chk_rfq_response_price"),
        CheckConstraint(
            "status IN ('pending','submitted','accepted','rejected')",
            name="chk_rfq_response_status",
        ),
        Index("idx_rfq_responses_seller", "seller_id"),
    )
