"""
SQLAlchemy models.

Alert is the only table the engine writes. The domain tables below it
(customers, vehicles, rentals, payments, quotes, leads) belong to the
rental back office and are read-only here.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetalert.db.compat import JSONType
from fleetalert.db.engine import Base


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Shared by the partial unique index and the upsert conflict target.
ACTIVE_ALERT_PREDICATE = "is_resolved = false"


# ──────────────────────────────────────────────────────────────────────────────
# Alerts
# ──────────────────────────────────────────────────────────────────────────────


class Alert(Base):
    """
    Generated alert with lifecycle fields.

    At most one unresolved row per (alert_type, entity_type, entity_id).
    """

    __tablename__ = "alerts"
    __table_args__ = (
        Index(
            "uq_alerts_active_natural_key",
            "alert_type", "entity_type", "entity_id",
            unique=True,
            sqlite_where=text(ACTIVE_ALERT_PREDICATE),
            postgresql_where=text(ACTIVE_ALERT_PREDICATE),
        ),
        Index("ix_alerts_alert_type", "alert_type"),
        Index("ix_alerts_severity", "severity"),
        Index("ix_alerts_is_resolved", "is_resolved"),
        Index("ix_alerts_expires_at", "expires_at"),
        Index("ix_alerts_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Subject
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(50), nullable=False)
    context: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)

    # Lifecycle
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(128))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


# ──────────────────────────────────────────────────────────────────────────────
# Domain (read-only)
# ──────────────────────────────────────────────────────────────────────────────


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    contact_person: Mapped[Optional[str]] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))

    @property
    def display_name(self) -> str:
        return self.name or self.contact_person or f"customer #{self.id}"


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    license_plate: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("vehicle_types.id"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="available")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_maintenance: Mapped[Optional[date]] = mapped_column(Date)
    insurance_expiry: Mapped[Optional[date]] = mapped_column(Date)

    @property
    def label(self) -> str:
        return f"{self.make} {self.model} ({self.license_plate})"


class Rental(Base):
    __tablename__ = "rentals"
    __table_args__ = (
        Index("ix_rentals_status_end_date", "status", "end_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    rental_code: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"))
    vehicle_id: Mapped[Optional[int]] = mapped_column(ForeignKey("vehicles.id"))
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="reserved")

    customer: Mapped[Optional["Customer"]] = relationship()
    vehicle: Mapped[Optional["Vehicle"]] = relationship()


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    payment_code: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"))
    rental_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rentals.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    customer: Mapped[Optional["Customer"]] = relationship()


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    quote_code: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    customer: Mapped[Optional["Customer"]] = relationship()


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lead_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    estimated_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    next_follow_up: Mapped[Optional[datetime]] = mapped_column(DateTime)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
