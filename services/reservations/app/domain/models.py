from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, DateTime, UniqueConstraint, Index, CheckConstraint
from sqlalchemy import Enum as SQLEnum
from datetime import datetime
from enum import Enum
from typing import Optional

from app.domain.lifecycle import ReservationStatus, utcnow
from app.domain.inventory_status import StockStatus


class Base(DeclarativeBase):
    pass


class Role(str, Enum):
    PATIENT = "PATIENT"
    PHARMACY = "PHARMACY"
    ADMIN = "ADMIN"


def _enum_column(enum_cls):
    # stored as plain VARCHAR so migrations stay dialect neutral
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[Role] = mapped_column(_enum_column(Role), default=Role.PATIENT)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Medicine(Base):
    __tablename__ = "medicines"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    active_ingredient: Mapped[str] = mapped_column(String(200))
    dosage: Mapped[str] = mapped_column(String(100))
    prescription_required: Mapped[bool] = mapped_column(Boolean, default=False)
    category: Mapped[str] = mapped_column(String(100))
    price_range: Mapped[str] = mapped_column(String(50))


class Pharmacy(Base):
    __tablename__ = "pharmacies"
    id: Mapped[int] = mapped_column(primary_key=True)
    # owning pharmacy-staff account
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    name: Mapped[str] = mapped_column(String(200))
    address: Mapped[str] = mapped_column(String(300))
    phone: Mapped[str] = mapped_column(String(50))
    working_hours: Mapped[str] = mapped_column(String(200))
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)


class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("pharmacy_id", "medicine_id", name="uq_inventory_pharmacy_medicine"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    pharmacy_id: Mapped[int] = mapped_column(ForeignKey("pharmacies.id"), index=True)
    medicine_id: Mapped[int] = mapped_column(ForeignKey("medicines.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    status: Mapped[StockStatus] = mapped_column(_enum_column(StockStatus))
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    medicine: Mapped[Medicine] = relationship("Medicine", lazy="joined")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        # sweeper scan: status = PENDING AND request_time <= cutoff
        Index("ix_reservations_status_request_time", "status", "request_time"),
        CheckConstraint("quantity > 0", name="ck_reservations_quantity_positive"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    pharmacy_id: Mapped[int] = mapped_column(ForeignKey("pharmacies.id"), index=True)
    medicine_id: Mapped[int] = mapped_column(ForeignKey("medicines.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    status: Mapped[ReservationStatus] = mapped_column(
        _enum_column(ReservationStatus), default=ReservationStatus.PENDING
    )
    request_time: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    accepted_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejected_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    no_response_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    patient_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    patient: Mapped[User] = relationship("User", lazy="joined")
    pharmacy: Mapped[Pharmacy] = relationship("Pharmacy", lazy="joined")
    medicine: Mapped[Medicine] = relationship("Medicine", lazy="joined")


class Notification(Base):
    __tablename__ = "notifications"
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    type: Mapped[str] = mapped_column(String(50))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
