from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

from app.domain.inventory_status import StockStatus
from app.domain.lifecycle import ReservationStatus


class CamelModel(BaseModel):
    # JSON bodies use camelCase, python attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ReservationCreate(CamelModel):
    pharmacy_id: int
    medicine_id: int
    # positivity is checked by the engine, after the existence checks
    quantity: int


class AcceptReservation(CamelModel):
    note: Optional[str] = None


class RejectReservation(CamelModel):
    reason: Optional[str] = None


class ProvidePhone(CamelModel):
    phone: str = Field(min_length=1)


class MedicineSummary(CamelModel):
    id: int
    name: str
    active_ingredient: str
    dosage: str
    prescription_required: bool
    category: str
    price_range: str


class PharmacySummary(CamelModel):
    id: int
    name: str
    address: str
    phone: str
    working_hours: str


class PatientSummary(CamelModel):
    id: int
    name: str
    phone: Optional[str] = None


class ReservationRead(CamelModel):
    id: int
    patient_id: int
    pharmacy_id: int
    medicine_id: int
    quantity: int
    status: ReservationStatus
    request_time: datetime
    accepted_time: Optional[datetime] = None
    rejected_time: Optional[datetime] = None
    no_response_time: Optional[datetime] = None
    patient_phone: Optional[str] = None
    note: Optional[str] = None
    medicine: MedicineSummary
    pharmacy: PharmacySummary
    patient: Optional[PatientSummary] = None


class ReservationPage(CamelModel):
    reservations: list[ReservationRead]
    total: int
    page: int
    limit: int
    total_pages: int


class SweepResult(CamelModel):
    success: bool = True
    message: str
    updated_reservation_ids: list[int]
    timestamp: datetime


class InventoryCreate(CamelModel):
    medicine_id: int
    quantity: int = Field(ge=0)


class InventoryUpdate(CamelModel):
    quantity: int = Field(ge=0)


class InventoryRead(CamelModel):
    id: int
    pharmacy_id: int
    medicine_id: int
    quantity: int
    status: StockStatus
    last_updated: datetime
    medicine: Optional[MedicineSummary] = None


class NotificationRead(CamelModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


class NotificationList(CamelModel):
    notifications: list[NotificationRead]
    unread_count: int


class MarkAllReadResult(CamelModel):
    updated: int
