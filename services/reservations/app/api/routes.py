from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_caller, get_clock, require_role, verify_cron_secret
from app.application.authorization import Caller
from app.application.schemas import (
    AcceptReservation, ProvidePhone, RejectReservation, ReservationCreate,
    ReservationPage, ReservationRead, SweepResult,
)
from app.application.service import ReservationService
from app.application.sweeper import TimeoutSweeper
from app.domain.lifecycle import ReservationStatus, utcnow
from app.domain.models import Role
from app.infrastructure.db import get_db
from app.infrastructure.scheduler import get_sweeper

router = APIRouter(prefix="/reservations", tags=["reservations"])
cron_router = APIRouter(prefix="/cron", tags=["cron"])

patient_only = require_role(Role.PATIENT, "Only patients can perform this action on reservations")
pharmacy_only = require_role(Role.PHARMACY, "Only pharmacies can respond to reservations")


def _service(db: Session, clock: Callable[[], datetime]) -> ReservationService:
    return ReservationService(db, clock=clock)


@router.get("/", response_model=ReservationPage)
def list_reservations(
    status: Optional[ReservationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Patients see their own reservations, pharmacies see the ones placed with them."""
    return ReservationService(db).list(caller, status=status, page=page, limit=limit)


@router.post("/", response_model=ReservationRead, status_code=201)
def create_reservation(
    payload: ReservationCreate,
    caller: Caller = Depends(require_role(Role.PATIENT, "Only patients can create reservations")),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _service(db, clock).create(caller, payload)


@router.get("/{reservation_id}", response_model=ReservationRead)
def get_reservation(reservation_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ReservationService(db).get(caller, reservation_id)


@router.put("/{reservation_id}/accept", response_model=ReservationRead)
def accept_reservation(
    reservation_id: int,
    payload: Optional[AcceptReservation] = None,
    caller: Caller = Depends(pharmacy_only),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    note = payload.note if payload else None
    return _service(db, clock).accept(caller, reservation_id, note)


@router.put("/{reservation_id}/reject", response_model=ReservationRead)
def reject_reservation(
    reservation_id: int,
    payload: Optional[RejectReservation] = None,
    caller: Caller = Depends(pharmacy_only),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    reason = payload.reason if payload else None
    return _service(db, clock).reject(caller, reservation_id, reason)


@router.put("/{reservation_id}/cancel", response_model=ReservationRead)
def cancel_reservation(
    reservation_id: int,
    caller: Caller = Depends(patient_only),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _service(db, clock).cancel(caller, reservation_id)


@router.put("/{reservation_id}/provide-phone", response_model=ReservationRead)
def provide_phone(
    reservation_id: int,
    payload: ProvidePhone,
    caller: Caller = Depends(patient_only),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _service(db, clock).provide_phone(caller, reservation_id, payload.phone)


@cron_router.api_route(
    "/check-timeouts",
    methods=["GET", "POST"],
    response_model=SweepResult,
    dependencies=[Depends(verify_cron_secret)],
)
def check_timeouts(sweeper: TimeoutSweeper = Depends(get_sweeper)):
    """Trigger a sweep on demand; the server also sweeps on its own schedule."""
    updated = sweeper.sweep()
    return SweepResult(
        message=f"Processed {len(updated)} timed-out reservations",
        updated_reservation_ids=updated,
        timestamp=utcnow(),
    )
