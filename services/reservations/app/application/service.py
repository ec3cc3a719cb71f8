from datetime import datetime
from math import ceil
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.application.authorization import Caller, authorize, ensure_authorized
from app.application.notifications import NotificationDispatcher
from app.application.schemas import ReservationCreate
from app.domain.errors import Conflict, Forbidden, InvalidInput, NotFound
from app.domain.lifecycle import Action, ReservationStatus, allowed_sources, can_apply, target_status, utcnow
from app.domain.models import Inventory, Medicine, Pharmacy, Reservation, Role, User
from shared.core import get_logger

logger = get_logger(__name__)


class ReservationService:
    """
    Creates reservations and moves them through their lifecycle.

    Every precondition is checked before anything is written.  Status changes
    are conditional updates gated on the expected current status, so two
    writers racing on the same reservation cannot both win.
    """

    def __init__(self, db: Session, dispatcher: Optional[NotificationDispatcher] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)
        self.clock = clock

    def get(self, caller: Caller, reservation_id: int) -> Reservation:
        reservation = self._load(reservation_id)
        if not (authorize(caller, reservation, Role.PATIENT) or authorize(caller, reservation, Role.PHARMACY)):
            raise Forbidden("You do not have access to this reservation")
        return reservation

    def list(self, caller: Caller, status: Optional[ReservationStatus] = None,
             page: int = 1, limit: int = 20) -> dict:
        query = select(Reservation)
        if caller.role == Role.PATIENT:
            query = query.where(Reservation.patient_id == caller.user_id)
        elif caller.role == Role.PHARMACY:
            query = query.where(Reservation.pharmacy_id == self._pharmacy_of(caller).id)
        else:
            raise Forbidden("Invalid role for this operation")
        if status is not None:
            query = query.where(Reservation.status == status)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        reservations = self.db.execute(
            query.order_by(Reservation.request_time.desc(), Reservation.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().unique().all()
        return {
            "reservations": list(reservations),
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": ceil(total / limit),
        }

    def create(self, caller: Caller, data: ReservationCreate) -> Reservation:
        medicine = self.db.get(Medicine, data.medicine_id)
        if medicine is None:
            raise NotFound("Medicine")
        pharmacy = self.db.get(Pharmacy, data.pharmacy_id)
        if pharmacy is None:
            raise NotFound("Pharmacy")
        inventory = self.db.execute(
            select(Inventory).where(
                Inventory.pharmacy_id == pharmacy.id,
                Inventory.medicine_id == medicine.id,
            )
        ).scalar_one_or_none()
        if inventory is None:
            raise Conflict("Medicine not available at this pharmacy")
        if data.quantity <= 0:
            raise InvalidInput("Quantity must be a positive integer")
        # stock is informational: it is checked here but never decremented
        if data.quantity > inventory.quantity:
            raise Conflict(f"Insufficient stock. Only {inventory.quantity} unit(s) available")

        reservation = Reservation(
            patient_id=caller.user_id,
            pharmacy_id=pharmacy.id,
            medicine_id=medicine.id,
            quantity=data.quantity,
            status=ReservationStatus.PENDING,
            request_time=self.clock(),
        )
        self.db.add(reservation)
        self.db.commit()
        self.db.refresh(reservation)
        logger.info(
            f"Reservation {reservation.id} created",
            extra={'extra_fields': {
                'reservation_id': reservation.id,
                'pharmacy_id': pharmacy.id,
                'medicine_id': medicine.id,
                'quantity': data.quantity,
            }}
        )

        patient = self.db.get(User, caller.user_id)
        self.dispatcher.reservation_created(
            pharmacy.user_id,
            patient.name if patient else "A patient",
            medicine.name,
            data.quantity,
        )
        return reservation

    def accept(self, caller: Caller, reservation_id: int, note: Optional[str] = None) -> Reservation:
        reservation = self._load(reservation_id)
        ensure_authorized(caller, reservation, Role.PHARMACY)
        self._transition(reservation, Action.ACCEPT, accepted_time=self.clock(), note=note or None)
        self.dispatcher.reservation_accepted(
            reservation.patient_id, reservation.pharmacy.name, reservation.medicine.name, note
        )
        return reservation

    def reject(self, caller: Caller, reservation_id: int, reason: Optional[str] = None) -> Reservation:
        reservation = self._load(reservation_id)
        ensure_authorized(caller, reservation, Role.PHARMACY)
        self._transition(reservation, Action.REJECT, rejected_time=self.clock(), note=reason or None)
        self.dispatcher.reservation_rejected(
            reservation.patient_id, reservation.pharmacy.name, reservation.medicine.name, reason
        )
        return reservation

    def cancel(self, caller: Caller, reservation_id: int) -> Reservation:
        reservation = self._load(reservation_id)
        ensure_authorized(caller, reservation, Role.PATIENT)
        # no stock is restored, creation never took any
        self._transition(reservation, Action.CANCEL)
        return reservation

    def provide_phone(self, caller: Caller, reservation_id: int, phone: str) -> Reservation:
        reservation = self._load(reservation_id)
        ensure_authorized(caller, reservation, Role.PATIENT)
        phone = phone.strip()
        if not phone:
            raise InvalidInput("Phone number is required")
        self._transition(reservation, Action.PROVIDE_PHONE, patient_phone=phone)
        self.dispatcher.patient_phone_provided(
            reservation.pharmacy.user_id,
            reservation.patient.name if reservation.patient else "A patient",
            reservation.medicine.name,
            phone,
        )
        return reservation

    def _load(self, reservation_id: int) -> Reservation:
        reservation = self.db.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFound("Reservation")
        return reservation

    def _pharmacy_of(self, caller: Caller) -> Pharmacy:
        pharmacy = self.db.execute(
            select(Pharmacy).where(Pharmacy.user_id == caller.user_id)
        ).scalar_one_or_none()
        if pharmacy is None:
            raise NotFound("Pharmacy")
        return pharmacy

    def _transition(self, reservation: Reservation, action: Action, **values) -> None:
        if not can_apply(action, reservation.status):
            raise self._not_actionable(action, reservation.status)

        sources = allowed_sources(action)
        result = self.db.execute(
            update(Reservation)
            .where(Reservation.id == reservation.id, Reservation.status.in_(list(sources)))
            .values(status=target_status(action), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # another writer moved the reservation since it was read
            self.db.rollback()
            self.db.refresh(reservation)
            raise self._not_actionable(action, reservation.status)

        previous = reservation.status
        self.db.commit()
        self.db.refresh(reservation)
        logger.info(
            f"Reservation {reservation.id} {previous.value} -> {reservation.status.value}",
            extra={'extra_fields': {
                'reservation_id': reservation.id,
                'action': action.value,
                'from_status': previous.value,
                'to_status': reservation.status.value,
            }}
        )

    @staticmethod
    def _not_actionable(action: Action, status: ReservationStatus) -> Conflict:
        return Conflict(
            f"Cannot {action.value} reservation with status {status.value}: "
            f"reservation is not in an actionable state"
        )
