"""Notification dispatch and the per-user mailbox."""
from enum import Enum
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.domain.errors import Forbidden, NotFound
from app.domain.lifecycle import PICKUP_WINDOW_MINUTES, RESPONSE_WINDOW, utcnow
from app.domain.models import Notification
from shared.core import get_logger

logger = get_logger(__name__)


class NotificationType(str, Enum):
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_ACCEPTED = "reservation_accepted"
    RESERVATION_REJECTED = "reservation_rejected"
    RESERVATION_NO_RESPONSE = "reservation_no_response"


class NotificationDispatcher:
    """
    Writes notifications to recipients' mailboxes.

    Dispatch is best effort from the caller's point of view: ``enqueue``
    never raises, it logs the failure and returns False.  Callers commit
    their own state change before dispatching, so a failed dispatch can
    never roll a transition back.
    """

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, user_id: int, type: NotificationType, title: str, message: str) -> bool:
        try:
            self._persist(user_id, type, title, message)
            return True
        except Exception:
            self.db.rollback()
            logger.warning(
                "Notification dispatch failed",
                exc_info=True,
                extra={'extra_fields': {'recipient_id': user_id, 'type': type.value}}
            )
            return False

    def _persist(self, user_id: int, type: NotificationType, title: str, message: str) -> None:
        self.db.add(Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            is_read=False,
            created_at=utcnow(),
        ))
        self.db.commit()

    def reservation_created(self, pharmacy_user_id: int, patient_name: str, medicine_name: str, quantity: int) -> bool:
        minutes = int(RESPONSE_WINDOW.total_seconds() // 60)
        return self.enqueue(
            pharmacy_user_id,
            NotificationType.RESERVATION_CREATED,
            "New Reservation Request",
            f"{patient_name} has requested {quantity} unit(s) of {medicine_name}. "
            f"Please respond within {minutes} minutes.",
        )

    def reservation_accepted(self, patient_id: int, pharmacy_name: str, medicine_name: str,
                             note: Optional[str] = None) -> bool:
        message = f"{pharmacy_name} has accepted your reservation for {medicine_name}."
        if note:
            message += f" Note: {note}."
        message += f" Please pick up within {PICKUP_WINDOW_MINUTES} minutes."
        return self.enqueue(patient_id, NotificationType.RESERVATION_ACCEPTED, "Reservation Accepted", message)

    def reservation_rejected(self, patient_id: int, pharmacy_name: str, medicine_name: str,
                             reason: Optional[str] = None) -> bool:
        message = f"{pharmacy_name} has rejected your reservation for {medicine_name}."
        if reason:
            message += f" Reason: {reason}"
        return self.enqueue(patient_id, NotificationType.RESERVATION_REJECTED, "Reservation Rejected", message)

    def reservation_no_response(self, patient_id: int, pharmacy_name: str, medicine_name: str) -> bool:
        return self.enqueue(
            patient_id,
            NotificationType.RESERVATION_NO_RESPONSE,
            "Pharmacy Response Needed",
            f"{pharmacy_name} hasn't responded to your reservation for {medicine_name} yet. "
            f"Please provide your phone number so they can contact you.",
        )

    def patient_phone_provided(self, pharmacy_user_id: int, patient_name: str, medicine_name: str,
                               phone: str) -> bool:
        return self.enqueue(
            pharmacy_user_id,
            NotificationType.RESERVATION_NO_RESPONSE,
            "Patient Phone Number Provided",
            f"{patient_name} has provided their phone number ({phone}) for the {medicine_name} "
            f"reservation. Please contact them to complete the reservation.",
        )


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def list_for(self, user_id: int) -> tuple[list[Notification], int]:
        notifications = self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        ).scalars().all()
        unread = sum(1 for n in notifications if not n.is_read)
        return list(notifications), unread

    def mark_read(self, user_id: int, notification_id: int) -> Notification:
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification")
        if notification.user_id != user_id:
            raise Forbidden("This notification does not belong to you")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

