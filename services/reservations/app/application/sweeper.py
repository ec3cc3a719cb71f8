"""
Timeout sweeper

Moves reservations that have waited out the pharmacy response window from
PENDING to NO_RESPONSE and tells the patient.  Safe to run from several
schedulers at once: the write is a compare-and-set on status, so each
reservation is transitioned, and its patient notified, at most once.
"""
import threading
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from app.application.notifications import NotificationDispatcher
from app.domain.lifecycle import Action, ReservationStatus, allowed_sources, overdue_cutoff, target_status, utcnow
from app.domain.models import Reservation
from shared.core import get_logger

logger = get_logger(__name__)


class TimeoutSweeper:
    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = utcnow,
        dispatcher_factory: Callable[[Session], NotificationDispatcher] = NotificationDispatcher,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.dispatcher_factory = dispatcher_factory
        self._stats_lock = threading.Lock()
        self.runs = 0
        self.transitioned_total = 0
        self.failures_total = 0
        self.last_run_at: Optional[datetime] = None

    def sweep(self, now: Optional[datetime] = None) -> list[int]:
        """Run one pass and return the ids this pass actually transitioned."""
        now = now or self.clock()
        updated: list[int] = []
        failures = 0

        with self.session_factory() as db:
            candidates = db.execute(
                select(Reservation.id)
                .where(
                    Reservation.status == ReservationStatus.PENDING,
                    Reservation.request_time <= overdue_cutoff(now),
                )
                .order_by(Reservation.request_time)
            ).scalars().all()
            dispatcher = self.dispatcher_factory(db)

            for reservation_id in candidates:
                try:
                    if self._expire(db, dispatcher, reservation_id, now):
                        updated.append(reservation_id)
                except Exception:
                    failures += 1
                    db.rollback()
                    logger.error(
                        f"Failed to process timeout for reservation {reservation_id}",
                        exc_info=True,
                        extra={'extra_fields': {'reservation_id': reservation_id}}
                    )

        with self._stats_lock:
            self.runs += 1
            self.transitioned_total += len(updated)
            self.failures_total += failures
            self.last_run_at = now

        logger.info(
            f"Sweep processed {len(candidates)} overdue reservation(s), transitioned {len(updated)}",
            extra={'extra_fields': {'candidates': len(candidates), 'transitioned': updated, 'failures': failures}}
        )
        return updated

    def _expire(self, db: Session, dispatcher: NotificationDispatcher, reservation_id: int,
                now: datetime) -> bool:
        result = db.execute(
            update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.status.in_(list(allowed_sources(Action.SWEEP))),
            )
            .values(status=target_status(Action.SWEEP), no_response_time=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # answered, cancelled or swept by someone else in the meantime
            db.rollback()
            return False
        db.commit()

        # the transition is committed; from here on nothing may undo or uncount it
        try:
            reservation = db.get(Reservation, reservation_id)
            dispatcher.reservation_no_response(
                reservation.patient_id, reservation.pharmacy.name, reservation.medicine.name
            )
        except Exception:
            db.rollback()
            logger.warning(
                f"Could not notify patient of timeout for reservation {reservation_id}",
                exc_info=True,
                extra={'extra_fields': {'reservation_id': reservation_id}}
            )
        return True

    def stats(self) -> dict:
        with self._stats_lock:
            return {
                "runs": self.runs,
                "transitioned_total": self.transitioned_total,
                "failures_total": self.failures_total,
                "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            }
