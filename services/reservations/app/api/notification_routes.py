from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_caller
from app.application.authorization import Caller
from app.application.notifications import NotificationService
from app.application.schemas import MarkAllReadResult, NotificationList, NotificationRead
from app.infrastructure.db import get_db

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationList)
def list_notifications(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """Newest first, with the number still unread."""
    notifications, unread = NotificationService(db).list_for(caller.user_id)
    return {"notifications": notifications, "unread_count": unread}


@router.put("/mark-all-read", response_model=MarkAllReadResult)
def mark_all_read(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return {"updated": NotificationService(db).mark_all_read(caller.user_id)}


@router.put("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return NotificationService(db).mark_read(caller.user_id, notification_id)
