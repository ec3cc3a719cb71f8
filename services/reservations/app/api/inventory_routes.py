from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_clock, require_role
from app.application.authorization import Caller
from app.application.inventory import InventoryService
from app.application.schemas import InventoryCreate, InventoryRead, InventoryUpdate
from app.domain.inventory_status import StockStatus
from app.domain.models import Role
from app.infrastructure.db import get_db

router = APIRouter(prefix="/inventory", tags=["inventory"])

pharmacy_staff = require_role(Role.PHARMACY, "Pharmacy access required")


@router.get("/", response_model=list[InventoryRead])
def list_inventory(
    status: Optional[StockStatus] = None,
    caller: Caller = Depends(pharmacy_staff),
    db: Session = Depends(get_db),
):
    return InventoryService(db).list(caller, status)


@router.post("/", response_model=InventoryRead, status_code=201)
def create_inventory(
    payload: InventoryCreate,
    caller: Caller = Depends(pharmacy_staff),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return InventoryService(db, clock).create(caller, payload)


@router.put("/{inventory_id}", response_model=InventoryRead)
def update_inventory(
    inventory_id: int,
    payload: InventoryUpdate,
    caller: Caller = Depends(pharmacy_staff),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return InventoryService(db, clock).update(caller, inventory_id, payload)
