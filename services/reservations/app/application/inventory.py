from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.application.authorization import Caller
from app.domain.errors import Conflict, Forbidden, NotFound
from app.domain.inventory_status import StockStatus, derive_status
from app.domain.lifecycle import utcnow
from app.domain.models import Inventory, Medicine, Pharmacy
from .schemas import InventoryCreate, InventoryUpdate

DUPLICATE_MESSAGE = "Medicine already exists in inventory. Use PUT to update quantity."


class InventoryService:
    """Pharmacy-side stock maintenance. Quantity and status are always written together."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def list(self, caller: Caller, status: Optional[StockStatus] = None):
        query = select(Inventory).where(Inventory.pharmacy_id == self._pharmacy_of(caller).id)
        if status is not None:
            query = query.where(Inventory.status == status)
        return self.db.execute(query.order_by(Inventory.id)).scalars().all()

    def create(self, caller: Caller, data: InventoryCreate) -> Inventory:
        pharmacy = self._pharmacy_of(caller)
        if self.db.get(Medicine, data.medicine_id) is None:
            raise NotFound("Medicine")
        existing = self.db.execute(
            select(Inventory.id).where(
                Inventory.pharmacy_id == pharmacy.id,
                Inventory.medicine_id == data.medicine_id,
            )
        ).first()
        if existing:
            raise Conflict(DUPLICATE_MESSAGE)

        item = Inventory(
            pharmacy_id=pharmacy.id,
            medicine_id=data.medicine_id,
            quantity=data.quantity,
            status=derive_status(data.quantity),
            last_updated=self.clock(),
        )
        self.db.add(item)
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent create for the same pair
            self.db.rollback()
            raise Conflict(DUPLICATE_MESSAGE)
        self.db.refresh(item)
        return item

    def update(self, caller: Caller, inventory_id: int, data: InventoryUpdate) -> Inventory:
        pharmacy = self._pharmacy_of(caller)
        item = self.db.get(Inventory, inventory_id)
        if item is None:
            raise NotFound("Inventory item")
        if item.pharmacy_id != pharmacy.id:
            raise Forbidden("Cannot update inventory for another pharmacy")
        item.quantity = data.quantity
        item.status = derive_status(data.quantity)
        item.last_updated = self.clock()
        self.db.commit()
        self.db.refresh(item)
        return item

    def _pharmacy_of(self, caller: Caller) -> Pharmacy:
        pharmacy = self.db.execute(
            select(Pharmacy).where(Pharmacy.user_id == caller.user_id)
        ).scalar_one_or_none()
        if pharmacy is None:
            raise NotFound("Pharmacy")
        return pharmacy
