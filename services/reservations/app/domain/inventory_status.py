from enum import Enum

LOW_STOCK_THRESHOLD = 10


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


def derive_status(quantity: int) -> StockStatus:
    """Stock status for a quantity; persist it in the same write as the quantity."""
    if quantity < 0:
        raise ValueError("Inventory quantity cannot be negative")
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= LOW_STOCK_THRESHOLD:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
