"""
In-process inventory with atomic per-call stock changes.
"""

import asyncio
import dataclasses
import logging
from typing import Dict, Iterable, List, Optional

from ...application.ports.services.inventory_service import InventoryItem, InventoryService, StockDecrement
from ...domain.errors import CatalogItemNotFoundError, InsufficientStockError, InvalidVisitDataError

logger = logging.getLogger("clinicflow")


class InMemoryInventoryService(InventoryService):
    """Inventory held in a dict; every stock change runs under one lock."""

    def __init__(self, items: Iterable[InventoryItem]):
        self._items: Dict[str, InventoryItem] = {item.inventory_id: item for item in items}
        self._lock = asyncio.Lock()

    async def list_items(self) -> List[InventoryItem]:
        return list(self._items.values())

    async def get_item(self, inventory_id: str) -> Optional[InventoryItem]:
        return self._items.get(inventory_id)

    async def decrement_stock(self, inventory_id: str, quantity: int, allow_partial: bool = True) -> StockDecrement:
        if quantity <= 0:
            raise InvalidVisitDataError("quantity", quantity, "must be a positive integer")

        async with self._lock:
            item = self._items.get(inventory_id)
            if item is None:
                raise CatalogItemNotFoundError("Inventory", inventory_id)
            if item.stock < quantity and not allow_partial:
                raise InsufficientStockError(inventory_id, quantity, item.stock)

            taken = min(quantity, item.stock)
            remaining = item.stock - taken
            self._items[inventory_id] = dataclasses.replace(item, stock=remaining)

        logger.info(f"Stock for {inventory_id}: -{taken} (remaining {remaining})")
        return StockDecrement(inventory_id=inventory_id, requested=quantity, decremented=taken, remaining=remaining)

    async def restock(self, inventory_id: str, quantity: int) -> int:
        if quantity <= 0:
            raise InvalidVisitDataError("quantity", quantity, "must be a positive integer")

        async with self._lock:
            item = self._items.get(inventory_id)
            if item is None:
                raise CatalogItemNotFoundError("Inventory", inventory_id)
            stock = item.stock + quantity
            self._items[inventory_id] = dataclasses.replace(item, stock=stock)

        logger.info(f"Stock for {inventory_id}: +{quantity} (now {stock})")
        return stock
