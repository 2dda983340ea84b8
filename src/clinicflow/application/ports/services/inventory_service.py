"""
Inventory collaborator interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union


@dataclass(frozen=True)
class InventoryItem:
    """Stock item as listed in the pharmacy catalog."""

    inventory_id: str
    name: str
    stock: int
    unit: str
    category: str  # Medicine, Supply, Lab
    price: Union[int, float, Decimal]


@dataclass(frozen=True)
class StockDecrement:
    """Outcome of one decrement call."""

    inventory_id: str
    requested: int
    decremented: int
    remaining: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.decremented


class InventoryService(ABC):
    """Inventory service interface."""

    @abstractmethod
    async def list_items(self) -> List[InventoryItem]:
        """List catalog items (read-only view for order entry)."""
        pass

    @abstractmethod
    async def get_item(self, inventory_id: str) -> Optional[InventoryItem]:
        """Find an item by ID."""
        pass

    @abstractmethod
    async def decrement_stock(self, inventory_id: str, quantity: int, allow_partial: bool = True) -> StockDecrement:
        """Remove ``quantity`` units.

        With ``allow_partial`` the stock floors at zero and the shortfall is
        reported on the result; without it, ``InsufficientStockError`` is raised
        and the stock is untouched. Unknown items raise ``CatalogItemNotFoundError``.
        """
        pass

    @abstractmethod
    async def restock(self, inventory_id: str, quantity: int) -> int:
        """Add ``quantity`` units back; returns the new stock level."""
        pass
