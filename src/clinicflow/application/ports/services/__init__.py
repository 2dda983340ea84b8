from .event_publisher import EventPublisher
from .inventory_service import InventoryItem, InventoryService, StockDecrement
from .lab_catalog import LabCatalog, LabTest

__all__ = [
    "EventPublisher",
    "InventoryItem",
    "InventoryService",
    "StockDecrement",
    "LabCatalog",
    "LabTest",
]
