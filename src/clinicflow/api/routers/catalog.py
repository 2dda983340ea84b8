"""Read-only catalogs used for order entry."""

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..deps import InventoryServiceDep, LabCatalogDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/workflow/catalog", tags=["catalog"])


class LabTestSchema(BaseModel):
    test_id: str
    name: str
    price: Decimal
    category: str


class InventoryItemSchema(BaseModel):
    inventory_id: str
    name: str
    stock: int
    unit: str
    category: str
    price: Decimal


@router.get("/lab-tests", response_model=ApiResponse[List[LabTestSchema]])
async def list_lab_tests(request: Request, catalog: LabCatalogDep):
    tests = await catalog.list_tests()
    return ok(
        request,
        data=[LabTestSchema(test_id=t.test_id, name=t.name, price=t.price, category=t.category) for t in tests],
    )


@router.get("/inventory", response_model=ApiResponse[List[InventoryItemSchema]])
async def list_inventory(request: Request, inventory: InventoryServiceDep):
    items = await inventory.list_items()
    return ok(
        request,
        data=[
            InventoryItemSchema(
                inventory_id=i.inventory_id,
                name=i.name,
                stock=i.stock,
                unit=i.unit,
                category=i.category,
                price=i.price,
            )
            for i in items
        ],
    )
