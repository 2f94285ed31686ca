"""Stateless inventory computations for the cruise form."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from api.routes.schemas import InventoryIn
from domain.inventory import (
    CANONICAL_CATEGORIES,
    PRODUCT_CATEGORY_MAP,
    PRODUCT_DBH_CLASSES,
    aggregate_inventory,
)
from domain.report import summarize_inventory

router = APIRouter()


@router.get("/catalogue")
async def product_catalogue() -> Dict[str, Any]:
    """Products, their default DBH classes and the grand-total categories."""
    return {
        "categories": list(CANONICAL_CATEGORIES),
        "productCategories": dict(PRODUCT_CATEGORY_MAP),
        "dbhClasses": {product: list(classes) for product, classes in PRODUCT_DBH_CLASSES.items()},
    }


@router.post("/totals")
async def inventory_totals(body: InventoryIn) -> Dict[str, Any]:
    return aggregate_inventory(body.stands(), property_acreage=body.property_acreage).to_dict()


@router.post("/summary")
async def inventory_summary(body: InventoryIn) -> Dict[str, Any]:
    return summarize_inventory(body.stands()).to_dict()
