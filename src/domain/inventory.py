"""Timber inventory aggregation.

Rolls a cruise (stands -> products -> DBH rows) up into per-stand totals and
the five grand-total categories. Pure computation: nothing here touches the
store, so the same stored cruise always yields the same figures.

Only rows recorded in Tons count toward volume. MBF rows are carried as
their own figure and are never converted into tons.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.exceptions import InvalidArgumentError
from core.logging_config import get_logger
from core.types import ProductEntry, Stand

LOGGER = get_logger(__name__)

ENTIRE_TRACT = "Entire Tract"

PINE_SAWTIMBER = "Pine Sawtimber"
PINE_CHIP_N_SAW = "Pine Chip-n-Saw"
PINE_PULPWOOD = "Pine Pulpwood"
HARDWOOD_SAWTIMBER = "Hardwood Sawtimber"
HARDWOOD_PULPWOOD = "Hardwood Pulpwood"

CANONICAL_CATEGORIES = (
    PINE_SAWTIMBER,
    PINE_CHIP_N_SAW,
    PINE_PULPWOOD,
    HARDWOOD_SAWTIMBER,
    HARDWOOD_PULPWOOD,
)

# Species products folded into a canonical category for grand totals
PRODUCT_CATEGORY_MAP = {
    "Red Oak Sawtimber": HARDWOOD_SAWTIMBER,
    "White Oak Sawtimber": HARDWOOD_SAWTIMBER,
    "Oak Sawtimber": HARDWOOD_SAWTIMBER,
    "Gum Sawtimber": HARDWOOD_SAWTIMBER,
    "Ash Sawtimber": HARDWOOD_SAWTIMBER,
    "Hickory Sawtimber": HARDWOOD_SAWTIMBER,
    "Misc. Hardwood Sawtimber": HARDWOOD_SAWTIMBER,
    "Cypress Sawtimber": HARDWOOD_SAWTIMBER,
    "Pine Topwood": PINE_PULPWOOD,
}

_HARDWOOD_SAW_CLASSES = ('14"', '16"', '18"', '20"', '22"', '24"')

# Default DBH classes offered per product on the cruise form
PRODUCT_DBH_CLASSES: Dict[str, tuple] = {
    PINE_SAWTIMBER: ('12"', '14"', '16"', '18"', '20"', '22"', '24"'),
    PINE_CHIP_N_SAW: ('8"', '10"', '12"'),
    PINE_PULPWOOD: ('6"', '8"', '10"'),
    "Pine Topwood": ('4"', '6"'),
    "Red Oak Sawtimber": _HARDWOOD_SAW_CLASSES,
    "White Oak Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Oak Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Gum Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Ash Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Hickory Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Misc. Hardwood Sawtimber": _HARDWOOD_SAW_CLASSES,
    "Cypress Sawtimber": _HARDWOOD_SAW_CLASSES,
    HARDWOOD_SAWTIMBER: _HARDWOOD_SAW_CLASSES,
    HARDWOOD_PULPWOOD: ('6"', '8"', '10"', '12"'),
}


def categorize_product(product_name: str) -> Optional[str]:
    """Return the grand-total category for a product, or None when it has none."""
    if product_name in CANONICAL_CATEGORIES:
        return product_name
    return PRODUCT_CATEGORY_MAP.get(product_name)


def dbh_classes_for(product_name: str) -> tuple:
    return PRODUCT_DBH_CLASSES.get(product_name, ())


def per_acre(amount: float, acres: float) -> float:
    """Per-acre figure; zero whenever acreage is zero or unknown."""
    if acres <= 0:
        return 0.0
    return amount / acres


# =============================================================================
# Result types
# =============================================================================


@dataclass
class ProductTotals:
    product: str
    category: Optional[str]
    trees: int = 0
    tons: float = 0.0
    mbf: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product,
            "category": self.category,
            "trees": self.trees,
            "tons": round(self.tons, 2),
            "mbf": round(self.mbf, 2),
        }


@dataclass
class StandTotals:
    name: str
    gross_acres: float
    net_acres: float
    total_trees: int = 0
    total_volume: float = 0.0
    mbf_volume: float = 0.0
    products: List[ProductTotals] = field(default_factory=list)

    @property
    def trees_per_acre(self) -> float:
        return per_acre(self.total_trees, self.net_acres)

    @property
    def volume_per_acre(self) -> float:
        return per_acre(self.total_volume, self.net_acres)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "grossAcres": round(self.gross_acres, 2),
            "netAcres": round(self.net_acres, 2),
            "totalTrees": self.total_trees,
            "totalVolume": round(self.total_volume, 2),
            "mbfVolume": round(self.mbf_volume, 2),
            "treesPerAcre": round(self.trees_per_acre, 1),
            "volumePerAcre": round(self.volume_per_acre, 2),
            "products": [p.to_dict() for p in self.products],
        }


@dataclass
class InventoryTotals:
    stands: List[StandTotals]
    categories: Dict[str, float]
    total_gross_acres: float = 0.0
    total_net_acres: float = 0.0
    unmapped_products: List[str] = field(default_factory=list)

    @property
    def grand_total(self) -> float:
        """Sum of the five category tonnages; unmapped products never contribute."""
        return sum(self.categories[name] for name in CANONICAL_CATEGORIES)

    @property
    def total_trees(self) -> int:
        return sum(stand.total_trees for stand in self.stands)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stands": [s.to_dict() for s in self.stands],
            "categories": {name: round(tons, 2) for name, tons in self.categories.items()},
            "grandTotal": round(self.grand_total, 2),
            "totalTrees": self.total_trees,
            "totalGrossAcres": round(self.total_gross_acres, 2),
            "totalNetAcres": round(self.total_net_acres, 2),
            "unmappedProducts": self.unmapped_products,
        }


# =============================================================================
# Layout helpers
# =============================================================================


def is_entire_tract(stands: Sequence[Stand]) -> bool:
    return any(stand.name == ENTIRE_TRACT for stand in stands)


def validate_inventory_layout(stands: Sequence[Stand]) -> None:
    """
    Check the stand list a cruise may be submitted with.

    Raises:
        InvalidArgumentError: blank or duplicate stand names, or an Entire
            Tract stand mixed with discrete stands.
    """
    names = [stand.name.strip() for stand in stands]
    if any(not name for name in names):
        raise InvalidArgumentError("Every stand needs a name.")
    if ENTIRE_TRACT in names and len(names) > 1:
        raise InvalidArgumentError(
            f"'{ENTIRE_TRACT}' must be the only stand when the whole property is cruised."
        )
    seen = set()
    for name in names:
        if name in seen:
            raise InvalidArgumentError(f"Duplicate stand name: {name!r}")
        seen.add(name)


def normalize_inventory(stands: Iterable[Stand]) -> List[Stand]:
    """Drop DBH rows carrying neither trees nor volume. Stands and products stay."""
    normalized = []
    for stand in stands:
        products = [
            ProductEntry(product=p.product, breakdown=[row for row in p.breakdown if not row.is_empty])
            for p in stand.products
        ]
        normalized.append(
            Stand(
                name=stand.name,
                net_acres=stand.net_acres,
                products=products,
                gross_acres=stand.gross_acres,
            )
        )
    return normalized


def build_entire_tract_stand(property_acreage: float, products: Sequence[ProductEntry] = ()) -> Stand:
    """The single pseudo-stand used when the whole property is cruised as one unit."""
    acreage = max(property_acreage or 0.0, 0.0)
    return Stand(name=ENTIRE_TRACT, net_acres=acreage, products=list(products), gross_acres=acreage)


def apply_entire_tract_acreage(stands: Sequence[Stand], property_acreage: Optional[float]) -> List[Stand]:
    """Force the Entire Tract stand's acreage to the property's acreage."""
    if property_acreage is None or not is_entire_tract(stands):
        return list(stands)
    return [
        build_entire_tract_stand(property_acreage, stand.products) if stand.name == ENTIRE_TRACT else stand
        for stand in stands
    ]


# =============================================================================
# Aggregation
# =============================================================================


def _roll_up_stand(stand: Stand) -> StandTotals:
    """Pass 1: sum DBH rows into per-product totals and the stand totals."""
    totals = StandTotals(name=stand.name, gross_acres=stand.gross_acres, net_acres=stand.effective_acres)
    for product in stand.products:
        product_totals = ProductTotals(product=product.product, category=categorize_product(product.product))
        for row in product.breakdown:
            product_totals.trees += row.trees
            if row.is_tons:
                product_totals.tons += row.volume
            elif row.is_mbf:
                product_totals.mbf += row.volume
        totals.total_trees += product_totals.trees
        totals.total_volume += product_totals.tons
        totals.mbf_volume += product_totals.mbf
        totals.products.append(product_totals)
    return totals


def aggregate_inventory(
    stands: Sequence[Stand],
    property_acreage: Optional[float] = None,
) -> InventoryTotals:
    """
    Compute per-stand totals and grand-total category tonnage.

    Args:
        stands: Ordered stands of the cruise.
        property_acreage: The property's acreage; when given and the cruise is
            in Entire Tract mode, the stand's acreage is taken from it.

    Returns:
        InventoryTotals. Products outside the category table still count in
        their stand's totals but not in the grand total; they are listed in
        ``unmapped_products``.
    """
    stands = apply_entire_tract_acreage(stands, property_acreage)

    stand_totals = [_roll_up_stand(stand) for stand in stands]

    # Pass 2: fold product tonnage into the five categories
    categories = {name: 0.0 for name in CANONICAL_CATEGORIES}
    unmapped: List[str] = []
    for totals in stand_totals:
        for product in totals.products:
            if product.category is None:
                if product.product not in unmapped:
                    unmapped.append(product.product)
                continue
            categories[product.category] += product.tons

    if unmapped:
        LOGGER.debug(
            "Products outside the category table left out of grand totals",
            extra={"extra_data": {"products": unmapped}},
        )

    return InventoryTotals(
        stands=stand_totals,
        categories=categories,
        total_gross_acres=sum(stand.gross_acres for stand in stands),
        total_net_acres=sum(totals.net_acres for totals in stand_totals),
        unmapped_products=unmapped,
    )


__all__ = [
    "ENTIRE_TRACT",
    "CANONICAL_CATEGORIES",
    "PRODUCT_CATEGORY_MAP",
    "PRODUCT_DBH_CLASSES",
    "ProductTotals",
    "StandTotals",
    "InventoryTotals",
    "categorize_product",
    "dbh_classes_for",
    "per_acre",
    "is_entire_tract",
    "validate_inventory_layout",
    "normalize_inventory",
    "build_entire_tract_stand",
    "apply_entire_tract_acreage",
    "aggregate_inventory",
]
