"""Printable cruise report.

Recomputed from persisted cruiseData on every call so a report always
reflects exactly what was stored. Sawtimber tonnage is shown alongside an
MBF (Doyle) estimate; stored tonnage is never changed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core.types import CruiseData, Stand
from domain.inventory import per_acre

PINE_SAW_TONS_PER_MBF = 8.0
HARDWOOD_SAW_TONS_PER_MBF = 9.0

LUMP_SUM = "lump-sum"
LUMP_SUM_LABEL = "Lump Sum Sealed Bid"
PAY_AS_CUT_LABEL = "Pay-as-Cut (Per Unit)"


def is_sawtimber(product_name: str) -> bool:
    return "sawtimber" in product_name.lower()


def tons_per_mbf(product_name: str) -> float:
    """Conversion divisor keyed by the product's own name, not its category."""
    if "pine" in product_name.lower():
        return PINE_SAW_TONS_PER_MBF
    return HARDWOOD_SAW_TONS_PER_MBF


def tons_to_mbf(product_name: str, tons: float) -> float:
    return tons / tons_per_mbf(product_name)


def bid_method_label(bid_method: str) -> str:
    return LUMP_SUM_LABEL if bid_method == LUMP_SUM else PAY_AS_CUT_LABEL


# =============================================================================
# Report rows
# =============================================================================


@dataclass
class ProductLine:
    """One product within one stand."""

    product: str
    trees: int = 0
    tons: float = 0.0

    def to_dict(self, acres: float) -> Dict[str, Any]:
        return {
            "product": self.product,
            "trees": self.trees,
            "tons": round(self.tons, 2),
            "treesPerAcre": round(per_acre(self.trees, acres), 1),
            "tonsPerAcre": round(per_acre(self.tons, acres), 2),
        }


@dataclass
class StandDetail:
    name: str
    acres: float
    lines: List[ProductLine] = field(default_factory=list)

    @property
    def trees(self) -> int:
        return sum(line.trees for line in self.lines)

    @property
    def tons(self) -> float:
        return sum(line.tons for line in self.lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "acres": round(self.acres, 2),
            "products": [line.to_dict(self.acres) for line in self.lines],
            "trees": self.trees,
            "tons": round(self.tons, 2),
            "treesPerAcre": round(per_acre(self.trees, self.acres), 1),
            "tonsPerAcre": round(per_acre(self.tons, self.acres), 2),
        }


@dataclass
class SummaryRow:
    product: str
    trees: int = 0
    tons: float = 0.0
    mbf: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product,
            "trees": self.trees,
            "tons": round(self.tons, 2),
            "mbf": round(self.mbf, 2) if self.mbf is not None else None,
        }


@dataclass
class SummaryTable:
    """Per-product rows in first-seen order plus a total row."""

    title: str
    rows: List[SummaryRow] = field(default_factory=list)
    with_mbf: bool = False

    @property
    def total_trees(self) -> int:
        return sum(row.trees for row in self.rows)

    @property
    def total_tons(self) -> float:
        return sum(row.tons for row in self.rows)

    @property
    def total_mbf(self) -> float:
        return sum(row.mbf or 0.0 for row in self.rows)

    def add(self, product: str, trees: int, tons: float) -> None:
        for row in self.rows:
            if row.product == product:
                break
        else:
            row = SummaryRow(product=product, mbf=0.0 if self.with_mbf else None)
            self.rows.append(row)
        row.trees += trees
        row.tons += tons
        if self.with_mbf:
            row.mbf = tons_to_mbf(product, row.tons)

    def to_dict(self) -> Dict[str, Any]:
        total: Dict[str, Any] = {"trees": self.total_trees, "tons": round(self.total_tons, 2)}
        if self.with_mbf:
            total["mbf"] = round(self.total_mbf, 2)
        return {
            "title": self.title,
            "rows": [row.to_dict() for row in self.rows],
            "total": total,
        }


@dataclass
class InventorySummary:
    stands: List[StandDetail]
    sawtimber: SummaryTable
    pulpwood: SummaryTable

    @property
    def overview(self) -> List[SummaryRow]:
        """Every product across both tables, alphabetically."""
        return sorted(self.sawtimber.rows + self.pulpwood.rows, key=lambda row: row.product)

    @property
    def grand_total_trees(self) -> int:
        return self.sawtimber.total_trees + self.pulpwood.total_trees

    @property
    def grand_total_tons(self) -> float:
        return self.sawtimber.total_tons + self.pulpwood.total_tons

    @property
    def grand_total_mbf(self) -> float:
        return self.sawtimber.total_mbf

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stands": [stand.to_dict() for stand in self.stands],
            "sawtimber": self.sawtimber.to_dict(),
            "pulpwood": self.pulpwood.to_dict(),
            "overview": [row.to_dict() for row in self.overview],
            "grandTotal": {
                "trees": self.grand_total_trees,
                "tons": round(self.grand_total_tons, 2),
                "mbf": round(self.grand_total_mbf, 2),
            },
        }


# =============================================================================
# Builders
# =============================================================================


def summarize_inventory(stands: Sequence[Stand]) -> InventorySummary:
    """
    Build stand detail plus the sawtimber and pulpwood tables.

    Only Tons rows contribute tonnage; tree counts come from every row. An
    empty inventory yields empty tables with zero totals.
    """
    details: List[StandDetail] = []
    sawtimber = SummaryTable(title="Sawtimber", with_mbf=True)
    pulpwood = SummaryTable(title="Pulpwood")

    for stand in stands:
        detail = StandDetail(name=stand.name, acres=stand.effective_acres)
        for product in stand.products:
            line = ProductLine(product=product.product)
            for row in product.breakdown:
                line.trees += row.trees
                if row.is_tons:
                    line.tons += row.volume
            detail.lines.append(line)

            table = sawtimber if is_sawtimber(product.product) else pulpwood
            table.add(product.product, line.trees, line.tons)
        details.append(detail)

    return InventorySummary(stands=details, sawtimber=sawtimber, pulpwood=pulpwood)


def build_sale_report(
    cruise_data: CruiseData,
    owner_name: str = "",
    forester_name: str = "",
) -> Dict[str, Any]:
    """Assemble the full printable report for a stored cruise."""
    details = cruise_data.details
    location = ", ".join(part for part in (details.county, details.state) if part)
    summary = summarize_inventory(cruise_data.inventory)

    return {
        "header": {
            "saleName": details.sale_name,
            "ownerName": owner_name,
            "foresterName": forester_name,
            "location": location,
            "acreage": round(details.acreage, 2),
            "bidMethod": bid_method_label(details.bid_method),
            "bidDeadline": details.bid_deadline,
            "legalDescription": details.legal_desc,
            "harvestDescription": details.harvest_description,
        },
        **summary.to_dict(),
    }


__all__ = [
    "PINE_SAW_TONS_PER_MBF",
    "HARDWOOD_SAW_TONS_PER_MBF",
    "is_sawtimber",
    "tons_per_mbf",
    "tons_to_mbf",
    "bid_method_label",
    "ProductLine",
    "StandDetail",
    "SummaryRow",
    "SummaryTable",
    "InventorySummary",
    "summarize_inventory",
    "build_sale_report",
]
