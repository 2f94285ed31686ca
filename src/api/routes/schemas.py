"""Request bodies shared by the route modules.

Field names follow the stored document shape (camelCase) through aliases;
both spellings are accepted. Numeric cruise fields accept strings because
form entry sends them that way; they are coerced downstream.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.types import CruiseData, Stand

LooseNumber = Union[float, str, None]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DBHRowIn(_Body):
    dbh: str = ""
    trees: LooseNumber = 0
    volume: LooseNumber = 0
    units: str = "Tons"


class ProductIn(_Body):
    product: str = Field(..., min_length=1)
    breakdown: List[DBHRowIn] = Field(default_factory=list)


class StandIn(_Body):
    name: str
    net_acres: LooseNumber = Field(0, alias="netAcres")
    gross_acres: LooseNumber = Field(0, alias="grossAcres")
    products: List[ProductIn] = Field(default_factory=list)


class InventoryIn(_Body):
    inventory: List[StandIn] = Field(default_factory=list)
    property_acreage: Optional[float] = Field(None, ge=0, alias="propertyAcreage")

    def stands(self) -> List[Stand]:
        return [Stand.from_dict(s.model_dump(by_alias=True)) for s in self.inventory]


class CruiseSubmission(_Body):
    """Cruise form payload: sale terms, stands and the drawn annotations."""

    details: Dict[str, Any] = Field(default_factory=dict)
    inventory: List[StandIn] = Field(default_factory=list)
    annotations: Optional[str] = None

    def to_cruise_data(self) -> CruiseData:
        return CruiseData.from_dict(self.model_dump(by_alias=True))


class RateRowIn(_Body):
    product: str = ""
    price: LooseNumber = None


class RateSetIn(_Body):
    effective_date: str = Field(..., alias="effectiveDate")
    mill: List[RateRowIn] = Field(default_factory=list)
    stumpage: List[RateRowIn] = Field(default_factory=list)
    logging: List[RateRowIn] = Field(default_factory=list)


class RateSheet(_Body):
    rate_sets: List[RateSetIn] = Field(default_factory=list, alias="rateSets")


class AcceptQuoteBody(_Body):
    """Remote-call payload; missing ids are reported by the call itself."""

    quote_id: Optional[str] = Field(None, alias="quoteId")
    project_id: Optional[str] = Field(None, alias="projectId")


class PropertyCreate(_Body):
    name: str = Field(..., min_length=1)
    acreage: float = Field(..., ge=0)
    county: str = ""
    state: str = ""
    description: str = ""
    boundary: Optional[Dict[str, Any]] = None


class InquiryCreate(_Body):
    property_id: str = Field(..., alias="propertyId")
    professional_ids: List[str] = Field(..., alias="professionalIds")
    services: List[str] = Field(default_factory=list)
    goal: str = ""
    message: str = ""
    owner_name: str = Field("", alias="ownerName")


class QuoteCreate(_Body):
    amount: LooseNumber
    message: str = ""


__all__ = [
    "DBHRowIn",
    "ProductIn",
    "StandIn",
    "InventoryIn",
    "CruiseSubmission",
    "RateRowIn",
    "RateSetIn",
    "RateSheet",
    "AcceptQuoteBody",
    "PropertyCreate",
    "InquiryCreate",
    "QuoteCreate",
]
