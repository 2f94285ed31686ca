"""Domain layer for timber marketplace business logic.

This module keeps business rules apart from infrastructure (CLI, API,
storage). All lifecycle operations should go through the domain services.
"""
from __future__ import annotations

from .acceptance import QuoteAcceptanceService, call_accept_quote
from .inquiries import InquiryService
from .inventory import InventoryTotals, StandTotals, aggregate_inventory
from .projects import ProjectService, check_transition, rate_set_in_effect
from .properties import PropertyService
from .report import InventorySummary, build_sale_report, summarize_inventory
from .roles import Engagement, UserRole, participant_from_claims, resolve_engagement

__all__ = [
    # Roles
    "UserRole",
    "Engagement",
    "participant_from_claims",
    "resolve_engagement",
    # Inventory
    "InventoryTotals",
    "StandTotals",
    "aggregate_inventory",
    # Report
    "InventorySummary",
    "summarize_inventory",
    "build_sale_report",
    # Projects
    "ProjectService",
    "check_transition",
    "rate_set_in_effect",
    # Properties
    "PropertyService",
    # Inquiries
    "InquiryService",
    # Acceptance
    "QuoteAcceptanceService",
    "call_accept_quote",
]
