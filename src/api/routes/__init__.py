"""API route modules."""
from __future__ import annotations

from . import (
    health,
    inquiries,
    inventory,
    projects,
    properties,
    quotes,
)

__all__ = [
    "health",
    "inquiries",
    "inventory",
    "projects",
    "properties",
    "quotes",
]
