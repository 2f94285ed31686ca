"""Append-only activity feed."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from core.models import ActivityType, Collection
from core.store import SERVER_TIMESTAMP, DocumentStore, Write
from core.utils import union_preserving_order


def activity_write(
    store: DocumentStore,
    activity_type: ActivityType,
    actor_id: str,
    project_id: str,
    message: str,
    visible_to: Iterable[str] = (),
    property_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Write:
    """Build the batch write for one new feed entry. Entries are never updated."""
    data: Dict[str, Any] = {
        "type": activity_type.value,
        "actorId": actor_id,
        "projectId": project_id,
        "message": message,
        "visibleTo": union_preserving_order([actor_id], [u for u in visible_to if u]),
        "createdAt": SERVER_TIMESTAMP,
    }
    if property_id:
        data["propertyId"] = property_id
    if details:
        data["details"] = details
    return Write.set(Collection.ACTIVITY, store.new_id(), data, expected_version=0)


def list_activity(
    store: DocumentStore,
    user_id: str,
    project_id: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """Newest-first feed entries the user may see."""
    filters = [("visibleTo", "array-contains", user_id)]
    if project_id:
        filters.append(("projectId", "==", project_id))
    entries = [snap.to_dict() for snap in store.query(Collection.ACTIVITY, filters)]
    entries.sort(key=lambda entry: entry.get("createdAt") or "", reverse=True)
    return entries[:limit]


__all__ = ["activity_write", "list_activity"]
