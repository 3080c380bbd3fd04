"""
Audit trail endpoints (read-only).
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from reservations.api.deps import get_store
from reservations.schemas.audit import AuditEntryResponse
from reservations.services import audit_service
from reservations.services.entity_store import EntityStore

router = APIRouter(prefix="/audit", tags=["Audit"])

EntityType = Literal["Room", "Guest", "Booking"]


@router.get("/", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    entity_type: Optional[EntityType] = Query(None),
    entity_id: Optional[int] = Query(None),
    action: Optional[Literal["insert", "update", "delete"]] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    store: EntityStore = Depends(get_store),
):
    return await audit_service.list_audit_entries(store, entity_type, entity_id, action, limit, offset)


@router.get("/{entity_type}/{entity_id}", response_model=list[AuditEntryResponse])
async def entity_history(
    entity_type: EntityType,
    entity_id: int,
    store: EntityStore = Depends(get_store),
):
    """Every committed change of one entity, in commit order."""
    return await audit_service.entity_history(store, entity_type, entity_id)
