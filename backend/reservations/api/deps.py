"""
Shared request dependencies: the Entity Store for this request, the audit
propagator it publishes to, and the acting user.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reservations.core.config import get_settings
from reservations.db.session import get_db
from reservations.services.audit_service import AuditPropagator
from reservations.services.entity_store import EntityStore


def get_audit_propagator(request: Request) -> Optional[AuditPropagator]:
    return getattr(request.app.state, "audit_propagator", None)


async def get_store(
    db: AsyncSession = Depends(get_db),
    propagator: Optional[AuditPropagator] = Depends(get_audit_propagator),
) -> AsyncGenerator[EntityStore, None]:
    yield EntityStore(db, propagator)


def get_actor(x_actor: Optional[str] = Header(None)) -> str:
    """Who is acting. Authentication happens upstream; we only record the name."""
    return x_actor or get_settings().DEFAULT_ACTOR
