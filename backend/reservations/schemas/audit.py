"""
Pydantic schemas for audit trail responses.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class AuditEntryResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    action: str
    changes: Optional[dict[str, Any]]
    actor: str
    committed_at: datetime

    model_config = {"from_attributes": True}
