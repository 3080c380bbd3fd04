"""
Entity Store: the only component that reads and writes canonical records.

Every read goes back to the database (populate_existing), so callers never
act on state cached in the session's identity map by an earlier call.

commit() is the single publication point for the audit trail:

  1. Capture pending mutations of audited models (inserts, changed fields of
     updates, deleted ids) before the flush resets attribute history
  2. Flush, then snapshot inserted rows (ids and defaults are known now)
  3. Commit
  4. Only after a successful commit, hand the MutationEvents to the publisher

A mutation that fails to commit is rolled back and never published.
A publisher failure is logged and never reaches the caller: audit is
observability, not part of the transaction.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reservations.core.errors import Conflict, NotFound, Unavailable
from reservations.core.logging import get_logger
from reservations.core.metrics import db_errors
from reservations.models import AuditAction, Booking, Guest, Room

logger = get_logger(__name__)

T = TypeVar("T")

AUDITED_MODELS = (Room, Guest, Booking)


@dataclass(frozen=True)
class MutationEvent:
    entity_type: str
    entity_id: int
    action: str
    changes: dict
    actor: str
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MutationPublisher(Protocol):
    async def publish(self, events: Sequence[MutationEvent]) -> None: ...


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(obj) -> dict:
    """Column values of a loaded entity, JSON-ready."""
    state = inspect(obj)
    return {
        attr.key: to_jsonable(getattr(obj, attr.key))
        for attr in state.mapper.column_attrs
        if attr.key not in state.unloaded
    }


def changed_fields(obj) -> dict:
    """{field: {"old": ..., "new": ...}} for attributes modified since load."""
    state = inspect(obj)
    diff = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        old = history.deleted[0] if history.deleted else None
        new = history.added[0] if history.added else None
        if old == new:
            continue
        diff[attr.key] = {"old": to_jsonable(old), "new": to_jsonable(new)}
    return diff


class EntityStore:
    """Unit of work over one AsyncSession with post-commit publication."""

    def __init__(self, session: AsyncSession, publisher: Optional[MutationPublisher] = None):
        self.session = session
        self.publisher = publisher

    async def find(self, model: type[T], entity_id: int) -> Optional[T]:
        return await self.first(select(model).where(model.id == entity_id))

    async def get(self, model: type[T], entity_id: int) -> T:
        entity = await self.find(model, entity_id)
        if entity is None:
            raise NotFound(f"{model.__name__} {entity_id} not found")
        return entity

    async def first(self, query: Select) -> Optional[Any]:
        result = await self._execute(query)
        return result.scalars().first()

    async def all(self, query: Select) -> list:
        result = await self._execute(query)
        return list(result.scalars().all())

    async def scalar(self, query: Select) -> Any:
        result = await self._execute(query)
        return result.scalar()

    async def rows(self, query: Select) -> list:
        result = await self._execute(query)
        return list(result.all())

    async def _execute(self, query: Select):
        try:
            return await self.session.execute(query.execution_options(populate_existing=True))
        except SQLAlchemyError as e:
            db_errors.labels(operation="read").inc()
            logger.error("store_read_failed", error=str(e))
            raise Unavailable("Storage is unavailable, please retry") from e

    def add(self, entity) -> None:
        self.session.add(entity)

    async def delete(self, entity) -> None:
        await self.session.delete(entity)

    async def rollback(self) -> None:
        await self.session.rollback()

    async def commit(self, actor: str = "system") -> list[MutationEvent]:
        """Commit the unit of work and publish what it changed."""
        session = self.session
        inserted = [obj for obj in session.new if isinstance(obj, AUDITED_MODELS)]
        updated = [
            (obj, changed_fields(obj))
            for obj in session.dirty
            if isinstance(obj, AUDITED_MODELS) and session.is_modified(obj)
        ]
        deleted = [
            (type(obj).__name__, obj.id)
            for obj in session.deleted
            if isinstance(obj, AUDITED_MODELS)
        ]

        try:
            await session.flush()
            inserted_snapshots = [(type(obj).__name__, obj.id, snapshot(obj)) for obj in inserted]
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning("store_commit_rejected", error=str(e.orig))
            raise Conflict("The change conflicts with an existing record") from e
        except SQLAlchemyError as e:
            await session.rollback()
            db_errors.labels(operation="commit").inc()
            logger.error("store_commit_failed", error=str(e))
            raise Unavailable("Storage is unavailable, please retry") from e

        committed_at = datetime.now(timezone.utc)
        events = [
            MutationEvent(entity_type, entity_id, AuditAction.INSERT, changes, actor, committed_at)
            for entity_type, entity_id, changes in inserted_snapshots
        ]
        events += [
            MutationEvent(type(obj).__name__, obj.id, AuditAction.UPDATE, diff, actor, committed_at)
            for obj, diff in updated
            if diff
        ]
        events += [
            MutationEvent(entity_type, entity_id, AuditAction.DELETE, {"id": entity_id}, actor, committed_at)
            for entity_type, entity_id in deleted
        ]

        if events and self.publisher is not None:
            try:
                await self.publisher.publish(events)
            except Exception as e:
                logger.error("audit_publish_failed", error=str(e), events=len(events))
        return events
