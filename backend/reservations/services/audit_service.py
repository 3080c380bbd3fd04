"""
Audit Propagator: turns committed mutations into immutable audit entries.

DELIVERY STRATEGY
=================

The Entity Store publishes MutationEvents right after a successful commit,
while the mutating call still holds its room lock. Two modes:

  - queue (default): publish() only enqueues (put_nowait, never awaits), so
    the critical section is not extended by audit I/O. A single worker drains
    the queue in FIFO order, which preserves commit order per entity.
  - inline: publish() writes the entries before returning. Simplest to reason
    about; used by tests and single-shot scripts.

Failure policy:
  Audit is best-effort observability. A failed write is logged and counted,
  the triggering mutation stays committed and its caller never sees the
  error. A full queue (AUDIT_QUEUE_MAXSIZE) drops the entry the same way.
"""

import asyncio
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservations.core.logging import get_logger
from reservations.core.metrics import audit_queue_depth, record_audit_write
from reservations.models import AuditEntry
from reservations.services.entity_store import EntityStore, MutationEvent

logger = get_logger(__name__)

AUDIT_MODES = ("queue", "inline")


class AuditPropagator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        mode: str = "queue",
        maxsize: int = 0,
    ):
        if mode not in AUDIT_MODES:
            raise ValueError(f"Unknown audit mode: {mode}")
        self.session_factory = session_factory
        self.mode = mode
        self.queue: asyncio.Queue[list[MutationEvent]] = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def publish(self, events: Sequence[MutationEvent]) -> None:
        batch = list(events)
        if not batch:
            return
        if self.mode == "inline" or not self.running:
            await self._write(batch)
            return
        try:
            self.queue.put_nowait(batch)
            audit_queue_depth.set(self.queue.qsize())
        except asyncio.QueueFull:
            record_audit_write("dropped", len(batch))
            logger.error(
                "audit_queue_full",
                dropped=len(batch),
                entities=[f"{e.entity_type}#{e.entity_id}" for e in batch],
            )

    async def start(self) -> None:
        if self.mode == "queue" and not self.running:
            self._worker = asyncio.create_task(self._run(), name="audit-propagator")
            logger.info("audit_propagator_started", mode=self.mode)

    async def drain(self) -> None:
        """Wait until every queued batch has been written (or given up on)."""
        if self.running:
            await self.queue.join()

    async def stop(self) -> None:
        if not self.running:
            return
        await self.drain()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("audit_propagator_stopped")

    async def _run(self) -> None:
        while True:
            batch = await self.queue.get()
            try:
                await self._write(batch)
            finally:
                self.queue.task_done()
                audit_queue_depth.set(self.queue.qsize())

    async def _write(self, batch: list[MutationEvent]) -> None:
        try:
            async with self.session_factory() as session:
                session.add_all(
                    AuditEntry(
                        entity_type=event.entity_type,
                        entity_id=event.entity_id,
                        action=event.action,
                        changes=event.changes,
                        actor=event.actor,
                        committed_at=event.committed_at,
                    )
                    for event in batch
                )
                await session.commit()
        except Exception as e:
            record_audit_write("failed", len(batch))
            logger.error(
                "audit_write_failed",
                error=str(e),
                entities=[f"{ev.entity_type}#{ev.entity_id}:{ev.action}" for ev in batch],
            )
            return
        record_audit_write("written", len(batch))


async def list_audit_entries(
    store: EntityStore,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AuditEntry]:
    """Audit entries in commit order, optionally filtered."""
    query = select(AuditEntry)
    if entity_type:
        query = query.where(AuditEntry.entity_type == entity_type)
    if entity_id is not None:
        query = query.where(AuditEntry.entity_id == entity_id)
    if action:
        query = query.where(AuditEntry.action == action)
    query = query.order_by(AuditEntry.id.asc()).offset(offset).limit(limit)
    return await store.all(query)


async def entity_history(store: EntityStore, entity_type: str, entity_id: int) -> list[AuditEntry]:
    """Full history of one entity, oldest first."""
    return await store.all(
        select(AuditEntry)
        .where(AuditEntry.entity_type == entity_type, AuditEntry.entity_id == entity_id)
        .order_by(AuditEntry.id.asc())
    )
