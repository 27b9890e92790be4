"""In-process audit outbox: asyncio.Queue + one background writer task.

The balance service calls ``submit`` after its transaction has committed.
``submit`` never blocks and never raises, so audit latency or failure cannot
change the outcome of a balance update. The worker writes each record in its
own session/transaction; failures are logged as AuditWriteError and the
worker moves on to the next record.

Lifecycle is driven by the FastAPI lifespan (src/main.py): ``start`` on
startup, ``stop`` on shutdown. ``stop`` drains records queued before it was
called, bounded by AUDIT_SHUTDOWN_TIMEOUT_SECONDS.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.tp_admin.domain.models import AuditRecord
from src.tp_admin.domain.repository import AuditRepositoryProtocol
from src.tp_admin.infrastructure.audit_repository import AuditRepository
from src.tp_common.database import async_session_factory

logger = logging.getLogger(__name__)

_STOP = object()


class AuditWriteError(Exception):
    """An audit record could not be persisted. Logged, never surfaced."""

    def __init__(self, record: AuditRecord, reason: str) -> None:
        self.record = record
        self.reason = reason
        super().__init__(
            f"Failed to write audit record action={record.action.value} "
            f"target={record.target_table}/{record.target_id}: {reason}"
        )


class AuditOutbox:
    def __init__(
        self,
        repo: AuditRepositoryProtocol | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        maxsize: int | None = None,
    ) -> None:
        self._repo: AuditRepositoryProtocol = repo or AuditRepository()
        self._session_factory = session_factory or async_session_factory
        self._queue: asyncio.Queue[object] = asyncio.Queue(
            maxsize=settings.AUDIT_QUEUE_MAXSIZE if maxsize is None else maxsize
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, record: AuditRecord) -> None:
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            logger.error("%s", AuditWriteError(record, "audit outbox is full"))

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="audit-outbox")
        logger.info("Audit outbox started")

    async def stop(self, timeout: float | None = None) -> None:
        if self._task is None:
            return
        timeout = settings.AUDIT_SHUTDOWN_TIMEOUT_SECONDS if timeout is None else timeout
        task, self._task = self._task, None
        try:
            await asyncio.wait_for(self._queue.put(_STOP), timeout)
            await asyncio.wait_for(task, timeout)
        except TimeoutError:
            logger.error(
                "Audit outbox did not drain within %.1fs, %d record(s) dropped",
                timeout,
                self._queue.qsize(),
            )
            task.cancel()
        logger.info("Audit outbox stopped")

    async def flush(self) -> None:
        """Wait until every submitted record has been processed."""
        await self._queue.join()

    async def write(self, record: AuditRecord) -> None:
        """Persist one record in its own transaction.

        Raises:
            AuditWriteError: wrapping whatever the session or repository raised.
        """
        try:
            async with self._session_factory() as db:
                await self._repo.append_audit(db, record)
                await db.commit()
        except Exception as exc:
            raise AuditWriteError(record, str(exc)) from exc

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                await self.write(item)  # type: ignore[arg-type]
            except AuditWriteError as exc:
                logger.error("%s", exc, exc_info=exc.__cause__)
            finally:
                self._queue.task_done()
