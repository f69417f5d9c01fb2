"""
Expiry Sweep Background Job - closes stale recruitments and want-to-dos.

Each run performs two bulk updates:
1. OPEN recruitments whose scheduled time has passed -> CLOSED
2. ACTIVE want-to-dos whose expiry has passed -> EXPIRED

Design:
- Each statement is atomic on its own; there is no sweep-wide transaction.
- A failing statement is logged and recorded; the other still runs.
- Runs never overlap: a run that starts while another is in flight is skipped.
- Idempotent: a late or missed run simply catches up more rows next time.

Usage:
    # Owned by the FastAPI lifespan (see machi.main)
    scheduler = ExpirySweepScheduler(ExpirySweepJob(PostgresExpirySweepRepository()))
    scheduler.start()
    ...
    await scheduler.stop()

    # Or as a standalone worker process
    python -m machi.jobs.worker expiry_sweep
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from machi.config import settings
from machi.db.helpers import execute_query
from machi.db.pool import db_pool
from machi.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ExpirySweepRepository(Protocol):
    async def close_past_recruitments(self, now: datetime) -> int: ...

    async def expire_want_to_dos(self, now: datetime) -> int: ...


class PostgresExpirySweepRepository:
    async def close_past_recruitments(self, now: datetime) -> int:
        return await execute_query(
            """
            UPDATE recruitments
            SET status = 'CLOSED', closed_at = %s, updated_at = NOW()
            WHERE status = 'OPEN'
              AND scheduled_at IS NOT NULL
              AND scheduled_at < %s
            """,
            (now, now),
        )

    async def expire_want_to_dos(self, now: datetime) -> int:
        return await execute_query(
            """
            UPDATE want_to_dos
            SET status = 'EXPIRED', updated_at = NOW()
            WHERE status = 'ACTIVE'
              AND expires_at < %s
            """,
            (now,),
        )


@dataclass(slots=True)
class SweepResult:
    started_at: datetime
    closed_recruitments: int = 0
    expired_want_to_dos: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.skipped and not self.errors

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "skipped": self.skipped,
            "started_at": self.started_at.isoformat(),
            "closed_recruitments": self.closed_recruitments,
            "expired_want_to_dos": self.expired_want_to_dos,
            "errors": list(self.errors),
            "duration_seconds": round(self.duration_seconds, 3),
        }


class ExpirySweepJob:
    """One sweep of both expiry statements, never overlapping itself."""

    def __init__(self, repository: ExpirySweepRepository):
        self.repository = repository
        self.is_running = False
        self.run_count = 0
        self.last_result: SweepResult | None = None
        self._lock = asyncio.Lock()

    async def run_once(self, now: datetime | None = None) -> SweepResult:
        now = now or datetime.now(UTC)

        if self.is_running or self._lock.locked():
            logger.warning("Expiry sweep already running, skipping")
            return SweepResult(started_at=now, skipped=True)

        async with self._lock:
            self.is_running = True
            result = SweepResult(started_at=now)
            start = time.perf_counter()

            try:
                try:
                    result.closed_recruitments = await self.repository.close_past_recruitments(now)
                    if result.closed_recruitments:
                        logger.info(
                            "Closed past recruitments", count=result.closed_recruitments
                        )
                except Exception as e:
                    error_msg = f"Failed to close past recruitments: {e}"
                    logger.error(error_msg, error_type=type(e).__name__)
                    result.errors.append(error_msg)

                try:
                    result.expired_want_to_dos = await self.repository.expire_want_to_dos(now)
                    if result.expired_want_to_dos:
                        logger.info("Expired want-to-dos", count=result.expired_want_to_dos)
                except Exception as e:
                    error_msg = f"Failed to expire want-to-dos: {e}"
                    logger.error(error_msg, error_type=type(e).__name__)
                    result.errors.append(error_msg)

            finally:
                self.is_running = False

            result.duration_seconds = time.perf_counter() - start
            self.run_count += 1
            self.last_result = result

        logger.info("Expiry sweep completed", **result.to_dict())
        return result


class ExpirySweepScheduler:
    """
    Runs an ExpirySweepJob on a fixed interval in one asyncio task.

    The first sweep happens immediately on start. A sweep that raises is
    logged and followed by the error backoff; the loop itself only ends on
    stop().
    """

    def __init__(
        self,
        job: ExpirySweepJob,
        interval_seconds: float | None = None,
        error_backoff_seconds: float | None = None,
    ):
        config = settings.get_expiry_sweep_config()
        self.job = job
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else config["interval_seconds"]
        )
        self.error_backoff_seconds = (
            error_backoff_seconds
            if error_backoff_seconds is not None
            else config["error_backoff_seconds"]
        )
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning("Expiry sweep scheduler already running")
            return
        logger.info("Starting expiry sweep scheduler", interval_seconds=self.interval_seconds)
        self._task = asyncio.create_task(self.run_forever(), name="expiry-sweep")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Expiry sweep scheduler stopped", runs=self.job.run_count)

    async def run_forever(self) -> None:
        while True:
            try:
                await self.job.run_once()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Error in expiry sweep scheduler", error=str(e), error_type=type(e).__name__
                )
                await asyncio.sleep(self.error_backoff_seconds)

    def status(self) -> dict:
        last = self.job.last_result
        return {
            "running": self.running,
            "sweep_in_progress": self.job.is_running,
            "interval_seconds": self.interval_seconds,
            "run_count": self.job.run_count,
            "last_run": last.to_dict() if last else None,
        }


async def start_expiry_sweep_scheduler() -> None:
    """Worker entrypoint: own the pool and sweep until cancelled."""
    if not db_pool.initialized:
        await db_pool.initialize()

    scheduler = ExpirySweepScheduler(ExpirySweepJob(PostgresExpirySweepRepository()))
    try:
        await scheduler.run_forever()
    finally:
        await db_pool.close()
