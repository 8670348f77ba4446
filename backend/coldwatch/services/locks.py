"""Run-lock for scheduled jobs: one sweep and one sync in flight per deployment.

The lock is a lease with a TTL so a killed process cannot block later runs
forever. A running job renews its lease as it makes progress, so only a job
that stalls for longer than the TTL between two items can lose it.
"""

import logging
import os
import socket
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from coldwatch.clock import Clock
from coldwatch.services.repository import ComplianceRepository

logger = logging.getLogger(__name__)


class JobAlreadyRunningError(RuntimeError):
    def __init__(self, job_name: str):
        super().__init__(f"Job '{job_name}' is already running")
        self.job_name = job_name


class JobLeaseLostError(JobAlreadyRunningError):
    """The lease expired mid-run and another process took it over."""


def _owner_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class JobLease:
    """Handle on a held lease."""

    def __init__(
        self,
        repository: ComplianceRepository,
        job_name: str,
        owner: str,
        ttl_seconds: int,
        clock: Clock,
    ):
        self.repository = repository
        self.job_name = job_name
        self.owner = owner
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def renew(self) -> None:
        """Extend the lease from now. Raises JobLeaseLostError when it was taken over."""
        renewed = await self.repository.renew_job_lock(
            self.job_name, self.owner, self.clock.now(), self.ttl_seconds
        )
        if not renewed:
            logger.error(f"Lost the {self.job_name} lease to another run; stopping")
            raise JobLeaseLostError(self.job_name)


@asynccontextmanager
async def job_lock(
    repository: ComplianceRepository, job_name: str, ttl_seconds: int, clock: Clock
) -> AsyncIterator[JobLease]:
    """Hold the lease for job_name for the duration of the block."""
    owner = _owner_id()
    if not await repository.acquire_job_lock(job_name, owner, clock.now(), ttl_seconds):
        logger.warning(f"Skipping {job_name}: another run holds the lock")
        raise JobAlreadyRunningError(job_name)
    try:
        yield JobLease(repository, job_name, owner, ttl_seconds, clock)
    finally:
        await repository.rollback()
        await repository.release_job_lock(job_name, owner)
