"""Run-lock leases for scheduled jobs."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from coldwatch.database import Base


class JobLock(Base):
    """One row per running job. Expired rows may be taken over."""

    __tablename__ = "job_locks"

    job_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    owner: Mapped[str] = mapped_column(String(100), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
