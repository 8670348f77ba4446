"""Pharmacy (tenant) and sensor assignment models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coldwatch.database import Base


class Pharmacy(Base):
    """A pharmacy location that owns sensors, gateways and alerts."""

    __tablename__ = "pharmacies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str | None] = mapped_column(String(300), nullable=True)

    sensor_assignments: Mapped[list["SensorAssignment"]] = relationship(
        back_populates="pharmacy"
    )


class SensorAssignment(Base):
    """Binds an external sensor id to a pharmacy and a location category."""

    __tablename__ = "sensor_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    pharmacy_id: Mapped[int] = mapped_column(Integer, ForeignKey("pharmacies.id"), nullable=False)
    sensor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    # refrigerator | freezer | storage | other
    location_type: Mapped[str] = mapped_column(String(50), nullable=False, default="other")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    pharmacy: Mapped["Pharmacy"] = relationship(back_populates="sensor_assignments")

    __table_args__ = (UniqueConstraint("sensor_id", "pharmacy_id", name="uq_assignment_sensor"),)
