"""Local mirror of the vendor's gateways and sensors."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coldwatch.database import Base


class Gateway(Base):
    """Hub relaying readings from sensors to the vendor cloud."""

    __tablename__ = "gateways"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gateway_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    paired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pharmacy_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("pharmacies.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    sensors: Mapped[list["Sensor"]] = relationship(back_populates="gateway")


class Sensor(Base):
    """Sensor mirror. The last-reading columns are a cache, not a source of truth."""

    __tablename__ = "sensors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    gateway_id: Mapped[int] = mapped_column(Integer, ForeignKey("gateways.id"), nullable=False)
    battery_voltage: Mapped[float | None] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_reading_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_reading_humidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_reading_timestamp: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    gateway: Mapped["Gateway"] = relationship(back_populates="sensors")
