"""
SQLAlchemy ORM models for database tables.

These models define the database schema and provide persistence for
domain entities. Enum values are stored as their string ``value``.
Timestamps are naive UTC.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from gatekeeper.domain.models import MAX_PLATE_LENGTH, utc_now


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )


class VehicleDB(TimestampMixin, Base):
    """
    Allowlisted vehicles.

    Soft delete via is_active; rows are never removed.
    """

    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    license_plate: Mapped[str] = mapped_column(String(MAX_PLATE_LENGTH), unique=True, nullable=False, index=True)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    owner_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vehicle_color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_vehicles_active_plate", "license_plate", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Vehicle(plate={self.license_plate}, active={self.is_active})>"


class BlacklistEntryDB(TimestampMixin, Base):
    """
    Blacklisted plates.

    attempt_count is only changed through a single UPDATE statement
    (``attempt_count = attempt_count + 1``).
    """

    __tablename__ = "blacklist_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    license_plate: Mapped[str] = mapped_column(String(MAX_PLATE_LENGTH), unique=True, nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vehicle_color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    notify_on_detection: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    added_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_blacklist_active_plate", "license_plate", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<BlacklistEntry(plate={self.license_plate}, severity={self.severity})>"


class PassageDB(Base):
    """
    Passage ledger.

    Append-only: rows are inserted once and never updated.
    """

    __tablename__ = "passages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    license_plate: Mapped[str | None] = mapped_column(String(MAX_PLATE_LENGTH), nullable=True, index=True)
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    is_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    was_manual_open: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    barrier_opened: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vehicle_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("vehicles.id", ondelete="SET NULL"),
        nullable=True,
    )
    opened_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)

    __table_args__ = (
        Index("ix_passages_time_outcome", "timestamp", "outcome"),
    )

    def __repr__(self) -> str:
        return f"<Passage(plate={self.license_plate}, outcome={self.outcome})>"


class BarrierActionDB(Base):
    """Audit log of barrier commands issued by the system."""

    __tablename__ = "barrier_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    command: Mapped[str] = mapped_column(String(10), nullable=False)
    triggered_by: Mapped[str] = mapped_column(String(10), nullable=False)
    integration_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("barrier_integrations.id", ondelete="SET NULL"),
        nullable=True,
    )
    actor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    passage_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("passages.id", ondelete="SET NULL"),
        nullable=True,
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<BarrierAction(command={self.command}, success={self.success})>"


class NotificationEventDB(Base):
    """
    Notification lifecycle: pending, sent or failed.

    Drained events point at the quiet hours summary that delivered them
    through digest_id.
    """

    __tablename__ = "notification_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    license_plate: Mapped[str | None] = mapped_column(String(MAX_PLATE_LENGTH), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(10), default="pending", nullable=False, index=True)
    channels: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    digest_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("notification_events.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_notifications_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<NotificationEvent(type={self.type}, status={self.status})>"


class IntegrationStatusMixin:
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    timeout_ms: Mapped[int] = mapped_column(Integer, default=10000, nullable=False)
    last_status: Mapped[str] = mapped_column(String(10), default="unknown", nullable=False)
    last_status_check: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)


class BarrierIntegrationDB(IntegrationStatusMixin, TimestampMixin, Base):
    """Barrier controller connections."""

    __tablename__ = "barrier_integrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    api_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)
    api_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    open_command: Mapped[str | None] = mapped_column(String(255), nullable=True)
    close_command: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status_command: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gpio_pin: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gpio_active_high: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    open_duration_ms: Mapped[int] = mapped_column(Integer, default=5000, nullable=False)

    def __repr__(self) -> str:
        return f"<BarrierIntegration(name={self.name}, type={self.type})>"


class CameraIntegrationDB(IntegrationStatusMixin, TimestampMixin, Base):
    """Camera connections."""

    __tablename__ = "camera_integrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rtsp_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    http_snapshot_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    stream_channel: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    stream_subtype: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<CameraIntegration(name={self.name}, type={self.type})>"


class SettingDB(Base):
    """Flat key/value settings store."""

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Setting(key={self.key})>"
