"""
Repository pattern implementations for data access.

Repositories abstract database operations and provide a clean interface for
the application layer. They flush but never commit; the caller owns the
transaction.
"""

from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.domain.exceptions import DuplicatePlateError
from gatekeeper.domain.models import (
    AccessOutcome,
    BarrierActionRecord,
    BarrierCommand,
    BarrierIntegration,
    BarrierType,
    BlacklistEntry,
    CameraIntegration,
    CameraType,
    IntegrationKind,
    IntegrationStatus,
    NotificationEvent,
    NotificationStatus,
    NotificationType,
    Passage,
    PassageStats,
    Setting,
    Severity,
    TriggeredBy,
    Vehicle,
    utc_now,
)
from gatekeeper.infrastructure.db.models import (
    Base,
    BarrierActionDB,
    BarrierIntegrationDB,
    BlacklistEntryDB,
    CameraIntegrationDB,
    NotificationEventDB,
    PassageDB,
    SettingDB,
    VehicleDB,
)

VEHICLE_FIELDS = (
    "owner_name",
    "owner_phone",
    "vehicle_model",
    "vehicle_color",
    "notes",
    "is_active",
)

BLACKLIST_FIELDS = (
    "reason",
    "severity",
    "owner_name",
    "vehicle_model",
    "vehicle_color",
    "is_active",
    "notify_on_detection",
    "expires_at",
)


def _entities(model: type[Base]) -> Select:
    # bulk UPDATEs skip the identity map, so reloaded rows must overwrite it
    return select(model).execution_options(populate_existing=True)


def _apply_changes(db_obj: Any, changes: dict[str, Any], allowed: Sequence[str]) -> None:
    for name, value in changes.items():
        if name not in allowed:
            raise ValueError(f"Field {name!r} cannot be updated")
        if isinstance(value, Enum):
            value = value.value
        setattr(db_obj, name, value)
    db_obj.updated_at = utc_now()


class VehicleRepository:
    """
    Repository for allowlisted vehicles.

    Vehicles are soft-deleted only.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def get_by_id(self, vehicle_id: int) -> Vehicle | None:
        db_vehicle = await self._session.get(VehicleDB, vehicle_id, populate_existing=True)
        return self._to_domain(db_vehicle) if db_vehicle else None

    async def get_by_plate(self, license_plate: str) -> Vehicle | None:
        """Get vehicle by plate regardless of its active flag."""
        stmt = _entities(VehicleDB).where(VehicleDB.license_plate == license_plate)
        result = await self._session.execute(stmt)
        db_vehicle = result.scalar_one_or_none()
        return self._to_domain(db_vehicle) if db_vehicle else None

    async def find_active(self, license_plate: str) -> Vehicle | None:
        """
        Look up an active vehicle by normalized plate.

        Args:
            license_plate: Normalized plate.

        Returns:
            Vehicle: Active vehicle if found, None otherwise.
        """
        stmt = _entities(VehicleDB).where(
            VehicleDB.license_plate == license_plate,
            VehicleDB.is_active.is_(True),
        )
        result = await self._session.execute(stmt)
        db_vehicle = result.scalar_one_or_none()
        return self._to_domain(db_vehicle) if db_vehicle else None

    async def create(self, vehicle: Vehicle) -> Vehicle:
        """
        Create a new vehicle.

        Raises:
            DuplicatePlateError: If the plate is already registered.
        """
        if await self.get_by_plate(vehicle.license_plate) is not None:
            raise DuplicatePlateError(vehicle.license_plate)

        db_vehicle = VehicleDB(
            license_plate=vehicle.license_plate,
            owner_name=vehicle.owner_name,
            owner_phone=vehicle.owner_phone,
            vehicle_model=vehicle.vehicle_model,
            vehicle_color=vehicle.vehicle_color,
            notes=vehicle.notes,
            is_active=vehicle.is_active,
            created_by=vehicle.created_by,
        )
        self._session.add(db_vehicle)
        await self._session.flush()
        return self._to_domain(db_vehicle)

    async def update(self, vehicle_id: int, changes: dict[str, Any]) -> Vehicle | None:
        db_vehicle = await self._session.get(VehicleDB, vehicle_id, populate_existing=True)
        if db_vehicle is None:
            return None
        _apply_changes(db_vehicle, changes, VEHICLE_FIELDS)
        await self._session.flush()
        return self._to_domain(db_vehicle)

    async def deactivate(self, vehicle_id: int) -> bool:
        """
        Soft delete a vehicle.

        Returns:
            bool: True if the vehicle was found.
        """
        stmt = (
            update(VehicleDB)
            .where(VehicleDB.id == vehicle_id)
            .values(is_active=False, updated_at=utc_now())
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_vehicles(
        self,
        is_active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Vehicle]:
        stmt = _entities(VehicleDB)
        if is_active is not None:
            stmt = stmt.where(VehicleDB.is_active.is_(is_active))
        stmt = stmt.order_by(VehicleDB.id.desc()).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return [self._to_domain(v) for v in result.scalars().all()]

    def _to_domain(self, db_vehicle: VehicleDB) -> Vehicle:
        """Convert database model to domain model."""
        return Vehicle(
            id=db_vehicle.id,
            license_plate=db_vehicle.license_plate,
            owner_name=db_vehicle.owner_name,
            owner_phone=db_vehicle.owner_phone,
            vehicle_model=db_vehicle.vehicle_model,
            vehicle_color=db_vehicle.vehicle_color,
            notes=db_vehicle.notes,
            is_active=db_vehicle.is_active,
            created_by=db_vehicle.created_by,
            created_at=db_vehicle.created_at,
            updated_at=db_vehicle.updated_at,
        )


class BlacklistRepository:
    """
    Repository for blacklist entries.

    Attempt counting goes through ``register_attempt`` which increments in
    SQL, so concurrent detections of one plate never lose an increment.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, entry_id: int) -> BlacklistEntry | None:
        db_entry = await self._session.get(BlacklistEntryDB, entry_id, populate_existing=True)
        return self._to_domain(db_entry) if db_entry else None

    async def get_by_plate(self, license_plate: str) -> BlacklistEntry | None:
        stmt = _entities(BlacklistEntryDB).where(BlacklistEntryDB.license_plate == license_plate)
        result = await self._session.execute(stmt)
        db_entry = result.scalar_one_or_none()
        return self._to_domain(db_entry) if db_entry else None

    async def find_effective(self, license_plate: str, now: datetime) -> BlacklistEntry | None:
        """
        Look up an active, non-expired entry for a normalized plate.

        Args:
            license_plate: Normalized plate.
            now: Reference time for the expiry check.

        Returns:
            BlacklistEntry: Effective entry if found, None otherwise.
        """
        stmt = _entities(BlacklistEntryDB).where(
            BlacklistEntryDB.license_plate == license_plate,
            BlacklistEntryDB.is_active.is_(True),
            or_(
                BlacklistEntryDB.expires_at.is_(None),
                BlacklistEntryDB.expires_at > now,
            ),
        )
        result = await self._session.execute(stmt)
        db_entry = result.scalar_one_or_none()
        return self._to_domain(db_entry) if db_entry else None

    async def create(self, entry: BlacklistEntry) -> BlacklistEntry:
        """
        Create a new blacklist entry.

        Raises:
            DuplicatePlateError: If the plate already has an entry.
        """
        if await self.get_by_plate(entry.license_plate) is not None:
            raise DuplicatePlateError(entry.license_plate)

        db_entry = BlacklistEntryDB(
            license_plate=entry.license_plate,
            reason=entry.reason,
            severity=entry.severity.value,
            owner_name=entry.owner_name,
            vehicle_model=entry.vehicle_model,
            vehicle_color=entry.vehicle_color,
            is_active=entry.is_active,
            notify_on_detection=entry.notify_on_detection,
            attempt_count=entry.attempt_count,
            last_attempt=entry.last_attempt,
            expires_at=entry.expires_at,
            added_by=entry.added_by,
        )
        self._session.add(db_entry)
        await self._session.flush()
        return self._to_domain(db_entry)

    async def update(self, entry_id: int, changes: dict[str, Any]) -> BlacklistEntry | None:
        db_entry = await self._session.get(BlacklistEntryDB, entry_id, populate_existing=True)
        if db_entry is None:
            return None
        _apply_changes(db_entry, changes, BLACKLIST_FIELDS)
        await self._session.flush()
        return self._to_domain(db_entry)

    async def deactivate(self, entry_id: int) -> bool:
        stmt = (
            update(BlacklistEntryDB)
            .where(BlacklistEntryDB.id == entry_id)
            .values(is_active=False, updated_at=utc_now())
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def register_attempt(self, entry_id: int, now: datetime) -> int:
        """
        Atomically increment the attempt counter.

        Args:
            entry_id: Blacklist entry ID.
            now: Detection time, stored as last_attempt.

        Returns:
            int: Counter value after this increment.
        """
        stmt = (
            update(BlacklistEntryDB)
            .where(BlacklistEntryDB.id == entry_id)
            .values(
                attempt_count=BlacklistEntryDB.attempt_count + 1,
                last_attempt=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

        result = await self._session.execute(
            select(BlacklistEntryDB.attempt_count).where(BlacklistEntryDB.id == entry_id)
        )
        return result.scalar_one()

    async def list_entries(
        self,
        include_inactive: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[BlacklistEntry]:
        stmt = _entities(BlacklistEntryDB)
        if not include_inactive:
            stmt = stmt.where(BlacklistEntryDB.is_active.is_(True))
        stmt = stmt.order_by(BlacklistEntryDB.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_domain(e) for e in result.scalars().all()]

    async def existing_plates(self, plates: Sequence[str]) -> set[str]:
        if not plates:
            return set()
        stmt = select(BlacklistEntryDB.license_plate).where(
            BlacklistEntryDB.license_plate.in_(list(plates))
        )
        result = await self._session.execute(stmt)
        return set(result.scalars().all())

    def _to_domain(self, db_entry: BlacklistEntryDB) -> BlacklistEntry:
        """Convert database model to domain model."""
        return BlacklistEntry(
            id=db_entry.id,
            license_plate=db_entry.license_plate,
            reason=db_entry.reason,
            severity=Severity(db_entry.severity),
            owner_name=db_entry.owner_name,
            vehicle_model=db_entry.vehicle_model,
            vehicle_color=db_entry.vehicle_color,
            is_active=db_entry.is_active,
            notify_on_detection=db_entry.notify_on_detection,
            attempt_count=db_entry.attempt_count,
            last_attempt=db_entry.last_attempt,
            expires_at=db_entry.expires_at,
            added_by=db_entry.added_by,
            created_at=db_entry.created_at,
            updated_at=db_entry.updated_at,
        )


class PassageRepository:
    """
    Append-only passage ledger.

    Rows are inserted once and never updated.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, passage: Passage) -> Passage:
        """
        Append a passage.

        Returns:
            Passage: The passage with ID populated.
        """
        db_passage = PassageDB(
            license_plate=passage.license_plate,
            outcome=passage.outcome.value,
            is_allowed=passage.is_allowed,
            confidence=passage.confidence,
            photo_url=passage.photo_url,
            was_manual_open=passage.was_manual_open,
            barrier_opened=passage.barrier_opened,
            vehicle_id=passage.vehicle_id,
            opened_by=passage.opened_by,
            notes=passage.notes,
            timestamp=passage.timestamp,
        )
        self._session.add(db_passage)
        await self._session.flush()

        passage.id = db_passage.id
        return passage

    async def get_by_id(self, passage_id: int) -> Passage | None:
        db_passage = await self._session.get(PassageDB, passage_id, populate_existing=True)
        return self._to_domain(db_passage) if db_passage else None

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        license_plate: str | None = None,
        outcome: AccessOutcome | None = None,
    ) -> list[Passage]:
        """
        List passages newest first with optional filters.

        Args:
            limit: Maximum entries to return.
            offset: Pagination offset.
            license_plate: Optional normalized plate filter.
            outcome: Optional outcome filter.
        """
        stmt = _entities(PassageDB)
        if license_plate:
            stmt = stmt.where(PassageDB.license_plate == license_plate)
        if outcome is not None:
            stmt = stmt.where(PassageDB.outcome == outcome.value)
        stmt = stmt.order_by(PassageDB.timestamp.desc(), PassageDB.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return [self._to_domain(p) for p in result.scalars().all()]

    async def count_denied_since(self, license_plate: str, since: datetime) -> int:
        stmt = select(func.count()).select_from(PassageDB).where(
            PassageDB.license_plate == license_plate,
            PassageDB.is_allowed.is_(False),
            PassageDB.timestamp >= since,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def stats(self, start: datetime | None = None, end: datetime | None = None) -> PassageStats:
        """
        Aggregate passages in ``[start, end)``.

        Either bound may be omitted.
        """
        stmt = select(
            PassageDB.outcome,
            PassageDB.is_allowed,
            PassageDB.was_manual_open,
            func.count(),
        ).group_by(PassageDB.outcome, PassageDB.is_allowed, PassageDB.was_manual_open)
        if start is not None:
            stmt = stmt.where(PassageDB.timestamp >= start)
        if end is not None:
            stmt = stmt.where(PassageDB.timestamp < end)

        counts = dict(total=0, allowed=0, denied=0, blocked=0, unknown=0, manual=0)
        result = await self._session.execute(stmt)
        for outcome, is_allowed, was_manual_open, count in result.all():
            counts["total"] += count
            counts["allowed" if is_allowed else "denied"] += count
            if outcome == AccessOutcome.BLOCKED.value:
                counts["blocked"] += count
            elif outcome == AccessOutcome.UNKNOWN.value:
                counts["unknown"] += count
            if was_manual_open:
                counts["manual"] += count
        return PassageStats(**counts)

    def _to_domain(self, db_passage: PassageDB) -> Passage:
        """Convert database model to domain model."""
        return Passage(
            id=db_passage.id,
            license_plate=db_passage.license_plate,
            outcome=AccessOutcome(db_passage.outcome),
            is_allowed=db_passage.is_allowed,
            confidence=db_passage.confidence,
            photo_url=db_passage.photo_url,
            was_manual_open=db_passage.was_manual_open,
            barrier_opened=db_passage.barrier_opened,
            vehicle_id=db_passage.vehicle_id,
            opened_by=db_passage.opened_by,
            notes=db_passage.notes,
            timestamp=db_passage.timestamp,
        )


class BarrierActionRepository:
    """Audit log of barrier commands."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, record: BarrierActionRecord) -> BarrierActionRecord:
        db_action = BarrierActionDB(
            command=record.command.value,
            triggered_by=record.triggered_by.value,
            integration_id=record.integration_id,
            actor=record.actor,
            passage_id=record.passage_id,
            success=record.success,
            error_message=record.error_message,
            timestamp=record.timestamp,
        )
        self._session.add(db_action)
        await self._session.flush()

        record.id = db_action.id
        return record

    async def list_recent(self, limit: int = 50) -> list[BarrierActionRecord]:
        stmt = (
            select(BarrierActionDB)
            .order_by(BarrierActionDB.timestamp.desc(), BarrierActionDB.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [
            BarrierActionRecord(
                id=a.id,
                command=BarrierCommand(a.command),
                triggered_by=TriggeredBy(a.triggered_by),
                integration_id=a.integration_id,
                actor=a.actor,
                passage_id=a.passage_id,
                success=a.success,
                error_message=a.error_message,
                timestamp=a.timestamp,
            )
            for a in result.scalars().all()
        ]


class NotificationRepository:
    """
    Repository for the notification lifecycle.

    Status transitions are written only by the notification router and the
    quiet hours scheduler.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, event: NotificationEvent) -> NotificationEvent:
        db_event = NotificationEventDB(
            type=event.type.value,
            title=event.title,
            message=event.message,
            severity=event.severity.value,
            license_plate=event.license_plate,
            photo_url=event.photo_url,
            status=event.status.value,
            channels=",".join(event.channels),
            error_message=event.error_message,
            retry_count=event.retry_count,
            digest_id=event.digest_id,
            created_at=event.created_at,
            last_retry_at=event.last_retry_at,
            sent_at=event.sent_at,
        )
        self._session.add(db_event)
        await self._session.flush()

        event.id = db_event.id
        return event

    async def get_by_id(self, event_id: int) -> NotificationEvent | None:
        db_event = await self._session.get(NotificationEventDB, event_id, populate_existing=True)
        if db_event is None:
            return None
        return self._to_domain(db_event)

    async def record_retry(
        self,
        event_id: int,
        status: NotificationStatus,
        channels: Sequence[str],
        error_message: str | None,
        now: datetime,
    ) -> None:
        """
        Store the outcome of a manual resend.

        retry_count is incremented in SQL; sent_at is only set on success.
        """
        values: dict[str, Any] = dict(
            status=status.value,
            channels=",".join(channels),
            error_message=error_message,
            retry_count=NotificationEventDB.retry_count + 1,
            last_retry_at=now,
        )
        if status == NotificationStatus.SENT:
            values["sent_at"] = now

        stmt = (
            update(NotificationEventDB)
            .where(NotificationEventDB.id == event_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def list_pending(self) -> list[NotificationEvent]:
        """Snapshot of every queued event, oldest first."""
        stmt = (
            _entities(NotificationEventDB)
            .where(NotificationEventDB.status == NotificationStatus.PENDING.value)
            .order_by(NotificationEventDB.created_at, NotificationEventDB.id)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(e) for e in result.scalars().all()]

    async def count_pending(self) -> int:
        stmt = select(func.count()).select_from(NotificationEventDB).where(
            NotificationEventDB.status == NotificationStatus.PENDING.value
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_sent(self, event_ids: Sequence[int], digest_id: int, now: datetime) -> int:
        """
        Mark drained events as delivered by a digest.

        Only rows still pending are touched; retry_count is left unchanged.

        Returns:
            int: Number of rows updated.
        """
        if not event_ids:
            return 0
        stmt = (
            update(NotificationEventDB)
            .where(
                NotificationEventDB.id.in_(list(event_ids)),
                NotificationEventDB.status == NotificationStatus.PENDING.value,
            )
            .values(
                status=NotificationStatus.SENT.value,
                digest_id=digest_id,
                sent_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def list_events(
        self,
        status: NotificationStatus | None = None,
        type: NotificationType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NotificationEvent]:
        stmt = _entities(NotificationEventDB)
        if status is not None:
            stmt = stmt.where(NotificationEventDB.status == status.value)
        if type is not None:
            stmt = stmt.where(NotificationEventDB.type == type.value)
        stmt = stmt.order_by(NotificationEventDB.created_at.desc(), NotificationEventDB.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return [self._to_domain(e) for e in result.scalars().all()]

    def _to_domain(self, db_event: NotificationEventDB) -> NotificationEvent:
        """Convert database model to domain model."""
        return NotificationEvent(
            id=db_event.id,
            type=NotificationType(db_event.type),
            title=db_event.title,
            message=db_event.message,
            severity=Severity(db_event.severity),
            license_plate=db_event.license_plate,
            photo_url=db_event.photo_url,
            status=NotificationStatus(db_event.status),
            channels=[c for c in db_event.channels.split(",") if c],
            error_message=db_event.error_message,
            retry_count=db_event.retry_count,
            digest_id=db_event.digest_id,
            created_at=db_event.created_at,
            last_retry_at=db_event.last_retry_at,
            sent_at=db_event.sent_at,
        )


class IntegrationRepository:
    """
    Repository for barrier and camera integrations.

    ``set_primary`` keeps at most one primary per kind by clearing the flag
    on every other row in the same transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _model(kind: IntegrationKind) -> type[BarrierIntegrationDB] | type[CameraIntegrationDB]:
        return BarrierIntegrationDB if kind == IntegrationKind.BARRIER else CameraIntegrationDB

    async def get_barrier(self, integration_id: int) -> BarrierIntegration | None:
        db_obj = await self._session.get(BarrierIntegrationDB, integration_id, populate_existing=True)
        if db_obj is None:
            return None
        return self._barrier_to_domain(db_obj)

    async def get_camera(self, integration_id: int) -> CameraIntegration | None:
        db_obj = await self._session.get(CameraIntegrationDB, integration_id, populate_existing=True)
        if db_obj is None:
            return None
        return self._camera_to_domain(db_obj)

    async def list_barriers(self, active_only: bool = False) -> list[BarrierIntegration]:
        stmt = _entities(BarrierIntegrationDB).order_by(BarrierIntegrationDB.id)
        if active_only:
            stmt = stmt.where(BarrierIntegrationDB.is_active.is_(True))
        result = await self._session.execute(stmt)
        return [self._barrier_to_domain(b) for b in result.scalars().all()]

    async def list_cameras(self, active_only: bool = False) -> list[CameraIntegration]:
        stmt = _entities(CameraIntegrationDB).order_by(CameraIntegrationDB.id)
        if active_only:
            stmt = stmt.where(CameraIntegrationDB.is_active.is_(True))
        result = await self._session.execute(stmt)
        return [self._camera_to_domain(c) for c in result.scalars().all()]

    async def create_barrier(self, integration: BarrierIntegration) -> BarrierIntegration:
        db_obj = BarrierIntegrationDB(
            name=integration.name,
            type=integration.type.value,
            host=integration.host,
            port=integration.port,
            username=integration.username,
            password=integration.password,
            api_endpoint=integration.api_endpoint,
            api_key=integration.api_key,
            open_command=integration.open_command,
            close_command=integration.close_command,
            status_command=integration.status_command,
            gpio_pin=integration.gpio_pin,
            gpio_active_high=integration.gpio_active_high,
            open_duration_ms=integration.open_duration_ms,
            timeout_ms=integration.timeout_ms,
            is_active=integration.is_active,
            is_primary=False,
        )
        self._session.add(db_obj)
        await self._session.flush()
        if integration.is_primary:
            await self.set_primary(IntegrationKind.BARRIER, db_obj.id)
            await self._session.refresh(db_obj)
        return self._barrier_to_domain(db_obj)

    async def create_camera(self, integration: CameraIntegration) -> CameraIntegration:
        db_obj = CameraIntegrationDB(
            name=integration.name,
            type=integration.type.value,
            host=integration.host,
            port=integration.port,
            username=integration.username,
            password=integration.password,
            rtsp_url=integration.rtsp_url,
            http_snapshot_url=integration.http_snapshot_url,
            stream_channel=integration.stream_channel,
            stream_subtype=integration.stream_subtype,
            timeout_ms=integration.timeout_ms,
            is_active=integration.is_active,
            is_primary=False,
        )
        self._session.add(db_obj)
        await self._session.flush()
        if integration.is_primary:
            await self.set_primary(IntegrationKind.CAMERA, db_obj.id)
            await self._session.refresh(db_obj)
        return self._camera_to_domain(db_obj)

    async def set_primary(self, kind: IntegrationKind, integration_id: int) -> bool:
        """
        Make one integration the primary of its kind.

        Returns:
            bool: False if the integration does not exist.
        """
        model = self._model(kind)
        if await self._session.get(model, integration_id, populate_existing=True) is None:
            return False

        await self._session.execute(
            update(model)
            .where(model.id != integration_id)
            .values(is_primary=False)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            update(model)
            .where(model.id == integration_id)
            .values(is_primary=True)
            .execution_options(synchronize_session=False)
        )
        return True

    async def update_status(
        self,
        kind: IntegrationKind,
        integration_id: int,
        status: IntegrationStatus,
        error: str | None,
        now: datetime,
    ) -> None:
        model = self._model(kind)
        await self._session.execute(
            update(model)
            .where(model.id == integration_id)
            .values(last_status=status.value, last_error=error, last_status_check=now)
            .execution_options(synchronize_session=False)
        )

    def _barrier_to_domain(self, db_obj: BarrierIntegrationDB) -> BarrierIntegration:
        return BarrierIntegration(
            id=db_obj.id,
            name=db_obj.name,
            type=BarrierType(db_obj.type),
            host=db_obj.host,
            port=db_obj.port,
            username=db_obj.username,
            password=db_obj.password,
            api_endpoint=db_obj.api_endpoint,
            api_key=db_obj.api_key,
            open_command=db_obj.open_command,
            close_command=db_obj.close_command,
            status_command=db_obj.status_command,
            gpio_pin=db_obj.gpio_pin,
            gpio_active_high=db_obj.gpio_active_high,
            open_duration_ms=db_obj.open_duration_ms,
            timeout_ms=db_obj.timeout_ms,
            is_active=db_obj.is_active,
            is_primary=db_obj.is_primary,
            last_status=IntegrationStatus(db_obj.last_status),
            last_status_check=db_obj.last_status_check,
            last_error=db_obj.last_error,
        )

    def _camera_to_domain(self, db_obj: CameraIntegrationDB) -> CameraIntegration:
        return CameraIntegration(
            id=db_obj.id,
            name=db_obj.name,
            type=CameraType(db_obj.type),
            host=db_obj.host,
            port=db_obj.port,
            username=db_obj.username,
            password=db_obj.password,
            rtsp_url=db_obj.rtsp_url,
            http_snapshot_url=db_obj.http_snapshot_url,
            stream_channel=db_obj.stream_channel,
            stream_subtype=db_obj.stream_subtype,
            timeout_ms=db_obj.timeout_ms,
            is_active=db_obj.is_active,
            is_primary=db_obj.is_primary,
            last_status=IntegrationStatus(db_obj.last_status),
            last_status_check=db_obj.last_status_check,
            last_error=db_obj.last_error,
        )


class SettingsRepository:
    """
    Key/value settings store.

    No caching: every read goes to the database so it reflects the latest
    write.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, key: str) -> str | None:
        result = await self._session.execute(select(SettingDB.value).where(SettingDB.key == key))
        return result.scalar_one_or_none()

    async def get_many(self, keys: Sequence[str]) -> dict[str, str]:
        result = await self._session.execute(
            select(SettingDB.key, SettingDB.value).where(SettingDB.key.in_(list(keys)))
        )
        return {key: value for key, value in result.all()}

    async def set(self, key: str, value: str, description: str | None = None) -> Setting:
        """Insert or update one setting."""
        result = await self._session.execute(select(SettingDB).where(SettingDB.key == key))
        db_setting = result.scalar_one_or_none()

        if db_setting is None:
            db_setting = SettingDB(key=key, value=value, description=description)
            self._session.add(db_setting)
        else:
            db_setting.value = value
            if description is not None:
                db_setting.description = description
            db_setting.updated_at = utc_now()

        await self._session.flush()
        return self._to_domain(db_setting)

    async def list_all(self) -> list[Setting]:
        result = await self._session.execute(select(SettingDB).order_by(SettingDB.key))
        return [self._to_domain(s) for s in result.scalars().all()]

    def _to_domain(self, db_setting: SettingDB) -> Setting:
        return Setting(
            key=db_setting.key,
            value=db_setting.value,
            description=db_setting.description,
            updated_at=db_setting.updated_at,
        )
