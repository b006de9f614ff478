"""
Blacklist CSV export and import.

Columns use the camelCase names of the exported file. Only
``licensePlate`` is required on import; detection counters are never
imported.
"""

import csv
import io
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import (
    MAX_PLATE_LENGTH,
    BlacklistEntry,
    CsvImportPreview,
    CsvImportResult,
    CsvRowError,
    Severity,
    to_naive_utc,
)
from gatekeeper.domain.services import PlateTextNormalizer
from gatekeeper.infrastructure.db.repository import BlacklistRepository

logger = get_logger(__name__)

EXPORT_COLUMNS = [
    "licensePlate",
    "severity",
    "reason",
    "ownerName",
    "vehicleModel",
    "vehicleColor",
    "notifyOnDetection",
    "attemptCount",
    "isActive",
    "expiresAt",
    "createdAt",
]
REQUIRED_COLUMNS = ["licensePlate"]
PREVIEW_ROWS = 10

_SEVERITIES = {s.value for s in Severity}


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _timestamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def parse_timestamp(value: str) -> datetime | None:
    """
    Parse an ISO 8601 timestamp into naive UTC.

    Raises:
        ValueError: If the value is not ISO 8601.
    """
    value = value.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(value))


def _read(text: str) -> tuple[list[str], list[dict[str, str]]]:
    reader = csv.DictReader(io.StringIO(text.strip()))
    headers = [h.strip() for h in reader.fieldnames or []]
    reader.fieldnames = headers
    rows = [{k: (v or "").strip() for k, v in row.items() if k is not None} for row in reader]
    if not headers or not rows:
        raise ValidationError("CSV file is empty or has no data rows")
    return headers, rows


class BlacklistCsvService:
    """Bulk transfer of blacklist entries."""

    def __init__(self, session: AsyncSession):
        self._repo = BlacklistRepository(session)
        self._normalizer = PlateTextNormalizer()

    async def export(self, include_inactive: bool = False) -> str:
        """Render the blacklist as CSV text, every cell quoted."""
        entries = await self._repo.list_entries(include_inactive=include_inactive, limit=None)

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_COLUMNS)
        for entry in entries:
            writer.writerow(
                [
                    entry.license_plate,
                    entry.severity.value,
                    entry.reason or "",
                    entry.owner_name or "",
                    entry.vehicle_model or "",
                    entry.vehicle_color or "",
                    _flag(entry.notify_on_detection),
                    entry.attempt_count,
                    _flag(entry.is_active),
                    _timestamp(entry.expires_at),
                    _timestamp(entry.created_at),
                ]
            )

        logger.info("blacklist_exported", count=len(entries), include_inactive=include_inactive)
        return buffer.getvalue()

    async def import_csv(
        self,
        text: str,
        skip_duplicates: bool = True,
        update_existing: bool = False,
        actor: str | None = None,
    ) -> CsvImportResult:
        """
        Create or update entries from CSV text.

        Existing plates are updated when ``update_existing`` is set (this
        wins over ``skip_duplicates``), skipped when ``skip_duplicates`` is
        set, and reported as row errors otherwise.

        Raises:
            ValidationError: If the file has no data rows or lacks the
                ``licensePlate`` column.
        """
        headers, rows = _read(text)
        missing = [c for c in REQUIRED_COLUMNS if c not in headers]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        result = CsvImportResult()
        # the header is row 1
        for row_number, row in enumerate(rows, start=2):
            plate = self._normalizer.normalize(row.get("licensePlate"))
            if not plate:
                result.errors.append(CsvRowError(row=row_number, plate="", error="Empty license plate"))
                continue
            if len(plate) > MAX_PLATE_LENGTH:
                result.errors.append(CsvRowError(row=row_number, plate=plate, error="License plate too long"))
                continue

            try:
                expires_at = parse_timestamp(row.get("expiresAt", ""))
            except ValueError:
                result.errors.append(
                    CsvRowError(row=row_number, plate=plate, error="Invalid expiresAt timestamp")
                )
                continue

            existing = await self._repo.get_by_plate(plate)
            if existing is not None:
                if update_existing:
                    await self._repo.update(existing.id, self._changes(row, expires_at))
                    result.updated += 1
                elif skip_duplicates:
                    result.skipped += 1
                else:
                    result.errors.append(CsvRowError(row=row_number, plate=plate, error="Duplicate plate"))
                continue

            severity = row.get("severity", "").lower()
            await self._repo.create(
                BlacklistEntry(
                    license_plate=plate,
                    severity=Severity(severity) if severity in _SEVERITIES else Severity.MEDIUM,
                    reason=row.get("reason") or None,
                    owner_name=row.get("ownerName") or None,
                    vehicle_model=row.get("vehicleModel") or None,
                    vehicle_color=row.get("vehicleColor") or None,
                    notify_on_detection=row.get("notifyOnDetection", "").lower() != "false",
                    is_active=row.get("isActive", "").lower() != "false",
                    expires_at=expires_at,
                    added_by=actor,
                )
            )
            result.imported += 1

        logger.info(
            "blacklist_imported",
            imported=result.imported,
            updated=result.updated,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    @staticmethod
    def _changes(row: dict[str, str], expires_at: datetime | None) -> dict[str, Any]:
        """Fields present in the row; empty cells keep the stored value."""
        changes: dict[str, Any] = {}
        severity = row.get("severity", "").lower()
        if severity in _SEVERITIES:
            changes["severity"] = Severity(severity)
        for column, field_name in (
            ("reason", "reason"),
            ("ownerName", "owner_name"),
            ("vehicleModel", "vehicle_model"),
            ("vehicleColor", "vehicle_color"),
        ):
            if row.get(column):
                changes[field_name] = row[column]
        for column, field_name in (("notifyOnDetection", "notify_on_detection"), ("isActive", "is_active")):
            value = row.get(column, "").lower()
            if value in ("true", "false"):
                changes[field_name] = value == "true"
        if expires_at is not None:
            changes["expires_at"] = expires_at
        return changes

    async def preview(self, text: str) -> CsvImportPreview:
        """
        Describe what an import would do, looking at the first rows only.

        Raises:
            ValidationError: If the file has no data rows.
        """
        headers, rows = _read(text)
        sample = rows[:PREVIEW_ROWS]

        plates = [p for p in (self._normalizer.normalize(r.get("licensePlate")) for r in sample) if p]
        existing = await self._repo.existing_plates(plates)

        return CsvImportPreview(
            headers=headers,
            total_rows=len(rows),
            sample_rows=sample,
            duplicates=sum(1 for p in plates if p in existing),
            new_entries=sum(1 for p in plates if p not in existing),
            has_required_fields=all(c in headers for c in REQUIRED_COLUMNS),
        )
