"""
Notification message templates.

Every builder returns a ready ``NotificationEvent`` (not yet persisted).
Bodies are plain text; channels apply their own markup.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime

from gatekeeper.domain.models import (
    BlacklistEntry,
    NotificationEvent,
    NotificationType,
    PassageStats,
    Severity,
    Vehicle,
)

DIGEST_ITEMS_PER_TYPE = 5

SEVERITY_LABELS = {
    Severity.LOW: "LOW",
    Severity.MEDIUM: "MEDIUM",
    Severity.HIGH: "HIGH",
    Severity.CRITICAL: "CRITICAL",
}

TYPE_LABELS = {
    NotificationType.UNKNOWN_VEHICLE: "Unknown vehicles",
    NotificationType.BLACKLIST_DETECTED: "Blacklisted vehicles detected",
    NotificationType.MANUAL_OPEN: "Manual barrier openings",
    NotificationType.UNAUTHORIZED_ACCESS: "Unauthorized access attempts",
    NotificationType.ALLOWED_PASSAGE: "Allowed passages",
    NotificationType.DAILY_SUMMARY: "Daily summaries",
    NotificationType.QUIET_HOURS_SUMMARY: "Quiet hours summaries",
}


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def unknown_vehicle(
    plate: str,
    confidence: int,
    timestamp: datetime,
    photo_url: str | None = None,
) -> NotificationEvent:
    lines = [
        "An unregistered vehicle was detected at the barrier.",
        "",
        f"Plate: {plate}",
        f"Confidence: {confidence}%",
        f"Time: {format_timestamp(timestamp)}",
    ]
    if photo_url:
        lines.append(f"Photo: {photo_url}")
    lines += ["", "Access was denied automatically."]

    return NotificationEvent(
        type=NotificationType.UNKNOWN_VEHICLE,
        title="Unknown vehicle detected",
        message="\n".join(lines),
        severity=Severity.MEDIUM,
        license_plate=plate,
        photo_url=photo_url,
    )


def blacklist_detected(
    entry: BlacklistEntry,
    attempt_number: int,
    timestamp: datetime,
    photo_url: str | None = None,
    previous_attempt: datetime | None = None,
) -> NotificationEvent:
    """
    Detection of a blacklisted plate.

    Args:
        entry: Blacklist entry as it was before this detection.
        attempt_number: Counter value after the atomic increment.
        timestamp: Detection time.
        photo_url: Stored photo of the vehicle.
        previous_attempt: Time of the detection before this one.
    """
    severity = entry.severity
    lines = [
        f"[{SEVERITY_LABELS[severity]}] Blacklisted vehicle at the barrier.",
        "",
        f"Plate: {entry.license_plate}",
    ]
    if entry.owner_name:
        lines.append(f"Owner: {entry.owner_name}")
    if entry.vehicle_model:
        lines.append(f"Model: {entry.vehicle_model}")
    if entry.vehicle_color:
        lines.append(f"Colour: {entry.vehicle_color}")
    lines += [
        f"Reason: {entry.reason or 'No reason specified'}",
        f"Time: {format_timestamp(timestamp)}",
        f"Attempt: #{attempt_number}",
    ]
    if previous_attempt is not None:
        lines.append(f"Previous attempt: {format_timestamp(previous_attempt)}")
    if photo_url:
        lines.append(f"Photo: {photo_url}")
    lines += ["", "The barrier was NOT opened."]

    return NotificationEvent(
        type=NotificationType.BLACKLIST_DETECTED,
        title=f"Blacklisted vehicle: {entry.license_plate}",
        message="\n".join(lines),
        severity=severity,
        license_plate=entry.license_plate,
        photo_url=photo_url,
    )


def manual_open(
    actor: str | None,
    timestamp: datetime,
    notes: str | None = None,
    success: bool = True,
    error: str | None = None,
) -> NotificationEvent:
    lines = [
        "The barrier was opened manually.",
        "",
        f"Operator: {actor or 'unknown'}",
        f"Time: {format_timestamp(timestamp)}",
    ]
    if notes:
        lines.append(f"Notes: {notes}")
    if not success:
        lines += ["", f"The barrier did not confirm the command: {error or 'unknown error'}"]

    return NotificationEvent(
        type=NotificationType.MANUAL_OPEN,
        title="Barrier opened manually",
        message="\n".join(lines),
        severity=Severity.MEDIUM,
    )


def unauthorized_access(
    plate: str,
    attempt_count: int,
    timestamp: datetime,
    photo_url: str | None = None,
) -> NotificationEvent:
    lines = [
        "Repeated access attempts by an unregistered vehicle.",
        "",
        f"Plate: {plate}",
        f"Attempts in the last 24 hours: {attempt_count}",
        f"Time: {format_timestamp(timestamp)}",
    ]
    if photo_url:
        lines.append(f"Photo: {photo_url}")
    lines += ["", "Check the surveillance camera."]

    return NotificationEvent(
        type=NotificationType.UNAUTHORIZED_ACCESS,
        title="Unauthorized access attempt",
        message="\n".join(lines),
        severity=Severity.HIGH,
        license_plate=plate,
        photo_url=photo_url,
    )


def allowed_passage(vehicle: Vehicle, timestamp: datetime, barrier_opened: bool) -> NotificationEvent:
    lines = [
        f"Plate: {vehicle.license_plate}",
        f"Owner: {vehicle.owner_name or 'not specified'}",
        f"Time: {format_timestamp(timestamp)}",
        f"Barrier: {'opened' if barrier_opened else 'not opened'}",
    ]
    return NotificationEvent(
        type=NotificationType.ALLOWED_PASSAGE,
        title="Vehicle passed",
        message="\n".join(lines),
        severity=Severity.LOW,
        license_plate=vehicle.license_plate,
    )


def daily_summary(day: date, stats: PassageStats) -> NotificationEvent:
    lines = [
        f"Passages on {day.isoformat()}",
        "",
        f"Total: {stats.total}",
        f"Allowed: {stats.allowed}",
        f"Denied: {stats.denied}",
        f"Blacklisted: {stats.blocked}",
        f"Unknown: {stats.unknown}",
        f"Manual openings: {stats.manual}",
        "",
        f"Success rate: {stats.success_rate}%",
    ]
    return NotificationEvent(
        type=NotificationType.DAILY_SUMMARY,
        title=f"Daily summary for {day.isoformat()}",
        message="\n".join(lines),
        severity=Severity.LOW,
    )


def quiet_hours_digest(events: Sequence[NotificationEvent]) -> NotificationEvent:
    """
    One digest for all events held back during quiet hours.

    Events are grouped by type in order of first appearance; each group
    lists at most ``DIGEST_ITEMS_PER_TYPE`` items.
    """
    grouped: dict[NotificationType, list[NotificationEvent]] = defaultdict(list)
    for event in events:
        grouped[event.type].append(event)

    lines = [f"{len(events)} notifications were held during quiet hours:", ""]
    for event_type, items in grouped.items():
        lines.append(f"{TYPE_LABELS.get(event_type, event_type.value)} ({len(items)}):")
        for item in items[:DIGEST_ITEMS_PER_TYPE]:
            plate = f" [{item.license_plate}]" if item.license_plate else ""
            lines.append(f"  - {item.created_at.strftime('%H:%M')}{plate}: {item.title}")
        if len(items) > DIGEST_ITEMS_PER_TYPE:
            lines.append(f"  ... and {len(items) - DIGEST_ITEMS_PER_TYPE} more")
        lines.append("")

    return NotificationEvent(
        type=NotificationType.QUIET_HOURS_SUMMARY,
        title=f"Notification summary ({len(events)})",
        message="\n".join(lines).rstrip(),
        severity=Severity.MEDIUM,
    )
