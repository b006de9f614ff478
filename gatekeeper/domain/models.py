"""
Domain models for the Gatekeeper access control service.

These are pure domain objects with no infrastructure dependencies.
They represent the registry, the passage ledger, the notification lifecycle
and the hardware integrations, plus the typed results returned by hardware
and notification operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# width of every license_plate column
MAX_PLATE_LENGTH = 20


class Severity(str, Enum):
    """Severity of a blacklist entry and of the notifications it raises."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def is_urgent(self) -> bool:
        """High and critical events may bypass quiet hours."""
        return self in (Severity.HIGH, Severity.CRITICAL)


class AccessOutcome(str, Enum):
    """
    Outcome of a single recognition or manual-open event.

    ALLOWED: Plate is an active allowlisted vehicle.
    BLOCKED: Plate matches an effective blacklist entry.
    UNKNOWN: No plate, or a plate found in neither registry (denied).
    MANUAL: Operator opened the barrier by hand.
    """

    ALLOWED = "allowed"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"
    MANUAL = "manual"


class NotificationType(str, Enum):
    UNKNOWN_VEHICLE = "unknown_vehicle"
    BLACKLIST_DETECTED = "blacklist_detected"
    MANUAL_OPEN = "manual_open"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    ALLOWED_PASSAGE = "allowed_passage"
    DAILY_SUMMARY = "daily_summary"
    QUIET_HOURS_SUMMARY = "quiet_hours_summary"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class BarrierCommand(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    STATUS = "status"


class TriggeredBy(str, Enum):
    """Who caused a barrier command."""

    AUTO = "auto"
    MANUAL = "manual"
    API = "api"


class IntegrationStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"
    UNKNOWN = "unknown"


class IntegrationKind(str, Enum):
    BARRIER = "barrier"
    CAMERA = "camera"


class BarrierType(str, Enum):
    CAME = "came"
    NICE = "nice"
    BFT = "bft"
    DOORHAN = "doorhan"
    GPIO = "gpio"
    CUSTOM_HTTP = "custom_http"


class CameraType(str, Enum):
    HIKVISION = "hikvision"
    DAHUA = "dahua"
    AXIS = "axis"
    ONVIF = "onvif"
    CUSTOM_RTSP = "custom_rtsp"
    CUSTOM_HTTP = "custom_http"


@dataclass(frozen=True)
class RecognitionResult:
    """
    Output of the external plate classifier.

    Attributes:
        plate: Raw plate candidate, or None when nothing was read.
        confidence: Classifier confidence, 0 to 100.
    """

    plate: str | None
    confidence: int

    def __post_init__(self) -> None:
        """Validate confidence is in valid range."""
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence must be between 0 and 100, got {self.confidence}")


@dataclass
class Vehicle:
    """
    Allowlisted vehicle.

    Soft-deleted only (``is_active=False``) so historical passages stay
    attributable.
    """

    license_plate: str
    owner_name: str | None = None
    owner_phone: str | None = None
    vehicle_model: str | None = None
    vehicle_color: str | None = None
    notes: str | None = None
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None


@dataclass
class BlacklistEntry:
    """
    Blacklisted plate.

    Attributes:
        license_plate: Normalized plate, unique.
        severity: Severity used for detection notifications.
        attempt_count: Number of detections; only ever incremented in SQL.
        last_attempt: Time of the most recent detection.
        expires_at: Optional expiry after which the entry no longer blocks.
    """

    license_plate: str
    severity: Severity = Severity.MEDIUM
    reason: str | None = None
    owner_name: str | None = None
    vehicle_model: str | None = None
    vehicle_color: str | None = None
    is_active: bool = True
    notify_on_detection: bool = True
    attempt_count: int = 0
    last_attempt: datetime | None = None
    expires_at: datetime | None = None
    added_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None


@dataclass
class Passage:
    """
    One immutable record of a recognition or manual-open event.

    Attributes:
        license_plate: Normalized plate (None if nothing was recognized or
            the barrier was opened by hand).
        outcome: Access outcome.
        is_allowed: Whether passage was granted.
        confidence: Classifier confidence, 0 to 100.
        was_manual_open: Operator-initiated opening.
        barrier_opened: Whether the barrier actually reported success.
        notes: Free-text annotation such as ``BLACKLISTED: <reason>``.
    """

    license_plate: str | None
    outcome: AccessOutcome
    is_allowed: bool
    confidence: int = 0
    photo_url: str | None = None
    was_manual_open: bool = False
    barrier_opened: bool = False
    vehicle_id: int | None = None
    opened_by: str | None = None
    notes: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
    id: int | None = None


@dataclass
class BarrierActionRecord:
    """Audit row for one barrier command issued by the system."""

    command: BarrierCommand
    triggered_by: TriggeredBy
    success: bool
    integration_id: int | None = None
    actor: str | None = None
    passage_id: int | None = None
    error_message: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
    id: int | None = None


@dataclass
class NotificationEvent:
    """
    A notification in its single lifecycle.

    Pending (queued during quiet hours) and history (delivery attempted)
    are the same record in different states.
    """

    type: NotificationType
    title: str
    message: str
    severity: Severity = Severity.MEDIUM
    license_plate: str | None = None
    photo_url: str | None = None
    status: NotificationStatus = NotificationStatus.PENDING
    channels: list[str] = field(default_factory=list)
    error_message: str | None = None
    retry_count: int = 0
    digest_id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    last_retry_at: datetime | None = None
    sent_at: datetime | None = None
    id: int | None = None


@dataclass
class BarrierIntegration:
    """
    Barrier controller connection.

    Command fields override the vendor default paths. Timeouts are in
    milliseconds.
    """

    name: str
    type: BarrierType
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    api_endpoint: str | None = None
    api_key: str | None = None
    open_command: str | None = None
    close_command: str | None = None
    status_command: str | None = None
    gpio_pin: int | None = None
    gpio_active_high: bool = True
    open_duration_ms: int = 5000
    timeout_ms: int = 10000
    is_active: bool = True
    is_primary: bool = False
    last_status: IntegrationStatus = IntegrationStatus.UNKNOWN
    last_status_check: datetime | None = None
    last_error: str | None = None
    id: int | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass
class CameraIntegration:
    """Camera connection used for snapshots and stream URLs."""

    name: str
    type: CameraType
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    rtsp_url: str | None = None
    http_snapshot_url: str | None = None
    stream_channel: int = 1
    stream_subtype: int = 0
    timeout_ms: int = 10000
    is_active: bool = True
    is_primary: bool = False
    last_status: IntegrationStatus = IntegrationStatus.UNKNOWN
    last_status_check: datetime | None = None
    last_error: str | None = None
    id: int | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass(frozen=True)
class QuietHoursConfig:
    """
    Quiet hours window.

    ``start`` and ``end`` are ``HH:MM``; ``start > end`` wraps past midnight.
    """

    enabled: bool = False
    start: str = "22:00"
    end: str = "07:00"
    bypass_critical: bool = True


@dataclass(frozen=True)
class AccessCheck:
    """Registry lookup result for one normalized plate."""

    plate: str
    blacklist_entry: BlacklistEntry | None = None
    vehicle: Vehicle | None = None

    @property
    def is_blacklisted(self) -> bool:
        return self.blacklist_entry is not None


@dataclass(frozen=True)
class BarrierResponse:
    """
    Result of one barrier command.

    Attributes:
        success: Command accepted by the controller.
        status: Device state reported by the controller.
        error: Failure description.
        reachable: False when the controller could not be reached at all
            (timeout, refused connection).
    """

    success: bool
    status: str | None = None
    error: str | None = None
    reachable: bool = True


@dataclass(frozen=True)
class BarrierExecution:
    """A barrier command together with the integration that ran it."""

    command: BarrierCommand
    response: BarrierResponse
    integration_id: int | None = None


@dataclass(frozen=True)
class CameraSnapshot:
    success: bool
    image: bytes | None = None
    content_type: str | None = None
    error: str | None = None
    reachable: bool = True


@dataclass(frozen=True)
class CameraStreamInfo:
    success: bool
    rtsp_url: str | None = None
    http_url: str | None = None
    snapshot_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ChannelDelivery:
    """Outcome of delivering one notification over one channel."""

    channel: str
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class DispatchResult:
    queued: bool
    sent: bool
    event_id: int | None = None


@dataclass(frozen=True)
class ResendResult:
    success: bool
    error_message: str | None = None


@dataclass(frozen=True)
class DrainResult:
    """
    Result of draining queued notifications.

    Attributes:
        sent: Queued events marked sent by the digest.
        failed: Queued events left pending because the digest failed.
        drained: Size of the pending snapshot the digest was built from.
        digest_id: Notification record of the digest itself; None when no
            digest was delivered.
    """

    sent: int
    failed: int
    drained: int = 0
    digest_id: int | None = None


@dataclass(frozen=True)
class RecognitionOutcome:
    """Result of one recognition call, returned to the caller."""

    plate: str | None
    confidence: int
    outcome: AccessOutcome
    is_allowed: bool
    is_blacklisted: bool
    barrier_opened: bool
    passage_id: int
    photo_url: str | None = None


@dataclass(frozen=True)
class ManualOpenResult:
    success: bool
    passage_id: int
    error: str | None = None


@dataclass(frozen=True)
class PassageStats:
    """Aggregated passage counts over a period."""

    total: int = 0
    allowed: int = 0
    denied: int = 0
    blocked: int = 0
    unknown: int = 0
    manual: int = 0

    @property
    def success_rate(self) -> float:
        """Share of passages that were allowed, in percent."""
        if self.total == 0:
            return 0.0
        return round(self.allowed / self.total * 100, 1)


@dataclass(frozen=True)
class CsvRowError:
    row: int
    plate: str
    error: str


@dataclass
class CsvImportResult:
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[CsvRowError] = field(default_factory=list)


@dataclass(frozen=True)
class CsvImportPreview:
    headers: list[str]
    total_rows: int
    sample_rows: list[dict[str, str]]
    duplicates: int
    new_entries: int
    has_required_fields: bool


@dataclass
class Setting:
    """One entry of the key/value settings store."""

    key: str
    value: str
    description: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Operator-editable configuration for one call.

    Loaded from the settings store at the call boundary and passed down
    explicitly; business logic never reads the store itself.
    """

    notifications_enabled: bool = True
    email_enabled: bool = True
    telegram_enabled: bool = False
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    notify_allowed_passages: bool = False
    daily_summary_enabled: bool = True
    unauthorized_attempt_threshold: int = 3
    timezone: str = "UTC"
    quiet_hours: QuietHoursConfig = field(default_factory=QuietHoursConfig)
