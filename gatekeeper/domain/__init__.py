"""Domain layer package - business rules and core models."""

from gatekeeper.domain.exceptions import (
    AmbiguousPrimaryError,
    DuplicatePlateError,
    GatekeeperError,
    NotFoundError,
    RecognitionError,
    ValidationError,
)
from gatekeeper.domain.models import (
    AccessOutcome,
    BarrierCommand,
    BarrierIntegration,
    BlacklistEntry,
    CameraIntegration,
    NotificationEvent,
    NotificationStatus,
    NotificationType,
    Passage,
    QuietHoursConfig,
    RecognitionResult,
    RuntimeConfig,
    Severity,
    Vehicle,
)
from gatekeeper.domain.services import (
    DecisionMaker,
    PlateTextNormalizer,
    QuietHoursEvaluator,
    select_primary,
)

__all__ = [
    # Exceptions
    "AmbiguousPrimaryError",
    "DuplicatePlateError",
    "GatekeeperError",
    "NotFoundError",
    "RecognitionError",
    "ValidationError",
    # Models
    "AccessOutcome",
    "BarrierCommand",
    "BarrierIntegration",
    "BlacklistEntry",
    "CameraIntegration",
    "NotificationEvent",
    "NotificationStatus",
    "NotificationType",
    "Passage",
    "QuietHoursConfig",
    "RecognitionResult",
    "RuntimeConfig",
    "Severity",
    "Vehicle",
    # Services
    "DecisionMaker",
    "PlateTextNormalizer",
    "QuietHoursEvaluator",
    "select_primary",
]
