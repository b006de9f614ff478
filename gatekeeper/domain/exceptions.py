"""
Domain exceptions.

Raised for malformed input and missing records before any side effect takes
place. Hardware and notification failures are never raised; they are returned
as typed results (see ``gatekeeper.domain.models``).
"""


class GatekeeperError(Exception):
    """Base class for all domain errors."""


class ValidationError(GatekeeperError):
    """Input rejected before any side effect was performed."""


class NotFoundError(GatekeeperError):
    """Referenced record does not exist."""


class DuplicatePlateError(GatekeeperError):
    """A vehicle or blacklist entry with this plate already exists."""

    def __init__(self, plate: str):
        super().__init__(f"Plate {plate} already exists")
        self.plate = plate


class AmbiguousPrimaryError(GatekeeperError):
    """More than one active integration of the same kind is flagged primary."""

    def __init__(self, integration_ids: list[int]):
        super().__init__(
            f"Multiple primary integrations configured: {integration_ids}"
        )
        self.integration_ids = integration_ids


class RecognitionError(GatekeeperError):
    """The external plate classifier could not produce a result."""
