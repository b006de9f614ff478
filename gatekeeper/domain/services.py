"""
Domain services for plate normalization, access classification, quiet hours
and primary integration selection.

These services contain pure business logic with no infrastructure
dependencies. They can be easily unit tested.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, time
from typing import Protocol, TypeVar

from gatekeeper.domain.exceptions import AmbiguousPrimaryError
from gatekeeper.domain.models import (
    AccessOutcome,
    BlacklistEntry,
    QuietHoursConfig,
    Severity,
    Vehicle,
)

_TIME_OF_DAY = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_WHITESPACE = re.compile(r"\s+")

MINUTES_PER_DAY = 24 * 60


@dataclass
class PlateTextNormalizer:
    """
    Normalizes plate text to the form used as the registry join key.

    Example:
        >>> PlateTextNormalizer().normalize(" a 123 bc 777 ")
        'A123BC777'
    """

    def normalize(self, text: str | None) -> str:
        """
        Uppercase the plate and strip all whitespace.

        Returns:
            str: Normalized plate, empty string for empty input.
        """
        if not text:
            return ""
        return _WHITESPACE.sub("", text.upper())


@dataclass
class DecisionMaker:
    """
    Classifies a recognized plate with strict precedence.

    Blacklist beats allowlist; a missing plate is never looked up and is
    always UNKNOWN.
    """

    def classify(
        self,
        plate: str | None,
        blacklist_entry: BlacklistEntry | None,
        vehicle: Vehicle | None,
    ) -> AccessOutcome:
        """
        Args:
            plate: Normalized plate or None.
            blacklist_entry: Effective blacklist entry for the plate, if any.
            vehicle: Active allowlisted vehicle for the plate, if any.

        Returns:
            AccessOutcome: BLOCKED, ALLOWED or UNKNOWN.
        """
        if not plate:
            return AccessOutcome.UNKNOWN
        if blacklist_entry is not None:
            return AccessOutcome.BLOCKED
        if vehicle is not None and vehicle.is_active:
            return AccessOutcome.ALLOWED
        return AccessOutcome.UNKNOWN

    def is_allowed(self, outcome: AccessOutcome) -> bool:
        return outcome in (AccessOutcome.ALLOWED, AccessOutcome.MANUAL)


def parse_time_of_day(value: str) -> int:
    """
    Parse ``HH:MM`` into minutes after midnight.

    Raises:
        ValueError: If the value is not a valid time of day.
    """
    match = _TIME_OF_DAY.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid time of day: {value!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


@dataclass
class QuietHoursEvaluator:
    """
    Evaluates the quiet hours window.

    The window is ``[start, end)``. When ``start > end`` it wraps past
    midnight and covers ``[start, 24:00) ∪ [00:00, end)``. ``start == end``
    is an empty window.
    """

    def is_active(self, now: datetime | time, config: QuietHoursConfig) -> bool:
        """
        Args:
            now: Local wall-clock time to check.
            config: Quiet hours configuration.

        Returns:
            bool: True if notifications should be held back at ``now``.
        """
        if not config.enabled:
            return False

        start = parse_time_of_day(config.start)
        end = parse_time_of_day(config.end)
        current = now.hour * 60 + now.minute

        if start == end:
            return False
        if start < end:
            return start <= current < end
        return current >= start or current < end

    def should_bypass(self, severity: Severity, config: QuietHoursConfig) -> bool:
        return config.bypass_critical and severity.is_urgent

    def should_queue(
        self,
        severity: Severity,
        now: datetime | time,
        config: QuietHoursConfig,
    ) -> bool:
        """True when an event of ``severity`` must wait for the next drain."""
        return self.is_active(now, config) and not self.should_bypass(severity, config)


class _Selectable(Protocol):
    id: int | None
    is_active: bool
    is_primary: bool


T = TypeVar("T", bound=_Selectable)


def select_primary(integrations: Sequence[T]) -> T | None:
    """
    Pick the integration used by automatic flows.

    The active integration flagged primary wins; otherwise the first active
    integration by id. Inactive rows are ignored.

    Raises:
        AmbiguousPrimaryError: If several active integrations are flagged
            primary.
    """
    active = sorted(
        (i for i in integrations if i.is_active),
        key=lambda i: i.id if i.id is not None else 0,
    )
    primaries = [i for i in active if i.is_primary]

    if len(primaries) > 1:
        raise AmbiguousPrimaryError([i.id for i in primaries])
    if primaries:
        return primaries[0]
    return active[0] if active else None
