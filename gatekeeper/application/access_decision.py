"""
Access decision use case.

Turns one recognition result into exactly one passage record:
1. Plate normalization
2. Blacklist lookup (wins over the allowlist)
3. Allowlist lookup
4. Barrier command for allowed vehicles
5. Passage and barrier action records
6. Owner notifications, handed to the dispatcher last

Also handles operator-initiated manual opening.
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.application.access_registry import AccessRegistry
from gatekeeper.application.dispatch import NotificationDispatcher
from gatekeeper.application.hardware_service import HardwareService
from gatekeeper.core.logging import get_logger
from gatekeeper.domain import messages
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import (
    AccessOutcome,
    BarrierExecution,
    ManualOpenResult,
    NotificationEvent,
    Passage,
    RecognitionOutcome,
    RecognitionResult,
    RuntimeConfig,
    TriggeredBy,
    utc_now,
)
from gatekeeper.domain.services import DecisionMaker, PlateTextNormalizer
from gatekeeper.infrastructure.db.repository import BlacklistRepository, PassageRepository

logger = get_logger(__name__)

UNAUTHORIZED_WINDOW = timedelta(hours=24)


class AccessDecisionEngine:
    """
    Decides access for recognized plates.

    Hardware and notification failures never escape: a barrier that could
    not be opened is recorded as ``barrier_opened=False`` and a failed
    submission is logged.

    Example:
        engine = AccessDecisionEngine(session, hardware, dispatcher)
        outcome = await engine.decide(result, auto_open=True, config=config)
    """

    def __init__(
        self,
        session: AsyncSession,
        hardware: HardwareService,
        dispatcher: NotificationDispatcher,
    ):
        """
        Args:
            session: Database session of the current unit of work.
            hardware: Barrier operations.
            dispatcher: Receiver of the notifications raised by a decision.
        """
        self._registry = AccessRegistry(session)
        self._blacklist_repo = BlacklistRepository(session)
        self._passage_repo = PassageRepository(session)
        self._hardware = hardware
        self._dispatcher = dispatcher

        self._normalizer = PlateTextNormalizer()
        self._decision_maker = DecisionMaker()

    async def decide(
        self,
        recognition: RecognitionResult,
        *,
        auto_open: bool,
        config: RuntimeConfig,
        actor: str | None = None,
        photo_url: str | None = None,
        now: datetime | None = None,
    ) -> RecognitionOutcome:
        """
        Classify a recognition result and apply its side effects.

        Args:
            recognition: Classifier output.
            auto_open: Open the primary barrier for allowed vehicles.
            config: Runtime configuration loaded by the caller.
            actor: Caller identity for the barrier action log.
            photo_url: Public URL of the stored capture.
            now: Decision time, naive UTC.

        Returns:
            RecognitionOutcome: Outcome with the written passage ID.
        """
        ts = now or utc_now()
        plate = self._normalizer.normalize(recognition.plate) or None

        entry = vehicle = None
        if plate is not None:
            check = await self._registry.check(plate, ts)
            entry, vehicle = check.blacklist_entry, check.vehicle

        outcome = self._decision_maker.classify(plate, entry, vehicle)
        is_allowed = self._decision_maker.is_allowed(outcome)

        execution: BarrierExecution | None = None
        events: list[NotificationEvent] = []
        notes: str | None = None

        if outcome == AccessOutcome.BLOCKED:
            attempt = await self._blacklist_repo.register_attempt(entry.id, ts)
            notes = f"BLACKLISTED: {entry.reason or 'No reason specified'}"
            logger.warning(
                "blacklisted_plate_detected",
                plate=plate,
                severity=entry.severity.value,
                attempt=attempt,
            )
            if entry.notify_on_detection:
                events.append(
                    messages.blacklist_detected(
                        entry,
                        attempt_number=attempt,
                        timestamp=ts,
                        photo_url=photo_url,
                        previous_attempt=entry.last_attempt,
                    )
                )

        elif outcome == AccessOutcome.ALLOWED:
            if auto_open:
                execution = await self._hardware.open_primary(TriggeredBy.AUTO, actor)
            if config.notify_allowed_passages:
                events.append(
                    messages.allowed_passage(
                        vehicle,
                        timestamp=ts,
                        barrier_opened=execution is not None and execution.response.success,
                    )
                )

        elif plate is not None:
            events.append(
                messages.unknown_vehicle(plate, recognition.confidence, ts, photo_url)
            )
            denied = await self._passage_repo.count_denied_since(plate, ts - UNAUTHORIZED_WINDOW)
            # the passage for this attempt is not written yet
            if denied + 1 >= config.unauthorized_attempt_threshold:
                events.append(messages.unauthorized_access(plate, denied + 1, ts, photo_url))

        else:
            notes = "No plate recognized"

        barrier_opened = execution is not None and execution.response.success
        if execution is not None and not barrier_opened:
            notes = f"Barrier did not open: {execution.response.error}"

        passage = await self._passage_repo.create(
            Passage(
                license_plate=plate,
                outcome=outcome,
                is_allowed=is_allowed,
                confidence=recognition.confidence,
                photo_url=photo_url,
                barrier_opened=barrier_opened,
                vehicle_id=vehicle.id if vehicle is not None else None,
                notes=notes,
                timestamp=ts,
            )
        )
        if execution is not None:
            await self._hardware.log_action(execution, TriggeredBy.AUTO, actor, passage.id)

        logger.info(
            "access_decided",
            plate=plate,
            outcome=outcome.value,
            confidence=recognition.confidence,
            barrier_opened=barrier_opened,
            passage_id=passage.id,
        )

        await self._submit(events, config)

        return RecognitionOutcome(
            plate=plate,
            confidence=recognition.confidence,
            outcome=outcome,
            is_allowed=is_allowed,
            is_blacklisted=outcome == AccessOutcome.BLOCKED,
            barrier_opened=barrier_opened,
            passage_id=passage.id,
            photo_url=photo_url,
        )

    async def manual_open(
        self,
        *,
        confirm: bool,
        config: RuntimeConfig,
        actor: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> ManualOpenResult:
        """
        Open the primary barrier on operator request.

        A passage and a notification are written whether or not the barrier
        confirmed the command.

        Raises:
            ValidationError: If ``confirm`` is not set; nothing is done then.
        """
        if not confirm:
            raise ValidationError("Confirmation required")

        ts = now or utc_now()
        execution = await self._hardware.open_primary(TriggeredBy.MANUAL, actor)
        success = execution.response.success

        passage = await self._passage_repo.create(
            Passage(
                license_plate=None,
                outcome=AccessOutcome.MANUAL,
                is_allowed=True,
                was_manual_open=True,
                barrier_opened=success,
                opened_by=actor,
                notes=notes,
                timestamp=ts,
            )
        )
        await self._hardware.log_action(execution, TriggeredBy.MANUAL, actor, passage.id)

        logger.info(
            "manual_open",
            actor=actor,
            success=success,
            passage_id=passage.id,
            error=execution.response.error,
        )

        await self._submit(
            [
                messages.manual_open(
                    actor,
                    ts,
                    notes=notes,
                    success=success,
                    error=execution.response.error,
                )
            ],
            config,
        )

        return ManualOpenResult(
            success=success,
            passage_id=passage.id,
            error=execution.response.error,
        )

    async def _submit(self, events: list[NotificationEvent], config: RuntimeConfig) -> None:
        for event in events:
            try:
                await self._dispatcher.submit(event, config)
            except Exception as e:
                logger.error(
                    "notification_submit_failed",
                    event_type=event.type.value,
                    error=str(e),
                )
