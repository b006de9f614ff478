"""
Integration tests for the access decision engine.

Real repositories on SQLite, a mocked barrier controller and a collecting
dispatcher.
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from gatekeeper.application.access_decision import AccessDecisionEngine
from gatekeeper.application.hardware_service import NO_PRIMARY_BARRIER, HardwareService
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import (
    AccessOutcome,
    BlacklistEntry,
    NotificationType,
    RecognitionResult,
    RuntimeConfig,
    Severity,
    TriggeredBy,
    Vehicle,
)
from gatekeeper.infrastructure.db.repository import (
    BarrierActionRepository,
    BlacklistRepository,
    PassageRepository,
    VehicleRepository,
)

NOW = datetime(2026, 5, 4, 12, 0, 0)


@pytest.fixture
def engine(db_session, barrier_client, dispatcher) -> AccessDecisionEngine:
    return AccessDecisionEngine(db_session, HardwareService(db_session, barrier_client), dispatcher)


async def decide(engine, plate, config, auto_open=True, now=NOW, confidence=90):
    return await engine.decide(
        RecognitionResult(plate=plate, confidence=confidence),
        auto_open=auto_open,
        config=config,
        now=now,
    )


class TestAllowedVehicles:
    """Tests for allowlisted plates."""

    @pytest.mark.asyncio
    async def test_opens_primary_barrier(
        self, engine, db_session, config, controller, dispatcher, primary_barrier, allowed_vehicle
    ):
        outcome = await decide(engine, "A123BC777", config)

        assert outcome.outcome == AccessOutcome.ALLOWED
        assert outcome.is_allowed is True
        assert outcome.barrier_opened is True
        assert [r.url.path for r in controller.requests] == ["/api/barrier/open"]
        assert dispatcher.events == []

        passage = await PassageRepository(db_session).get_by_id(outcome.passage_id)
        assert passage.vehicle_id == allowed_vehicle.id
        assert passage.barrier_opened is True
        assert passage.confidence == 90

        actions = await BarrierActionRepository(db_session).list_recent()
        assert len(actions) == 1
        assert actions[0].triggered_by == TriggeredBy.AUTO
        assert actions[0].passage_id == outcome.passage_id
        assert actions[0].integration_id == primary_barrier.id

    @pytest.mark.asyncio
    async def test_plate_is_normalized(self, engine, config, primary_barrier, allowed_vehicle):
        outcome = await decide(engine, " a123 bc777 ", config)
        assert outcome.plate == "A123BC777"
        assert outcome.outcome == AccessOutcome.ALLOWED

    @pytest.mark.asyncio
    async def test_auto_open_off(self, engine, config, controller, primary_barrier, allowed_vehicle):
        outcome = await decide(engine, "A123BC777", config, auto_open=False)

        assert outcome.is_allowed is True
        assert outcome.barrier_opened is False
        assert controller.requests == []

    @pytest.mark.asyncio
    async def test_allowed_passage_notice(self, engine, dispatcher, primary_barrier, allowed_vehicle):
        await decide(engine, "A123BC777", RuntimeConfig(notify_allowed_passages=True))
        assert dispatcher.types == [NotificationType.ALLOWED_PASSAGE]

    @pytest.mark.asyncio
    async def test_barrier_failure_recorded(
        self, engine, db_session, config, controller, primary_barrier, allowed_vehicle
    ):
        """A barrier that rejects the command leaves the vehicle allowed but not let in."""
        controller.status_code = 500

        outcome = await decide(engine, "A123BC777", config)

        assert outcome.is_allowed is True
        assert outcome.barrier_opened is False
        passage = await PassageRepository(db_session).get_by_id(outcome.passage_id)
        assert passage.notes == "Barrier did not open: Controller returned HTTP 500"
        actions = await BarrierActionRepository(db_session).list_recent()
        assert actions[0].success is False

    @pytest.mark.asyncio
    async def test_no_barrier_configured(self, engine, db_session, config, allowed_vehicle):
        outcome = await decide(engine, "A123BC777", config)

        assert outcome.barrier_opened is False
        passage = await PassageRepository(db_session).get_by_id(outcome.passage_id)
        assert passage.notes == f"Barrier did not open: {NO_PRIMARY_BARRIER}"


class TestBlacklistedVehicles:
    """Tests for blacklisted plates."""

    @pytest.mark.asyncio
    async def test_blocked_even_if_allowlisted(
        self, engine, db_session, config, controller, dispatcher, primary_barrier, blacklist_entry
    ):
        await VehicleRepository(db_session).create(Vehicle(license_plate="X666XX666"))

        outcome = await decide(engine, "X666XX666", config)

        assert outcome.outcome == AccessOutcome.BLOCKED
        assert outcome.is_blacklisted is True
        assert outcome.is_allowed is False
        assert outcome.barrier_opened is False
        assert controller.requests == []

        passage = await PassageRepository(db_session).get_by_id(outcome.passage_id)
        assert passage.notes == "BLACKLISTED: Repeated trespassing"
        assert passage.vehicle_id is None

    @pytest.mark.asyncio
    async def test_attempts_counted_and_notified(self, engine, db_session, config, dispatcher, blacklist_entry):
        await decide(engine, "X666XX666", config)
        await decide(engine, "X666XX666", config, now=NOW + timedelta(minutes=5))

        entry = await BlacklistRepository(db_session).get_by_id(blacklist_entry.id)
        assert entry.attempt_count == 2
        assert entry.last_attempt == NOW + timedelta(minutes=5)

        assert dispatcher.types == [NotificationType.BLACKLIST_DETECTED] * 2
        assert dispatcher.events[0].severity == Severity.HIGH
        assert "Attempt: #2" in dispatcher.events[1].message

    @pytest.mark.asyncio
    async def test_concurrent_detections_all_counted(
        self, db_session, session_factory, barrier_client, config, dispatcher, blacklist_entry
    ):
        await db_session.commit()

        async def detect():
            async with session_factory() as session:
                engine = AccessDecisionEngine(session, HardwareService(session, barrier_client), dispatcher)
                outcome = await decide(engine, "X666XX666", config)
                await session.commit()
            return outcome

        outcomes = await asyncio.gather(*(detect() for _ in range(5)))

        assert all(o.outcome == AccessOutcome.BLOCKED for o in outcomes)
        async with session_factory() as session:
            entry = await BlacklistRepository(session).get_by_id(blacklist_entry.id)
            passages = await PassageRepository(session).list_recent()
        assert entry.attempt_count == 5
        assert len(passages) == 5
        assert sorted(
            int(e.message.split("Attempt: #")[1].split()[0]) for e in dispatcher.events
        ) == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_silent_entry(self, engine, db_session, config, dispatcher):
        await BlacklistRepository(db_session).create(
            BlacklistEntry(license_plate="S1", notify_on_detection=False)
        )

        outcome = await decide(engine, "S1", config)

        assert outcome.outcome == AccessOutcome.BLOCKED
        assert dispatcher.events == []

    @pytest.mark.asyncio
    async def test_expired_entry_falls_through(self, engine, db_session, config, allowed_vehicle, primary_barrier):
        await BlacklistRepository(db_session).create(
            BlacklistEntry(license_plate="A123BC777", expires_at=NOW - timedelta(days=1))
        )
        outcome = await decide(engine, "A123BC777", config)
        assert outcome.outcome == AccessOutcome.ALLOWED


class TestUnknownVehicles:
    """Tests for plates in neither registry."""

    @pytest.mark.asyncio
    async def test_denied_and_notified(self, engine, config, controller, dispatcher, primary_barrier):
        outcome = await decide(engine, "B456CD777", config)

        assert outcome.outcome == AccessOutcome.UNKNOWN
        assert outcome.is_allowed is False
        assert controller.requests == []
        assert dispatcher.types == [NotificationType.UNKNOWN_VEHICLE]

    @pytest.mark.asyncio
    async def test_repeated_attempts_raise_alert(self, engine, dispatcher):
        """The third denied attempt within 24 hours adds an unauthorized access alert."""
        config = RuntimeConfig(unauthorized_attempt_threshold=3)

        await decide(engine, "B456CD777", config, now=NOW - timedelta(hours=30))
        await decide(engine, "B456CD777", config, now=NOW - timedelta(hours=2))
        await decide(engine, "B456CD777", config, now=NOW - timedelta(hours=1))
        assert NotificationType.UNAUTHORIZED_ACCESS not in dispatcher.types

        await decide(engine, "B456CD777", config, now=NOW)

        assert dispatcher.types[-2:] == [
            NotificationType.UNKNOWN_VEHICLE,
            NotificationType.UNAUTHORIZED_ACCESS,
        ]
        assert "Attempts in the last 24 hours: 3" in dispatcher.events[-1].message

    @pytest.mark.asyncio
    async def test_no_plate(self, engine, db_session, config, dispatcher):
        outcome = await decide(engine, None, config, confidence=0)

        assert outcome.plate is None
        assert outcome.outcome == AccessOutcome.UNKNOWN
        assert dispatcher.events == []
        passage = await PassageRepository(db_session).get_by_id(outcome.passage_id)
        assert passage.license_plate is None
        assert passage.notes == "No plate recognized"

    @pytest.mark.asyncio
    async def test_dispatch_failure_does_not_fail_decision(self, db_session, barrier_client, config):
        class BrokenDispatcher:
            async def submit(self, event, config):
                raise RuntimeError("queue full")

        engine = AccessDecisionEngine(db_session, HardwareService(db_session, barrier_client), BrokenDispatcher())

        outcome = await decide(engine, "B456CD777", config)

        assert outcome.outcome == AccessOutcome.UNKNOWN
        assert outcome.passage_id is not None


class TestManualOpen:
    """Tests for operator-initiated opening."""

    @pytest.mark.asyncio
    async def test_requires_confirmation(self, engine, db_session, config, controller, primary_barrier):
        with pytest.raises(ValidationError, match="Confirmation required"):
            await engine.manual_open(confirm=False, config=config, actor="operator")

        assert controller.requests == []
        assert await PassageRepository(db_session).list_recent() == []

    @pytest.mark.asyncio
    async def test_opens_and_records(self, engine, db_session, config, dispatcher, primary_barrier):
        result = await engine.manual_open(
            confirm=True, config=config, actor="operator", notes="Delivery truck", now=NOW
        )

        assert result.success is True
        passage = await PassageRepository(db_session).get_by_id(result.passage_id)
        assert passage.outcome == AccessOutcome.MANUAL
        assert passage.license_plate is None
        assert passage.was_manual_open is True
        assert passage.opened_by == "operator"
        assert passage.notes == "Delivery truck"

        actions = await BarrierActionRepository(db_session).list_recent()
        assert actions[0].triggered_by == TriggeredBy.MANUAL
        assert actions[0].actor == "operator"
        assert dispatcher.types == [NotificationType.MANUAL_OPEN]

    @pytest.mark.asyncio
    async def test_failed_open_still_recorded(self, engine, db_session, config, dispatcher):
        result = await engine.manual_open(confirm=True, config=config, actor="operator")

        assert result.success is False
        assert result.error == NO_PRIMARY_BARRIER
        passage = await PassageRepository(db_session).get_by_id(result.passage_id)
        assert passage.barrier_opened is False
        assert dispatcher.types == [NotificationType.MANUAL_OPEN]


class TestScenarios:
    """Reference scenarios for the two most common denials."""

    @pytest.mark.asyncio
    async def test_unregistered_plate(self, engine, db_session, config, controller, dispatcher, primary_barrier):
        outcome = await decide(engine, "A123BC777", config, confidence=92)

        assert outcome.outcome == AccessOutcome.UNKNOWN
        assert outcome.confidence == 92
        assert controller.requests == []
        [event] = dispatcher.events
        assert event.severity == Severity.MEDIUM
        assert "Confidence: 92%" in event.message

    @pytest.mark.asyncio
    async def test_critical_blacklisted_plate(self, engine, db_session, config, dispatcher, primary_barrier):
        await BlacklistRepository(db_session).create(
            BlacklistEntry(license_plate="X999YY777", severity=Severity.CRITICAL, reason="Stolen vehicle")
        )

        outcome = await decide(engine, "x999yy777", config)

        assert outcome.outcome == AccessOutcome.BLOCKED
        [event] = dispatcher.events
        assert event.severity == Severity.CRITICAL
        assert event.title == "Blacklisted vehicle: X999YY777"
        assert "Attempt: #1" in event.message
