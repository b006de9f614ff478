"""
Plate recognition use case.

Orchestrates one camera upload:
1. Photo storage
2. Plate classification by the external recognizer
3. Runtime configuration snapshot
4. Access decision
"""

from datetime import datetime

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.application.access_decision import AccessDecisionEngine
from gatekeeper.application.dispatch import NotificationDispatcher
from gatekeeper.application.hardware_service import HardwareService
from gatekeeper.application.runtime_config import load_runtime_config
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import RecognitionOutcome, utc_now
from gatekeeper.infrastructure.db.repository import SettingsRepository
from gatekeeper.infrastructure.recognition import PlateClassifier
from gatekeeper.infrastructure.storage import ImageStorage, StorageError

logger = get_logger(__name__)


class PlateRecognitionUseCase:
    """
    Use case for deciding access from a camera image.

    A classifier failure raises ``RecognitionError`` and writes no passage:
    no recognition event took place.

    Example:
        use_case = PlateRecognitionUseCase(session, classifier, storage, hardware, dispatcher)
        outcome = await use_case.analyze(image_bytes, auto_open=True)
    """

    def __init__(
        self,
        session: AsyncSession,
        classifier: PlateClassifier,
        storage: ImageStorage,
        hardware: HardwareService,
        dispatcher: NotificationDispatcher,
    ):
        self._settings_repo = SettingsRepository(session)
        self._classifier = classifier
        self._storage = storage
        self._engine = AccessDecisionEngine(session, hardware, dispatcher)

    async def analyze(
        self,
        image_bytes: bytes,
        auto_open: bool = True,
        actor: str | None = None,
        content_type: str | None = None,
        timestamp: datetime | None = None,
    ) -> RecognitionOutcome:
        """
        Recognize a plate and decide access.

        Args:
            image_bytes: Uploaded image.
            auto_open: Open the barrier for allowed vehicles.
            actor: Caller identity.
            content_type: MIME type of the upload.
            timestamp: Capture time, naive UTC.

        Raises:
            ValidationError: If the image is empty.
            RecognitionError: If the classifier fails.
        """
        if not image_bytes:
            raise ValidationError("Empty image")

        ts = timestamp or utc_now()
        logger.info("recognition_started", image_size=len(image_bytes), auto_open=auto_open)

        photo_url = await self._store_photo(image_bytes, content_type, ts)
        recognition = await self._classifier.recognize(image_bytes)

        config = await load_runtime_config(self._settings_repo)
        return await self._engine.decide(
            recognition,
            auto_open=auto_open,
            config=config,
            actor=actor,
            photo_url=photo_url,
            now=ts,
        )

    async def _store_photo(
        self,
        image_bytes: bytes,
        content_type: str | None,
        timestamp: datetime,
    ) -> str | None:
        """Store the capture; a storage failure only costs the photo."""
        try:
            relative = await run_in_threadpool(
                self._storage.save, image_bytes, content_type, timestamp
            )
        except StorageError as e:
            logger.error("photo_not_stored", error=str(e))
            return None
        return self._storage.url_for(relative)
