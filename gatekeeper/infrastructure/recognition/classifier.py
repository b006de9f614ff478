"""
Plate classifier implementations using strategy pattern.

The recognition model itself runs elsewhere; this module only wraps the call
to it and turns its answer into a ``RecognitionResult``.
"""

import math
from abc import ABC, abstractmethod

import httpx

from gatekeeper.core.config import Settings
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import RecognitionError
from gatekeeper.domain.models import MAX_PLATE_LENGTH, RecognitionResult
from gatekeeper.domain.services import PlateTextNormalizer

logger = get_logger(__name__)


class PlateClassifier(ABC):
    """
    Abstract base class for plate classifiers.

    Use the strategy pattern to swap classifiers at runtime.
    """

    @abstractmethod
    async def recognize(self, image_bytes: bytes) -> RecognitionResult:
        """
        Read a plate from an image.

        Args:
            image_bytes: Encoded image as uploaded by the camera.

        Returns:
            RecognitionResult: Plate candidate (or None) with confidence.

        Raises:
            RecognitionError: If the classifier could not be queried.
        """


def normalize_confidence(value: float | int | None) -> int:
    """
    Convert a classifier score to an integer percentage.

    Scores up to 1.0 are read as fractions, larger ones as percentages.
    """
    if value is None:
        return 0
    score = float(value)
    if 0.0 <= score <= 1.0:
        score *= 100
    return max(0, min(100, round(score)))


class HttpPlateClassifier(PlateClassifier):
    """
    Classifier backed by an HTTP recognition service.

    The service receives the image as multipart ``image`` and answers with
    JSON ``{"plate": str | null, "confidence": number}``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        api_key: str | None = None,
        timeout_seconds: float = 15.0,
    ):
        self._client = client
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout_seconds

    async def recognize(self, image_bytes: bytes) -> RecognitionResult:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        try:
            response = await self._client.post(
                self._endpoint,
                files={"image": ("capture.jpg", image_bytes, "image/jpeg")},
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.error("recognition_timeout", endpoint=self._endpoint)
            raise RecognitionError("Recognition service timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("recognition_http_error", status_code=e.response.status_code)
            raise RecognitionError(
                f"Recognition service returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("recognition_failed", error=str(e))
            raise RecognitionError(f"Recognition service failed: {e}") from e

        if not isinstance(payload, dict):
            logger.error("recognition_invalid_payload", payload_type=type(payload).__name__)
            raise RecognitionError("Recognition service returned an unexpected payload")

        plate = payload.get("plate")
        if plate is not None and not isinstance(plate, str):
            logger.error("recognition_invalid_plate", plate_type=type(plate).__name__)
            raise RecognitionError("Recognition service returned a non-text plate")
        confidence = payload.get("confidence")
        numeric = (
            isinstance(confidence, (int, float))
            and not isinstance(confidence, bool)
            and math.isfinite(confidence)
        )
        if confidence is not None and not numeric:
            logger.error("recognition_invalid_confidence", confidence=str(confidence))
            raise RecognitionError("Recognition service returned a non-numeric confidence")

        plate = plate or None
        # plate columns hold MAX_PLATE_LENGTH characters; longer text is treated as unread
        if plate is not None and len(PlateTextNormalizer().normalize(plate)) > MAX_PLATE_LENGTH:
            logger.warning("recognition_plate_too_long", plate=plate[:40])
            plate = None
        confidence = normalize_confidence(confidence)

        logger.debug("plate_recognized", plate=plate, confidence=confidence)
        return RecognitionResult(plate=plate, confidence=confidence)


class StaticPlateClassifier(PlateClassifier):
    """
    Classifier returning a fixed answer.

    Used for local runs without a recognition service and in tests.
    """

    def __init__(self, plate: str | None = None, confidence: int = 0):
        self.plate = plate
        self.confidence = confidence

    async def recognize(self, image_bytes: bytes) -> RecognitionResult:
        return RecognitionResult(plate=self.plate, confidence=self.confidence)


def get_plate_classifier(settings: Settings, client: httpx.AsyncClient) -> PlateClassifier:
    """
    Factory function for the configured classifier.

    Falls back to a classifier that never reads a plate when no endpoint is
    configured, so every upload still lands in the passage ledger.
    """
    if settings.recognition_endpoint:
        return HttpPlateClassifier(
            client,
            settings.recognition_endpoint,
            api_key=settings.recognition_api_key,
            timeout_seconds=settings.recognition_timeout_seconds,
        )
    logger.warning("recognition_endpoint_not_configured")
    return StaticPlateClassifier()
