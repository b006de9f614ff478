"""Plate recognition client."""

from gatekeeper.infrastructure.recognition.classifier import (
    HttpPlateClassifier,
    PlateClassifier,
    StaticPlateClassifier,
    get_plate_classifier,
)

__all__ = [
    "PlateClassifier",
    "HttpPlateClassifier",
    "StaticPlateClassifier",
    "get_plate_classifier",
]
