"""
Unit tests for plate and confidence normalization.

Tests the PlateTextNormalizer domain service and the classifier score
conversion.
"""

import pytest

from gatekeeper.domain.services import PlateTextNormalizer
from gatekeeper.infrastructure.recognition.classifier import normalize_confidence


class TestPlateTextNormalizer:
    """Tests for PlateTextNormalizer."""

    @pytest.fixture
    def normalizer(self) -> PlateTextNormalizer:
        return PlateTextNormalizer()

    def test_uppercases(self, normalizer: PlateTextNormalizer):
        assert normalizer.normalize("a123bc777") == "A123BC777"

    def test_strips_all_whitespace(self, normalizer: PlateTextNormalizer):
        """Spaces, tabs and newlines anywhere in the text are removed."""
        assert normalizer.normalize(" a 123\tbc\n777 ") == "A123BC777"

    def test_keeps_other_characters(self, normalizer: PlateTextNormalizer):
        """Dashes and non-latin letters are part of the plate."""
        assert normalizer.normalize("ab-12 cd") == "AB-12CD"
        assert normalizer.normalize("а123вс") == "А123ВС"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_input(self, normalizer: PlateTextNormalizer, text):
        assert normalizer.normalize(text) == ""

    def test_idempotent(self, normalizer: PlateTextNormalizer):
        once = normalizer.normalize(" x 1 y ")
        assert normalizer.normalize(once) == once


class TestNormalizeConfidence:
    """Tests for classifier score conversion."""

    def test_fraction_becomes_percentage(self):
        assert normalize_confidence(0.92) == 92

    def test_percentage_kept(self):
        assert normalize_confidence(87) == 87

    def test_one_is_full_confidence(self):
        assert normalize_confidence(1.0) == 100

    def test_clamped(self):
        assert normalize_confidence(250) == 100
        assert normalize_confidence(-3) == 0

    def test_missing_score(self):
        assert normalize_confidence(None) == 0
