# src/classification/base_classifier.py - v1
"""Document classifier strategy interface and fallback composition."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from careocr.core.models import DocumentClassification

logger = logging.getLogger(__name__)


class BaseClassifier(ABC):
    """Decides which archetype a recognized document belongs to."""

    @abstractmethod
    def classify(
        self,
        text: str,
        fields: dict[str, Any] | None,
        ai_classification: DocumentClassification | None = None,
    ) -> DocumentClassification | None:
        """Return a classification, or None if this strategy has no opinion."""


class FallbackClassifier(BaseClassifier):
    """Use the primary strategy's answer if it has one, else the fallback's.

    The pipeline composes AIClassifier (primary) with KeywordClassifier
    (fallback), so classification rules live in exactly one place each.
    """

    def __init__(self, primary: BaseClassifier, fallback: BaseClassifier) -> None:
        self._primary = primary
        self._fallback = fallback

    def classify(
        self,
        text: str,
        fields: dict[str, Any] | None,
        ai_classification: DocumentClassification | None = None,
    ) -> DocumentClassification | None:
        result = self._primary.classify(text, fields, ai_classification)
        if result is not None:
            return result
        logger.debug("Primary classifier abstained, using %s", type(self._fallback).__name__)
        return self._fallback.classify(text, fields, ai_classification)
