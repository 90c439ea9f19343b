# src/classification/ai_classifier.py - v1
"""Classifier that trusts the extraction service's own classification."""

from __future__ import annotations

from typing import Any

from careocr.classification.base_classifier import BaseClassifier
from careocr.core.models import DocumentClassification


class AIClassifier(BaseClassifier):
    """Returns the classification carried by the extraction response, if any."""

    def classify(
        self,
        text: str,
        fields: dict[str, Any] | None,
        ai_classification: DocumentClassification | None = None,
    ) -> DocumentClassification | None:
        if ai_classification is None:
            return None
        if ai_classification.source != "ai":
            return ai_classification.model_copy(update={"source": "ai"})
        return ai_classification
