# src/classification/keyword_classifier.py - v1
"""Deterministic keyword/field classifier, the fallback when the AI abstains.

Each archetype owns weighted keyword groups (matched against lowercased
OCR text) and weighted field groups (matched against non-empty extracted
fields). A group contributes its weight at most once, however many of its
entries match. The archetype with the strictly highest total wins; ties go
to the earlier entry of CLASSIFICATION_PRIORITY. Totals below the floor
classify as "unknown".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from careocr.classification.base_classifier import BaseClassifier
from careocr.core.models import DocumentClassification
from careocr.core.scoring import clamp_score

logger = logging.getLogger(__name__)

CLASSIFICATION_PRIORITY: tuple[str, ...] = ("followup", "vaccination", "diagnosis")
DEFAULT_MIN_CONFIDENCE = 30


@dataclass(frozen=True)
class KeywordGroup:
    weight: int
    keywords: tuple[str, ...]

    def matches(self, lowered_text: str) -> bool:
        return any(k in lowered_text for k in self.keywords)


@dataclass(frozen=True)
class FieldGroup:
    weight: int
    fields: tuple[str, ...]

    def matches(self, fields: dict[str, Any]) -> bool:
        return any(has_value(fields.get(name)) for name in self.fields)


@dataclass(frozen=True)
class ArchetypeRules:
    keyword_groups: tuple[KeywordGroup, ...]
    field_groups: tuple[FieldGroup, ...] = ()


DEFAULT_RULES: dict[str, ArchetypeRules] = {
    "followup": ArchetypeRules(
        keyword_groups=(
            KeywordGroup(60, (
                "appointment slip", "follow-up appointment", "follow up appointment",
                "覆診便條", "覆診預約", "預約便條", "覆診卡",
            )),
            KeywordGroup(25, (
                "appointment", "follow-up", "follow up", "followup",
                "覆診", "門診", "專科", "預約",
            )),
        ),
        field_groups=(
            FieldGroup(20, ("覆診日期", "followup_date", "appointment_date")),
            FieldGroup(15, ("覆診地點", "醫院", "診所", "hospital", "clinic", "location")),
            FieldGroup(10, ("覆診時間", "appointment_time", "專科", "specialty")),
        ),
    ),
    "vaccination": ArchetypeRules(
        keyword_groups=(
            KeywordGroup(50, (
                "疫苗接種記錄", "接種記錄", "針卡", "vaccination record",
                "immunization record", "vaccination card", "vaccination certificate",
            )),
            KeywordGroup(30, (
                "疫苗", "接種", "注射", "vaccine", "vaccination", "immunization",
                "immunisation", "injection",
            )),
        ),
        field_groups=(
            FieldGroup(20, ("注射日期", "接種日期", "vaccination_date")),
            FieldGroup(20, ("疫苗名稱", "vaccine_item", "vaccine_name")),
            FieldGroup(10, ("注射單位", "vaccination_unit")),
        ),
    ),
    "diagnosis": ArchetypeRules(
        keyword_groups=(
            KeywordGroup(50, (
                "診斷證明", "診斷書", "醫療報告", "medical certificate",
                "diagnosis record", "medical report",
            )),
            KeywordGroup(30, ("diagnosis", "diagnosed", "診斷", "病症", "impression")),
        ),
        field_groups=(
            FieldGroup(20, ("診斷項目", "diagnosis_item", "diagnosis")),
            FieldGroup(15, ("診斷日期", "diagnosis_date")),
        ),
    ),
}


def has_value(value: Any) -> bool:
    """Present and non-empty (None, blank strings and empty containers are empty)."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return bool(value)
    return True


class KeywordClassifier(BaseClassifier):
    """Weighted keyword and field-presence scoring over three archetypes."""

    def __init__(
        self,
        rules: dict[str, ArchetypeRules] | None = None,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        priority: tuple[str, ...] = CLASSIFICATION_PRIORITY,
    ) -> None:
        self._rules = rules or DEFAULT_RULES
        self._min_confidence = min_confidence
        missing = set(self._rules) - set(priority)
        if missing:
            raise ValueError(f"priority order missing archetypes: {sorted(missing)}")
        self._priority = priority

    def scores(self, text: str, fields: dict[str, Any] | None) -> dict[str, int]:
        """Raw accumulated score per archetype, including 'unknown' (always 0)."""
        lowered = (text or "").lower()
        fields = fields or {}
        totals = {"unknown": 0}
        for archetype in self._priority:
            rules = self._rules.get(archetype)
            if rules is None:
                continue
            total = 0
            for group in rules.keyword_groups:
                if group.matches(lowered):
                    total += group.weight
            for group in rules.field_groups:
                if group.matches(fields):
                    total += group.weight
            totals[archetype] = total
        return totals

    def classify(
        self,
        text: str,
        fields: dict[str, Any] | None,
        ai_classification: DocumentClassification | None = None,
    ) -> DocumentClassification:
        totals = self.scores(text, fields)

        best_type, best_score = "unknown", 0
        for archetype in self._priority:
            score = totals.get(archetype, 0)
            if score > best_score:
                best_type, best_score = archetype, score

        confidence = clamp_score(best_score)
        if best_score < self._min_confidence:
            logger.debug("Keyword scores below floor: %s", totals)
            return DocumentClassification(
                type="unknown",
                confidence=confidence,
                reasoning=f"highest keyword score {best_score} below {self._min_confidence}",
                source="keyword",
            )

        return DocumentClassification(
            type=best_type,
            confidence=confidence,
            reasoning=", ".join(f"{k}={v}" for k, v in totals.items() if v),
            source="keyword",
        )
