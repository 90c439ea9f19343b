# src/matching/entity_matcher.py - v1
"""Score residents against identity fields extracted from a document.

Every resident with at least one matching clue becomes a candidate. A
lone clue is capped at a conservative confidence so a human must confirm
it; corroborated clues add up to at most 100. Candidates are returned
best first and are never committed without human confirmation.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable

from careocr.core.models import CandidateMatch, Resident
from careocr.core.scoring import clamp_score
from careocr.matching.field_aliases import (
    AGE_ALIASES,
    BIRTH_DATE_ALIASES,
    CHINESE_NAME_ALIASES,
    ENGLISH_NAME_ALIASES,
    ID_NUMBER_ALIASES,
    first_value,
)
from careocr.matching.identifier import compare_identifiers

logger = logging.getLogger(__name__)

CHINESE_NAME_WEIGHT = 40
ENGLISH_NAME_WEIGHT = 35
BIRTH_DATE_WEIGHT = 30
AGE_WEIGHT = 15
AGE_TOLERANCE_YEARS = 1
DEFAULT_SINGLE_CLUE_CAP = 65

FIELD_CHINESE_NAME = "chinese_name"
FIELD_ENGLISH_NAME = "english_name"
FIELD_ID_NUMBER = "id_number"
FIELD_BIRTH_DATE = "birth_date"
FIELD_AGE = "age"

_PAREN_CONTENT_RE = re.compile(r"[(（][^)）]*[)）]?")
_WHITESPACE_RE = re.compile(r"\s+")
_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%d-%m-%Y", "%d/%m/%Y", "%Y年%m月%d日")
_AGE_RE = re.compile(r"\d{1,3}")


def normalize_chinese_name(value: str) -> str:
    """Cut at the first newline and the first parenthesis, then strip."""
    value = value.split("\n", 1)[0]
    value = re.split(r"[(（]", value, maxsplit=1)[0]
    return _WHITESPACE_RE.sub("", value)


def normalize_english_name(value: str) -> str:
    """Case-fold, drop parenthetical content and collapse whitespace."""
    value = _PAREN_CONTENT_RE.sub(" ", value.split("\n", 1)[0])
    value = value.replace(",", " ")
    return _WHITESPACE_RE.sub(" ", value).strip().casefold()


def parse_date(value: str) -> date | None:
    """Parse common document date formats into a date."""
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def age_on(birth_date: date, today: date) -> int:
    """Completed years between birth_date and today."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def _contains_either_way(a: str, b: str) -> bool:
    return a == b or a in b or b in a


class EntityMatcher:
    """Rule-based, weighted partial matching of residents."""

    def __init__(
        self,
        single_clue_cap: int = DEFAULT_SINGLE_CLUE_CAP,
        today: date | None = None,
    ) -> None:
        self._single_clue_cap = single_clue_cap
        self._today = today

    def match(
        self,
        fields: dict[str, Any] | None,
        residents: Iterable[Resident],
    ) -> list[CandidateMatch]:
        """Rank residents by how well they match the extracted fields."""
        if not fields:
            return []

        today = self._today or date.today()
        clues = _Clues.from_fields(fields)
        candidates: list[CandidateMatch] = []

        for resident in residents:
            matched, score = self._score(resident, clues, today)
            if not matched:
                continue
            confidence = clamp_score(score)
            if len(matched) == 1:
                confidence = min(confidence, self._single_clue_cap)
            candidates.append(
                CandidateMatch(
                    resident_id=resident.resident_id,
                    matched_fields=frozenset(matched),
                    confidence=confidence,
                )
            )

        candidates.sort(key=lambda c: c.confidence, reverse=True)
        logger.info("Resident matching produced %d candidates", len(candidates))
        return candidates

    def _score(self, resident: Resident, clues: _Clues, today: date) -> tuple[set[str], int]:
        matched: set[str] = set()
        score = 0

        full_name = _WHITESPACE_RE.sub("", resident.chinese_full_name)
        if clues.chinese_name and full_name and _contains_either_way(clues.chinese_name, full_name):
            matched.add(FIELD_CHINESE_NAME)
            score += CHINESE_NAME_WEIGHT

        english = normalize_english_name(resident.english_full_name)
        if clues.english_name and english and _contains_either_way(clues.english_name, english):
            matched.add(FIELD_ENGLISH_NAME)
            score += ENGLISH_NAME_WEIGHT

        if clues.id_number and resident.id_number:
            comparison = compare_identifiers(clues.id_number, resident.id_number)
            if comparison.weight:
                matched.add(FIELD_ID_NUMBER)
                score += comparison.weight

        if clues.birth_date and resident.birth_date == clues.birth_date:
            matched.add(FIELD_BIRTH_DATE)
            score += BIRTH_DATE_WEIGHT

        if clues.age is not None and resident.birth_date is not None:
            if abs(age_on(resident.birth_date, today) - clues.age) <= AGE_TOLERANCE_YEARS:
                matched.add(FIELD_AGE)
                score += AGE_WEIGHT

        return matched, score


class _Clues:
    """Normalized identity clues pulled from extracted fields once per match run."""

    __slots__ = ("chinese_name", "english_name", "id_number", "birth_date", "age")

    def __init__(
        self,
        chinese_name: str | None,
        english_name: str | None,
        id_number: str | None,
        birth_date: date | None,
        age: int | None,
    ) -> None:
        self.chinese_name = chinese_name
        self.english_name = english_name
        self.id_number = id_number
        self.birth_date = birth_date
        self.age = age

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> _Clues:
        chinese = first_value(fields, CHINESE_NAME_ALIASES)
        english = first_value(fields, ENGLISH_NAME_ALIASES)
        birth = first_value(fields, BIRTH_DATE_ALIASES)
        age_text = first_value(fields, AGE_ALIASES)
        age_match = _AGE_RE.search(age_text) if age_text else None

        return cls(
            chinese_name=normalize_chinese_name(chinese) or None if chinese else None,
            english_name=normalize_english_name(english) or None if english else None,
            id_number=first_value(fields, ID_NUMBER_ALIASES),
            birth_date=parse_date(birth) if birth else None,
            age=int(age_match.group()) if age_match else None,
        )
