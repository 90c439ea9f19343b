# src/extraction/field_extractor.py - v2
"""AI field extraction over OCR text.

FieldExtractor sends OCR text plus a caller-supplied prompt to an LLM and
returns whatever fields come back. It is agnostic to field semantics:
names and formats live entirely in the prompt. An optional classification
ruleset asks the model to pick a document archetype as well.

extract() is the adapter boundary and never raises: retries, timeouts
and malformed replies all surface as ExtractionResponse(success=False).
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any

from careocr.classification.keyword_classifier import has_value
from careocr.core.errors import CareOCRError, TransportError
from careocr.core.models import DocumentClassification, ExtractionResponse
from careocr.core.scoring import coerce_score
from careocr.extraction.prompts import (
    DEFAULT_EXTRACTION_PROMPT,
    SYSTEM_PROMPT,
    build_user_prompt,
)
from careocr.llm.base_client import BaseLLMClient
from careocr.llm.models import Message
from careocr.llm.retry import LLMRetryExhausted, RetryConfig, with_retry

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_DOCUMENT_TYPES = {"vaccination", "followup", "diagnosis", "unknown"}
_TYPE_ALIASES = {
    "follow-up": "followup",
    "follow_up": "followup",
    "appointment": "followup",
    "vaccine": "vaccination",
    "immunization": "vaccination",
}
_FIELD_CONTAINER_KEYS = ("extracted_data", "extractedData", "fields", "data")
_SCORE_KEYS = ("confidence_scores", "confidenceScores")
# Assumed per-field confidence when the model reports none.
DEFAULT_FIELD_SCORE = 85


class ExtractionParseError(CareOCRError, ValueError):
    """The model reply did not contain a usable JSON object."""


class FieldExtractor:
    """Field-extraction adapter over a BaseLLMClient."""

    def __init__(
        self,
        llm: BaseLLMClient,
        timeout_s: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.1,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        self._llm = llm
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._retry_configs = retry_configs

    @property
    def service_name(self) -> str:
        return f"extraction:{self._llm.provider_name}"

    async def extract(
        self,
        ocr_text: str,
        prompt: str,
        classification_prompt: str | None = None,
    ) -> ExtractionResponse:
        """Extract structured fields (and optionally a classification).

        Args:
            ocr_text: Raw text from the OCR adapter.
            prompt: Free-form instructions naming the desired fields.
            classification_prompt: Optional archetype-selection ruleset.

        Returns:
            ExtractionResponse; never raises.
        """
        start = time.monotonic()
        if not ocr_text or not ocr_text.strip():
            return self._failure("No OCR text to extract from", start)

        user_prompt = build_user_prompt(
            ocr_text, prompt or DEFAULT_EXTRACTION_PROMPT, classification_prompt
        )

        try:
            response = await asyncio.wait_for(
                with_retry(
                    self._llm.complete,
                    messages=[Message(role="user", content=user_prompt)],
                    system=SYSTEM_PROMPT,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                    json_output=True,
                    operation=self.service_name,
                    retry_configs=self._retry_configs,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            error = TransportError(self.service_name, f"timed out after {self._timeout_s:g}s")
            return self._failure(str(error), start)
        except LLMRetryExhausted as e:
            return self._failure(str(TransportError(self.service_name, str(e.last_error))), start)

        try:
            payload = parse_json_object(response.content)
        except ExtractionParseError as e:
            return self._failure(f"{self.service_name}: {e}", start)

        fields, scores, classification = split_payload(payload)
        if not scores:
            scores = default_scores(fields)
        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(
            "Extracted %d fields in %dms (classification=%s)",
            len(fields), elapsed,
            classification.type if classification else None,
        )
        return ExtractionResponse(
            success=True,
            extracted_fields=fields,
            confidence_scores=scores or None,
            classification=classification,
            processing_time_ms=elapsed,
        )

    def _failure(self, error: str, start: float) -> ExtractionResponse:
        logger.warning("Extraction failed: %s", error)
        return ExtractionResponse(
            success=False,
            error=error,
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )


def parse_json_object(content: str) -> dict[str, Any]:
    """Pull the first JSON object out of a model reply.

    Accepts bare JSON, ```json fenced blocks, and JSON wrapped in prose.

    Raises:
        ExtractionParseError: If no JSON object can be decoded.
    """
    text = (content or "").strip()
    if not text:
        raise ExtractionParseError("empty model reply")

    candidates = [m.group(1).strip() for m in _FENCE_RE.finditer(text)]
    candidates.append(text)
    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        candidates.append(text[first:last + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    raise ExtractionParseError("model reply is not a JSON object")


def default_scores(fields: dict[str, Any]) -> dict[str, int]:
    """Score each field DEFAULT_FIELD_SCORE when filled, 0 when empty."""
    return {name: DEFAULT_FIELD_SCORE if has_value(v) else 0 for name, v in fields.items()}


def split_payload(
    payload: dict[str, Any],
) -> tuple[dict[str, Any], dict[str, int], DocumentClassification | None]:
    """Separate extracted fields, per-field scores and classification."""
    raw_classification = payload.get("classification")
    raw_scores: Any = next((payload[k] for k in _SCORE_KEYS if k in payload), None)

    container_key = next(
        (k for k in _FIELD_CONTAINER_KEYS if isinstance(payload.get(k), dict)), None
    )
    if container_key is not None:
        fields = dict(payload[container_key])
    else:
        reserved = {"classification", *_SCORE_KEYS}
        fields = {k: v for k, v in payload.items() if k not in reserved}

    scores: dict[str, int] = {}
    if isinstance(raw_scores, dict):
        for name, value in raw_scores.items():
            score = coerce_score(value)
            if score is not None:
                scores[str(name)] = score

    return fields, scores, parse_classification(raw_classification)


def parse_classification(raw: Any) -> DocumentClassification | None:
    """Interpret a model-provided classification block, or None if absent."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = {"type": raw}
    if not isinstance(raw, dict):
        return None

    doc_type = str(raw.get("type") or "").strip().lower()
    doc_type = _TYPE_ALIASES.get(doc_type, doc_type)
    if not doc_type:
        return None
    if doc_type not in _DOCUMENT_TYPES:
        doc_type = "unknown"

    confidence = coerce_score(raw.get("confidence"))
    reasoning = raw.get("reasoning")
    return DocumentClassification(
        type=doc_type,
        confidence=confidence or 0,
        reasoning=str(reasoning) if reasoning else None,
        source="ai",
    )
