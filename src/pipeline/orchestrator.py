# src/pipeline/orchestrator.py - v3
"""Recognition pipeline orchestrator.

Drives one request through:
  validate -> normalize -> fingerprint -> cache lookup -> OCR
  -> field extraction -> classification -> cache write

and, for recognize(), resident matching on top of a successful result.
The first failing stage short-circuits with its error message. Failures
are returned as RecognitionResult(success=False), never raised, and never
cached.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Iterable

from careocr.cache.fingerprint import compute_fingerprint
from careocr.config.settings import Settings
from careocr.core.errors import ImageValidationError
from careocr.core.models import (
    DocumentRecognition,
    RecognitionRequest,
    RecognitionResult,
    Resident,
)
from careocr.extraction.prompts import DEFAULT_CLASSIFICATION_PROMPT
from careocr.imaging.normalizer import normalize_image
from careocr.imaging.validation import validate_image_file
from careocr.logging.context import set_fingerprint, set_request_context, set_stage

if TYPE_CHECKING:
    from careocr.cache.base_cache_store import BaseRecognitionCache
    from careocr.classification.base_classifier import BaseClassifier
    from careocr.extraction.field_extractor import FieldExtractor
    from careocr.matching.entity_matcher import EntityMatcher
    from careocr.ocr.base_ocr import BaseOCRClient
    from careocr.prompts.store import PromptStore

logger = logging.getLogger(__name__)


class RecognitionPipeline:
    """Orchestrates recognition of one photographed document at a time.

    Args:
        ocr_client: Text-recognition adapter.
        extractor: AI field-extraction adapter.
        cache: Recognition cache, or None to disable caching.
        classifier: Document classifier (normally AI with keyword fallback).
        matcher: Resident entity matcher.
        prompt_store: Source of the active prompt when a request has none.
        settings: Application settings.
    """

    def __init__(
        self,
        ocr_client: BaseOCRClient,
        extractor: FieldExtractor,
        cache: BaseRecognitionCache | None,
        classifier: BaseClassifier,
        matcher: EntityMatcher,
        prompt_store: PromptStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._ocr = ocr_client
        self._extractor = extractor
        self._cache = cache
        self._classifier = classifier
        self._matcher = matcher
        self._prompt_store = prompt_store
        self._settings = settings or Settings()

    async def resolve_prompt(self, request: RecognitionRequest) -> str:
        """The request's prompt, else the stored active prompt.

        Returns an empty string when neither is available; the extractor
        then falls back to its built-in prompt.
        """
        if request.extraction_prompt.strip():
            return request.extraction_prompt
        if self._prompt_store is None:
            return ""
        try:
            return await self._prompt_store.active_prompt()
        except Exception:
            logger.warning("Prompt store unavailable, using built-in prompt", exc_info=True)
            return ""

    async def process(self, request: RecognitionRequest) -> RecognitionResult:
        """Run OCR, extraction and classification for one image."""
        set_request_context(uuid.uuid4().hex[:12])
        start = time.monotonic()
        try:
            return await self._process(request, start)
        finally:
            set_stage(None)

    async def recognize(
        self,
        request: RecognitionRequest,
        residents: Iterable[Resident],
    ) -> DocumentRecognition:
        """Process an image and rank roster residents against its fields."""
        result = await self.process(request)
        if not result.success:
            return DocumentRecognition(result=result, classification=result.classification)

        set_stage("match")
        try:
            candidates = self._matcher.match(result.extracted_fields, residents)
        finally:
            set_stage(None)

        return DocumentRecognition(
            result=result,
            classification=result.classification,
            candidates=candidates,
        )

    async def _process(self, request: RecognitionRequest, start: float) -> RecognitionResult:
        settings = self._settings

        set_stage("validate")
        outcome = validate_image_file(
            request.content_type, len(request.image_bytes), settings
        )
        if not outcome.valid:
            logger.info("Rejected upload %s: %s", request.filename or "<bytes>", outcome.error)
            return RecognitionResult.failure(outcome.error or "Invalid image", _elapsed(start))

        set_stage("normalize")
        try:
            image = await normalize_image(request.image_bytes, settings)
        except ImageValidationError as e:
            logger.info("Normalization rejected %s: %s", request.filename or "<bytes>", e)
            return RecognitionResult.failure(str(e), _elapsed(start))

        fingerprint = compute_fingerprint(image.payload, settings.fingerprint_prefix_length)
        set_fingerprint(fingerprint)

        if self._cache is not None and settings.cache_enabled and not request.force_refresh:
            set_stage("cache_lookup")
            cached = await self._cache_get(fingerprint)
            if cached is not None:
                logger.info("Cache hit")
                return cached

        set_stage("ocr")
        ocr = await self._ocr.recognize(image.payload)
        if not ocr.success:
            return RecognitionResult.failure(
                ocr.error or "OCR failed", _elapsed(start), fingerprint=fingerprint,
            )

        set_stage("extract")
        prompt = await self.resolve_prompt(request)
        extraction = await self._extractor.extract(
            ocr.text or "",
            prompt,
            request.classification_prompt or DEFAULT_CLASSIFICATION_PROMPT,
        )
        if not extraction.success:
            return RecognitionResult.failure(
                extraction.error or "Field extraction failed",
                _elapsed(start),
                fingerprint=fingerprint,
                raw_text=ocr.text,
            )

        set_stage("classify")
        classification = self._classifier.classify(
            ocr.text or "", extraction.extracted_fields, extraction.classification,
        )

        result = RecognitionResult(
            success=True,
            raw_text=ocr.text,
            extracted_fields=extraction.extracted_fields or {},
            confidence_scores=extraction.confidence_scores,
            classification=classification,
            processing_time_ms=_elapsed(start),
            fingerprint=fingerprint,
        )

        if self._cache is not None and settings.cache_enabled:
            set_stage("cache_write")
            await self._cache_put(fingerprint, result, prompt)

        logger.info(
            "Recognized %s as %s in %dms",
            request.filename or "<bytes>",
            classification.type if classification else None,
            result.processing_time_ms,
        )
        return result

    async def close(self) -> None:
        """Release the OCR client and cache connections."""
        await self._ocr.close()
        if self._cache is not None:
            await self._cache.close()

    async def _cache_get(self, fingerprint: str) -> RecognitionResult | None:
        try:
            return await self._cache.get(fingerprint)
        except Exception:
            logger.warning("Cache lookup failed, treating as miss", exc_info=True)
            return None

    async def _cache_put(
        self, fingerprint: str, result: RecognitionResult, prompt: str,
    ) -> None:
        try:
            await self._cache.put(fingerprint, result, prompt_used=prompt or None)
        except Exception:
            logger.warning("Cache write failed", exc_info=True)


def _elapsed(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
