# src/api/facade.py - v3
"""Public API facade: wire a pipeline from settings and recognize images.

Usage:
    from careocr.api.facade import build_pipeline, recognize_image
    pipeline = build_pipeline(settings)
    recognition = await recognize_image("slip.jpg", residents, pipeline=pipeline)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from careocr.cache.cache_factory import create_cache_store
from careocr.classification.ai_classifier import AIClassifier
from careocr.classification.base_classifier import FallbackClassifier
from careocr.classification.keyword_classifier import KeywordClassifier
from careocr.config.settings import Settings
from careocr.core.errors import CareOCRError
from careocr.core.models import DocumentRecognition, RecognitionRequest, Resident
from careocr.extraction.field_extractor import FieldExtractor
from careocr.llm.client_factory import create_llm_client
from careocr.llm.config import resolve_llm
from careocr.matching.entity_matcher import EntityMatcher
from careocr.ocr.ocr_factory import create_ocr_client
from careocr.pipeline.orchestrator import RecognitionPipeline
from careocr.prompts.store import create_prompt_store

logger = logging.getLogger(__name__)

_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class RosterError(CareOCRError):
    """Resident roster file could not be read."""


def build_pipeline(settings: Settings | None = None) -> RecognitionPipeline:
    """Instantiate every collaborator from settings and wire the pipeline."""
    settings = settings or Settings()

    assignment = resolve_llm("extraction", settings)
    llm = create_llm_client(assignment.provider, assignment.model, settings)
    extractor = FieldExtractor(
        llm,
        timeout_s=settings.extraction_timeout_s,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )
    classifier = FallbackClassifier(
        AIClassifier(),
        KeywordClassifier(min_confidence=settings.classifier_min_confidence),
    )

    logger.info(
        "Pipeline: ocr=%s, extraction=%s, cache=%s",
        settings.ocr_provider,
        assignment.key,
        settings.cache_backend if settings.cache_enabled else "disabled",
    )
    return RecognitionPipeline(
        ocr_client=create_ocr_client(settings),
        extractor=extractor,
        cache=create_cache_store(settings) if settings.cache_enabled else None,
        classifier=classifier,
        matcher=EntityMatcher(single_clue_cap=settings.matcher_single_clue_cap),
        prompt_store=create_prompt_store(settings),
        settings=settings,
    )


def guess_content_type(path: Path | str) -> str:
    """MIME type from a file suffix; unknown suffixes map to octet-stream."""
    return _CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


def load_residents(path: Path | str) -> list[Resident]:
    """Load a roster from a JSON list of resident objects.

    Raises:
        RosterError: If the file is missing or malformed.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RosterError(f"Cannot read roster {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("residents", [])
    if not isinstance(data, list):
        raise RosterError(f"Roster {path} must be a JSON list of residents")

    try:
        return [Resident(**item) for item in data]
    except (ValidationError, TypeError) as e:
        raise RosterError(f"Invalid resident in {path}: {e}") from e


async def recognize_image(
    source: Path | str | bytes,
    residents: Iterable[Resident] = (),
    *,
    pipeline: RecognitionPipeline | None = None,
    settings: Settings | None = None,
    content_type: str | None = None,
    extraction_prompt: str = "",
    classification_prompt: str | None = None,
    force_refresh: bool = False,
) -> DocumentRecognition:
    """Recognize one image from a path or raw bytes.

    Args:
        source: Image path or raw bytes.
        residents: Roster to match against.
        pipeline: Pre-built pipeline, left open. If None, one is built from
            settings and closed before returning.
        settings: Used only when pipeline is None.
        content_type: MIME type; guessed from the path suffix if None.
        extraction_prompt: Overrides the stored active prompt.
        classification_prompt: Overrides the built-in classification rules.
        force_refresh: Skip the cache lookup.

    Returns:
        DocumentRecognition with result, classification and candidates.
    """
    if isinstance(source, bytes):
        data = source
        filename = None
        content_type = content_type or "image/jpeg"
    else:
        path = Path(source)
        data = path.read_bytes()
        filename = path.name
        content_type = content_type or guess_content_type(path)

    request = RecognitionRequest(
        image_bytes=data,
        content_type=content_type,
        extraction_prompt=extraction_prompt,
        classification_prompt=classification_prompt,
        force_refresh=force_refresh,
        filename=filename,
    )
    owned = pipeline is None
    if owned:
        pipeline = build_pipeline(settings)
    try:
        return await pipeline.recognize(request, list(residents))
    finally:
        if owned:
            await pipeline.close()
