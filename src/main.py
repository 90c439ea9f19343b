# src/main.py - v3
"""CLI entry point: recognize, batch, prompts commands.

Usage:
    careocr recognize <image> [--residents roster.json] [--prompt-file F] [--force-refresh] [--json]
    careocr batch <directory> [--residents roster.json] [--no-recursive]
    careocr prompts show
    careocr prompts save <file>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from careocr.version import __version__

if TYPE_CHECKING:
    from careocr.config.settings import Settings
    from careocr.core.models import DocumentRecognition

logger = logging.getLogger(__name__)

BATCH_CATEGORY = "recognize"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from careocr.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="careocr",
        description=f"careocr v{__version__} - medical document recognition",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- recognize ---
    p_recognize = subparsers.add_parser(
        "recognize", help="Recognize a single document photo",
    )
    p_recognize.add_argument("image", type=Path, help="Path to JPG, PNG or WEBP image")
    p_recognize.add_argument(
        "--residents", type=Path, default=None,
        help="JSON roster to match extracted identity fields against",
    )
    p_recognize.add_argument(
        "--prompt-file", type=Path, default=None,
        help="File holding a custom extraction prompt",
    )
    p_recognize.add_argument(
        "--force-refresh", action="store_true",
        help="Ignore cached results for this image",
    )
    p_recognize.add_argument(
        "--json", dest="as_json", action="store_true",
        help="Print the full result as JSON",
    )
    p_recognize.set_defaults(func=_cmd_recognize)

    # --- batch ---
    p_batch = subparsers.add_parser(
        "batch", help="Recognize every image in a directory",
    )
    p_batch.add_argument("directory", type=Path, help="Directory to scan")
    p_batch.add_argument(
        "--residents", type=Path, default=None,
        help="JSON roster to match extracted identity fields against",
    )
    p_batch.add_argument(
        "--no-recursive", action="store_true",
        help="Disable recursive scanning",
    )
    p_batch.set_defaults(func=_cmd_batch)

    # --- prompts ---
    p_prompts = subparsers.add_parser(
        "prompts", help="Show or save the active extraction prompt",
    )
    prompt_sub = p_prompts.add_subparsers(dest="prompt_command", required=True)
    prompt_sub.add_parser("show", help="Print the prompt used when none is given")
    p_save = prompt_sub.add_parser("save", help="Save a prompt file as the active prompt")
    p_save.add_argument("file", type=Path, help="Prompt text file")
    p_prompts.set_defaults(func=_cmd_prompts)

    return parser


async def _cmd_recognize(args: argparse.Namespace, settings: Settings) -> int:
    """Recognize one image and print the outcome."""
    from careocr.api.facade import build_pipeline, load_residents, recognize_image

    image_path: Path = args.image
    if not image_path.is_file():
        logger.error("File not found: %s", image_path)
        return 1

    residents = load_residents(args.residents) if args.residents else []
    prompt = ""
    if args.prompt_file:
        prompt = args.prompt_file.read_text(encoding="utf-8")

    pipeline = build_pipeline(settings)
    try:
        recognition = await recognize_image(
            image_path,
            residents,
            pipeline=pipeline,
            extraction_prompt=prompt,
            force_refresh=args.force_refresh,
        )
    finally:
        await pipeline.close()

    if args.as_json:
        print(recognition.model_dump_json(indent=2))
    else:
        _print_recognition(image_path.name, recognition)
    return 0 if recognition.result.success else 1


async def _cmd_batch(args: argparse.Namespace, settings: Settings) -> int:
    """Recognize all accepted images under a directory.

    Identical files are recognized once; every copy shares the outcome.
    """
    from careocr.api.facade import build_pipeline, load_residents, recognize_image
    from careocr.batch.request_batcher import RequestBatcher
    from careocr.cache.fingerprint import compute_fingerprint

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    files = _scan_images(directory, recursive=not args.no_recursive)
    if not files:
        print(f"No images found in {directory}")
        return 0

    residents = load_residents(args.residents) if args.residents else []
    pipeline = build_pipeline(settings)
    batcher = RequestBatcher(
        delay_ms=settings.batch_delay_ms,
        max_concurrent=settings.batch_max_concurrent,
    )

    futures = []
    for path in files:
        key = compute_fingerprint(path.read_bytes())
        futures.append(batcher.add_request(
            BATCH_CATEGORY,
            key,
            lambda p=path: recognize_image(p, residents, pipeline=pipeline),
        ))

    try:
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
    finally:
        await pipeline.close()

    succeeded = failed = 0
    for path, outcome in zip(files, outcomes):
        name = str(path.relative_to(directory))
        if isinstance(outcome, BaseException):
            failed += 1
            print(f"  {name}: error: {outcome}")
            continue
        if outcome.result.success:
            succeeded += 1
        else:
            failed += 1
        _print_recognition(name, outcome, indent="  ")

    print("\nBatch complete:")
    print(f"  Files found:  {len(files)}")
    print(f"  Recognized:   {succeeded}")
    print(f"  Failed:       {failed}")
    return 0 if failed == 0 else 1


async def _cmd_prompts(args: argparse.Namespace, settings: Settings) -> int:
    """Show or save the active extraction prompt."""
    from careocr.prompts.store import create_prompt_store

    store = create_prompt_store(settings)
    if args.prompt_command == "show":
        print(await store.active_prompt())
        return 0

    prompt_file: Path = args.file
    if not prompt_file.is_file():
        logger.error("File not found: %s", prompt_file)
        return 1
    saved = await store.save(prompt_file.read_text(encoding="utf-8"))
    if not saved:
        logger.error("Prompt was not saved")
        return 1
    print(f"Saved active prompt from {prompt_file}")
    return 0


def _scan_images(directory: Path, recursive: bool = True) -> list[Path]:
    """Image files under directory, sorted for stable output."""
    from careocr.api.facade import guess_content_type

    pattern = "**/*" if recursive else "*"
    return sorted(
        p for p in directory.glob(pattern)
        if p.is_file() and guess_content_type(p).startswith("image/")
    )


def _print_recognition(name: str, recognition: DocumentRecognition, indent: str = "") -> None:
    """Print a human-readable summary of a DocumentRecognition."""
    result = recognition.result
    if not result.success:
        print(f"{indent}{name}: failed: {result.error}")
        return

    classification = recognition.classification
    label = (
        f"{classification.type} ({classification.confidence}%, {classification.source})"
        if classification else "unclassified"
    )
    cached = " [cached]" if result.from_cache else ""
    print(f"{indent}{name}: {label}{cached}, {result.processing_time_ms}ms")
    for key, value in (result.extracted_fields or {}).items():
        print(f"{indent}  {key}: {value}")
    for candidate in recognition.candidates:
        fields = ", ".join(sorted(candidate.matched_fields))
        print(f"{indent}  candidate {candidate.resident_id}: {candidate.confidence}% ({fields})")
    if recognition.needs_review:
        print(f"{indent}  needs review")


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from careocr.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format="text" if verbose else settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
