# tests/unit/imaging/test_validation.py - v1
"""Tests for imaging/validation.py - pre-flight upload checks."""

from __future__ import annotations

import pytest

from careocr.imaging.validation import validate_image_file


class TestValidateImageFile:
    @pytest.mark.parametrize("mime", ["image/jpeg", "image/jpg", "image/png", "image/webp", "IMAGE/PNG"])
    def test_accepted_types(self, settings, mime):
        assert validate_image_file(mime, 1024, settings).valid is True

    @pytest.mark.parametrize("mime", ["image/gif", "application/pdf", "", None])
    def test_rejected_types(self, settings, mime):
        outcome = validate_image_file(mime, 1024, settings)
        assert outcome.valid is False
        assert outcome.error == "Unsupported image format, please use JPG, PNG or WEBP"

    def test_exactly_at_cap_is_accepted(self, settings):
        assert validate_image_file("image/jpeg", 5 * 1024 * 1024, settings).valid is True

    def test_over_cap(self, settings):
        outcome = validate_image_file("image/jpeg", 5 * 1024 * 1024 + 1, settings)
        assert outcome.valid is False
        assert "5MB" in outcome.error

    def test_empty_file(self, settings):
        outcome = validate_image_file("image/png", 0, settings)
        assert outcome.valid is False
        assert outcome.error == "Image file is empty"

    def test_default_settings(self):
        assert validate_image_file("image/jpeg", 10).valid is True
