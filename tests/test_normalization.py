"""
Tests for normalization utilities.
"""

import pytest

from photosync.utils.normalization import (
    normalize_email,
    normalize_filename,
    normalize_host_input,
)


class TestNormalizeFilename:
    """Tests for the filename reconciliation key."""

    def test_folds_case(self):
        assert normalize_filename("IMG_0001.JPG") == "img_0001.jpg"

    def test_mixed_case_names_match(self):
        """Names differing only in case produce the same key."""
        assert normalize_filename("Photo.HEIC") == normalize_filename("photo.heic")

    def test_keeps_whitespace_and_extension(self):
        assert normalize_filename(" My Trip.MOV ") == " my trip.mov "

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_input(self, value):
        assert normalize_filename(value) == ""


class TestNormalizeEmail:
    """Tests for email normalization used by identity derivation."""

    def test_lower_cases(self):
        assert normalize_email("Alice@Example.COM") == "alice@example.com"

    def test_does_not_strip(self):
        """Whitespace is part of the typed credentials."""
        assert normalize_email(" a@b.com") == " a@b.com"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_input(self, value):
        assert normalize_email(value) == ""


class TestNormalizeHostInput:
    """Tests for server host input normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("192.168.1.20", "192.168.1.20"),
            ("  192.168.1.20  ", "192.168.1.20"),
            ("http://192.168.1.20:3000", "192.168.1.20"),
            ("https://photos.example.com/api/files?x=1#top", "photos.example.com"),
            ("photos.example.com:8443/path", "photos.example.com"),
            ("https://user:pw@photos.example.com", "photos.example.com"),
        ],
    )
    def test_strips_url_parts(self, raw, expected):
        assert normalize_host_input(raw) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        assert normalize_host_input(value) == ""
