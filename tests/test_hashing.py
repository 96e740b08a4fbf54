"""
Tests for content fingerprints.
"""

import xxhash

from srcview.services.hashing import content_version


def test_content_version_is_xxh64_of_utf8():
    assert content_version("abc") == xxhash.xxh64(b"abc").hexdigest()
    assert content_version("abc") == content_version("abc")
    assert content_version("abc") != content_version("abd")


def test_content_version_accepts_lone_surrogates():
    assert content_version("\ud800") != content_version("")


def test_content_version_of_non_ascii_text():
    assert content_version("é") == xxhash.xxh64("é".encode("utf-8")).hexdigest()
