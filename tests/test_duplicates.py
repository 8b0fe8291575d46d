"""
Tests for content-hash duplicate detection.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from photosync.media.asset import LocalAsset
from photosync.sync.duplicates import (
    DuplicateDetector,
    DuplicateGroup,
    SkipReason,
    detect,
    resolve_hash_target,
    sha256_file,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_asset(tmp_path, name, content, minutes=0):
    path = tmp_path / name
    path.write_bytes(content)
    return LocalAsset(
        id=name,
        filename=name,
        creation_time=BASE_TIME + timedelta(minutes=minutes),
        readable_uri=path.as_uri(),
    )


class TestResolveHashTarget:
    """Tests for locator normalization."""

    def test_file_uri(self):
        assert resolve_hash_target("file:///photos/a.jpg") == Path("/photos/a.jpg")

    def test_strips_fragment_and_query(self):
        assert resolve_hash_target("file:///photos/a.jpg#x?y") == Path("/photos/a.jpg")
        assert resolve_hash_target("file:///photos/a.jpg?v=2") == Path("/photos/a.jpg")

    def test_percent_decoding(self):
        assert resolve_hash_target("file:///photos/My%20Trip.jpg") == Path(
            "/photos/My Trip.jpg"
        )

    def test_plain_path(self):
        assert resolve_hash_target("/photos/a.jpg") == Path("/photos/a.jpg")

    @pytest.mark.parametrize("uri", ["ph://ABC-123/L0/001", "content://media/1", "https://x/a.jpg"])
    def test_opaque_locators(self, uri):
        assert resolve_hash_target(uri) is None

    @pytest.mark.parametrize("uri", [None, ""])
    def test_missing(self, uri):
        assert resolve_hash_target(uri) is None


class TestSha256File:
    """Tests for the default hash function."""

    def test_matches_hashlib(self, tmp_path):
        path = tmp_path / "f.bin"
        data = b"x" * 10_000
        path.write_bytes(data)

        assert sha256_file(path, chunk_size=1024) == hashlib.sha256(data).hexdigest()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            sha256_file(tmp_path / "missing")


class TestDuplicateGroup:
    """Tests for retention inside a group."""

    def test_retains_earliest(self):
        newer = LocalAsset("a", "a.jpg", creation_time=BASE_TIME + timedelta(days=1))
        older = LocalAsset("b", "b.jpg", creation_time=BASE_TIME)
        group = DuplicateGroup("h", [newer, older])

        assert group.retained is older
        assert group.duplicates == [newer]

    def test_tie_goes_to_scan_order(self):
        first = LocalAsset("a", "a.jpg", creation_time=BASE_TIME)
        second = LocalAsset("b", "b.jpg", creation_time=BASE_TIME)
        group = DuplicateGroup("h", [first, second])

        assert group.retained is first

    def test_missing_time_sorts_first(self):
        dated = LocalAsset("a", "a.jpg", creation_time=BASE_TIME)
        undated = LocalAsset("b", "b.jpg", creation_time=None)
        group = DuplicateGroup("h", [dated, undated])

        assert group.retained is undated


class TestDuplicateDetector:
    """Tests for DuplicateDetector.detect."""

    def test_two_identical_assets(self, tmp_path):
        """Equal content: the older copy is kept, the newer one is a candidate."""
        a = make_asset(tmp_path, "a.jpg", b"same", minutes=5)
        b = make_asset(tmp_path, "b.jpg", b"same", minutes=0)

        result = DuplicateDetector().detect([a, b])

        assert len(result.groups) == 1
        assert result.groups[0].retained == b
        assert result.deletion_candidates() == [a]
        assert result.duplicate_count == 1

    def test_unique_hashes_never_grouped(self, tmp_path):
        assets = [make_asset(tmp_path, f"{i}.jpg", str(i).encode()) for i in range(5)]

        result = DuplicateDetector().detect(assets)

        assert result.groups == []
        assert result.hashed_count == 5
        assert result.deletion_candidates() == []

    def test_groups_ordered_by_first_appearance(self, tmp_path):
        assets = [
            make_asset(tmp_path, "x1.jpg", b"x"),
            make_asset(tmp_path, "y1.jpg", b"y"),
            make_asset(tmp_path, "y2.jpg", b"y"),
            make_asset(tmp_path, "x2.jpg", b"x"),
        ]

        result = DuplicateDetector().detect(assets)

        assert [[m.id for m in g.members] for g in result.groups] == [
            ["x1.jpg", "x2.jpg"],
            ["y1.jpg", "y2.jpg"],
        ]

    def test_exactly_one_retained_per_group(self, tmp_path):
        assets = [make_asset(tmp_path, f"{i}.jpg", b"same", minutes=10 - i) for i in range(4)]

        result = DuplicateDetector().detect(assets)

        group = result.groups[0]
        assert len(group.duplicates) == 3
        assert group.retained.id == "3.jpg"
        assert group.retained not in result.deletion_candidates()

    def test_skip_reasons_and_accounting(self, tmp_path):
        good = make_asset(tmp_path, "good.jpg", b"g")
        no_uri = LocalAsset("n", "n.jpg")
        opaque = LocalAsset("p", "p.jpg", readable_uri="ph://ABC")
        gone = LocalAsset("g", "gone.jpg", readable_uri=(tmp_path / "gone.jpg").as_uri())

        result = DuplicateDetector().detect([good, no_uri, opaque, gone])

        assert result.hashed_count == 1
        assert result.skip_counts() == {
            SkipReason.MISSING_URI: 1,
            SkipReason.UNREADABLE_LOCATOR: 1,
            SkipReason.HASH_FAILURE: 1,
        }
        assert result.hashed_count + sum(result.skip_counts().values()) == result.considered
        assert result.considered == 4
        assert result.sample_skipped(2) == ["n.jpg", "p.jpg"]

    def test_known_content_hash_is_used(self):
        a = LocalAsset("a", "a.jpg", content_hash="abc", readable_uri="file:///x/a.jpg")
        b = LocalAsset("b", "b.jpg", content_hash="abc", readable_uri="file:///x/b.jpg")

        result = detect([a, b])

        assert len(result.groups) == 1
        assert result.hashed_count == 2

    def test_known_hash_without_uri_is_skipped(self):
        """An asset without a readable locator never joins a group, even with a hash."""
        no_uri = LocalAsset("a", "a.jpg", content_hash="abc", creation_time=BASE_TIME)
        readable = LocalAsset(
            "b",
            "b.jpg",
            content_hash="abc",
            readable_uri="file:///x/b.jpg",
            creation_time=BASE_TIME + timedelta(minutes=5),
        )

        result = detect([no_uri, readable])

        assert result.groups == []
        assert result.deletion_candidates() == []
        assert result.skip_counts() == {SkipReason.MISSING_URI: 1}
        assert result.hashed_count == 1

    def test_custom_hash_function(self, tmp_path):
        a = make_asset(tmp_path, "a.jpg", b"1")
        b = make_asset(tmp_path, "b.jpg", b"2")
        calls = []

        def constant_hash(path):
            calls.append(path)
            return "same"

        result = detect([a, b], hash_fn=constant_hash)

        assert len(result.groups) == 1
        assert calls == [tmp_path / "a.jpg", tmp_path / "b.jpg"]
