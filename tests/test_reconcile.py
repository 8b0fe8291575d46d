"""
Tests for inventory reconciliation.
"""

from photosync.media.asset import InventorySnapshot, LocalAsset, RemoteFile
from photosync.sync.reconcile import (
    find_filename_collisions,
    plan_download,
    plan_upload,
)


def asset(asset_id, filename=None, album=None):
    return LocalAsset(id=asset_id, filename=filename or asset_id, album=album)


class TestPlanUpload:
    """Tests for plan_upload."""

    def test_case_insensitive_comparison(self):
        """IMG_001.JPG is on the server as img_001.jpg, so only IMG_002 uploads."""
        local = [asset("1", "IMG_001.JPG"), asset("2", "IMG_002.JPG")]
        remote = [RemoteFile("img_001.jpg")]

        planned = plan_upload(local, remote)

        assert [a.filename for a in planned] == ["IMG_002.JPG"]

    def test_local_names_differing_only_by_case(self):
        """Both spellings of img_1.jpg match the server copy; only img_2.jpg uploads."""
        local = [
            asset("Camera/IMG_1.JPG", "IMG_1.JPG"),
            asset("Camera/img_2.jpg", "img_2.jpg"),
            asset("Download/img_1.jpg", "img_1.jpg"),
        ]
        remote = [RemoteFile("img_1.jpg")]

        planned = plan_upload(local, remote)

        assert [a.filename for a in planned] == ["img_2.jpg"]

    def test_preserves_enumeration_order(self):
        local = [asset("c.jpg"), asset("a.jpg"), asset("b.jpg")]
        assert [a.id for a in plan_upload(local, [])] == ["c.jpg", "a.jpg", "b.jpg"]

    def test_excludes_already_synced_by_id(self):
        synced = asset("PhotoSync/x.jpg", "x.jpg", album="PhotoSync")
        local = [asset("a.jpg"), synced]

        assert plan_upload(local, [], already_synced=[synced]) == [local[0]]

    def test_excludes_already_synced_by_filename(self):
        """A copy of a restored file elsewhere in the library is not sent back."""
        synced = asset("PhotoSync/X.JPG", "X.JPG", album="PhotoSync")
        local = [asset("Camera/x.jpg", "x.jpg")]

        assert plan_upload(local, [], already_synced=[synced]) == []

    def test_everything_on_server(self):
        local = [asset("a.jpg"), asset("b.jpg")]
        remote = [RemoteFile("A.JPG"), RemoteFile("b.jpg")]
        assert plan_upload(local, remote) == []

    def test_idempotent(self):
        local = InventorySnapshot.of([asset("a.jpg"), asset("b.jpg")])
        remote = InventorySnapshot.of([RemoteFile("a.jpg")])

        assert plan_upload(local, remote) == plan_upload(local, remote)

    def test_after_successful_pass_plans_nothing(self):
        local = [asset("a.jpg"), asset("b.jpg")]
        remote = [RemoteFile("a.jpg")]

        uploaded = plan_upload(local, remote)
        remote_after = remote + [RemoteFile(a.filename) for a in uploaded]

        assert plan_upload(local, remote_after) == []

    def test_plan_is_disjoint_from_remote(self):
        local = [asset(f"IMG_{i}.jpg") for i in range(10)]
        remote = [RemoteFile(f"img_{i}.JPG") for i in range(0, 10, 3)]
        remote_keys = {r.filename_key for r in remote}

        planned = plan_upload(local, remote)

        assert all(a.filename_key not in remote_keys for a in planned)
        assert len(planned) == 10 - len(remote)


class TestPlanDownload:
    """Tests for plan_download."""

    def test_remote_names_differing_only_by_case(self):
        """Server files matching a local name in any case are not downloaded."""
        local = [asset("img_1.jpg")]
        remote = [RemoteFile("IMG_1.JPG"), RemoteFile("img_2.jpg"), RemoteFile("img_1.jpg")]

        planned = plan_download(local, remote)

        assert [f.filename for f in planned] == ["img_2.jpg"]

    def test_missing_locally(self):
        local = [asset("IMG_1.JPG")]
        remote = [RemoteFile("img_1.jpg"), RemoteFile("clip.mp4")]

        assert plan_download(local, remote) == [RemoteFile("clip.mp4")]

    def test_preserves_listing_order(self):
        remote = [RemoteFile("z.jpg"), RemoteFile("a.jpg")]
        assert plan_download([], remote) == remote

    def test_album_assets_count_as_local(self):
        local = [asset("PhotoSync/a.jpg", "a.jpg", album="PhotoSync")]
        assert plan_download(local, [RemoteFile("a.jpg")]) == []


class TestFindFilenameCollisions:
    """Tests for find_filename_collisions."""

    def test_reports_case_insensitive_repeats(self):
        snapshot = InventorySnapshot.of(
            [asset("a/IMG.JPG", "IMG.JPG"), asset("b/img.jpg", "img.jpg"), asset("c.jpg")]
        )
        assert find_filename_collisions(snapshot) == {"img.jpg": 2}

    def test_no_collisions(self):
        assert find_filename_collisions([asset("a.jpg"), asset("b.jpg")]) == {}
