"""Tests specific to the filesystem backend."""

import errno
import os
import stat
import time

import pytest

from gentledb import GentleDB, StorageIOError
from gentledb.identifiers import digest_hex
from gentledb.paths import id_to_path
from gentledb.storage import get_backend
from gentledb.storage.local import CONTENT_DIR, POINTER_DIR, TMP_DIR, FileContentStore

POINTER = "deadbeef" * 8


def mode(path):
    return stat.S_IMODE(path.stat().st_mode)


def all_files(root):
    return [p for p in root.rglob("*") if p.is_file()]


class TestLayout:
    def test_creates_owner_only_directories(self, tmp_path):
        db = GentleDB.open(tmp_path / "store")

        for path in (db.directory, *(db.directory / n for n in (CONTENT_DIR, POINTER_DIR, TMP_DIR))):
            assert path.is_dir()
            assert mode(path) == 0o700

    def test_existing_root_is_kept(self, tmp_path):
        root = tmp_path / "store"
        root.mkdir()
        root.chmod(0o750)

        GentleDB.open(root)

        assert mode(root) == 0o750
        assert mode(root / CONTENT_DIR) == 0o700

    def test_default_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr("gentledb.storage.DEFAULT_DIRECTORY", tmp_path / ".gentledb")

        db = GentleDB.open()

        assert db.directory == (tmp_path / ".gentledb").resolve()

    def test_get_backend(self, tmp_path):
        content, pointers = get_backend("local", directory=tmp_path / "store")

        assert isinstance(content, FileContentStore)
        assert content.tmp_dir == pointers.tmp_dir

    def test_get_backend_unknown(self):
        with pytest.raises(ValueError):
            get_backend("s3")


class TestContentFiles:
    def test_content_file_location_and_mode(self, local_db):
        content_id = local_db.put_bytes(b"on disk")

        path = id_to_path(local_db.directory / CONTENT_DIR, content_id)
        assert path.read_bytes() == b"on disk"
        assert mode(path) == 0o400
        assert path.relative_to(local_db.directory / CONTENT_DIR).parts == (
            content_id[:2],
            content_id[2:4],
            content_id[4:7],
            content_id[7:],
        )

    def test_dedup_does_not_touch_existing_file(self, local_db):
        content_id = local_db.put_bytes(b"stable")
        path = id_to_path(local_db.directory / CONTENT_DIR, content_id)
        inode = path.stat().st_ino

        local_db.put_bytes(b"stable")

        assert path.stat().st_ino == inode
        assert len(all_files(local_db.directory / CONTENT_DIR)) == 1

    def test_staging_file_lifecycle(self, local_db):
        writer = local_db.open_writer()
        writer.write(b"staged")

        assert writer.staging_path.parent == local_db.directory / TMP_DIR
        assert writer.staging_path.exists()
        assert mode(writer.staging_path) == 0o600

        writer.close()

        assert not writer.staging_path.exists()
        assert all_files(local_db.directory / TMP_DIR) == []

    def test_abort_removes_staging_file(self, local_db):
        writer = local_db.open_writer()
        writer.write(b"abandoned")
        writer.abort()

        assert not writer.staging_path.exists()
        assert all_files(local_db.directory / CONTENT_DIR) == []

    def test_exception_removes_staging_file(self, local_db):
        with pytest.raises(RuntimeError):
            with local_db.open_writer() as writer:
                writer.write(b"partial")
                raise RuntimeError("boom")

        assert all_files(local_db.directory / TMP_DIR) == []

    def test_publish_failure(self, local_db, monkeypatch):
        """A failed publish surfaces StorageIOError and leaves nothing behind."""

        def fail(src, dst):
            raise PermissionError("denied")

        monkeypatch.setattr("gentledb.storage.local.atomic_publish", fail)
        writer = local_db.open_writer()
        writer.write(b"never visible")

        with pytest.raises(StorageIOError) as exc_info:
            writer.close()

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert not local_db.exists(digest_hex(b"never visible"))
        assert all_files(local_db.directory / TMP_DIR) == []
        with pytest.raises(ValueError, match="Publish failed") as exc_info:
            writer.content_id
        assert isinstance(exc_info.value.__cause__, StorageIOError)

    def test_staging_setup_failure_leaves_nothing(self, local_db, monkeypatch):
        def fail(path, mode):
            raise PermissionError("denied")

        monkeypatch.setattr("gentledb.storage.local.os.chmod", fail)

        with pytest.raises(StorageIOError):
            local_db.open_writer()

        assert all_files(local_db.directory / TMP_DIR) == []

    @pytest.mark.parametrize("err", [errno.EPERM, errno.EXDEV], ids=["EPERM", "EXDEV"])
    def test_publish_without_hard_links(self, local_db, monkeypatch, err):
        def fail(src, dst, *args, **kwargs):
            raise OSError(err, os.strerror(err))

        monkeypatch.setattr("gentledb.storage_utils.os.link", fail)

        first = local_db.put_bytes(b"no links here")
        second = local_db.put_bytes(b"no links here")

        assert first == second == digest_hex(b"no links here")
        path = id_to_path(local_db.directory / CONTENT_DIR, first)
        assert path.read_bytes() == b"no links here"
        assert mode(path) == 0o400
        assert all_files(local_db.directory / TMP_DIR) == []

    def test_concurrent_writers_leave_single_file(self, local_db):
        payload = os.urandom(1 << 20)
        writers = [local_db.open_writer() for _ in range(3)]
        for writer in writers:
            writer.write(payload)
        for writer in writers:
            writer.close()

        assert len({w.content_id for w in writers}) == 1
        assert len(all_files(local_db.directory / CONTENT_DIR)) == 1
        assert all_files(local_db.directory / TMP_DIR) == []

    def test_list_ids_ignores_stray_files(self, local_db):
        content_id = local_db.put_bytes(b"real")
        (local_db.directory / CONTENT_DIR / "README").write_text("not content")

        assert local_db.content.list_ids() == [content_id]


class TestPointerFiles:
    def test_pointer_file_contents(self, local_db):
        content_id = local_db.put_string("target")

        local_db.bind(POINTER, content_id)

        path = id_to_path(local_db.directory / POINTER_DIR, POINTER)
        assert path.read_bytes() == content_id.encode("utf-8")
        assert mode(path) == 0o600

    def test_unbind_removes_file(self, local_db):
        local_db.bind(POINTER, digest_hex(b"x"))
        path = id_to_path(local_db.directory / POINTER_DIR, POINTER)

        local_db.unbind(POINTER)

        assert not path.exists()

    def test_invalid_pointer_touches_nothing(self, local_db):
        with pytest.raises(ValueError):
            local_db.bind("not-a-pointer", digest_hex(b"x"))

        assert list((local_db.directory / POINTER_DIR).iterdir()) == []

    def test_unbind_failure_is_surfaced(self, local_db):
        path = id_to_path(local_db.directory / POINTER_DIR, POINTER, create_dirs=True)
        path.mkdir()

        with pytest.raises(StorageIOError) as exc_info:
            local_db.unbind(POINTER)

        assert exc_info.value.path == path

    def test_corrupt_pointer_file(self, local_db):
        path = id_to_path(local_db.directory / POINTER_DIR, POINTER, create_dirs=True)
        path.write_bytes(b"garbage\n")

        with pytest.raises(StorageIOError):
            local_db.resolve(POINTER)

    def test_pointer_written_by_hand_resolves(self, local_db):
        """Files without a trailing newline are the on-disk format."""
        target = digest_hex(b"hand")
        path = id_to_path(local_db.directory / POINTER_DIR, POINTER, create_dirs=True)
        path.write_text(target, encoding="utf-8")

        assert local_db.resolve(POINTER) == target


class TestCleanStaging:
    def test_removes_only_stale_files(self, local_db):
        tmp_dir = local_db.directory / TMP_DIR
        stale = tmp_dir / ("a" * 64)
        fresh = tmp_dir / ("b" * 64)
        stale.write_bytes(b"orphan")
        fresh.write_bytes(b"in progress")
        old = time.time() - 7200
        os.utime(stale, (old, old))

        removed = local_db.clean_staging(max_age_seconds=3600)

        assert removed == 1
        assert not stale.exists()
        assert fresh.exists()

    def test_uses_configured_default(self, tmp_path):
        db = GentleDB.open(tmp_path / "store", staging_max_age_seconds=0)
        orphan = db.directory / TMP_DIR / "orphan"
        orphan.write_bytes(b"")
        old = time.time() - 10
        os.utime(orphan, (old, old))

        assert db.clean_staging() == 1

    def test_committed_content_untouched(self, local_db):
        content_id = local_db.put_bytes(b"committed")

        local_db.clean_staging(max_age_seconds=0)

        assert local_db.get_bytes(content_id) == b"committed"

    def test_idle_writer_older_than_threshold_fails_to_publish(self, local_db):
        writer = local_db.open_writer()
        writer.write(b"idle too long")
        old = time.time() - 7200
        os.utime(writer.staging_path, (old, old))

        assert local_db.clean_staging(max_age_seconds=3600) == 1
        with pytest.raises(StorageIOError):
            writer.close()
        assert not local_db.exists(digest_hex(b"idle too long"))
