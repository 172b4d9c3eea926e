"""
Unit tests for filesystem utilities.
"""

import io
import os
import sys
import stat
import tarfile
import zipfile

import pytest

from zman.core.exceptions import FormatError, StorageError
from zman.core.filesystem import (
    ArchiveExtractionError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
    copy_tree,
    extract_archive,
    remove_tree,
    temporary_directory,
)


class TestExtractArchive:
    """Test extract_archive function."""

    def test_extract_tar_xz(self, tmp_path, make_archive):
        """Test extracting a .tar.xz archive."""
        archive = make_archive("zig-linux-x86_64-0.12.0.tar.xz")
        dest = tmp_path / "out"

        extract_archive(archive, dest)

        assert (dest / "zig-linux-x86_64-0.12.0" / "zig").is_file()
        assert (dest / "zig-linux-x86_64-0.12.0" / "lib" / "std" / "std.zig").is_file()

    def test_extract_tar_gz(self, tmp_path, make_archive):
        """Test extracting a .tar.gz archive."""
        archive = make_archive("zig-0.12.0.tar.gz")
        dest = tmp_path / "out"

        extract_archive(archive, dest)

        assert (dest / "zig-0.12.0" / "zig").is_file()

    def test_extract_zip(self, tmp_path, make_archive):
        """Test extracting a .zip archive."""
        archive = make_archive("zig-windows-x86_64-0.12.0.zip")
        dest = tmp_path / "out"

        extract_archive(archive, dest)

        assert (dest / "zig-windows-x86_64-0.12.0" / "zig").is_file()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_zip_keeps_executable_bit(self, tmp_path):
        """Test Unix permission bits stored in a zip are restored."""
        archive = tmp_path / "zig-macos-aarch64-0.12.0.zip"
        info = zipfile.ZipInfo("zig-macos-aarch64-0.12.0/zig")
        info.external_attr = (stat.S_IFREG | 0o755) << 16
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(info, b"binary")

        extract_archive(archive, tmp_path / "out")

        assert os.access(tmp_path / "out" / "zig-macos-aarch64-0.12.0" / "zig", os.X_OK)

    def test_progress_callback(self, tmp_path, make_archive):
        """Test extraction reports progress."""
        archive = make_archive()
        calls = []

        extract_archive(archive, tmp_path / "out", lambda cur, total: calls.append((cur, total)))

        assert calls
        assert calls[-1][0] == calls[-1][1]

    def test_unsupported_format(self, tmp_path):
        """Test an unknown extension is rejected."""
        archive = tmp_path / "zig.rar"
        archive.write_bytes(b"not an archive")

        with pytest.raises(UnsupportedArchiveFormat):
            extract_archive(archive, tmp_path / "out")

    def test_missing_archive(self, tmp_path):
        """Test a missing archive raises ArchiveExtractionError."""
        with pytest.raises(ArchiveExtractionError, match="Archive not found"):
            extract_archive(tmp_path / "missing.tar.xz", tmp_path / "out")

    def test_corrupt_archive_is_format_error(self, tmp_path):
        """Test a corrupt archive surfaces as a FormatError."""
        archive = tmp_path / "zig.tar.xz"
        archive.write_bytes(b"garbage bytes that are not xz")

        with pytest.raises(FormatError):
            extract_archive(archive, tmp_path / "out")

    def test_rejects_path_traversal(self, tmp_path):
        """Test members escaping the destination are blocked."""
        archive = tmp_path / "evil.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            data = b"owned"
            info = tarfile.TarInfo("../escape.txt")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))

        with pytest.raises(InsecureArchiveError):
            extract_archive(archive, tmp_path / "out")

        assert not (tmp_path / "escape.txt").exists()

    def test_rejects_absolute_paths(self, tmp_path):
        """Test absolute member paths are blocked."""
        archive = tmp_path / "evil.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            data = b"owned"
            info = tarfile.TarInfo("/tmp/zman-absolute.txt")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))

        with pytest.raises(InsecureArchiveError):
            extract_archive(archive, tmp_path / "out")


class TestRemoveTree:
    """Test remove_tree function."""

    def test_remove_directory(self, tmp_path):
        target = tmp_path / "dir"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "file.txt").write_text("x")

        remove_tree(target)

        assert not target.exists()

    def test_missing_directory_is_ignored(self, tmp_path):
        remove_tree(tmp_path / "missing")

    def test_file_is_rejected(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(StorageError):
            remove_tree(path)


class TestCopyTree:
    """Test copy_tree function."""

    def test_copies_tree(self, tmp_path):
        source = tmp_path / "src"
        (source / "lib").mkdir(parents=True)
        (source / "zig").write_text("binary")
        (source / "lib" / "std.zig").write_text("std")

        copy_tree(source, tmp_path / "dst")

        assert (tmp_path / "dst" / "zig").read_text() == "binary"
        assert (tmp_path / "dst" / "lib" / "std.zig").read_text() == "std"

    def test_overwrites_existing_files(self, tmp_path):
        """Test files at the destination are replaced, others kept."""
        source = tmp_path / "src"
        source.mkdir()
        (source / "zig").write_text("new")
        dest = tmp_path / "dst"
        dest.mkdir()
        (dest / "zig").write_text("old")
        (dest / "extra").write_text("kept")

        copy_tree(source, dest)

        assert (dest / "zig").read_text() == "new"
        assert (dest / "extra").read_text() == "kept"

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_preserves_symlinks(self, tmp_path):
        source = tmp_path / "src"
        source.mkdir()
        (source / "real").write_text("data")
        os.symlink("real", source / "alias")

        copy_tree(source, tmp_path / "dst")

        alias = tmp_path / "dst" / "alias"
        assert alias.is_symlink()
        assert os.readlink(alias) == "real"

    def test_missing_source(self, tmp_path):
        with pytest.raises(StorageError, match="Source is not a directory"):
            copy_tree(tmp_path / "missing", tmp_path / "dst")


class TestTemporaryDirectory:
    """Test temporary_directory context manager."""

    def test_removed_after_block(self):
        with temporary_directory() as tmp:
            (tmp / "file").write_text("x")
            assert tmp.is_dir()
            assert tmp.name.startswith("zman_")

        assert not tmp.exists()

    def test_removed_after_exception(self):
        with pytest.raises(RuntimeError):
            with temporary_directory() as tmp:
                (tmp / "file").write_text("x")
                raise RuntimeError("boom")

        assert not tmp.exists()
