"""
Unit tests for installed version enumeration.
"""

from zman.toolchain.installed import list_installed


def make_install(root, name, complete=True):
    path = root / name
    path.mkdir(parents=True)
    if complete:
        (path / "zig").write_text("#!/bin/sh\n")
    return path


class TestListInstalled:
    """Test list_installed function."""

    def test_missing_root(self, tmp_path):
        assert list_installed(tmp_path / "missing") == []

    def test_sorted_with_master_last(self, tmp_path):
        for name in ("master", "0.12.0", "0.9.1", "0.11.0", "0.12.0-dev.3180"):
            make_install(tmp_path, name)

        names = [v.name for v in list_installed(tmp_path)]

        assert names == ["0.9.1", "0.11.0", "0.12.0-dev.3180", "0.12.0", "master"]

    def test_skips_incomplete_and_files(self, tmp_path):
        make_install(tmp_path, "0.12.0")
        make_install(tmp_path, "0.11.0", complete=False)
        (tmp_path / "notes.txt").write_text("not a version")

        assert [v.name for v in list_installed(tmp_path)] == ["0.12.0"]

    def test_marks_default(self, tmp_path):
        make_install(tmp_path, "0.11.0")
        current = make_install(tmp_path, "0.12.0")

        installed = list_installed(tmp_path, default_target=current / "zig")

        defaults = [v.name for v in installed if v.is_default]
        assert defaults == ["0.12.0"]

    def test_unparsable_names_before_master(self, tmp_path):
        make_install(tmp_path, "master")
        make_install(tmp_path, "custom-build")
        make_install(tmp_path, "0.12.0")

        names = [v.name for v in list_installed(tmp_path)]

        assert names == ["0.12.0", "custom-build", "master"]
