"""
Pytest configuration and shared fixtures for zman tests.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

from zman.core.platform import detect_target


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


@pytest.fixture(autouse=True)
def clear_target_cache():
    """Reset cached platform detection between tests."""
    detect_target.cache_clear()
    yield
    detect_target.cache_clear()


# ============================================================================
# Release Index Fixtures
# ============================================================================


@pytest.fixture
def sample_index_data() -> Dict:
    """
    Release index with two releases and master.

    Mirrors the shape of https://ziglang.org/download/index.json.
    """
    return {
        "master": {
            "version": "0.13.0-dev",
            "x86_64-linux": {"tarball": "U3", "shasum": "abc123" + "0" * 58},
        },
        "0.11.0": {
            "date": "2023-08-01",
            "x86_64-linux": {"tarball": "U1", "shasum": "deadbeef" + "0" * 56},
        },
        "0.12.0": {
            "date": "2024-04-01",
            "x86_64-linux": {"tarball": "U2", "shasum": "feedface" + "0" * 56},
        },
    }


# ============================================================================
# Archive Fixtures
# ============================================================================


def _build_tar(
    archive_path: Path, files: Dict[str, bytes], mode: str = "w:xz"
) -> None:
    with tarfile.open(archive_path, mode) as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))


def _build_zip(archive_path: Path, files: Dict[str, bytes]) -> None:
    with zipfile.ZipFile(archive_path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)


@pytest.fixture
def make_archive(tmp_path) -> Callable[..., Path]:
    """
    Factory for archives laid out like Zig release tarballs.

    Example:
        def test_extract(make_archive):
            archive = make_archive("zig-linux-x86_64-0.12.0.tar.xz")
            # archive contains zig-linux-x86_64-0.12.0/zig and lib/std/std.zig
    """
    archives_dir = tmp_path / "archives"
    archives_dir.mkdir()

    def factory(
        name: str = "zig-linux-x86_64-0.12.0.tar.xz",
        files: Optional[Dict[str, bytes]] = None,
    ) -> Path:
        if files is None:
            root = name.split(".tar")[0].replace(".zip", "")
            files = {
                f"{root}/zig": b"#!/bin/sh\necho zig\n",
                f"{root}/lib/std/std.zig": b"pub const std = {};\n",
                f"{root}/LICENSE": b"MIT\n",
            }

        archive_path = archives_dir / name
        lowered = name.lower()
        if lowered.endswith(".zip"):
            _build_zip(archive_path, files)
        elif lowered.endswith(".tar.gz"):
            _build_tar(archive_path, files, "w:gz")
        else:
            _build_tar(archive_path, files, "w:xz")
        return archive_path

    return factory


def sha256_of(path: Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


@pytest.fixture
def archive_digest() -> Callable[[Path], str]:
    """Return a helper computing the SHA-256 of a file."""
    return sha256_of
