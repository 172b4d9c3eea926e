"""
Unit tests for release index decoding and version resolution.
"""

import pytest
import requests
import responses

from zman.core.exceptions import (
    ConnectivityError,
    FormatError,
    TargetUnsupportedError,
    VersionNotFoundError,
)
from zman.toolchain.index import (
    DEFAULT_INDEX_URL,
    ReleaseIndex,
    VersionIndex,
)
from zman.toolchain.version import VersionSpecifier

TARGET = "x86_64-linux"


def resolve(data, text, target=TARGET):
    return ReleaseIndex.from_json(data).resolve(VersionSpecifier.parse(text), target)


def release(date, tarball="U", shasum="00", target=TARGET):
    return {"date": date, target: {"tarball": tarball, "shasum": shasum}}


class TestResolve:
    """Test ReleaseIndex.resolve."""

    def test_latest(self, sample_index_data):
        resolved = resolve(sample_index_data, "latest")

        assert resolved.specific_version == "0.12.0"
        assert resolved.tarball_url == "U2"
        assert resolved.shasum.startswith("feedface")
        assert not resolved.is_master

    def test_exact(self, sample_index_data):
        resolved = resolve(sample_index_data, "0.11.0")

        assert resolved.specific_version == "0.11.0"
        assert resolved.tarball_url == "U1"
        assert resolved.shasum.startswith("deadbeef")

    def test_master_uses_version_field(self, sample_index_data):
        resolved = resolve(sample_index_data, "master")

        assert resolved.specific_version == "0.13.0-dev"
        assert resolved.tarball_url == "U3"
        assert resolved.key == "master"
        assert resolved.is_master

    def test_unknown_version(self, sample_index_data):
        with pytest.raises(VersionNotFoundError, match="0.99.0 could not be found"):
            resolve(sample_index_data, "0.99.0")

    def test_target_unsupported(self, sample_index_data):
        with pytest.raises(TargetUnsupportedError) as exc_info:
            resolve(sample_index_data, "0.12.0", target="riscv64-linux")

        assert exc_info.value.version == "0.12.0"
        assert exc_info.value.target == "riscv64-linux"

    def test_latest_ignores_master_date(self):
        data = {
            "master": {"version": "0.13.0-dev", "date": "2099-01-01",
                       TARGET: {"tarball": "M", "shasum": "00"}},
            "0.11.0": release("2023-08-01", tarball="U1"),
        }

        assert resolve(data, "latest").tarball_url == "U1"

    def test_latest_by_date_not_version(self):
        """Test the newest release by date wins, even with a lower version."""
        data = {
            "0.12.0": release("2024-01-01", tarball="A"),
            "0.11.1": release("2024-06-01", tarball="B"),
        }

        assert resolve(data, "latest").specific_version == "0.11.1"

    def test_latest_independent_of_key_order(self):
        entries = [
            ("0.10.0", release("2022-10-01", tarball="A")),
            ("0.12.0", release("2024-04-01", tarball="C")),
            ("0.11.0", release("2023-08-01", tarball="B")),
        ]

        results = {
            resolve(dict(order), "latest").specific_version
            for order in (entries, list(reversed(entries)), entries[1:] + entries[:1])
        }

        assert results == {"0.12.0"}

    def test_latest_tie_on_date_picks_highest_version(self):
        forward = {
            "0.11.1": release("2024-04-01", tarball="A"),
            "0.12.0": release("2024-04-01", tarball="B"),
        }
        backward = dict(reversed(list(forward.items())))

        assert resolve(forward, "latest").specific_version == "0.12.0"
        assert resolve(backward, "latest").specific_version == "0.12.0"

    def test_latest_with_no_releases(self):
        data = {"master": {"version": "0.13.0-dev", TARGET: {"tarball": "M", "shasum": "00"}}}

        with pytest.raises(VersionNotFoundError, match="Latest version could not be found"):
            resolve(data, "latest")

    def test_latest_requires_dates(self):
        data = {"0.12.0": {TARGET: {"tarball": "U", "shasum": "00"}}}

        with pytest.raises(FormatError, match="no release date"):
            resolve(data, "latest")

    def test_master_missing(self):
        data = {"0.12.0": release("2024-04-01")}

        with pytest.raises(FormatError, match="no 'master' entry"):
            resolve(data, "master")

    def test_master_without_version(self):
        data = {"master": {TARGET: {"tarball": "M", "shasum": "00"}}}

        with pytest.raises(FormatError, match="has no version"):
            resolve(data, "master")

    def test_exact_with_leading_v(self, sample_index_data):
        assert resolve(sample_index_data, "v0.12.0").tarball_url == "U2"

    def test_exact_matches_build_metadata_only_when_given(self):
        data = {
            "0.12.0+aaa": release("2024-04-01", tarball="A"),
            "0.12.0+bbb": release("2024-04-01", tarball="B"),
        }

        assert resolve(data, "0.12.0+aaa").tarball_url == "A"
        assert resolve(data, "0.12.0").tarball_url == "B"

    def test_series_picks_highest_release(self):
        data = {
            "0.11.0": release("2023-08-01", tarball="U0"),
            "0.11.1": release("2024-01-01", tarball="U1"),
            "0.12.0": release("2024-04-01", tarball="U2"),
        }

        resolved = resolve(data, "0.11")

        assert resolved.specific_version == "0.11.1"
        assert resolved.tarball_url == "U1"

    def test_series_by_major(self):
        data = {
            "0.12.0": release("2024-04-01", tarball="U0"),
            "1.0.0": release("2025-01-01", tarball="U1"),
            "1.2.3": release("2025-06-01", tarball="U2"),
        }

        assert resolve(data, "1").specific_version == "1.2.3"
        assert resolve(data, "v0").specific_version == "0.12.0"

    def test_series_skips_prereleases(self):
        data = {
            "0.11.0": release("2023-08-01", tarball="U0"),
            "0.11.1-rc.1": release("2024-01-01", tarball="RC"),
            "master": {"version": "0.11.2-dev", TARGET: {"tarball": "M", "shasum": "00"}},
        }

        assert resolve(data, "0.11").specific_version == "0.11.0"

    def test_series_without_releases(self, sample_index_data):
        with pytest.raises(VersionNotFoundError, match="Version 0.10 could not be found"):
            resolve(sample_index_data, "0.10")

    def test_full_version_stays_exact(self):
        data = {
            "0.11.0": release("2023-08-01", tarball="U0"),
            "0.11.1": release("2024-01-01", tarball="U1"),
        }

        assert resolve(data, "0.11.0").tarball_url == "U0"


class TestFromJson:
    """Test ReleaseIndex.from_json decoding."""

    def test_not_an_object(self):
        with pytest.raises(FormatError):
            ReleaseIndex.from_json(["0.12.0"])

    def test_entry_not_an_object(self):
        with pytest.raises(FormatError, match="'0.12.0' is not an object"):
            ReleaseIndex.from_json({"0.12.0": "oops"})

    def test_artifact_missing_shasum(self):
        with pytest.raises(FormatError, match="lacks tarball or shasum"):
            ReleaseIndex.from_json(
                {"0.12.0": {"date": "2024-04-01", TARGET: {"tarball": "U"}}}
            )

    @pytest.mark.parametrize(
        "artifact",
        [{"tarball": "", "shasum": "00"}, {"tarball": "U", "shasum": "  "}],
    )
    def test_artifact_with_empty_field(self, artifact):
        with pytest.raises(FormatError, match="empty tarball or shasum"):
            ReleaseIndex.from_json({"0.12.0": {"date": "2024-04-01", TARGET: artifact}})

    def test_non_artifact_fields_ignored(self, sample_index_data):
        sample_index_data["0.12.0"]["docs"] = "https://ziglang.org/documentation/0.12.0/"
        sample_index_data["0.12.0"]["src"] = {"tarball": "S", "shasum": "11", "size": "123"}

        entry = ReleaseIndex.from_json(sample_index_data).entries["0.12.0"]

        assert set(entry.artifacts) == {TARGET, "src"}
        assert entry.artifacts["src"].size == 123
        assert entry.date == "2024-04-01"


class TestVersionIndex:
    """Test VersionIndex network access."""

    @responses.activate
    def test_fetch_and_resolve(self, sample_index_data):
        responses.add(responses.GET, DEFAULT_INDEX_URL, json=sample_index_data)

        resolved = VersionIndex().resolve(VersionSpecifier.parse("latest"), TARGET)

        assert resolved.specific_version == "0.12.0"
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetches_on_every_resolve(self, sample_index_data):
        responses.add(responses.GET, DEFAULT_INDEX_URL, json=sample_index_data)
        index = VersionIndex()

        index.resolve(VersionSpecifier.parse("0.11.0"), TARGET)
        index.resolve(VersionSpecifier.parse("0.12.0"), TARGET)

        assert len(responses.calls) == 2

    @responses.activate
    def test_custom_url(self, sample_index_data):
        url = "https://mirror.example.com/zig/index.json"
        responses.add(responses.GET, url, json=sample_index_data)

        index = VersionIndex(index_url=url).fetch()

        assert "0.11.0" in index.entries

    @responses.activate
    def test_connection_error(self):
        responses.add(
            responses.GET,
            DEFAULT_INDEX_URL,
            body=requests.exceptions.ConnectionError("no route to host"),
        )

        with pytest.raises(ConnectivityError):
            VersionIndex().fetch()

    @responses.activate
    def test_server_error(self):
        responses.add(responses.GET, DEFAULT_INDEX_URL, status=503)

        with pytest.raises(ConnectivityError, match="503"):
            VersionIndex().fetch()

    @responses.activate
    def test_invalid_json(self):
        responses.add(responses.GET, DEFAULT_INDEX_URL, body="<html>not json</html>")

        with pytest.raises(FormatError, match="could not be parsed"):
            VersionIndex().fetch()
