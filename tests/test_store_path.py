"""
Tests for store path parsing and the exclusion filter.
"""

import pytest

from nixup.core.models.config import DEFAULT_VERSION_SUFFIXES
from nixup.core.services.exclusions import ExclusionFilter
from nixup.core.services.store_path import StorePathParser, parse_store_path


def store_path(name_version: str) -> str:
    return "/nix/store/" + "a" * 32 + "-" + name_version


class TestStorePathParser:
    """Tests for splitting store paths into (name, version)."""

    @pytest.mark.parametrize(
        ("name_version", "expected"),
        [
            ("curl-8.16.0", ("curl", "8.16.0")),
            ("systemd-258.1", ("systemd", "258.1")),
            ("python3-3.12.8", ("python3", "3.12.8")),
            ("gtk+3-3.24.43", ("gtk+3", "3.24.43")),
            ("git-2.47.1-doc", ("git", "2.47.1")),
            ("curl-8.16.0-bin", ("curl", "8.16.0")),
            ("zlib-1.3.1_dev", ("zlib", "1.3.1")),
            ("nodejs-22.11.0-npm-deps", ("nodejs", "22.11.0")),
            ("firefox-unwrapped-133.0", ("firefox-unwrapped", "133.0")),
        ],
    )
    def test_parses_name_and_version(self, name_version, expected):
        assert parse_store_path(store_path(name_version)) == expected

    def test_splits_at_last_digit_boundary(self):
        assert parse_store_path(store_path("foo-1.0-2")) == ("foo-1.0", "2")

    def test_round_trip_with_every_default_suffix(self):
        """Any configured suffix is stripped back to the bare version."""
        parser = StorePathParser()
        for suffix in DEFAULT_VERSION_SUFFIXES:
            for sep in ("-", "_"):
                path = store_path(f"ripgrep-14.1.1{sep}{suffix}")
                assert parser.parse(path) == ("ripgrep", "14.1.1"), suffix

    def test_only_one_suffix_is_stripped(self):
        parser = StorePathParser()
        assert parser.parse(store_path("foo-1.0-bin-dev")) == ("foo", "1.0-bin")

    def test_no_version_returns_remainder(self):
        assert parse_store_path(store_path("source")) == ("source", "")
        assert parse_store_path(store_path("etc-os-release")) == ("etc-os-release", "")

    def test_drv_like_names_without_digit_version(self):
        assert parse_store_path(store_path("hm-session-vars.sh")) == ("hm-session-vars.sh", "")

    def test_short_numeric_version_is_a_misparse(self):
        """``dbus-1`` style trailing numbers belong to the name."""
        assert parse_store_path(store_path("libfoo-1")) == ("libfoo-1", "")
        assert parse_store_path(store_path("unit-script-42")) == ("unit-script-42", "")

    def test_short_numeric_version_kept_when_name_ends_in_digit(self):
        assert parse_store_path(store_path("qt5-15")) == ("qt5", "15")

    def test_three_digit_numeric_version_is_kept(self):
        assert parse_store_path(store_path("systemd-258")) == ("systemd", "258")

    def test_suffix_strip_can_expose_short_numeric(self):
        assert parse_store_path(store_path("foo-2-bin")) == ("foo-2-bin", "")

    def test_short_basename(self):
        assert parse_store_path("/nix/store/abc") == ("", "")

    def test_trailing_slash(self):
        assert parse_store_path(store_path("curl-8.16.0") + "/") == ("curl", "8.16.0")

    def test_custom_suffixes(self):
        parser = StorePathParser(["gui"])
        assert parser.parse(store_path("app-1.2.3-gui")) == ("app", "1.2.3")
        assert parser.parse(store_path("app-1.2.3-bin")) == ("app", "1.2.3-bin")

    def test_empty_suffix_list(self):
        parser = StorePathParser([])
        assert parser.parse(store_path("app-1.2.3-bin")) == ("app", "1.2.3-bin")


class TestExclusionFilter:
    """Tests for glob-based name exclusion."""

    @pytest.mark.parametrize(
        "name",
        ["glibc", "glibc-locales", "gcc-wrapper", "binutils-wrapper", "stdenv-linux",
         "openssl-3", "expand-response-params", "make-shell-wrapper-hook", "foo-dev", "bar-hook"],
    )
    def test_default_patterns_exclude(self, name):
        assert ExclusionFilter().is_excluded(name)

    @pytest.mark.parametrize("name", ["curl", "firefox", "gcc", "openssl", "devtools"])
    def test_default_patterns_keep(self, name):
        assert not ExclusionFilter().is_excluded(name)

    def test_case_sensitive(self):
        assert not ExclusionFilter(["glibc*"]).is_excluded("GLIBC")

    def test_override_patterns(self):
        filt = ExclusionFilter(["firefox*"])
        assert filt("firefox-unwrapped")
        assert not filt("glibc")

    def test_empty_patterns_exclude_nothing(self):
        assert not ExclusionFilter([]).is_excluded("glibc")
