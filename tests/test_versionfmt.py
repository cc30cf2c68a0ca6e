"""Unit tests for core/versionfmt.py -- validation and ordering of dpkg and rpm versions."""

import pytest
from debian.debian_support import version_compare

from core import versionfmt
from core.versionfmt import MAX_VERSION, MIN_VERSION, InvalidVersion, UnknownVersionFormat


class TestDpkgValid:
    @pytest.mark.parametrize(
        "version",
        ["1.0", "1:2.4-1", "2.30-1ubuntu1~18.04", "0", "7.52.1-5+deb9u9", "1.2.3~rc1+dfsg-2"],
    )
    def test_valid_versions(self, version):
        versionfmt.valid("dpkg", version)

    @pytest.mark.parametrize("version", ["", "a1.0", "1.0 -1", "x:1.0", "1.0-rev!"])
    def test_invalid_versions(self, version):
        with pytest.raises(InvalidVersion):
            versionfmt.valid("dpkg", version)


class TestDpkgCompare:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("1.0", "1.0", 0),
            ("1.0~rc1", "1.0", -1),
            ("1.0a", "1.0", 1),
            ("1.0+b1", "1.0", 1),
            ("1:1.0", "2.0", 1),
            ("1.10", "1.9", 1),
            ("1.0-1", "1.0-2", -1),
            ("1.0", "1.0-0", 0),
        ],
    )
    def test_ordering(self, a, b, expected):
        assert versionfmt.compare("dpkg", a, b) == expected

    def test_ordering_is_antisymmetric(self):
        assert versionfmt.compare("dpkg", "2.0", "1.9") == -versionfmt.compare("dpkg", "1.9", "2.0")


class TestRpm:
    @pytest.mark.parametrize("version", ["1.0-1", "2:1.2-3", "1.0-1.amzn2", "4.14.186-146.268.amzn2"])
    def test_valid_versions(self, version):
        versionfmt.valid("rpm", version)

    @pytest.mark.parametrize("version", ["", ":1.0", "-1", "1.0-1$"])
    def test_invalid_versions(self, version):
        with pytest.raises(InvalidVersion):
            versionfmt.valid("rpm", version)

    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("1.0-1", "1.0-1", 0),
            ("1.0-1", "1.0-2", -1),
            ("2:1.0-1", "1:9.9-9", 1),
            ("1.0~beta-1", "1.0-1", -1),
            ("1.10-1", "1.9-1", 1),
            ("1.0a-1", "1.0-1", 1),
            ("1.0-1.amzn2", "1.0-1.amzn1", 1),
        ],
    )
    def test_ordering(self, a, b, expected):
        assert versionfmt.compare("rpm", a, b) == expected


class TestSentinels:
    @pytest.mark.parametrize("fmt", ["dpkg", "rpm"])
    def test_sentinels_valid_in_every_format(self, fmt):
        versionfmt.valid(fmt, MAX_VERSION)
        versionfmt.valid(fmt, MIN_VERSION)

    @pytest.mark.parametrize("fmt", ["dpkg", "rpm"])
    def test_max_sorts_last_and_min_first(self, fmt):
        assert versionfmt.compare(fmt, MAX_VERSION, "99:99.9-9") == 1
        assert versionfmt.compare(fmt, "0.1-1", MAX_VERSION) == -1
        assert versionfmt.compare(fmt, MIN_VERSION, "0.1-1") == -1
        assert versionfmt.compare(fmt, MAX_VERSION, MAX_VERSION) == 0


class TestRegistry:
    def test_unknown_format_raises(self):
        with pytest.raises(UnknownVersionFormat):
            versionfmt.valid("apk", "1.0")

    def test_duplicate_format_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            versionfmt.register_parser("dpkg", versionfmt.DpkgParser())

    def test_is_valid_returns_bool(self):
        assert versionfmt.is_valid("rpm", "1.0-1") is True
        assert versionfmt.is_valid("rpm", "") is False

    def test_builtin_formats_registered(self):
        assert isinstance(versionfmt.get_parser("dpkg"), versionfmt.DpkgParser)
        assert isinstance(versionfmt.get_parser("rpm"), versionfmt.RpmParser)


class TestNonStringInput:
    @pytest.mark.parametrize("fmt", ["dpkg", "rpm"])
    @pytest.mark.parametrize("version", [1, None, ["1.0"]])
    def test_rejected_as_invalid(self, fmt, version):
        with pytest.raises(InvalidVersion):
            versionfmt.valid(fmt, version)


class TestDpkgAgreesWithPythonDebian:
    @pytest.mark.parametrize(
        "a, b",
        [
            ("1.0~rc1", "1.0"),
            ("1:1.0", "2.0"),
            ("2.30-1ubuntu1", "2.30-1"),
            ("7.52.1-5+deb9u9", "7.52.1-5+deb9u10"),
            ("1.2.3~rc1+dfsg-2", "1.2.3-1"),
        ],
    )
    def test_same_sign(self, a, b):
        expected = version_compare(a, b)
        assert versionfmt.compare("dpkg", a, b) == (expected > 0) - (expected < 0)
