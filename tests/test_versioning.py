"""
Tests for version parsing and threshold comparison.
"""

import pytest

from relpack.core.errors import InvalidVersion
from relpack.core.services.versioning import (
    NominalVersion,
    Ordering,
    at_least,
    before,
    compare,
    parse_nominal,
    parse_spec,
)


class TestParseSpec:
    def test_dotted(self):
        assert parse_spec("0.19.0") == (0, 19, 0)

    def test_single_component(self):
        assert parse_spec("7") == (7,)

    def test_whitespace_is_trimmed(self):
        assert parse_spec(" 0.21.1 ") == (0, 21, 1)

    @pytest.mark.parametrize("text", ["", "   ", "0..1", "0.x.1", "0.21.0-rc1", "1.-2", "1.²", "¹⁹.0", "٣.1"])
    def test_invalid(self, text):
        with pytest.raises(InvalidVersion):
            parse_spec(text)


class TestCompare:
    def test_numeric_not_lexical(self):
        assert compare("0.19.0", "0.2.0") is Ordering.GREATER
        assert compare("0.10", "0.9") is Ordering.GREATER

    def test_non_ascii_digits_rejected(self):
        with pytest.raises(InvalidVersion):
            compare("0.19.0", "0.².0")

    def test_zero_padding(self):
        assert compare("0.19", "0.19.0") is Ordering.EQUAL
        assert compare((1,), (1, 0, 0, 0)) is Ordering.EQUAL

    def test_padding_does_not_hide_difference(self):
        assert compare("0.19", "0.19.1") is Ordering.LESS

    @pytest.mark.parametrize("a,b", [
        ("0.18.5", "0.19.0"),
        ("0.21.0", "0.21"),
        ("1.0", "0.99.99"),
        ("0.19.1", "0.19.1"),
    ])
    def test_antisymmetric(self, a, b):
        assert compare(a, b).value == -compare(b, a).value

    def test_accepts_tuples(self):
        assert compare((0, 21, 0), "0.21.0") is Ordering.EQUAL

    def test_negative_component_rejected(self):
        with pytest.raises(InvalidVersion):
            compare((0, -1), (0, 1))

    def test_empty_tuple_rejected(self):
        with pytest.raises(InvalidVersion):
            compare((), (0,))


class TestThresholds:
    def test_boundaries(self):
        assert before("0.18.5", "0.19.0")
        assert at_least("0.19.0", "0.19.0")
        assert at_least("0.19.1", "0.19.0")
        assert not before("0.19.0", "0.19.0")

    def test_at_least_and_before_are_complements(self):
        for v in ("0.17.0", "0.18.0", "0.20.1", "1.0"):
            assert at_least(v, "0.19.0") != before(v, "0.19.0")


class TestNominalVersion:
    def test_plain(self):
        v = parse_nominal("0.21.0")
        assert v == NominalVersion(release=(0, 21, 0))
        assert str(v) == "0.21.0"
        assert not v.is_prerelease

    @pytest.mark.parametrize("text", ["0.21.0-rc1", "0.21.0rc1", "0.21.0~rc1"])
    def test_prerelease_spellings(self, text):
        v = parse_nominal(text)
        assert v.release == (0, 21, 0)
        assert v.prerelease == "rc1"
        assert str(v) == "0.21.0-rc1"

    def test_leading_v(self):
        assert parse_nominal("v0.20.1").release == (0, 20, 1)

    def test_package_version_uses_tilde(self):
        assert parse_nominal("0.21.0-rc1").package_version == "0.21.0~rc1"
        assert parse_nominal("0.21.0").package_version == "0.21.0"

    def test_prerelease_is_before_its_release(self):
        rc = parse_nominal("0.19.0-rc2")
        assert not rc.at_least("0.19.0")
        assert rc.before("0.19.0")
        assert rc.at_least("0.18.9")

    def test_release_at_threshold(self):
        assert parse_nominal("0.19.0").at_least("0.19.0")

    def test_prerelease_of_later_release_passes(self):
        assert parse_nominal("0.20.0-rc1").at_least("0.19.0")

    @pytest.mark.parametrize("text", ["", "rc1", "0.21.0-", "0.21.0-1", "latest", "0.².0"])
    def test_invalid(self, text):
        with pytest.raises(InvalidVersion):
            parse_nominal(text)

    def test_frozen(self):
        v = parse_nominal("0.21.0")
        with pytest.raises(Exception):
            v.release = (1, 0)
