"""Tests for opam version ordering and constraints."""

import pytest

from opamextract.constants import RelOp
from opamextract.errors import MalformedOperator, MalformedVersion
from opamextract.versioning import (
    Constraint,
    OpamVersion,
    VersionAnd,
    VersionOr,
    compare,
    formula_matches,
    matches,
    parse_constraint,
    parse_operator,
    parse_version,
)


class TestCompare:
    """Tests for the Debian-style comparison."""

    @pytest.mark.parametrize("lower,higher", [
        ("1.0", "1.1"),
        ("1.9", "1.10"),
        ("1.0~beta", "1.0"),
        ("1.0", "1.0.1"),
        ("1.0", "1.0a"),
        ("1.0a", "1.0+a"),
        ("0.5", "1.0"),
        ("v1", "v2"),
    ])
    def test_ordering(self, lower, higher):
        """Lower version sorts before the higher one, both ways round."""
        assert compare(lower, higher) == -1
        assert compare(higher, lower) == 1

    def test_tilde_sorts_before_end_of_string(self):
        """A tilde suffix makes a version older than the bare prefix."""
        assert compare("1.0~", "1.0") == -1
        assert compare("1.0~~", "1.0~") == -1

    def test_leading_zeros_are_equal(self):
        """Digit runs compare numerically."""
        assert compare("1.01", "1.1") == 0
        assert OpamVersion("1.01") == OpamVersion("1.1")
        assert hash(OpamVersion("1.01")) == hash(OpamVersion("1.1"))

    def test_sorting_versions(self):
        """OpamVersion supports sorted()."""
        versions = [OpamVersion(v) for v in ["1.10", "1.2", "1.2~rc1", "0.9"]]
        assert [str(v) for v in sorted(versions)] == ["0.9", "1.2~rc1", "1.2", "1.10"]


class TestParsing:
    """Tests for validated parsing."""

    def test_parse_version(self):
        assert str(parse_version("4.14.1+flambda")) == "4.14.1+flambda"

    @pytest.mark.parametrize("raw", ["", "1.0 beta", "1/0", "1.0\n"])
    def test_malformed_version(self, raw):
        """Empty strings and foreign characters are rejected."""
        with pytest.raises(MalformedVersion):
            parse_version(raw)

    def test_parse_operator(self):
        assert parse_operator(">=") is RelOp.GEQ

    def test_malformed_operator(self):
        with pytest.raises(MalformedOperator):
            parse_operator("=>")


class TestConstraints:
    """Tests for constraint matching."""

    def test_matches(self):
        constraint = parse_constraint(">=", "1.0")
        assert matches(constraint, OpamVersion("1.0"))
        assert matches(constraint, OpamVersion("2.0"))
        assert not matches(constraint, OpamVersion("0.5"))

    def test_not_equal(self):
        constraint = Constraint(RelOp.NEQ, OpamVersion("1.0"))
        assert not matches(constraint, OpamVersion("1.00"))
        assert matches(constraint, OpamVersion("1.1"))

    def test_formula(self):
        """And/Or formulas combine constraints; None accepts anything."""
        between = VersionAnd((parse_constraint(">=", "1.0"), parse_constraint("<", "2.0")))
        either = VersionOr((parse_constraint("=", "0.1"), between))
        assert formula_matches(between, OpamVersion("1.5"))
        assert not formula_matches(between, OpamVersion("2.0"))
        assert formula_matches(either, OpamVersion("0.1"))
        assert not formula_matches(either, OpamVersion("0.2"))
        assert formula_matches(None, OpamVersion("0.2"))

    def test_string_form(self):
        between = VersionAnd((parse_constraint(">=", "1.0"), parse_constraint("<", "2.0")))
        assert str(between) == '>= "1.0" & < "2.0"'
