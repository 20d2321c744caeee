"""
Unit tests for the string similarity primitives.

Covers:
- levenshtein edit distance and its edge cases
- jaro / jaro_winkler reference values and bounds
- regex escaping and wildcard translation
"""

import re

import pytest

from mcp_memory_search.utils.string_similarity import (
    common_prefix_length,
    escape_regex,
    jaro,
    jaro_winkler,
    levenshtein,
    wildcard_to_regex,
)


class TestLevenshtein:
    def test_classic_example(self):
        assert levenshtein("kitten", "sitting") == 3

    def test_identical_strings(self):
        assert levenshtein("search", "search") == 0

    def test_empty_strings(self):
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3
        assert levenshtein("", "") == 0

    def test_single_deletion(self):
        assert levenshtein("machine", "machne") == 1

    def test_symmetric(self):
        assert levenshtein("flaw", "lawn") == levenshtein("lawn", "flaw") == 2


class TestJaro:
    def test_identical_is_one(self):
        assert jaro("memory", "memory") == 1.0

    def test_empty_is_zero(self):
        assert jaro("", "memory") == 0.0
        assert jaro("memory", "") == 0.0

    def test_no_common_characters(self):
        assert jaro("abc", "xyz") == 0.0

    def test_reference_value_with_transposition(self):
        assert jaro("MARTHA", "MARHTA") == pytest.approx(0.9444, abs=1e-4)

    def test_reference_value_dixon(self):
        assert jaro("DIXON", "DICKSONX") == pytest.approx(0.7667, abs=1e-4)


class TestJaroWinkler:
    def test_prefix_boost(self):
        assert jaro_winkler("MARTHA", "MARHTA") == pytest.approx(0.9611, abs=1e-4)
        assert jaro_winkler("DIXON", "DICKSONX") == pytest.approx(0.8133, abs=1e-4)

    def test_never_below_jaro(self):
        for a, b in [("search", "serch"), ("vector", "victor"), ("abc", "xyz")]:
            assert jaro_winkler(a, b) >= jaro(a, b)

    def test_empty_strings(self):
        assert jaro_winkler("", "") == 1.0
        assert jaro_winkler("x", "") == 0.0

    def test_bounded_by_one(self):
        assert 0.0 <= jaro_winkler("prefix", "prefixes") <= 1.0

    def test_common_prefix_capped_at_four(self):
        assert common_prefix_length("abcdefg", "abcdefx") == 4
        assert common_prefix_length("abc", "abd") == 2


class TestRegexHelpers:
    def test_escape_regex_escapes_metacharacters(self):
        assert escape_regex("a.b*c") == r"a\.b\*c"
        assert escape_regex("(x|y)[0]") == r"\(x\|y\)\[0\]"

    def test_escaped_source_matches_literally(self):
        source = escape_regex("1+1=2?")
        assert re.fullmatch(source, "1+1=2?")

    def test_wildcard_translation(self):
        assert wildcard_to_regex("mach*learn?ng") == "mach.*learn.ng"

    def test_wildcard_matches_expected_text(self):
        compiled = re.compile(wildcard_to_regex("mach*learn?ng"), re.IGNORECASE)
        assert compiled.search("Machine Learning")
        assert not compiled.search("mac learning")

    def test_wildcard_escapes_other_metacharacters(self):
        compiled = re.compile(wildcard_to_regex("v1.0*"))
        assert compiled.search("v1.0-beta")
        assert not compiled.search("v100")
