import pytest

from phagecompare.edit_distance import (
    analyze_edit_distance,
    approximate_levenshtein,
    hamming_distance,
    lcs_similarity,
    levenshtein_distance,
    levenshtein_similarity,
    levenshtein_with_operations,
    longest_common_subsequence,
    normalized_levenshtein,
    percent_identity,
    quick_similarity_estimate,
)
from phagecompare.errors import InvalidParameter


class TestLevenshtein:
    @pytest.mark.parametrize("a, b, expected", [
        ("kitten", "sitting", 3),
        ("", "ACGT", 4),
        ("ACGT", "", 4),
        ("ACGT", "ACGT", 0),
        ("ACGT", "AGT", 1),
        ("flaw", "lawn", 2),
    ])
    def test_exact(self, a, b, expected):
        result = levenshtein_distance(a, b)
        assert result.distance == expected
        assert not result.is_approximate

    def test_symmetric(self, make_dna, make_mutant):
        a = make_dna(300, seed=1)
        b = make_mutant(a, 0.1, seed=2)[:280]
        assert levenshtein_distance(a, b).distance == levenshtein_distance(b, a).distance

    def test_operations(self):
        ops = levenshtein_with_operations("kitten", "sitting")
        assert ops.distance == 3
        assert ops.substitutions == 2
        assert ops.insertions == 1
        assert ops.deletions == 0

    def test_operations_deletion(self):
        ops = levenshtein_with_operations("ACGTA", "ACTA")
        assert ops.distance == 1
        assert ops.deletions == 1

    def test_normalized(self):
        assert normalized_levenshtein("", "") == 0.0
        assert normalized_levenshtein("AAAA", "TTTT") == 1.0
        assert levenshtein_similarity("ACGT", "ACGA") == pytest.approx(0.75)


class TestApproximation:
    def test_long_inputs_are_flagged_approximate(self, make_dna, make_mutant):
        a = make_dna(12000, seed=4)
        b = make_mutant(a, 0.01, seed=5)
        result = levenshtein_distance(a, b, max_length=10000)
        assert result.is_approximate
        assert result.window_count == 12
        # substitution-only mutant: roughly 1% of positions differ
        assert 60 <= result.distance <= 200

    def test_short_falls_back_to_exact(self):
        result = approximate_levenshtein("ACGT", "AGGT", window_size=1000)
        assert result.distance == 1
        assert not result.is_approximate

    def test_analyze_reports_windows(self, make_dna):
        a = make_dna(2500, seed=1)
        b = make_dna(2500, seed=2)
        metrics = analyze_edit_distance(a, b, max_exact_length=2000, window_size=500, window_count=4)
        assert metrics.is_approximate
        assert metrics.window_size == 500
        assert metrics.window_count == 4
        assert 0.0 <= metrics.levenshtein_similarity <= 1.0

    def test_analyze_exact(self):
        metrics = analyze_edit_distance("kitten", "sitting")
        assert metrics.levenshtein_distance == 3
        assert not metrics.is_approximate
        assert metrics.window_size is None


class TestOtherDistances:
    def test_hamming(self):
        assert hamming_distance("ACGT", "ACCA") == 2

    def test_hamming_length_mismatch(self):
        with pytest.raises(InvalidParameter):
            hamming_distance("ACGT", "ACG")

    def test_percent_identity(self):
        assert percent_identity("ACGT", "ACGA") == pytest.approx(75.0)
        assert percent_identity("", "") == 100.0
        assert percent_identity("ACGT", "ACGTACGT") == pytest.approx(50.0)

    def test_lcs(self):
        assert longest_common_subsequence("ABCBDAB", "BDCABA") == 4
        assert lcs_similarity("", "") == 1.0
        assert lcs_similarity("ACGT", "ACGT") == 1.0

    def test_quick_estimate_reproducible(self, make_dna, make_mutant):
        a = make_dna(5000, seed=1)
        b = make_mutant(a, 0.05, seed=1)
        first = quick_similarity_estimate(a, b, seed=3)
        assert first == quick_similarity_estimate(a, b, seed=3)
        assert 0.9 < first <= 1.0

    def test_quick_estimate_length_penalty(self):
        assert quick_similarity_estimate("A" * 100, "A" * 300) == pytest.approx(100 / 300 * 0.5)
