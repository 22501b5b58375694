from collections import Counter

import pytest

from phagecompare.kmers import extract_canonical_kmer_set, extract_kmer_set
from phagecompare.similarity import (
    analyze_kmers,
    bray_curtis_dissimilarity,
    containment_index,
    cosine_similarity,
    estimate_ani,
    jaccard_index,
    multi_resolution_kmer_analysis,
)


class TestJaccard:
    def test_self_similarity(self, make_dna):
        s = extract_kmer_set(make_dna(400, seed=2), 5)
        assert jaccard_index(s, s) == 1.0

    def test_symmetry(self, make_dna):
        a = extract_kmer_set(make_dna(400, seed=1), 5)
        b = extract_kmer_set(make_dna(400, seed=2), 5)
        assert jaccard_index(a, b) == jaccard_index(b, a)

    def test_empty(self):
        a = frozenset({"ACG"})
        assert jaccard_index(a, frozenset()) == 0.0
        assert jaccard_index(frozenset(), frozenset()) == 0.0

    def test_known_value(self):
        a = {"AAA", "CCC", "GGG"}
        b = {"CCC", "GGG", "TTT"}
        assert jaccard_index(a, b) == pytest.approx(2 / 4)


class TestContainmentAndVectors:
    def test_containment(self):
        a = {"AAA", "CCC"}
        b = {"AAA", "CCC", "GGG", "TTT"}
        assert containment_index(a, b) == 1.0
        assert containment_index(b, a) == 0.5
        assert containment_index(set(), b) == 0.0

    def test_cosine(self):
        f = Counter({"AA": 2, "CC": 1})
        assert cosine_similarity(f, f) == pytest.approx(1.0)
        assert cosine_similarity(f, Counter({"GG": 4})) == 0.0
        assert cosine_similarity(Counter(), f) == 0.0

    def test_bray_curtis(self):
        a = Counter({"AA": 3, "CC": 1})
        b = Counter({"AA": 1, "CC": 1})
        # |3-1| + |1-1| over 3+1+1+1
        assert bray_curtis_dissimilarity(a, b) == pytest.approx(2 / 6)
        assert bray_curtis_dissimilarity(a, a) == 0.0


class TestAnalysis:
    def test_analyze_kmers_identical(self, make_dna):
        seq = make_dna(1000, seed=4)
        result = analyze_kmers(seq, seq, 7)
        assert result.jaccard_index == 1.0
        assert result.containment_a_in_b == 1.0
        assert result.cosine_similarity == pytest.approx(1.0)
        assert result.bray_curtis_dissimilarity == 0.0

    def test_multi_resolution(self, make_dna):
        seq_a, seq_b = make_dna(800, seed=1), make_dna(800, seed=2)
        results = multi_resolution_kmer_analysis(seq_a, seq_b)
        assert [r.k for r in results] == [3, 5, 7, 11]
        # short k-mers are shared by chance, long ones are not
        assert results[0].jaccard_index > results[-1].jaccard_index


class TestAni:
    def test_identical(self, make_dna):
        seq = make_dna(5000, seed=5)
        ani = estimate_ani(seq, seq)
        assert ani.ani == pytest.approx(100.0)
        assert not ani.low_confidence

    def test_diverged_copy(self, make_dna, make_mutant):
        seq = make_dna(20000, seed=6)
        ani = estimate_ani(seq, make_mutant(seq, 0.02, seed=1))
        assert 96.0 < ani.ani < 99.5

    def test_low_confidence_for_unrelated(self, make_dna):
        ani = estimate_ani(make_dna(3000, seed=1), make_dna(3000, seed=2))
        assert ani.shared_kmers < 100
        assert ani.low_confidence

    def test_containment_uses_smaller_set(self, make_dna):
        seq = make_dna(6000, seed=8)
        part = seq[:2000]
        ani = estimate_ani(part, seq)
        assert ani.containment == pytest.approx(1.0)
        assert ani.ani == pytest.approx(100.0)

    def test_strand_agnostic(self, make_dna):
        from phagecompare.kmers import reverse_complement
        seq = make_dna(3000, seed=9)
        assert estimate_ani(seq, reverse_complement(seq)).ani == pytest.approx(100.0)
        assert len(extract_canonical_kmer_set(seq, 21)) > 0
