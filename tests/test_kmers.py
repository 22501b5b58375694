import numpy as np
import pytest

from phagecompare.errors import InvalidParameter
from phagecompare.kmers import (
    canonical_kmer,
    code_to_kmer,
    extract_canonical_kmer_frequencies,
    extract_canonical_kmer_set,
    extract_kmer_frequencies,
    extract_kmer_set,
    kmer_codes,
    kmer_to_code,
    normalize_sequence,
    reverse_complement,
    rolling_kmer_codes,
    seq_to_array,
)


class TestKmerSets:
    def test_basic_set(self):
        assert extract_kmer_set("ACGTAC", 3) == {"ACG", "CGT", "GTA", "TAC"}

    def test_case_insensitive(self):
        assert extract_kmer_set("acgtac", 3) == extract_kmer_set("ACGTAC", 3)

    def test_ambiguous_windows_skipped(self):
        assert extract_kmer_set("ACGNACG", 3) == {"ACG"}
        assert extract_kmer_set("NNNNN", 2) == frozenset()

    def test_shorter_than_k(self):
        assert extract_kmer_set("AC", 3) == frozenset()

    @pytest.mark.parametrize("k", [0, -1])
    def test_invalid_k(self, k):
        with pytest.raises(InvalidParameter):
            extract_kmer_set("ACGT", k)

    def test_frequencies(self):
        freqs = extract_kmer_frequencies("AAAA", 2)
        assert freqs == {"AA": 3}

    def test_canonical_frequencies_merge_strands(self):
        # AAA and its reverse complement TTT collapse onto AAA
        freqs = extract_canonical_kmer_frequencies("AAATTT", 3)
        assert freqs["AAA"] == 2
        assert "TTT" not in freqs


class TestStrandSymmetry:
    def test_reverse_complement(self):
        assert reverse_complement("AACGTN") == "NACGTT"

    def test_canonical_kmer(self):
        assert canonical_kmer("TTT") == "AAA"
        assert canonical_kmer("ACG") == "ACG"

    @pytest.mark.parametrize("seed", range(5))
    @pytest.mark.parametrize("k", [3, 7, 16])
    def test_canonical_set_is_strand_symmetric(self, make_dna, seed, k):
        seq = make_dna(500, seed=seed)
        seq = seq[:200] + "NN" + seq[200:]
        assert extract_canonical_kmer_set(seq, k) == extract_canonical_kmer_set(reverse_complement(seq), k)


class TestKmerCodes:
    def test_seq_to_array(self):
        assert seq_to_array("ACGTNx").tolist() == [0, 1, 2, 3, 4, 4]

    def test_seq_to_array_keeps_positions(self):
        # 'ß'.upper() is 'SS'; one array slot per input character regardless
        assert seq_to_array("aßcg").tolist() == [0, 4, 1, 2]
        assert normalize_sequence("acßgt") == "AC?GT"

    def test_codes_match_string_kmers(self, make_dna):
        seq = make_dna(300, seed=3)
        codes = set(kmer_codes(seq, 11, canonical=True).tolist())
        expected = {kmer_to_code(kmer) for kmer in extract_canonical_kmer_set(seq, 11)}
        assert codes == expected

    def test_forward_codes_roundtrip_to_kmers(self):
        codes = rolling_kmer_codes(seq_to_array("ACGTT"), 4, canonical=False)
        assert [code_to_kmer(c, 4) for c in codes] == ["ACGT", "CGTT"]

    def test_invalid_windows_dropped(self):
        codes = kmer_codes("ACGNACGT", 3, canonical=False)
        assert [code_to_kmer(c, 3) for c in codes] == ["ACG", "ACG", "CGT"]

    def test_codes_are_uint64(self):
        assert kmer_codes("ACGTACGT", 4).dtype == np.uint64

    def test_long_k_uses_hashed_codes(self, make_dna):
        seq = make_dna(200, seed=1)
        codes = kmer_codes(seq, 40)
        assert codes.shape[0] == len(seq) - 40 + 1
        assert codes.dtype == np.uint64
        # strand symmetric as well
        rc_codes = kmer_codes(reverse_complement(seq), 40)
        assert set(codes.tolist()) == set(rc_codes.tolist())
