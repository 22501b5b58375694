import math

import numpy as np
import pytest

from phagecompare.cancel import STATUS_CANCELLED, STATUS_COMPLETE, CancelToken
from phagecompare.config import SyntenyOptions
from phagecompare.errors import Cancelled, InvalidParameter
from phagecompare.models import Gene
from phagecompare.synteny import (
    SyntenyAligner,
    align_synteny,
    extract_blocks,
    fill_dtw,
    gene_distance,
    tokenize_gene,
    traceback,
)

PHAGE_GENES = [
    "terminase large subunit",
    "portal protein",
    "major capsid protein",
    "tail tube protein",
    "holin",
]


def distance(a, b):
    return gene_distance(tokenize_gene(a), tokenize_gene(b))


class TestGeneDistance:
    def test_identical(self):
        assert distance("Portal Protein", "portal protein") == 0.0

    def test_shared_term(self):
        assert distance("terminase large subunit", "terminase small subunit") == 0.5

    def test_no_partial_word_match(self):
        assert distance("gp3", "gp34") == 1.0

    def test_unnamed(self):
        assert distance("", "") == 1.0
        assert distance("holin", "") == 1.0

    def test_single_letter_terms_ignored(self):
        token = tokenize_gene("protein A")
        assert token.terms == ("protein",)

    def test_gene_inputs(self):
        gene = Gene("g1", 0, 100, name="terL", product="Terminase_large")
        assert tokenize_gene(gene).terms == ("terminase", "large")
        assert tokenize_gene({"name": "holin"}).name == "holin"


class TestDtw:
    def test_identical_lists(self):
        tokens = [tokenize_gene(g) for g in PHAGE_GENES]
        dtw = fill_dtw(tokens, tokens)
        assert dtw.shape == (6, 6)
        assert dtw[-1, -1] == 0.0
        assert traceback(dtw) == [(i, i) for i in range(5)]

    def test_boundaries_infinite(self):
        tokens = [tokenize_gene(g) for g in PHAGE_GENES[:2]]
        dtw = fill_dtw(tokens, tokens)
        assert dtw[0, 0] == 0.0
        assert np.isinf(dtw[0, 1:]).all()
        assert np.isinf(dtw[1:, 0]).all()

    def test_matches_reference_recurrence(self):
        tokens_a = [tokenize_gene(g) for g in ["holin", "portal protein", "x1", "capsid", "lysin"]]
        tokens_b = [tokenize_gene(g) for g in ["portal", "capsid protein", "holin", "lysin"]]
        dtw = fill_dtw(tokens_a, tokens_b)
        expected = np.full_like(dtw, np.inf)
        expected[0, 0] = 0.0
        for i in range(1, len(tokens_a) + 1):
            for j in range(1, len(tokens_b) + 1):
                cost = gene_distance(tokens_a[i - 1], tokens_b[j - 1])
                expected[i, j] = cost + min(expected[i - 1, j], expected[i, j - 1], expected[i - 1, j - 1])
        assert np.array_equal(dtw, expected)

    def test_cancelled_fill(self):
        token = CancelToken()
        token.cancel()
        tokens = [tokenize_gene(g) for g in PHAGE_GENES]
        with pytest.raises(Cancelled):
            fill_dtw(tokens, tokens, cancel=token)


class TestBlocks:
    def test_unrelated_pairs_close_blocks(self):
        tokens_a = [tokenize_gene(g) for g in ["terminase", "portal", "capsid"]]
        tokens_b = [tokenize_gene(g) for g in ["terminase", "lysin", "capsid"]]
        blocks = extract_blocks([(0, 0), (1, 1), (2, 2)], tokens_a, tokens_b)
        assert [(b.start_a, b.end_a) for b in blocks] == [(0, 0), (2, 2)]

    def test_repeated_index_does_not_extend(self):
        tokens_a = [tokenize_gene(g) for g in ["terminase", "portal"]]
        tokens_b = [tokenize_gene(g) for g in ["terminase", "terminase", "portal"]]
        blocks = extract_blocks([(0, 0), (0, 1), (1, 2)], tokens_a, tokens_b)
        # (0, 1) cannot open a block overlapping the first one in genome A
        assert [(b.start_a, b.end_a, b.start_b, b.end_b) for b in blocks] == [(0, 0, 0, 0), (1, 1, 2, 2)]


class TestAlignment:
    def test_identical(self):
        result = align_synteny(PHAGE_GENES, PHAGE_GENES)
        assert result.status == STATUS_COMPLETE
        assert result.global_score == 1.0
        assert result.dtw_distance == 0.0
        assert len(result.blocks) == 1
        block = result.blocks[0]
        assert (block.start_a, block.end_a, block.start_b, block.end_b) == (0, 4, 0, 4)
        assert block.score == 1.0
        assert block.orientation == "forward"
        assert result.breakpoints == ()

    @pytest.mark.parametrize("genes_a, genes_b", [([], PHAGE_GENES), (PHAGE_GENES, []), ([], [])])
    def test_empty_input(self, genes_a, genes_b):
        result = align_synteny(genes_a, genes_b)
        assert result.blocks == ()
        assert result.global_score == 0.0
        assert math.isinf(result.dtw_distance)

    def test_insertion_splits_blocks(self):
        genes_a = ["terminase", "portal", "xyzzy", "capsid", "holin"]
        genes_b = ["terminase", "portal", "capsid", "holin"]
        result = align_synteny(genes_a, genes_b)
        spans = [(b.start_a, b.end_a, b.start_b, b.end_b) for b in result.blocks]
        assert spans == [(0, 1, 0, 1), (3, 4, 2, 3)]
        assert result.breakpoints == (3,)
        assert result.global_score == pytest.approx(0.8)
        assert result.dtw_distance == 1.0

    def test_partial_matches_score(self):
        genes_a = ["terminase large subunit", "portal"]
        genes_b = ["terminase small subunit", "portal"]
        result = align_synteny(genes_a, genes_b)
        (block,) = result.blocks
        assert block.score == pytest.approx(0.75)
        assert result.dtw_distance == pytest.approx(0.5)

    def test_match_threshold_option(self):
        genes_a = ["terminase large subunit", "portal"]
        genes_b = ["terminase small subunit", "portal"]
        result = align_synteny(genes_a, genes_b, options=SyntenyOptions(match_threshold=0.5))
        (block,) = result.blocks
        assert (block.start_a, block.end_a) == (1, 1)

    def test_blocks_monotonic(self):
        genes_a = PHAGE_GENES + ["lysin", "spanin", "endolysin"]
        genes_b = ["portal protein", "tail tube protein", "holin", "integrase", "spanin", "endolysin"]
        result = align_synteny(genes_a, genes_b)
        for prev, nxt in zip(result.blocks, result.blocks[1:]):
            assert nxt.start_a > prev.end_a
            assert nxt.start_b > prev.end_b
        assert 0.0 <= result.global_score <= 1.0

    def test_gene_records(self):
        genes = [Gene(f"g{i}", i * 100, i * 100 + 90, product=p) for i, p in enumerate(PHAGE_GENES)]
        result = align_synteny(genes, [{"product": p} for p in PHAGE_GENES])
        assert result.global_score == 1.0

    def test_cancelled(self):
        token = CancelToken()
        token.cancel()
        result = SyntenyAligner(cancel=token).align(PHAGE_GENES, PHAGE_GENES)
        assert result.status == STATUS_CANCELLED
        assert result.blocks == ()

    def test_invalid_threshold(self):
        with pytest.raises(InvalidParameter):
            SyntenyOptions(match_threshold=0.0)
