#!/usr/bin/env python3
"""
PhageCompare Synteny Module
Gene-order alignment of two genomes with dynamic time warping (DTW)

Gene order in related phages is largely monotonic but gaps carry no fixed
penalty, so the two ordered gene lists are warped onto each other instead of
being aligned with affine gaps. Only forward (co-linear) blocks are reported;
inverted segments are not detected.

Version: 1.0.0
License: MIT
"""

import logging
import re

import numpy as np
from tqdm import tqdm

from .cancel import STATUS_CANCELLED, checkpoint
from .config import SYNTENY_MATCH_THRESHOLD, TRACEBACK_TOLERANCE, SyntenyOptions
from .errors import Cancelled
from .models import GeneToken, SyntenyAnalysis, SyntenyBlock

logger = logging.getLogger(__name__)

_TERM_SPLIT = re.compile(r"[\W_]+")


def _gene_text(gene):
    if isinstance(gene, str):
        return gene
    if isinstance(gene, dict):
        return gene.get("product") or gene.get("name") or ""
    return gene.product or gene.name or ""


def tokenize_gene(gene):
    """Lowercase product (or name) plus its terms of two or more characters.

    Accepts a Gene, a gene dict or a bare label string.
    """
    text = _gene_text(gene).strip().lower()
    terms = tuple(t for t in _TERM_SPLIT.split(text) if len(t) >= 2)
    return GeneToken(name=text, terms=terms)


def gene_distance(t1, t2):
    """0 for identical text, 0.5 when any term is shared, 1 otherwise (or when unnamed)"""
    if not t1.name or not t2.name:
        return 1.0
    if t1.name == t2.name:
        return 0.0
    if not t1.terms or not t2.terms:
        return 1.0
    return 0.5 if set(t1.terms).intersection(t2.terms) else 1.0


def iter_dtw_rows(tokens_a, tokens_b):
    """
    Fill the DTW matrix one row at a time, yielding (i, dtw) after row i

    dtw[i][j] = cost(i, j) + min(dtw[i-1][j], dtw[i][j-1], dtw[i-1][j-1]),
    dtw[0][0] = 0 and every other boundary cell is infinite. The left
    neighbour dependency is resolved per row with a running minimum of
    ``base - cumsum(cost)``.
    """
    n, m = len(tokens_a), len(tokens_b)
    dtw = np.full((n + 1, m + 1), np.inf)
    dtw[0, 0] = 0.0
    for i in range(1, n + 1):
        cost = np.array([gene_distance(tokens_a[i - 1], tb) for tb in tokens_b])
        prev = dtw[i - 1]
        base = cost + np.minimum(prev[1:], prev[:-1])
        cum = np.cumsum(cost)
        dtw[i, 1:] = np.minimum.accumulate(base - cum) + cum
        yield i, dtw


def fill_dtw(tokens_a, tokens_b, cancel=None, progress=False):
    """Complete DTW matrix; cancellation is checked between rows"""
    dtw = None
    rows = iter_dtw_rows(tokens_a, tokens_b)
    for _, dtw in tqdm(rows, total=len(tokens_a), desc="DTW rows", disable=not progress):
        checkpoint(cancel)
    if dtw is None:
        dtw = np.full((1, len(tokens_b) + 1), np.inf)
        dtw[0, 0] = 0.0
    return dtw


def traceback(dtw, tolerance=TRACEBACK_TOLERANCE):
    """
    Warping path from (n, m) back to the origin

    At each cell the predecessor matching the minimum is taken, preferring
    diagonal over insertion (i-1) over deletion (j-1) when costs tie within
    ``tolerance``.

    Returns:
        List of (index_a, index_b) gene pairs in forward order
    """
    i, j = dtw.shape[0] - 1, dtw.shape[1] - 1
    path = []
    while i > 0 or j > 0:
        if i > 0 and j > 0:
            path.append((i - 1, j - 1))
        if i == 0:
            j -= 1
            continue
        if j == 0:
            i -= 1
            continue
        diag = float(dtw[i - 1, j - 1])
        up = float(dtw[i - 1, j])
        left = float(dtw[i, j - 1])
        best = min(diag, up, left)
        if abs(diag - best) < tolerance:
            i -= 1
            j -= 1
        elif abs(up - best) < tolerance:
            i -= 1
        else:
            j -= 1
    path.reverse()
    return path


class _BlockBuilder:
    __slots__ = ("start_a", "end_a", "start_b", "end_b", "scores")

    def __init__(self, a, b, score):
        self.start_a = self.end_a = a
        self.start_b = self.end_b = b
        self.scores = [score]

    def follows(self, a, b):
        return a == self.end_a + 1 and b == self.end_b + 1

    def extend(self, a, b, score):
        self.end_a = a
        self.end_b = b
        self.scores.append(score)

    def build(self):
        return SyntenyBlock(
            start_a=self.start_a,
            end_a=self.end_a,
            start_b=self.start_b,
            end_b=self.end_b,
            score=float(np.mean(self.scores)),
        )


def extract_blocks(path, tokens_a, tokens_b, match_threshold=SYNTENY_MATCH_THRESHOLD):
    """
    Collapse runs of diagonal, related gene pairs into syntenic blocks

    A pair is related when its gene distance is below ``match_threshold``.
    A gap, an unrelated pair or a jump in either index closes the open block.
    A new block only starts past the previous block's end in both genomes.
    """
    blocks = []
    current = None

    def close():
        nonlocal current
        if current is not None:
            blocks.append(current.build())
            current = None

    for a, b in path:
        dist = gene_distance(tokens_a[a], tokens_b[b])
        if dist >= match_threshold:
            close()
            continue
        if current is not None and current.follows(a, b):
            current.extend(a, b, 1.0 - dist)
            continue
        close()
        if not blocks or (a > blocks[-1].end_a and b > blocks[-1].end_b):
            current = _BlockBuilder(a, b, 1.0 - dist)

    close()
    return blocks


class SyntenyAligner:
    """DTW synteny alignment with stage-level access for cooperative hosts"""

    def __init__(self, options=None, cancel=None, progress=False):
        self.options = options or SyntenyOptions()
        self.cancel = cancel
        self.progress = progress

    def tokenize(self, genes):
        return [tokenize_gene(g) for g in genes]

    def fill(self, tokens_a, tokens_b):
        return fill_dtw(tokens_a, tokens_b, self.cancel, self.progress)

    def align(self, genes_a, genes_b):
        genes_a, genes_b = list(genes_a), list(genes_b)
        n = len(genes_a)
        if n == 0 or not genes_b:
            return SyntenyAnalysis()

        tokens_a = self.tokenize(genes_a)
        tokens_b = self.tokenize(genes_b)
        try:
            dtw = self.fill(tokens_a, tokens_b)
        except Cancelled:
            logger.info("Synteny alignment cancelled during DTW fill")
            return SyntenyAnalysis(status=STATUS_CANCELLED)

        path = traceback(dtw)
        blocks = extract_blocks(path, tokens_a, tokens_b, self.options.match_threshold)
        coverage = sum(b.length for b in blocks)
        logger.debug(f"Synteny: {len(blocks)} blocks covering {coverage}/{n} genes of A")

        return SyntenyAnalysis(
            blocks=tuple(blocks),
            breakpoints=tuple(b.start_a for b in blocks[1:]),
            global_score=coverage / n,
            dtw_distance=float(dtw[-1, -1]),
        )


def align_synteny(genes_a, genes_b, options=None, cancel=None, progress=False):
    """Align two ordered gene lists; either list empty gives an empty analysis"""
    return SyntenyAligner(options, cancel, progress).align(genes_a, genes_b)
