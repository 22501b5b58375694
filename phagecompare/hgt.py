#!/usr/bin/env python3
"""
PhageCompare HGT Tracer Module
Genomic island detection and donor inference for horizontal gene transfer

Pipeline:
    scan     -> sliding-window GC% with per-window z-scores
    merge    -> single left-to-right pass joining qualifying windows into islands
    annotate -> attach overlapping genes and flag HGT hallmark genes
    infer    -> rank candidate donor genomes per island (MinHash, or exact k-mer Jaccard)

Each stage is a plain function so an interactive host can run them one at a
time; HGTTracer wires them together and analyze_hgt_provenance() runs all of
them back to back.

Amelioration classes (recent / intermediate / ancient) are a heuristic read
of how far an island's GC still sits from the host baseline. They are not a
dated estimate of when the transfer happened.

Version: 1.0.0
License: MIT
"""

import logging
from dataclasses import replace

import numpy as np
from tqdm import tqdm

from .cancel import STATUS_CANCELLED, checkpoint
from .config import (
    DEFAULT_EXACT_K,
    DEFAULT_MIN_VALID_RATIO,
    DEFAULT_STEP,
    DEFAULT_WINDOW,
    DEFAULT_Z_THRESHOLD,
    HALLMARK_KEYWORDS,
    HIGH_CONFIDENCE,
    MAX_DONORS,
    MEDIUM_CONFIDENCE,
    MINHASH_K,
    MINHASH_NUM_HASHES,
    HGTOptions,
)
from .errors import Cancelled, InvalidParameter, Unavailable, require_fraction, require_positive
from .information import composition_divergence
from .kmers import extract_canonical_kmer_set, seq_to_array
from .minhash import SketchEngine
from .models import DonorCandidate, GenomicIsland, HGTAnalysis, PassportStamp, WindowStat, as_gene
from .similarity import jaccard_index

logger = logging.getLogger(__name__)


# ---------------------------
# Stage 1: GC scan
# ---------------------------
def compute_gc(sequence, start=0, end=None):
    """
    GC content of sequence[start:end] counted over unambiguous bases only

    Returns:
        (percent, valid_bases); percent is 0.0 when no base is valid
    """
    arr = seq_to_array(sequence[start:end])
    valid = int(np.count_nonzero(arr < 4))
    gc = int(np.count_nonzero((arr == 1) | (arr == 2)))
    return (gc / valid * 100.0 if valid else 0.0), valid


def sliding_gc(sequence, window=DEFAULT_WINDOW, step=DEFAULT_STEP,
               min_valid_ratio=DEFAULT_MIN_VALID_RATIO, cancel=None):
    """
    Sliding-window GC% and z-scores

    Windows start every ``step`` bp and always span ``window`` bp; a tail
    shorter than one window is not scored. A window whose unambiguous bases
    cover less than ``min_valid_ratio`` of its length is dropped, not
    zero-filled. Mean and standard deviation are taken over the kept windows
    only, with the standard deviation floored at 1.

    Args:
        sequence: Genome sequence
        window: Window size (bp)
        step: Step between window starts (bp)
        min_valid_ratio: Minimum fraction of A/C/G/T bases per window
        cancel: Optional CancelToken, checked between windows

    Returns:
        List of WindowStat in genome order (empty when no window is valid)
    """
    require_positive("window", window)
    require_positive("step", step)
    require_fraction("min_valid_ratio", min_valid_ratio)

    arr = seq_to_array(sequence)
    length = arr.shape[0]
    valid_prefix = np.concatenate(([0], np.cumsum(arr < 4)))
    gc_prefix = np.concatenate(([0], np.cumsum((arr == 1) | (arr == 2))))

    kept = []
    for start in range(0, length - window + 1, step):
        checkpoint(cancel)
        end = start + window
        total = int(valid_prefix[end] - valid_prefix[start])
        if total == 0 or total < (end - start) * min_valid_ratio:
            continue
        gc = int(gc_prefix[end] - gc_prefix[start])
        kept.append((start, end, gc / total * 100.0))

    if not kept:
        return []

    gc_values = np.array([gc for _, _, gc in kept])
    mu = float(gc_values.mean())
    sigma = max(float(gc_values.std()), 1.0)
    return [WindowStat(start, end, gc, (gc - mu) / sigma) for start, end, gc in kept]


# ---------------------------
# Stage 2: island merging
# ---------------------------
class _IslandBuilder:
    """Open island plus the window count behind its running averages"""
    __slots__ = ("start", "end", "gc", "z", "count")

    def __init__(self, window, start):
        self.start = start
        self.end = window.end
        self.gc = window.gc_percent
        self.z = window.z_score
        self.count = 1

    def extend(self, window):
        n = self.count
        self.end = max(self.end, window.end)
        self.gc = (self.gc * n + window.gc_percent) / (n + 1)
        self.z = (self.z * n + window.z_score) / (n + 1)
        self.count = n + 1

    def build(self):
        return GenomicIsland(start=self.start, end=self.end, gc_percent=self.gc, z_score=self.z)


def merge_islands(windows, z_threshold=DEFAULT_Z_THRESHOLD, cancel=None):
    """Join windows with |z| >= z_threshold that touch or overlap by position"""
    if z_threshold < 0:
        raise InvalidParameter(f"z_threshold must be non-negative, got {z_threshold!r}")

    islands = []
    current = None
    for w in windows:
        checkpoint(cancel)
        if abs(w.z_score) >= z_threshold:
            if current is not None and w.start <= current.end:
                current.extend(w)
                continue
            if current is not None:
                islands.append(current.build())
                current = None
            # never reopen ground already covered by the previous island
            start = max(w.start, islands[-1].end) if islands else w.start
            if start < w.end:
                current = _IslandBuilder(w, start)
        elif current is not None:
            islands.append(current.build())
            current = None

    if current is not None:
        islands.append(current.build())
    return islands


# ---------------------------
# Stage 3: annotation
# ---------------------------
def is_hallmark(gene):
    """Case-insensitive keyword match on the gene's name and product"""
    text = f"{gene.name or ''} {gene.product or ''}".lower()
    return any(keyword in text for keyword in HALLMARK_KEYWORDS)


def attach_genes(islands, genes):
    """Return islands with overlapping genes and hallmark labels attached"""
    genes = [as_gene(g) for g in genes]
    annotated = []
    for island in islands:
        overlapping = tuple(g for g in genes if g.overlaps(island.start, island.end))
        hallmarks = tuple(g.label for g in overlapping if is_hallmark(g))
        annotated.append(replace(island, genes=overlapping, hallmarks=hallmarks))
    return annotated


# ---------------------------
# Stage 4: donor inference
# ---------------------------
def classify_confidence(similarity):
    if similarity > HIGH_CONFIDENCE:
        return "high"
    if similarity > MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def estimate_amelioration(gc_delta):
    """
    Heuristic age class from |island GC - genome GC| (percentage points)

    A large offset means the island has not yet drifted toward the host
    composition. This is a coarse ordering, not a dated estimate.
    """
    delta = abs(gc_delta)
    if delta > 5:
        return "recent"
    if delta > 2:
        return "intermediate"
    if delta > 0:
        return "ancient"
    return "unknown"


def _candidate(taxon, similarity, evidence):
    return DonorCandidate(
        taxon=taxon,
        similarity=float(similarity),
        confidence=classify_confidence(similarity),
        evidence=evidence,
    )


def _rank(candidates, max_donors):
    # stable sort: equal scores keep reference order
    return sorted(candidates, key=lambda c: c.similarity, reverse=True)[:max_donors]


def build_reference_sets(references, k=DEFAULT_EXACT_K):
    return {taxon: extract_canonical_kmer_set(seq, k) for taxon, seq in references.items()}


def infer_donors(island_seq, reference_sets, k=DEFAULT_EXACT_K, max_donors=MAX_DONORS):
    """Rank donors by exact canonical k-mer Jaccard"""
    require_positive("k", k)
    island_set = extract_canonical_kmer_set(island_seq, k)
    if not island_set:
        return []
    candidates = [
        _candidate(taxon, jaccard_index(island_set, ref_set), "kmer")
        for taxon, ref_set in reference_sets.items()
        if ref_set
    ]
    return _rank(candidates, max_donors)


def precompute_reference_signatures(references, engine, k=MINHASH_K, num_hashes=MINHASH_NUM_HASHES):
    """
    MinHash signature per reference, cached under the reference label

    References too short to sign are left out. The label is used as a stable
    cache key, so one label must always refer to the same sequence for the
    lifetime of the engine's cache.
    """
    signatures = {}
    for taxon, seq in references.items():
        sig = engine.signature(seq, k, num_hashes, canonical=True, stable_id=taxon)
        if sig is not None:
            signatures[taxon] = sig
    return signatures


def infer_donors_minhash(island_seq, reference_signatures, engine, k=MINHASH_K,
                         num_hashes=MINHASH_NUM_HASHES, refine_top_n=0, references=None,
                         max_donors=MAX_DONORS):
    """
    Rank donors by MinHash-estimated Jaccard

    Args:
        island_seq: Island sub-sequence
        reference_signatures: taxon -> MinHashSignature (same k / num_hashes)
        engine: SketchEngine used for the island signature and comparisons
        k: k-mer length of the signatures
        num_hashes: Signature length
        refine_top_n: Re-score this many leading candidates with exact
            canonical k-mer Jaccard (needs ``references``)
        references: taxon -> sequence, used only for refinement
        max_donors: Number of candidates kept

    Returns:
        Donor candidates sorted by similarity, descending

    Raises:
        Unavailable: the island cannot be signed (no valid k-mer, or the
            engine is closed); callers fall back to infer_donors()
        IncompatibleSignatures: a reference signature has another family
    """
    island_sig = engine.require_signature(island_seq, k, num_hashes, canonical=True)
    candidates = [
        _candidate(taxon, engine.jaccard(island_sig, ref_sig), "minhash")
        for taxon, ref_sig in reference_signatures.items()
    ]
    candidates = _rank(candidates, len(candidates))

    if refine_top_n > 0 and references:
        island_set = extract_canonical_kmer_set(island_seq, k)
        if island_set:
            for i, cand in enumerate(candidates[:refine_top_n]):
                ref_seq = references.get(cand.taxon)
                if not ref_seq:
                    continue
                ref_set = extract_canonical_kmer_set(ref_seq, k)
                if ref_set:
                    candidates[i] = _candidate(cand.taxon, jaccard_index(island_set, ref_set), "kmer")
            candidates = _rank(candidates, len(candidates))

    return candidates[:max_donors]


# ---------------------------
# Tracer
# ---------------------------
class HGTTracer:
    """
    Stage-by-stage HGT analysis of one genome.

    Usage:
        tracer = HGTTracer(sequence, genes, references, engine=engine)
        windows = tracer.scan()
        islands = tracer.annotate(tracer.merge(windows))
        islands, stamps = tracer.infer(islands)

    or simply ``tracer.run()``. A shared SketchEngine should be passed in when
    several genomes are traced against the same references, so reference
    signatures are computed once.
    """

    def __init__(self, sequence, genes=(), references=None, options=None,
                 engine=None, cancel=None, progress=False):
        self.sequence = sequence
        self.genes = [as_gene(g) for g in genes]
        self.references = dict(references or {})
        self.options = HGTOptions.from_dict(options)
        self.cancel = cancel
        self.progress = progress
        self.genome_gc, _ = compute_gc(sequence)

        if engine is None and self.options.use_minhash and self.references:
            engine = SketchEngine()
        self.engine = engine
        self._reference_signatures = None
        self._reference_sets = None

    # stages -------------------------------------------------------------
    def scan(self):
        opts = self.options
        return sliding_gc(self.sequence, opts.window, opts.step, opts.min_valid_ratio, self.cancel)

    def merge(self, windows):
        return merge_islands(windows, self.options.z_threshold, self.cancel)

    def annotate(self, islands):
        return attach_genes(islands, self.genes)

    def stamp(self, island):
        """Donor inference and provenance summary for one island"""
        island_seq = self.sequence[island.start:island.end]
        donors = tuple(self.infer_donors(island_seq))
        gc_delta = island.gc_percent - self.genome_gc
        amelioration = estimate_amelioration(gc_delta)
        island = replace(island, donors=donors, amelioration=amelioration)
        return PassportStamp(
            island=island,
            donor=donors[0] if donors else None,
            donor_distribution=donors,
            amelioration=amelioration,
            gc_delta=gc_delta,
            hallmarks=island.hallmarks,
            anomaly_score=composition_divergence(island_seq, self.sequence),
        )

    def iter_stamps(self, islands):
        """Yield one PassportStamp per island; cancellation is checked between islands"""
        for island in tqdm(islands, desc="Inferring donors", disable=not self.progress):
            checkpoint(self.cancel)
            yield self.stamp(island)

    def infer(self, islands):
        """Run donor inference on every island -> (islands, stamps)"""
        stamps = list(self.iter_stamps(islands))
        return [s.island for s in stamps], stamps

    # donor helpers ------------------------------------------------------
    def _minhash_ready(self):
        if not (self.options.use_minhash and self.engine is not None and self.engine.available):
            return False
        if self._reference_signatures is None:
            self._reference_signatures = precompute_reference_signatures(
                self.references, self.engine, self.options.k, self.options.num_hashes
            )
        return bool(self._reference_signatures)

    def _exact_sets(self):
        if self._reference_sets is None:
            self._reference_sets = build_reference_sets(self.references, self.options.exact_k)
        return self._reference_sets

    def infer_donors(self, island_seq):
        if not self.references:
            return []
        opts = self.options
        if self._minhash_ready():
            try:
                return infer_donors_minhash(
                    island_seq,
                    self._reference_signatures,
                    self.engine,
                    k=opts.k,
                    num_hashes=opts.num_hashes,
                    refine_top_n=opts.refine_top_n,
                    references=self.references,
                    max_donors=opts.max_donors,
                )
            except Unavailable as e:
                logger.debug(f"MinHash unavailable for island ({e}); using exact k-mer Jaccard")
        return infer_donors(island_seq, self._exact_sets(), opts.exact_k, opts.max_donors)

    # full run -----------------------------------------------------------
    def run(self):
        try:
            windows = self.scan()
            islands = self.annotate(self.merge(windows))
        except Cancelled:
            logger.info("HGT scan cancelled before islands were complete")
            return HGTAnalysis(genome_gc=self.genome_gc, status=STATUS_CANCELLED)

        logger.info(f"{len(windows)} valid windows, {len(islands)} candidate islands")

        stamps = []
        try:
            for stamp in self.iter_stamps(islands):
                stamps.append(stamp)
        except Cancelled:
            logger.info(f"HGT donor inference cancelled after {len(stamps)}/{len(islands)} islands")
            done = [s.island for s in stamps]
            return HGTAnalysis(
                genome_gc=self.genome_gc,
                islands=tuple(done + islands[len(done):]),
                stamps=tuple(stamps),
                status=STATUS_CANCELLED,
            )
        finally:
            self._log_cache_stats()

        return HGTAnalysis(
            genome_gc=self.genome_gc,
            islands=tuple(s.island for s in stamps),
            stamps=tuple(stamps),
        )

    def _log_cache_stats(self):
        if self.engine is None:
            return
        stats = self.engine.cache.stats()
        logger.debug(
            f"Signature cache: hit rate {stats.hit_rate * 100:.1f}%, "
            f"{stats.entries} entries, {stats.bytes / 1024:.1f} KB"
        )


def analyze_hgt_provenance(sequence, genes=(), references=None, options=None,
                           engine=None, cancel=None, progress=False):
    """
    Run the complete HGT pipeline on one genome

    Args:
        sequence: Genome sequence (case-insensitive, N and gaps tolerated)
        genes: Gene records or dicts with id/startPos/endPos/name/product
        references: Mapping of donor label -> reference sequence
        options: HGTOptions or a dict of option overrides
        engine: Optional SketchEngine shared across calls
        cancel: Optional CancelToken
        progress: Show a tqdm bar over islands

    Returns:
        HGTAnalysis
    """
    tracer = HGTTracer(sequence, genes, references, options, engine, cancel, progress)
    return tracer.run()
