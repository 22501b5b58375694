#!/usr/bin/env python3
"""
PhageCompare MinHash Module
Fixed-size MinHash signatures for approximate Jaccard similarity

Accuracy: the estimate has a standard error of about sqrt(J(1-J)/num_hashes),
so 128 hashes (default) give roughly 1-5% relative error, 256 hashes about
half the error of 64. Ranking donors against many references only needs the
order to be right, which is where the speed-up pays off.

Backends: PureSketchBackend (numpy) is always available. NumbaSketchBackend
is an accelerated drop-in, accepted at startup only if it reproduces the pure
backend's signature and Jaccard values exactly.

Version: 1.0.0
License: MIT
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from .cache import SignatureCache, make_cache_key, make_cache_key_from_id
from .config import MINHASH_K, MINHASH_NUM_HASHES
from .errors import IncompatibleSignatures, Unavailable, require_positive
from .kmers import kmer_codes

logger = logging.getLogger(__name__)

# Optional Numba acceleration
try:
    from numba import njit
    NUMBA_AVAILABLE = True
except ImportError:
    NUMBA_AVAILABLE = False
    logger.debug("Numba not available, MinHash uses the numpy implementation")

# Hash constants (splitmix64 finaliser for the base hash, murmur3 fmix32 per slot)
_SM_GOLDEN = np.uint64(0x9E3779B97F4A7C15)
_SM_C1 = np.uint64(0xBF58476D1CE4E5B9)
_SM_C2 = np.uint64(0x94D049BB133111EB)
_FM_C1 = np.uint32(0x85EBCA6B)
_FM_C2 = np.uint32(0xC2B2AE35)
_FM_C1_64 = np.uint64(0x85EBCA6B)
_FM_C2_64 = np.uint64(0xC2B2AE35)
_MASK32 = np.uint64(0xFFFFFFFF)
_S13, _S16, _S27, _S30, _S31, _S32 = (np.uint64(s) for s in (13, 16, 27, 30, 31, 32))

SEED_STATE = 0xDEADBEEF


@lru_cache(maxsize=32)
def deterministic_seeds(count):
    """LCG-derived 32-bit seeds, one per hash slot; identical across runs"""
    seeds = np.empty(count, dtype=np.uint32)
    state = SEED_STATE
    for i in range(count):
        state = (state * 1664525 + 1013904223) & 0xFFFFFFFF
        seeds[i] = state
    seeds.setflags(write=False)
    return seeds


@dataclass(frozen=True, eq=False)
class MinHashSignature:
    """num_hashes uint32 minima plus the parameters needed to compare it safely"""
    values: np.ndarray
    k: int
    num_hashes: int
    total_kmers: int
    canonical: bool

    def __post_init__(self):
        self.values.setflags(write=False)

    @property
    def family(self):
        return (self.k, self.num_hashes, self.canonical)

    @property
    def nbytes(self):
        return int(self.values.nbytes)

    def compatible_with(self, other):
        return self.family == other.family and self.values.shape == other.values.shape

    def __eq__(self, other):
        if not isinstance(other, MinHashSignature):
            return NotImplemented
        return (
            self.family == other.family
            and self.total_kmers == other.total_kmers
            and np.array_equal(self.values, other.values)
        )

    def __hash__(self):
        return hash((self.family, self.total_kmers, self.values.tobytes()))

    def to_dict(self):
        return {
            "values": self.values.tolist(),
            "k": self.k,
            "num_hashes": self.num_hashes,
            "total_kmers": self.total_kmers,
            "canonical": self.canonical,
        }


def check_compatible(sig_a, sig_b):
    if not sig_a.compatible_with(sig_b):
        raise IncompatibleSignatures(
            f"cannot compare signature family (k, num_hashes, canonical)={sig_a.family} "
            f"with {sig_b.family}"
        )


# ---------------------------
# Pure numpy backend
# ---------------------------
def _base_hashes(codes):
    z = codes + _SM_GOLDEN
    z = (z ^ (z >> _S30)) * _SM_C1
    z = (z ^ (z >> _S27)) * _SM_C2
    z = z ^ (z >> _S31)
    return (z >> _S32).astype(np.uint32)


def _fmix32(h):
    h = h ^ (h >> np.uint32(16))
    h = h * _FM_C1
    h = h ^ (h >> np.uint32(13))
    h = h * _FM_C2
    return h ^ (h >> np.uint32(16))


class PureSketchBackend:
    name = "numpy"

    def signature_values(self, codes, seeds):
        base = _base_hashes(np.asarray(codes, dtype=np.uint64))
        out = np.empty(seeds.shape[0], dtype=np.uint32)
        for i, seed in enumerate(seeds):
            out[i] = _fmix32(base ^ seed).min()
        return out

    def jaccard(self, values_a, values_b):
        return float(np.count_nonzero(values_a == values_b)) / values_a.shape[0]


# ---------------------------
# Numba backend
# ---------------------------
if NUMBA_AVAILABLE:
    @njit(nogil=True)
    def _minhash_kernel(codes, seeds):
        n_hashes = seeds.shape[0]
        mins = np.full(n_hashes, _MASK32, dtype=np.uint64)
        for i in range(codes.shape[0]):
            z = codes[i] + _SM_GOLDEN
            z = (z ^ (z >> _S30)) * _SM_C1
            z = (z ^ (z >> _S27)) * _SM_C2
            z = z ^ (z >> _S31)
            base = z >> _S32
            for j in range(n_hashes):
                h = base ^ seeds[j]
                h = h ^ (h >> _S16)
                h = (h * _FM_C1_64) & _MASK32
                h = h ^ (h >> _S13)
                h = (h * _FM_C2_64) & _MASK32
                h = h ^ (h >> _S16)
                if h < mins[j]:
                    mins[j] = h
        return mins

    @njit(nogil=True)
    def _jaccard_kernel(values_a, values_b):
        matches = 0
        for i in range(values_a.shape[0]):
            if values_a[i] == values_b[i]:
                matches += 1
        return matches / values_a.shape[0]


class NumbaSketchBackend:
    name = "numba"

    def __init__(self):
        if not NUMBA_AVAILABLE:
            raise Unavailable("numba is not installed")

    def signature_values(self, codes, seeds):
        mins = _minhash_kernel(np.ascontiguousarray(codes, dtype=np.uint64), seeds.astype(np.uint64))
        return mins.astype(np.uint32)

    def jaccard(self, values_a, values_b):
        return float(_jaccard_kernel(values_a, values_b))


# ---------------------------
# Backend selection
# ---------------------------
_PROBE_A = "ATCGATCGGCTAGCTTAACGGTACCGTTAGCAATGCGTACGTTGCAACGTAGGCTTAAC"
_PROBE_B = "ATCGATCGGCTAGCTTAACGGTACCGTTAGCATTTTGGGCCCAAATTTGGGCCCAAATT"
_PROBE_K = 4
_PROBE_HASHES = 16


def probe_backend(candidate, reference=None):
    """Self-test: accept candidate only if it matches the reference backend bit for bit"""
    reference = reference or PureSketchBackend()
    seeds = deterministic_seeds(_PROBE_HASHES)
    codes_a = np.unique(kmer_codes(_PROBE_A, _PROBE_K))
    codes_b = np.unique(kmer_codes(_PROBE_B, _PROBE_K))
    try:
        got_a = candidate.signature_values(codes_a, seeds)
        got_b = candidate.signature_values(codes_b, seeds)
        if not np.array_equal(got_a, reference.signature_values(codes_a, seeds)):
            return False
        if not np.array_equal(got_b, reference.signature_values(codes_b, seeds)):
            return False
        if candidate.jaccard(got_a, got_a) != 1.0:
            return False
        return candidate.jaccard(got_a, got_b) == reference.jaccard(got_a, got_b)
    except Exception as e:
        logger.warning(f"Sketch backend '{candidate.name}' failed its self-test: {e}")
        return False


def select_backend(prefer_accelerated=True):
    """Pick the sketch backend once at startup; falls back to numpy transparently"""
    pure = PureSketchBackend()
    if prefer_accelerated and NUMBA_AVAILABLE:
        candidate = NumbaSketchBackend()
        if probe_backend(candidate, pure):
            logger.debug("Using numba MinHash backend")
            return candidate
        logger.info("Numba MinHash backend rejected by self-test, using numpy implementation")
    return pure


# ---------------------------
# Engine
# ---------------------------
class SketchEngine:
    """
    MinHash signatures with an explicit signature cache and backend.

    Construct one engine per host (or per test) and pass it to every call
    that needs signatures; ``close()`` releases the cache and backend.
    """

    def __init__(self, cache=None, backend=None, prefer_accelerated=True):
        self.cache = cache if cache is not None else SignatureCache()
        self.backend = backend if backend is not None else select_backend(prefer_accelerated)

    @property
    def available(self):
        return self.backend is not None

    def compute_signature(self, sequence, k=MINHASH_K, num_hashes=MINHASH_NUM_HASHES, canonical=True):
        """Signature without cache lookup; None when no valid k-mer exists"""
        require_positive("k", k)
        require_positive("num_hashes", num_hashes)
        if self.backend is None:
            return None
        codes = kmer_codes(sequence, k, canonical=canonical)
        if codes.shape[0] == 0:
            return None
        values = self.backend.signature_values(np.unique(codes), deterministic_seeds(num_hashes))
        return MinHashSignature(
            values=values,
            k=k,
            num_hashes=num_hashes,
            total_kmers=int(codes.shape[0]),
            canonical=bool(canonical),
        )

    def signature(self, sequence, k=MINHASH_K, num_hashes=MINHASH_NUM_HASHES, canonical=True, stable_id=None):
        """
        Cached MinHash signature of a sequence

        Args:
            sequence: Nucleotide sequence (case-insensitive)
            k: k-mer length
            num_hashes: Signature length
            canonical: Hash min(kmer, revcomp) so strand does not matter
            stable_id: Optional accession/taxon id used as cache key instead of
                hashing the whole sequence

        Returns:
            MinHashSignature, or None when unavailable (no backend, or no
            valid k-mer in the sequence)
        """
        require_positive("k", k)
        require_positive("num_hashes", num_hashes)
        if self.backend is None:
            return None
        if stable_id is not None:
            key = make_cache_key_from_id(stable_id, k, num_hashes, canonical)
        else:
            key = make_cache_key(sequence, k, num_hashes, canonical)
        return self.cache.get_or_compute(
            key, lambda: self.compute_signature(sequence, k, num_hashes, canonical)
        )

    def require_signature(self, sequence, k=MINHASH_K, num_hashes=MINHASH_NUM_HASHES, canonical=True, stable_id=None):
        sig = self.signature(sequence, k, num_hashes, canonical, stable_id)
        if sig is None:
            raise Unavailable(
                "MinHash backend closed" if self.backend is None
                else f"sequence has no valid {k}-mer to sign"
            )
        return sig

    def jaccard(self, sig_a, sig_b):
        """Fraction of agreeing hash slots; signatures must share (k, num_hashes, canonical)"""
        check_compatible(sig_a, sig_b)
        backend = self.backend or PureSketchBackend()
        return backend.jaccard(sig_a.values, sig_b.values)

    def close(self):
        self.cache.clear()
        self.backend = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def jaccard_from_signatures(sig_a, sig_b):
    check_compatible(sig_a, sig_b)
    return PureSketchBackend().jaccard(sig_a.values, sig_b.values)


def minhash_jaccard(sequence_a, sequence_b, k=MINHASH_K, num_hashes=MINHASH_NUM_HASHES, engine=None):
    """Approximate Jaccard of two sequences; None if either cannot be signed"""
    engine = engine or SketchEngine()
    sig_a = engine.signature(sequence_a, k, num_hashes)
    sig_b = engine.signature(sequence_b, k, num_hashes)
    if sig_a is None or sig_b is None:
        return None
    return engine.jaccard(sig_a, sig_b)
