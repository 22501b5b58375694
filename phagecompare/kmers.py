#!/usr/bin/env python3
"""
PhageCompare K-mer Module
K-mer sets, frequency vectors and 2-bit k-mer codes with strand canonicalization

Author: PhageCompare developers
Version: 1.0.0
License: MIT
"""

import hashlib
import re
from collections import Counter

import numpy as np

from .errors import require_positive

# Global constants
BASE2 = {"A": 0, "C": 1, "G": 2, "T": 3, "N": 4}
NUM2BASE = {0: "A", 1: "C", 2: "G", 3: "T"}
MAX_PACKED_K = 32

_COMPLEMENT = str.maketrans("ACGTNacgtn", "TGCANtgcan")
_VALID_RUN = re.compile(r"[ACGT]+")

_CODE_TABLE = np.full(256, 4, dtype=np.uint8)
_CODE_TABLE[ord('A')] = 0
_CODE_TABLE[ord('C')] = 1
_CODE_TABLE[ord('G')] = 2
_CODE_TABLE[ord('T')] = 3


def normalize_sequence(seq):
    """Uppercase ASCII letters only, one output character per input character

    Non-ASCII characters become '?', so positions in the result always line up
    with positions in the input (``str.upper`` can lengthen e.g. 'ß' -> 'SS').
    """
    return seq.encode('ascii', 'replace').upper().decode('ascii')


def reverse_complement(sequence):
    """Reverse complement; characters other than A/C/G/T/N are kept as-is"""
    return sequence.translate(_COMPLEMENT)[::-1]


def canonical_kmer(kmer):
    rc = reverse_complement(kmer)
    return kmer if kmer <= rc else rc


def _valid_runs(sequence, k):
    """Yield maximal A/C/G/T stretches long enough to hold a k-mer"""
    for match in _VALID_RUN.finditer(sequence.upper()):
        run = match.group()
        if len(run) >= k:
            yield run


def iter_kmers(sequence, k, canonical=False):
    """Yield every k-mer of sequence that contains only unambiguous bases.

    Windows that touch an N (or any other non-ACGT character) are skipped
    rather than reported as errors.
    """
    require_positive("k", k)
    for run in _valid_runs(sequence, k):
        if canonical:
            rc_run = reverse_complement(run)
            L = len(run)
            for i in range(L - k + 1):
                fwd = run[i:i + k]
                rev = rc_run[L - i - k:L - i]
                yield fwd if fwd <= rev else rev
        else:
            for i in range(len(run) - k + 1):
                yield run[i:i + k]


def extract_kmer_set(sequence, k):
    return frozenset(iter_kmers(sequence, k))


def extract_canonical_kmer_set(sequence, k):
    """Strand-agnostic k-mer set: each k-mer is stored as min(kmer, revcomp(kmer))"""
    return frozenset(iter_kmers(sequence, k, canonical=True))


def extract_kmer_frequencies(sequence, k):
    return Counter(iter_kmers(sequence, k))


def extract_canonical_kmer_frequencies(sequence, k):
    return Counter(iter_kmers(sequence, k, canonical=True))


# ---------------------------
# Numeric k-mer codes
# ---------------------------
def seq_to_array(seq):
    """Convert sequence to numerical array (A=0, C=1, G=2, T=3, other=4)"""
    arr = np.frombuffer(seq.encode('ascii', 'replace').upper(), dtype=np.uint8)
    return _CODE_TABLE[arr]


def rolling_kmer_codes(arr, k, canonical=True):
    """Pack every valid k-mer of an encoded sequence into a uint64 code.

    For k <= 32 each k-mer is packed 2 bits per base, first base most
    significant, so numeric order equals lexicographic order and the
    canonical code is simply min(forward, reverse-complement).
    """
    require_positive("k", k)
    L = arr.shape[0]
    if L < k:
        return np.zeros(0, dtype=np.uint64)
    if k > MAX_PACKED_K:
        raise ValueError(f"k={k} does not fit a 64-bit packed code")

    m = L - k + 1
    valid = arr < 4
    invalid_prefix = np.concatenate(([0], np.cumsum(~valid)))
    window_ok = (invalid_prefix[k:] - invalid_prefix[:m]) == 0

    vals = np.where(valid, arr, 0).astype(np.uint64)
    two = np.uint64(2)
    fwd = np.zeros(m, dtype=np.uint64)
    for j in range(k):
        fwd = (fwd << two) | vals[j:j + m]

    if canonical:
        comp = np.uint64(3) - vals
        rev = np.zeros(m, dtype=np.uint64)
        for j in range(k - 1, -1, -1):
            rev = (rev << two) | comp[j:j + m]
        fwd = np.minimum(fwd, rev)

    return fwd[window_ok]


def hashed_kmer_codes(sequence, k, canonical=True):
    """64-bit codes for k-mers too long to pack (k > 32), via blake2b"""
    codes = [
        int.from_bytes(hashlib.blake2b(kmer.encode('ascii'), digest_size=8).digest(), 'little')
        for kmer in iter_kmers(sequence, k, canonical=canonical)
    ]
    return np.array(codes, dtype=np.uint64)


def kmer_codes(sequence, k, canonical=True):
    """uint64 code for every valid k-mer occurrence of sequence (duplicates kept)"""
    require_positive("k", k)
    if k > MAX_PACKED_K:
        return hashed_kmer_codes(sequence, k, canonical=canonical)
    return rolling_kmer_codes(seq_to_array(sequence), k, canonical=canonical)


def code_to_kmer(h, k):
    kmer = []
    for i in range(k - 1, -1, -1):
        val = (int(h) >> (2 * i)) & 3
        kmer.append(NUM2BASE[val])
    return "".join(kmer)


def kmer_to_code(kmer_str, canonical=True):
    k = len(kmer_str)
    mask = (1 << (2 * k)) - 1
    f = 0
    r = 0
    for base in kmer_str.upper():
        base_val = BASE2[base]
        f = (f << 2) | base_val
        r = (r >> 2) | ((3 - base_val) << (2 * (k - 1)))
    f &= mask
    r &= mask
    return min(f, r) if canonical else f
