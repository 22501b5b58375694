"""
PhageCompare Information Theory Module
Shannon entropy, KL/JS divergence, mutual information and compression distance

References:
- Shannon (1948) "A Mathematical Theory of Communication"
- Cover & Thomas (2006) "Elements of Information Theory"
- Li et al. (2004) "The similarity metric" (normalized compression distance)

Version: 1.0.0
License: MIT
"""

import zlib
from collections import Counter
from itertools import product

import numpy as np

from .errors import InvalidParameter, require_positive
from .kmers import extract_kmer_frequencies, normalize_sequence
from .models import InformationTheoryMetrics

NUCLEOTIDES = ("A", "C", "G", "T")
DINUCLEOTIDES = tuple("".join(p) for p in product(NUCLEOTIDES, repeat=2))
EPSILON = 1e-10


def shannon_entropy(probabilities):
    """H(X) = -sum p log2 p, in bits (max 2 bits/base for DNA)"""
    p = np.asarray(probabilities, dtype=float)
    p = p[p > 0]
    return float(-(p * np.log2(p)).sum())


def nucleotide_frequencies(sequence):
    """[pA, pC, pG, pT]; uniform when the sequence has no unambiguous bases"""
    counts = Counter(sequence.upper())
    total = sum(counts[b] for b in NUCLEOTIDES)
    if total == 0:
        return [0.25] * 4
    return [counts[b] / total for b in NUCLEOTIDES]


def dinucleotide_frequencies(sequence):
    """16-element distribution over AA, AC, ... TT"""
    counts = extract_kmer_frequencies(sequence, 2)
    total = sum(counts.values())
    if total == 0:
        return [1 / 16] * 16
    return [counts.get(d, 0) / total for d in DINUCLEOTIDES]


def sequence_entropy(sequence, k=1):
    """k-mer entropy normalised per base"""
    require_positive("k", k)
    if k == 1:
        return shannon_entropy(nucleotide_frequencies(sequence))
    counts = extract_kmer_frequencies(sequence, k)
    total = sum(counts.values())
    if total == 0:
        return 0.0
    return shannon_entropy([c / total for c in counts.values()]) / k


def _check_same_length(p, q):
    if len(p) != len(q):
        raise InvalidParameter("Probability distributions must have the same length")


def kl_divergence(p, q, epsilon=EPSILON):
    """
    Kullback-Leibler divergence KL(P || Q) in bits

    Asymmetric: this is the information lost when Q is used to approximate P.
    Bins where Q is zero are smoothed to ``epsilon`` so the result stays finite.
    """
    _check_same_length(p, q)
    p = np.asarray(p, dtype=float)
    q = np.maximum(np.asarray(q, dtype=float), epsilon)
    mask = p > 0
    return float((p[mask] * np.log2(p[mask] / q[mask])).sum())


def js_divergence(p, q):
    """Jensen-Shannon divergence: symmetric, bounded to [0, 1] in bits"""
    _check_same_length(p, q)
    p = np.asarray(p, dtype=float)
    q = np.asarray(q, dtype=float)
    m = (p + q) / 2
    return (kl_divergence(p, m) + kl_divergence(q, m)) / 2


def relative_entropy(p, q):
    """Mean of both KL directions"""
    return (kl_divergence(p, q) + kl_divergence(q, p)) / 2


def cross_entropy(p, q, epsilon=EPSILON):
    """H(P, Q) = -sum P log2 Q, with Q smoothed like kl_divergence"""
    _check_same_length(p, q)
    p = np.asarray(p, dtype=float)
    q = np.maximum(np.asarray(q, dtype=float), epsilon)
    mask = p > 0
    return float(-(p[mask] * np.log2(q[mask])).sum())


def mutual_information(sequence_a, sequence_b, k=3):
    """
    Positional mutual information I(X;Y) = H(X) + H(Y) - H(X,Y)

    X and Y are the k-mers found at the same offset in both sequences, over
    the length of the shorter one.

    Returns:
        (mi, h_a, h_b, h_joint)
    """
    require_positive("k", k)
    seq_a = normalize_sequence(sequence_a)
    seq_b = normalize_sequence(sequence_b)
    length = min(len(seq_a), len(seq_b))
    valid = set("ACGT")

    freqs_a, freqs_b, joint = Counter(), Counter(), Counter()
    for i in range(length - k + 1):
        kmer_a = seq_a[i:i + k]
        kmer_b = seq_b[i:i + k]
        ok_a = set(kmer_a) <= valid
        ok_b = set(kmer_b) <= valid
        if ok_a:
            freqs_a[kmer_a] += 1
        if ok_b:
            freqs_b[kmer_b] += 1
        if ok_a and ok_b:
            joint[(kmer_a, kmer_b)] += 1

    def _entropy(counter):
        total = sum(counter.values())
        return shannon_entropy([c / total for c in counter.values()]) if total else 0.0

    h_a, h_b, h_joint = _entropy(freqs_a), _entropy(freqs_b), _entropy(joint)
    return max(0.0, h_a + h_b - h_joint), h_a, h_b, h_joint


def _normalize_mi(mi, h_a, h_b):
    # normalise by the k-mer entropies MI was measured in, not the per-base ones
    denominator = h_a + h_b
    return 2 * mi / denominator if denominator > 0 else 0.0


def normalized_mutual_information(sequence_a, sequence_b, k=3):
    mi, h_a, h_b, _ = mutual_information(sequence_a, sequence_b, k)
    return _normalize_mi(mi, h_a, h_b)


def normalized_compression_distance(sequence_a, sequence_b, level=9):
    """NCD(x, y) = (C(xy) - min(C(x), C(y))) / max(C(x), C(y)) using zlib"""
    a = sequence_a.upper().encode('ascii', 'replace')
    b = sequence_b.upper().encode('ascii', 'replace')
    if not a and not b:
        return 0.0
    c_a = len(zlib.compress(a, level))
    c_b = len(zlib.compress(b, level))
    c_ab = len(zlib.compress(a + b, level))
    return (c_ab - min(c_a, c_b)) / max(c_a, c_b)


def entropy_profile(sequence, window_size=100, step=50):
    """Per-window nucleotide entropy along a sequence"""
    require_positive("window_size", window_size)
    require_positive("step", step)
    seq = normalize_sequence(sequence)
    return [
        sequence_entropy(seq[i:i + window_size], 1)
        for i in range(0, len(seq) - window_size + 1, step)
    ]


def composition_divergence(segment, background):
    """JS divergence between the dinucleotide profiles of a segment and its background genome"""
    return js_divergence(dinucleotide_frequencies(segment), dinucleotide_frequencies(background))


def analyze_information_theory(sequence_a, sequence_b, k=3):
    entropy_a = sequence_entropy(sequence_a, k)
    entropy_b = sequence_entropy(sequence_b, k)
    mi, h_a, h_b, h_joint = mutual_information(sequence_a, sequence_b, k)
    normalized_mi = _normalize_mi(mi, h_a, h_b)

    freqs_a = extract_kmer_frequencies(sequence_a, k)
    freqs_b = extract_kmer_frequencies(sequence_b, k)
    total_a = sum(freqs_a.values())
    total_b = sum(freqs_b.values())
    if total_a == 0 or total_b == 0:
        return InformationTheoryMetrics(
            entropy_a=entropy_a,
            entropy_b=entropy_b,
            joint_entropy=0.0,
            mutual_information=0.0,
            normalized_mi=0.0,
            jensen_shannon_divergence=0.0,
            kullback_leibler_a_to_b=0.0,
            kullback_leibler_b_to_a=0.0,
            relative_entropy=0.0,
        )

    kmers = sorted(freqs_a.keys() | freqs_b.keys())
    p_a = [freqs_a.get(kmer, 0) / total_a for kmer in kmers]
    p_b = [freqs_b.get(kmer, 0) / total_b for kmer in kmers]
    kl_ab = kl_divergence(p_a, p_b)
    kl_ba = kl_divergence(p_b, p_a)

    return InformationTheoryMetrics(
        entropy_a=entropy_a,
        entropy_b=entropy_b,
        joint_entropy=h_joint,
        mutual_information=mi,
        normalized_mi=normalized_mi,
        jensen_shannon_divergence=js_divergence(p_a, p_b),
        kullback_leibler_a_to_b=kl_ab,
        kullback_leibler_b_to_a=kl_ba,
        relative_entropy=(kl_ab + kl_ba) / 2,
    )
