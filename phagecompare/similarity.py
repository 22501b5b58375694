"""
PhageCompare Similarity Metrics
Alignment-free comparison over k-mer sets and k-mer frequency vectors

References:
- Zielezinski et al. (2019) "Benchmarking of alignment-free sequence comparison methods"
- Ondov et al. (2016) "Mash: fast genome and metagenome distance estimation using MinHash"

Version: 1.0.0
License: MIT
"""

import logging

from .config import ANI_MIN_SHARED_KMERS
from .errors import require_positive
from .kmers import (
    extract_canonical_kmer_frequencies,
    extract_canonical_kmer_set,
)
from .models import AniEstimate, KmerAnalysis

logger = logging.getLogger(__name__)


def kmer_intersection_size(set_a, set_b):
    if len(set_a) > len(set_b):
        set_a, set_b = set_b, set_a
    return sum(1 for kmer in set_a if kmer in set_b)


def jaccard_index(set_a, set_b):
    """J(A,B) = |A n B| / |A u B|; 0 when either set is empty"""
    if not set_a or not set_b:
        return 0.0
    shared = kmer_intersection_size(set_a, set_b)
    return shared / (len(set_a) + len(set_b) - shared)


def containment_index(set_a, set_b):
    """C(A,B) = |A n B| / |A|: the fraction of A's k-mers found in B"""
    if not set_a:
        return 0.0
    return kmer_intersection_size(set_a, set_b) / len(set_a)


def cosine_similarity(freqs_a, freqs_b):
    """Cosine of two k-mer count vectors aligned over the union of observed k-mers"""
    dot = sum(count * freqs_b.get(kmer, 0) for kmer, count in freqs_a.items())
    norm_a = sum(c * c for c in freqs_a.values()) ** 0.5
    norm_b = sum(c * c for c in freqs_b.values()) ** 0.5
    denominator = norm_a * norm_b
    return dot / denominator if denominator > 0 else 0.0


def bray_curtis_dissimilarity(freqs_a, freqs_b):
    """BC = sum|Ai - Bi| / sum(Ai + Bi); 0 = identical abundance profiles"""
    total = sum(freqs_a.values()) + sum(freqs_b.values())
    if total == 0:
        return 0.0
    diff = 0
    for kmer in freqs_a.keys() | freqs_b.keys():
        diff += abs(freqs_a.get(kmer, 0) - freqs_b.get(kmer, 0))
    return diff / total


def analyze_kmers(sequence_a, sequence_b, k):
    """Complete canonical k-mer comparison of two sequences"""
    require_positive("k", k)
    set_a = extract_canonical_kmer_set(sequence_a, k)
    set_b = extract_canonical_kmer_set(sequence_b, k)
    freqs_a = extract_canonical_kmer_frequencies(sequence_a, k)
    freqs_b = extract_canonical_kmer_frequencies(sequence_b, k)

    return KmerAnalysis(
        k=k,
        unique_kmers_a=len(set_a),
        unique_kmers_b=len(set_b),
        shared_kmers=kmer_intersection_size(set_a, set_b),
        jaccard_index=jaccard_index(set_a, set_b),
        containment_a_in_b=containment_index(set_a, set_b),
        containment_b_in_a=containment_index(set_b, set_a),
        cosine_similarity=cosine_similarity(freqs_a, freqs_b),
        bray_curtis_dissimilarity=bray_curtis_dissimilarity(freqs_a, freqs_b),
    )


def multi_resolution_kmer_analysis(sequence_a, sequence_b, k_values=(3, 5, 7, 11)):
    """Small k captures composition, large k captures conserved stretches"""
    return [analyze_kmers(sequence_a, sequence_b, k) for k in k_values]


def estimate_ani(sequence_a, sequence_b, k=21):
    """
    Estimate average nucleotide identity from k-mer containment

    Under a uniform point-mutation model a k-mer survives with probability
    identity**k, so identity ~= C ** (1/k) where C is the containment of the
    smaller genome's k-mer set in the larger one.

    Args:
        sequence_a: First genome
        sequence_b: Second genome
        k: k-mer length

    Returns:
        AniEstimate; ``low_confidence`` is set when fewer than 100 k-mers are
        shared, which is too few for the estimate to be meaningful
    """
    require_positive("k", k)
    set_a = extract_canonical_kmer_set(sequence_a, k)
    set_b = extract_canonical_kmer_set(sequence_b, k)
    if len(set_a) > len(set_b):
        set_a, set_b = set_b, set_a

    shared = kmer_intersection_size(set_a, set_b)
    containment = shared / len(set_a) if set_a else 0.0
    ani = 100.0 * containment ** (1.0 / k) if containment > 0 else 0.0
    low_confidence = shared < ANI_MIN_SHARED_KMERS
    if low_confidence:
        logger.debug(f"ANI estimate based on only {shared} shared {k}-mers")

    return AniEstimate(
        ani=min(100.0, ani),
        containment=containment,
        shared_kmers=shared,
        k=k,
        low_confidence=low_confidence,
    )
