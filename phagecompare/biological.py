"""
PhageCompare Biological Metrics Module
ANI, GC content, codon usage (RSCU, CAI), amino-acid and gene-content comparison

References:
- Konstantinidis & Tiedje (2005) "ANI: a new tool for species demarcation"
- Sharp & Li (1987) "The codon adaptation index"

Version: 1.0.0
License: MIT
"""

import re
from collections import Counter

import numpy as np
from Bio.Data import CodonTable, IUPACData
from Bio.Seq import Seq
from scipy import stats

from .hgt import compute_gc
from .information import DINUCLEOTIDES
from .kmers import extract_kmer_frequencies, normalize_sequence
from .models import (
    AminoAcidComparison,
    BiologicalMetrics,
    CodonDifference,
    CodonUsageComparison,
    GeneContentComparison,
    as_gene,
)
from .similarity import estimate_ani

# Bacterial / phage genetic code
GENETIC_CODE = 11
_TABLE = CodonTable.unambiguous_dna_by_id[GENETIC_CODE]
CODON_TABLE = dict(_TABLE.forward_table)
CODON_TABLE.update({codon: "*" for codon in _TABLE.stop_codons})
CODONS = tuple(sorted(CODON_TABLE))

SYNONYMOUS_CODONS = {}
for _codon, _aa in CODON_TABLE.items():
    SYNONYMOUS_CODONS.setdefault(_aa, []).append(_codon)

AMINO_ACIDS = IUPACData.protein_letters
PROPERTY_GROUPS = {
    "hydrophobic": "AVILMFW",
    "polar": "STNQY",
    "charged": "DEKRH",
}

_NON_IUPAC = re.compile(r"[^ACGTN]")
_CAI_FLOOR = 1e-6


def calculate_gc_content(sequence):
    """GC% over unambiguous bases"""
    return compute_gc(sequence)[0]


def analyze_biological_metrics(sequence_a, sequence_b, ani_k=21):
    gc_a = calculate_gc_content(sequence_a)
    gc_b = calculate_gc_content(sequence_b)
    len_a, len_b = len(sequence_a), len(sequence_b)
    max_len = max(len_a, len_b)
    max_gc = max(gc_a, gc_b)

    return BiologicalMetrics(
        ani=estimate_ani(sequence_a, sequence_b, ani_k),
        gc_content_a=gc_a,
        gc_content_b=gc_b,
        gc_difference=abs(gc_a - gc_b),
        gc_ratio=min(gc_a, gc_b) / max_gc if max_gc > 0 else 1.0,
        length_a=len_a,
        length_b=len_b,
        length_ratio=min(len_a, len_b) / max_len if max_len > 0 else 1.0,
        length_difference=abs(len_a - len_b),
    )


# ---------------------------
# Codon usage
# ---------------------------
def count_codon_usage(sequence, frame=0):
    """In-frame codon counts; codons containing ambiguous bases are skipped"""
    seq = normalize_sequence(sequence)
    counts = Counter()
    for i in range(frame, len(seq) - 2, 3):
        codon = seq[i:i + 3]
        if codon in CODON_TABLE:
            counts[codon] += 1
    return counts


def calculate_rscu(codon_counts):
    """
    Relative synonymous codon usage

    RSCU = observed / expected, where expected assumes equal use of all
    synonymous codons. Values above 1 mark preferred codons.
    """
    rscu = {}
    for codons in SYNONYMOUS_CODONS.values():
        total = sum(codon_counts.get(c, 0) for c in codons)
        expected = total / len(codons)
        for codon in codons:
            rscu[codon] = codon_counts.get(codon, 0) / expected if expected > 0 else 0.0
    return rscu


def _codon_weights(codon_counts):
    """Relative adaptiveness w = count / max synonymous count (floored for log)"""
    weights = {}
    for codons in SYNONYMOUS_CODONS.values():
        max_count = max(codon_counts.get(c, 0) for c in codons)
        for codon in codons:
            w = codon_counts.get(codon, 0) / max_count if max_count > 0 else 0.0
            weights[codon] = max(w, _CAI_FLOOR)
    return weights


def codon_adaptation_index(target_counts, reference_counts):
    """Geometric mean of reference-derived weights over the target's codons"""
    weights = _codon_weights(reference_counts)
    total = sum(target_counts.values())
    if total == 0:
        return 0.0
    log_sum = sum(
        count * np.log(weights.get(codon, _CAI_FLOOR))
        for codon, count in target_counts.items()
        if count > 0
    )
    return float(np.exp(log_sum / total))


def _cosine(vec_a, vec_b):
    denom = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    return float(np.dot(vec_a, vec_b) / denom) if denom > 0 else 0.0


def compare_codon_usage(codon_counts_a, codon_counts_b, top_n=10):
    """RSCU distances, chi-square homogeneity test and cross-CAI of two codon profiles"""
    rscu_a = calculate_rscu(codon_counts_a)
    rscu_b = calculate_rscu(codon_counts_b)
    vec_a = np.array([rscu_a[c] for c in CODONS])
    vec_b = np.array([rscu_b[c] for c in CODONS])
    diff = vec_a - vec_b

    obs_a = np.array([codon_counts_a.get(c, 0) for c in CODONS], dtype=float)
    obs_b = np.array([codon_counts_b.get(c, 0) for c in CODONS], dtype=float)
    total_a, total_b = obs_a.sum(), obs_b.sum()
    grand_total = total_a + total_b

    chi_square = 0.0
    used = 0
    if grand_total > 0:
        row_total = obs_a + obs_b
        mask = row_total > 0
        used = int(mask.sum())
        for obs, total in ((obs_a, total_a), (obs_b, total_b)):
            expected = total * row_total[mask] / grand_total
            nonzero = expected > 0
            chi_square += float((((obs[mask] - expected) ** 2)[nonzero] / expected[nonzero]).sum())
    dof = max(1, used - 1)
    p_value = float(stats.chi2.sf(chi_square, dof)) if chi_square > 0 else 1.0

    weights_a = _codon_weights(codon_counts_a)
    weights_b = _codon_weights(codon_counts_b)

    safe_a = total_a if total_a > 0 else 1.0
    safe_b = total_b if total_b > 0 else 1.0
    differences = sorted(
        (
            CodonDifference(
                codon=codon,
                amino_acid=CODON_TABLE[codon],
                frequency_a=obs_a[i] / safe_a * 1000,
                frequency_b=obs_b[i] / safe_b * 1000,
                rscu_a=rscu_a[codon],
                rscu_b=rscu_b[codon],
                difference=abs(diff[i]),
            )
            for i, codon in enumerate(CODONS)
        ),
        key=lambda d: d.difference,
        reverse=True,
    )

    return CodonUsageComparison(
        rscu_distance_euclidean=float(np.sqrt((diff ** 2).sum())),
        rscu_distance_manhattan=float(np.abs(diff).sum()),
        rscu_cosine_similarity=_cosine(vec_a, vec_b),
        chi_square_statistic=chi_square,
        chi_square_p_value=p_value,
        degrees_of_freedom=dof,
        cai_a=codon_adaptation_index(codon_counts_a, codon_counts_b),
        cai_b=codon_adaptation_index(codon_counts_b, codon_counts_a),
        cai_correlation=_cosine(
            np.array([weights_a[c] for c in CODONS]),
            np.array([weights_b[c] for c in CODONS]),
        ),
        top_different_codons=tuple(differences[:top_n]),
    )


# ---------------------------
# Amino acid usage
# ---------------------------
def translate(sequence, frame=0):
    """Frame translation with table 11; non-IUPAC characters become N (-> X)"""
    seq = _NON_IUPAC.sub("N", normalize_sequence(sequence)[frame:])
    seq = seq[:len(seq) - len(seq) % 3]
    return str(Seq(seq).translate(table=GENETIC_CODE))


def count_amino_acids(protein):
    counts = Counter(protein)
    return {aa: counts.get(aa, 0) for aa in AMINO_ACIDS}


def compare_amino_acid_usage(sequence_a, sequence_b, top_n=10):
    counts_a = count_amino_acids(translate(sequence_a))
    counts_b = count_amino_acids(translate(sequence_b))
    total_a = sum(counts_a.values()) or 1
    total_b = sum(counts_b.values()) or 1

    freq_a = np.array([counts_a[aa] / total_a for aa in AMINO_ACIDS])
    freq_b = np.array([counts_b[aa] / total_b for aa in AMINO_ACIDS])

    if np.ptp(freq_a) > 0 and np.ptp(freq_b) > 0:
        correlation = float(stats.pearsonr(freq_a, freq_b)[0])
    else:
        correlation = 0.0

    group_similarity = {}
    for group, members in PROPERTY_GROUPS.items():
        share_a = sum(counts_a[aa] for aa in members) / total_a
        share_b = sum(counts_b[aa] for aa in members) / total_b
        group_similarity[group] = 1.0 - abs(share_a - share_b)

    differences = sorted(
        (
            (aa, freq_a[i] * 100, freq_b[i] * 100, abs(freq_a[i] - freq_b[i]) * 100)
            for i, aa in enumerate(AMINO_ACIDS)
        ),
        key=lambda d: d[3],
        reverse=True,
    )

    return AminoAcidComparison(
        euclidean_distance=float(np.linalg.norm(freq_a - freq_b)),
        cosine_similarity=_cosine(freq_a, freq_b),
        correlation_coefficient=correlation,
        hydrophobic_similarity=group_similarity["hydrophobic"],
        polar_similarity=group_similarity["polar"],
        charged_similarity=group_similarity["charged"],
        top_different_aas=tuple((aa, float(fa), float(fb), float(d)) for aa, fa, fb, d in differences[:top_n]),
    )


# ---------------------------
# Gene content
# ---------------------------
def _gene_names(genes):
    names = []
    for gene in genes:
        name = (gene.name or gene.locus_tag or "").lower()
        if name and name not in names:
            names.append(name)
    return names


def compare_gene_content(genes_a, genes_b, genome_length_a, genome_length_b, top_n=10):
    """Shared/unique gene names (name, else locus tag), density per kb and mean length"""
    genes_a = [as_gene(g) for g in genes_a]
    genes_b = [as_gene(g) for g in genes_b]
    names_a = _gene_names(genes_a)
    names_b = _gene_names(genes_b)
    set_a, set_b = set(names_a), set(names_b)

    shared = [n for n in names_a if n in set_b]
    unique_a = [n for n in names_a if n not in set_b]
    unique_b = [n for n in names_b if n not in set_a]
    union = len(set_a | set_b)

    def density(genes, length):
        return len(genes) / (length / 1000) if length > 0 else 0.0

    def mean_length(genes):
        return sum(g.end - g.start for g in genes) / len(genes) if genes else 0.0

    return GeneContentComparison(
        genes_a=len(genes_a),
        genes_b=len(genes_b),
        shared_gene_names=len(shared),
        unique_to_a=len(unique_a),
        unique_to_b=len(unique_b),
        gene_density_a=density(genes_a, genome_length_a),
        gene_density_b=density(genes_b, genome_length_b),
        gene_name_jaccard=len(shared) / union if union else 0.0,
        avg_gene_length_a=mean_length(genes_a),
        avg_gene_length_b=mean_length(genes_b),
        top_shared_genes=tuple(shared[:top_n]),
        unique_a_genes=tuple(unique_a[:top_n]),
        unique_b_genes=tuple(unique_b[:top_n]),
    )


# ---------------------------
# Dinucleotide bias
# ---------------------------
def compare_dinucleotide_bias(sequence_a, sequence_b, top_n=5):
    """
    Dinucleotide profile correlation and CpG observed/expected ratios

    Returns:
        dict with ``dinucleotide_correlation``, ``cpg_ratio_a``,
        ``cpg_ratio_b`` and ``most_different`` (dinuc, freq_a%, freq_b%, diff%)
    """
    counts_a = extract_kmer_frequencies(sequence_a, 2)
    counts_b = extract_kmer_frequencies(sequence_b, 2)
    total_a = sum(counts_a.values())
    total_b = sum(counts_b.values())

    freq_a = np.array([counts_a.get(d, 0) / (total_a or 1) for d in DINUCLEOTIDES])
    freq_b = np.array([counts_b.get(d, 0) / (total_b or 1) for d in DINUCLEOTIDES])
    if np.ptp(freq_a) > 0 and np.ptp(freq_b) > 0:
        correlation = float(stats.pearsonr(freq_a, freq_b)[0])
    else:
        correlation = 0.0

    def cpg_ratio(counts, total, sequence):
        gc = calculate_gc_content(sequence) / 100
        expected = (gc / 2) ** 2 * total
        return counts.get("CG", 0) / expected if expected > 0 else 0.0

    differences = sorted(
        (
            (d, float(freq_a[i] * 100), float(freq_b[i] * 100), float(abs(freq_a[i] - freq_b[i]) * 100))
            for i, d in enumerate(DINUCLEOTIDES)
        ),
        key=lambda item: item[3],
        reverse=True,
    )

    return {
        "dinucleotide_correlation": correlation,
        "cpg_ratio_a": cpg_ratio(counts_a, total_a, sequence_a),
        "cpg_ratio_b": cpg_ratio(counts_b, total_b, sequence_b),
        "most_different": differences[:top_n],
    }
