"""
PhageCompare Comparison Engine
Runs every pairwise analysis on two genomes and summarises the result

Version: 1.0.0
License: MIT
"""

import logging
import time

from .biological import (
    analyze_biological_metrics,
    calculate_gc_content,
    compare_amino_acid_usage,
    compare_codon_usage,
    compare_gene_content,
    count_codon_usage,
)
from .config import ComparisonConfig
from .edit_distance import analyze_edit_distance, quick_similarity_estimate
from .information import analyze_information_theory
from .minhash import minhash_jaccard
from .models import ComparisonInsight, ComparisonSummary, GenomeComparisonResult, as_gene
from .rank_correlation import compare_frequency_distributions
from .similarity import multi_resolution_kmer_analysis

logger = logging.getLogger(__name__)

# Summary weights
WEIGHT_SEQUENCE = 0.40
WEIGHT_COMPOSITION = 0.25
WEIGHT_CODON = 0.20
WEIGHT_GENE = 0.15


def similarity_category(score):
    """Coarse category of an overall similarity percentage"""
    if score >= 99:
        return "identical"
    if score >= 90:
        return "highly_similar"
    if score >= 70:
        return "similar"
    if score >= 50:
        return "moderately_similar"
    if score >= 30:
        return "distantly_related"
    return "unrelated"


def format_similarity(score):
    """Human-readable label for a similarity percentage"""
    for threshold, label in (
        (99, "Nearly Identical"),
        (95, "Extremely Similar"),
        (90, "Highly Similar"),
        (80, "Very Similar"),
        (70, "Similar"),
        (60, "Moderately Similar"),
        (50, "Somewhat Similar"),
        (40, "Distantly Related"),
        (30, "Weakly Related"),
        (20, "Very Distant"),
    ):
        if score >= threshold:
            return label
    return "Unrelated"


def _genome_info(genome):
    if isinstance(genome, dict):
        return {key: str(value) for key, value in genome.items()}
    return {"name": str(genome)}


def _insights(kmer_ref, information, edit, biological, codon_usage, gene_content):
    insights = []

    ani = biological.ani
    significance = "low" if ani.low_confidence else "high"
    if ani.ani >= 95:
        insights.append(ComparisonInsight(
            "similarity", "ANI", f"Very high ANI ({ani.ani:.1f}%) - likely same species", ani.ani, significance))
    elif ani.ani < 70:
        insights.append(ComparisonInsight(
            "difference", "ANI", f"Low ANI ({ani.ani:.1f}%) - distantly related", ani.ani, significance))

    gc_diff = biological.gc_difference
    if gc_diff < 2:
        insights.append(ComparisonInsight(
            "similarity", "GC Content", f"Similar GC content (difference: {gc_diff:.1f}%)", gc_diff, "medium"))
    elif gc_diff > 10:
        insights.append(ComparisonInsight(
            "difference", "GC Content", f"Different GC content (difference: {gc_diff:.1f}%)", gc_diff, "high"))

    if biological.length_ratio < 0.5:
        insights.append(ComparisonInsight(
            "notable", "Genome Size",
            f"Very different genome sizes (ratio: {biological.length_ratio * 100:.0f}%)",
            biological.length_ratio, "high"))

    if kmer_ref is not None:
        high = max(kmer_ref.containment_a_in_b, kmer_ref.containment_b_in_a)
        low = min(kmer_ref.containment_a_in_b, kmer_ref.containment_b_in_a)
        if high > 0.8 and low < 0.5:
            insights.append(ComparisonInsight(
                "notable", "Containment",
                "Asymmetric containment - one genome may be a subset of the other", high, "high"))

    if information.normalized_mi > 0.5:
        insights.append(ComparisonInsight(
            "similarity", "Information",
            f"High mutual information (NMI: {information.normalized_mi * 100:.1f}%)",
            information.normalized_mi, "medium"))

    if codon_usage is not None and codon_usage.top_different_codons:
        top = codon_usage.top_different_codons[0]
        if top.difference > 1.0:
            insights.append(ComparisonInsight(
                "difference", "Codon Usage",
                f"Strong codon bias difference in {top.codon} ({top.amino_acid})",
                top.difference, "medium"))

    if gene_content is not None and gene_content.shared_gene_names > 5:
        insights.append(ComparisonInsight(
            "similarity", "Genes", f"Share {gene_content.shared_gene_names} named genes",
            gene_content.shared_gene_names, "medium"))

    if edit.levenshtein_similarity > 0.9:
        insights.append(ComparisonInsight(
            "similarity", "Edit Distance", "Very low edit distance - highly similar sequences",
            edit.levenshtein_similarity, "high"))

    return insights


def compute_summary(kmer_analysis, information, edit, biological, codon_usage, gene_content):
    """Weighted overall score: sequence 40%, composition 25%, codon 20%, gene 15%"""
    kmer_ref = next((a for a in kmer_analysis if a.k == 7), kmer_analysis[0] if kmer_analysis else None)

    sequence_similarity = kmer_ref.jaccard_index * 100 if kmer_ref else 0.0
    composition_similarity = kmer_ref.cosine_similarity * 100 if kmer_ref else 0.0
    codon_similarity = codon_usage.rscu_cosine_similarity * 100 if codon_usage else 0.0
    gene_similarity = gene_content.gene_name_jaccard * 100 if gene_content else 0.0

    overall = (
        sequence_similarity * WEIGHT_SEQUENCE
        + composition_similarity * WEIGHT_COMPOSITION
        + codon_similarity * WEIGHT_CODON
        + gene_similarity * WEIGHT_GENE
    )

    has_genes = gene_content is not None and gene_content.genes_a > 0 and gene_content.genes_b > 0
    long_enough = biological.length_a > 1000 and biological.length_b > 1000
    if has_genes and long_enough:
        confidence = "high"
    elif long_enough:
        confidence = "medium"
    else:
        confidence = "low"

    return ComparisonSummary(
        overall_similarity=overall,
        similarity_category=similarity_category(overall),
        confidence_level=confidence,
        sequence_similarity=sequence_similarity,
        composition_similarity=composition_similarity,
        codon_usage_similarity=codon_similarity,
        gene_content_similarity=gene_similarity,
        insights=tuple(_insights(kmer_ref, information, edit, biological, codon_usage, gene_content)),
    )


def compare_genomes(genome_a, genome_b, sequence_a, sequence_b, genes_a=(), genes_b=(),
                    config=None, codon_counts_a=None, codon_counts_b=None):
    """
    Comprehensive pairwise comparison of two genomes

    Args:
        genome_a: Identifier of genome A (name string or dict of id/name/accession)
        genome_b: Identifier of genome B
        sequence_a: Nucleotide sequence of A
        sequence_b: Nucleotide sequence of B
        genes_a: Gene records or dicts for A
        genes_b: Gene records or dicts for B
        config: ComparisonConfig
        codon_counts_a: Precomputed codon counts (counted in frame 0 when omitted)
        codon_counts_b: Precomputed codon counts for B

    Returns:
        GenomeComparisonResult
    """
    config = config or ComparisonConfig()
    started = time.time()
    genes_a = [as_gene(g) for g in genes_a]
    genes_b = [as_gene(g) for g in genes_b]

    logger.info(f"Comparing {len(sequence_a)} bp vs {len(sequence_b)} bp")
    kmer_analysis = multi_resolution_kmer_analysis(sequence_a, sequence_b, config.kmer_sizes)
    information = analyze_information_theory(sequence_a, sequence_b, config.information_k)
    edit = analyze_edit_distance(
        sequence_a,
        sequence_b,
        max_exact_length=config.max_edit_distance_length,
        window_size=config.edit_distance_window_size,
        window_count=config.edit_distance_window_count,
    )
    biological = analyze_biological_metrics(sequence_a, sequence_b)

    codon_usage = amino_acid_usage = rank_correlation = None
    if config.include_codon_usage:
        counts_a = codon_counts_a if codon_counts_a is not None else count_codon_usage(sequence_a)
        counts_b = codon_counts_b if codon_counts_b is not None else count_codon_usage(sequence_b)
        codon_usage = compare_codon_usage(counts_a, counts_b)
        amino_acid_usage = compare_amino_acid_usage(sequence_a, sequence_b)
        rank_correlation = compare_frequency_distributions(counts_a, counts_b)

    gene_content = None
    if config.include_gene_comparison:
        gene_content = compare_gene_content(genes_a, genes_b, len(sequence_a), len(sequence_b))

    summary = compute_summary(kmer_analysis, information, edit, biological, codon_usage, gene_content)
    elapsed_ms = (time.time() - started) * 1000
    logger.info(f"Overall similarity {summary.overall_similarity:.1f}% ({summary.similarity_category}), "
                f"{elapsed_ms:.0f} ms")

    return GenomeComparisonResult(
        genome_a=_genome_info(genome_a),
        genome_b=_genome_info(genome_b),
        computed_at=time.time(),
        compute_time_ms=elapsed_ms,
        summary=summary,
        kmer_analysis=kmer_analysis,
        information_theory=information,
        rank_correlation=rank_correlation,
        edit_distance=edit,
        biological=biological,
        codon_usage=codon_usage,
        amino_acid_usage=amino_acid_usage,
        gene_content=gene_content,
    )


def quick_compare(sequence_a, sequence_b, engine=None):
    """
    Cheap similarity for filtering and sorting large collections

    Returns:
        dict with ``similarity`` (sampled positional identity, 0-1),
        ``minhash_jaccard`` (only when a SketchEngine is given),
        ``gc_difference``, ``length_ratio`` and ``estimate_type``
    """
    max_len = max(len(sequence_a), len(sequence_b))
    return {
        "similarity": quick_similarity_estimate(sequence_a, sequence_b),
        "minhash_jaccard": minhash_jaccard(sequence_a, sequence_b, engine=engine) if engine else None,
        "gc_difference": abs(calculate_gc_content(sequence_a) - calculate_gc_content(sequence_b)),
        "length_ratio": min(len(sequence_a), len(sequence_b)) / max_len if max_len else 1.0,
        "estimate_type": "quick",
    }
