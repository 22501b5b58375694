"""
PhageCompare Data Model
Typed records exchanged between the engine and its callers

All result records are plain data: ``to_dict()`` turns them into JSON-ready
dictionaries for a UI or any structured transport.

Version: 1.0.0
License: MIT
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

from .cancel import STATUS_COMPLETE


# ---------------------------
# Genes
# ---------------------------
@dataclass(frozen=True)
class Gene:
    """One gene annotation with half-open ``[start, end)`` coordinates."""
    id: str
    start: int
    end: int
    strand: str = "+"
    name: Optional[str] = None
    product: Optional[str] = None
    locus_tag: Optional[str] = None

    @property
    def label(self):
        return (self.product or "").strip() or self.name or self.locus_tag or "unknown"

    def overlaps(self, start, end):
        return self.start < end and self.end > start

    @classmethod
    def from_dict(cls, data):
        """Build a Gene from the external shape (startPos/endPos/locusTag) or snake_case keys"""
        start = data.get("startPos", data.get("start"))
        end = data.get("endPos", data.get("end"))
        return cls(
            id=str(data.get("id", data.get("locusTag", data.get("locus_tag", "")))),
            start=int(start),
            end=int(end),
            strand=data.get("strand", "+") or "+",
            name=data.get("name"),
            product=data.get("product"),
            locus_tag=data.get("locusTag", data.get("locus_tag")),
        )

    def to_dict(self):
        return asdict(self)


def as_gene(item):
    return item if isinstance(item, Gene) else Gene.from_dict(item)


# ---------------------------
# HGT tracer records
# ---------------------------
@dataclass(frozen=True)
class WindowStat:
    start: int
    end: int
    gc_percent: float
    z_score: float


@dataclass(frozen=True)
class DonorCandidate:
    taxon: str
    similarity: float
    confidence: str
    evidence: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GenomicIsland:
    start: int
    end: int
    gc_percent: float
    z_score: float
    genes: Tuple[Gene, ...] = ()
    hallmarks: Tuple[str, ...] = ()
    donors: Tuple[DonorCandidate, ...] = ()
    amelioration: str = "unknown"

    @property
    def length(self):
        return self.end - self.start

    def to_dict(self):
        return {
            "start": self.start,
            "end": self.end,
            "gc_percent": self.gc_percent,
            "z_score": self.z_score,
            "genes": [g.to_dict() for g in self.genes],
            "hallmarks": list(self.hallmarks),
            "donors": [d.to_dict() for d in self.donors],
            "amelioration": self.amelioration,
        }


@dataclass(frozen=True)
class PassportStamp:
    island: GenomicIsland
    donor: Optional[DonorCandidate]
    donor_distribution: Tuple[DonorCandidate, ...]
    amelioration: str
    gc_delta: float
    hallmarks: Tuple[str, ...]
    anomaly_score: float = 0.0
    transfer_mechanism: str = "unknown"

    def to_dict(self):
        return {
            "island": self.island.to_dict(),
            "donor": self.donor.to_dict() if self.donor else None,
            "donor_distribution": [d.to_dict() for d in self.donor_distribution],
            "amelioration": self.amelioration,
            "gc_delta": self.gc_delta,
            "hallmarks": list(self.hallmarks),
            "anomaly_score": self.anomaly_score,
            "transfer_mechanism": self.transfer_mechanism,
        }


@dataclass(frozen=True)
class HGTAnalysis:
    genome_gc: float
    islands: Tuple[GenomicIsland, ...] = ()
    stamps: Tuple[PassportStamp, ...] = ()
    status: str = STATUS_COMPLETE

    def to_dict(self):
        return {
            "genome_gc": self.genome_gc,
            "islands": [i.to_dict() for i in self.islands],
            "stamps": [s.to_dict() for s in self.stamps],
            "status": self.status,
        }


# ---------------------------
# Synteny records
# ---------------------------
@dataclass(frozen=True)
class GeneToken:
    name: str
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class SyntenyBlock:
    start_a: int
    end_a: int
    start_b: int
    end_b: int
    score: float
    orientation: str = "forward"

    @property
    def length(self):
        return self.end_a - self.start_a + 1

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class SyntenyAnalysis:
    blocks: Tuple[SyntenyBlock, ...] = ()
    breakpoints: Tuple[int, ...] = ()
    global_score: float = 0.0
    dtw_distance: float = float("inf")
    status: str = STATUS_COMPLETE

    def to_dict(self):
        return {
            "blocks": [b.to_dict() for b in self.blocks],
            "breakpoints": list(self.breakpoints),
            "global_score": self.global_score,
            "dtw_distance": self.dtw_distance,
            "status": self.status,
        }


# ---------------------------
# Pairwise comparison records
# ---------------------------
@dataclass(frozen=True)
class KmerAnalysis:
    k: int
    unique_kmers_a: int
    unique_kmers_b: int
    shared_kmers: int
    jaccard_index: float
    containment_a_in_b: float
    containment_b_in_a: float
    cosine_similarity: float
    bray_curtis_dissimilarity: float


@dataclass(frozen=True)
class AniEstimate:
    ani: float
    containment: float
    shared_kmers: int
    k: int
    low_confidence: bool


@dataclass(frozen=True)
class EditDistanceMetrics:
    levenshtein_distance: int
    normalized_levenshtein: float
    levenshtein_similarity: float
    insertions: int
    deletions: int
    substitutions: int
    is_approximate: bool
    window_size: Optional[int] = None
    window_count: Optional[int] = None


@dataclass(frozen=True)
class InformationTheoryMetrics:
    entropy_a: float
    entropy_b: float
    joint_entropy: float
    mutual_information: float
    normalized_mi: float
    jensen_shannon_divergence: float
    kullback_leibler_a_to_b: float
    kullback_leibler_b_to_a: float
    relative_entropy: float


@dataclass(frozen=True)
class RankCorrelationResult:
    spearman_rho: float
    spearman_p_value: float
    kendall_tau: float
    kendall_p_value: float
    pearson_r: float
    hoeffding_d: float
    interpretation: str
    n: int


@dataclass(frozen=True)
class BiologicalMetrics:
    ani: AniEstimate
    gc_content_a: float
    gc_content_b: float
    gc_difference: float
    gc_ratio: float
    length_a: int
    length_b: int
    length_ratio: float
    length_difference: int


@dataclass(frozen=True)
class CodonDifference:
    codon: str
    amino_acid: str
    frequency_a: float
    frequency_b: float
    rscu_a: float
    rscu_b: float
    difference: float


@dataclass(frozen=True)
class CodonUsageComparison:
    rscu_distance_euclidean: float
    rscu_distance_manhattan: float
    rscu_cosine_similarity: float
    chi_square_statistic: float
    chi_square_p_value: float
    degrees_of_freedom: int
    cai_a: float
    cai_b: float
    cai_correlation: float
    top_different_codons: Tuple[CodonDifference, ...] = ()


@dataclass(frozen=True)
class AminoAcidComparison:
    euclidean_distance: float
    cosine_similarity: float
    correlation_coefficient: float
    hydrophobic_similarity: float
    polar_similarity: float
    charged_similarity: float
    top_different_aas: Tuple[Tuple[str, float, float, float], ...] = ()


@dataclass(frozen=True)
class GeneContentComparison:
    genes_a: int
    genes_b: int
    shared_gene_names: int
    unique_to_a: int
    unique_to_b: int
    gene_density_a: float
    gene_density_b: float
    gene_name_jaccard: float
    avg_gene_length_a: float
    avg_gene_length_b: float
    top_shared_genes: Tuple[str, ...] = ()
    unique_a_genes: Tuple[str, ...] = ()
    unique_b_genes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ComparisonInsight:
    type: str
    category: str
    message: str
    value: float
    significance: str


@dataclass(frozen=True)
class ComparisonSummary:
    overall_similarity: float
    similarity_category: str
    confidence_level: str
    sequence_similarity: float
    composition_similarity: float
    codon_usage_similarity: float
    gene_content_similarity: float
    insights: Tuple[ComparisonInsight, ...] = ()


@dataclass
class GenomeComparisonResult:
    genome_a: Dict[str, str]
    genome_b: Dict[str, str]
    computed_at: float
    compute_time_ms: float
    summary: ComparisonSummary
    kmer_analysis: List[KmerAnalysis] = field(default_factory=list)
    information_theory: Optional[InformationTheoryMetrics] = None
    rank_correlation: Optional[RankCorrelationResult] = None
    edit_distance: Optional[EditDistanceMetrics] = None
    biological: Optional[BiologicalMetrics] = None
    codon_usage: Optional[CodonUsageComparison] = None
    amino_acid_usage: Optional[AminoAcidComparison] = None
    gene_content: Optional[GeneContentComparison] = None

    def to_dict(self):
        return asdict(self)
