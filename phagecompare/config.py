"""
PhageCompare Configuration
Default parameters and option sets for the comparison engine

Version: 1.0.0
License: MIT
"""

from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidParameter, require_fraction, require_positive

# HGT tracer defaults
DEFAULT_WINDOW = 2000
DEFAULT_STEP = 1000
DEFAULT_Z_THRESHOLD = 2.0
DEFAULT_MIN_VALID_RATIO = 0.5
DEFAULT_EXACT_K = 15
MAX_DONORS = 5

# MinHash defaults (k=16 keeps specificity without losing matches to point mutations)
MINHASH_K = 16
MINHASH_NUM_HASHES = 128

# Donor confidence cut-offs on (estimated) Jaccard
HIGH_CONFIDENCE = 0.3
MEDIUM_CONFIDENCE = 0.15

# Signature cache defaults
CACHE_MAX_ENTRIES = 500
CACHE_MAX_BYTES = 50 * 1024 * 1024

# Synteny
SYNTENY_MATCH_THRESHOLD = 0.8
TRACEBACK_TOLERANCE = 1e-3

# ANI confidence floor (shared k-mers)
ANI_MIN_SHARED_KMERS = 100

# Genes whose name/product contains one of these are flagged as HGT hallmarks
HALLMARK_KEYWORDS = (
    "integrase",
    "transposase",
    "recombinase",
    "lysogeny",
    "tail fiber",
    "tail-spike",
    "tail spike",
    "trna",
    "capsid",
    "portal",
    "terminase",
    "restriction",
    "methyltransferase",
)


@dataclass(frozen=True)
class HGTOptions:
    """Parameters for the HGT tracer; every field has a documented default."""
    window: int = DEFAULT_WINDOW
    step: int = DEFAULT_STEP
    z_threshold: float = DEFAULT_Z_THRESHOLD
    min_valid_ratio: float = DEFAULT_MIN_VALID_RATIO
    k: int = MINHASH_K
    num_hashes: int = MINHASH_NUM_HASHES
    exact_k: int = DEFAULT_EXACT_K
    use_minhash: bool = True
    refine_top_n: int = 0
    max_donors: int = MAX_DONORS

    def __post_init__(self):
        require_positive("window", self.window)
        require_positive("step", self.step)
        require_positive("k", self.k)
        require_positive("num_hashes", self.num_hashes)
        require_positive("exact_k", self.exact_k)
        require_positive("max_donors", self.max_donors)
        require_fraction("min_valid_ratio", self.min_valid_ratio)
        if self.z_threshold < 0:
            raise InvalidParameter(f"z_threshold must be non-negative, got {self.z_threshold!r}")
        if self.refine_top_n < 0:
            raise InvalidParameter(f"refine_top_n must be non-negative, got {self.refine_top_n!r}")

    @classmethod
    def from_dict(cls, options):
        """Accept the external camelCase option names as well as snake_case"""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        aliases = {
            "zThreshold": "z_threshold",
            "minValidRatio": "min_valid_ratio",
            "numHashes": "num_hashes",
            "exactK": "exact_k",
            "useMinhash": "use_minhash",
            "refineTopN": "refine_top_n",
            "maxDonors": "max_donors",
        }
        kwargs = {aliases.get(key, key): value for key, value in options.items() if value is not None}
        unknown = sorted(set(kwargs) - set(cls.__dataclass_fields__))
        if unknown:
            raise InvalidParameter(f"Unknown HGT option(s): {', '.join(unknown)}")
        return cls(**kwargs)


@dataclass(frozen=True)
class SyntenyOptions:
    match_threshold: float = SYNTENY_MATCH_THRESHOLD

    def __post_init__(self):
        if not 0.0 < self.match_threshold <= 1.0:
            raise InvalidParameter(f"match_threshold must be within (0, 1], got {self.match_threshold!r}")


@dataclass(frozen=True)
class CacheConfig:
    max_entries: int = CACHE_MAX_ENTRIES
    max_bytes: int = CACHE_MAX_BYTES

    def __post_init__(self):
        require_positive("max_entries", self.max_entries)
        require_positive("max_bytes", self.max_bytes)


@dataclass(frozen=True)
class ComparisonConfig:
    kmer_sizes: Tuple[int, ...] = (3, 5, 7, 11)
    max_edit_distance_length: int = 10000
    edit_distance_window_size: int = 1000
    edit_distance_window_count: int = 20
    information_k: int = 5
    include_gene_comparison: bool = True
    include_codon_usage: bool = True

    def __post_init__(self):
        if not self.kmer_sizes:
            raise InvalidParameter("kmer_sizes must not be empty")
        for k in self.kmer_sizes:
            require_positive("kmer size", k)
        require_positive("max_edit_distance_length", self.max_edit_distance_length)
        require_positive("edit_distance_window_size", self.edit_distance_window_size)
        require_positive("edit_distance_window_count", self.edit_distance_window_count)
        require_positive("information_k", self.information_k)
