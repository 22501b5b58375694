"""
PhageCompare - Phage genome comparison and horizontal-transfer provenance

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .cache import SignatureCache
from .cancel import CancelToken
from .config import CacheConfig, ComparisonConfig, HGTOptions, SyntenyOptions
from .engine import compare_genomes, quick_compare
from .errors import (
    Cancelled,
    IncompatibleSignatures,
    InsufficientData,
    InvalidParameter,
    PhageCompareError,
    Unavailable,
)
from .hgt import HGTTracer, analyze_hgt_provenance
from .minhash import MinHashSignature, SketchEngine, minhash_jaccard
from .synteny import SyntenyAligner, align_synteny

__all__ = [
    "SignatureCache",
    "CancelToken",
    "CacheConfig",
    "ComparisonConfig",
    "HGTOptions",
    "SyntenyOptions",
    "compare_genomes",
    "quick_compare",
    "Cancelled",
    "IncompatibleSignatures",
    "InsufficientData",
    "InvalidParameter",
    "PhageCompareError",
    "Unavailable",
    "HGTTracer",
    "analyze_hgt_provenance",
    "MinHashSignature",
    "SketchEngine",
    "minhash_jaccard",
    "SyntenyAligner",
    "align_synteny",
]
