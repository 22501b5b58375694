"""
PhageCompare Edit Distance Module
Levenshtein distance and related measures, with a windowed approximation
for sequences too long for an exact O(n*m) dynamic program

References:
- Levenshtein (1966) "Binary codes capable of correcting deletions, insertions, and reversals"
- Needleman & Wunsch (1970) "A general method applicable to the search for similarities"

Version: 1.0.0
License: MIT
"""

import logging
from collections import namedtuple

import numpy as np

from .errors import InvalidParameter, require_positive
from .kmers import normalize_sequence
from .models import EditDistanceMetrics

logger = logging.getLogger(__name__)

MAX_EXACT_LENGTH = 10000
MAX_TRACEBACK_LENGTH = 3000

EditDistanceResult = namedtuple(
    "EditDistanceResult", ["distance", "is_approximate", "window_size", "window_count"],
    defaults=(None, None),
)
EditOperations = namedtuple("EditOperations", ["distance", "insertions", "deletions", "substitutions"])


def _codes(s):
    return np.fromiter((ord(c) for c in s), dtype=np.int32, count=len(s))


def _levenshtein_rows(a, b):
    """Yield successive DP rows (over a) while consuming b one character at a time.

    Each row is computed with vector operations: substitutions and deletions
    come from the previous row, then the insertion chain is resolved with a
    running minimum of ``row[i] - i``.
    """
    m = len(a)
    idx = np.arange(m + 1, dtype=np.int64)
    arr_a = _codes(a)
    prev = idx.copy()
    yield prev
    for j, ch in enumerate(b, start=1):
        cost = (arr_a != ord(ch)).astype(np.int64)
        temp = np.empty(m + 1, dtype=np.int64)
        temp[0] = j
        np.minimum(prev[1:] + 1, prev[:-1] + cost, out=temp[1:])
        prev = np.minimum.accumulate(temp - idx) + idx
        yield prev


def _exact_levenshtein(a, b):
    if len(a) > len(b):
        a, b = b, a
    if not a:
        return len(b)
    row = None
    for row in _levenshtein_rows(a, b):
        pass
    return int(row[-1])


def levenshtein_distance(a, b, max_length=MAX_EXACT_LENGTH):
    """Exact edit distance, or a windowed estimate once either input exceeds max_length"""
    if max_length is not None and (len(a) > max_length or len(b) > max_length):
        return approximate_levenshtein(a, b)
    return EditDistanceResult(_exact_levenshtein(a, b), False)


def approximate_levenshtein(a, b, window_size=1000, num_windows=20):
    """
    Approximate Levenshtein distance for very long sequences

    Samples up to ``num_windows`` aligned windows, averages their exact
    distances, scales to the shorter length and adds the length difference.
    The result is an estimate, never an exact edit distance.
    """
    require_positive("window_size", window_size)
    require_positive("num_windows", num_windows)
    min_len = min(len(a), len(b))
    length_diff = abs(len(a) - len(b))

    effective_windows = min(num_windows, min_len // window_size)
    if effective_windows < 1:
        return EditDistanceResult(_exact_levenshtein(a, b), False, window_size, 1)

    step = (min_len - window_size) // max(effective_windows - 1, 1)
    total = 0
    for i in range(effective_windows):
        start = i * step
        total += _exact_levenshtein(a[start:start + window_size], b[start:start + window_size])

    avg_per_window = total / effective_windows
    estimate = round(avg_per_window * (min_len / window_size) + length_diff)
    logger.debug(f"Approximate Levenshtein over {effective_windows} windows of {window_size} bp")
    return EditDistanceResult(int(estimate), True, window_size, effective_windows)


def levenshtein_with_operations(a, b, max_length=MAX_TRACEBACK_LENGTH):
    """Edit distance with a traceback count of insertions, deletions and substitutions"""
    if len(a) > max_length or len(b) > max_length:
        approx = approximate_levenshtein(a, b)
        length_diff = abs(len(a) - len(b))
        # remaining distance is attributed to substitutions; the length
        # difference is unavoidable indels
        return EditOperations(
            distance=approx.distance,
            insertions=length_diff if len(a) < len(b) else 0,
            deletions=length_diff if len(a) > len(b) else 0,
            substitutions=max(0, approx.distance - length_diff),
        )

    m, n = len(a), len(b)
    # rows over a's prefix, one per character of b: dp[j][i]
    if m:
        dp = np.vstack([row.astype(np.int32) for row in _levenshtein_rows(a, b)])
    else:
        dp = np.arange(n + 1, dtype=np.int32)[:, None]

    insertions = deletions = substitutions = 0
    i, j = m, n
    while i > 0 or j > 0:
        here = dp[j, i]
        if i > 0 and j > 0 and a[i - 1] == b[j - 1] and here == dp[j - 1, i - 1]:
            i -= 1
            j -= 1
        elif i > 0 and j > 0 and here == dp[j - 1, i - 1] + 1:
            substitutions += 1
            i -= 1
            j -= 1
        elif j > 0 and here == dp[j - 1, i] + 1:
            insertions += 1
            j -= 1
        else:
            deletions += 1
            i -= 1

    return EditOperations(int(dp[n, m]), insertions, deletions, substitutions)


def normalized_levenshtein(a, b):
    """distance / max(len(a), len(b)); 0 = identical"""
    if not a and not b:
        return 0.0
    return levenshtein_distance(a, b).distance / max(len(a), len(b))


def levenshtein_similarity(a, b):
    return 1.0 - normalized_levenshtein(a, b)


def hamming_distance(a, b):
    if len(a) != len(b):
        raise InvalidParameter("Hamming distance requires equal-length strings")
    return sum(1 for x, y in zip(a, b) if x != y)


def percent_identity(a, b):
    """Positional identity, penalised by the length difference"""
    min_len = min(len(a), len(b))
    if min_len == 0:
        return 100.0 if len(a) == len(b) else 0.0
    matches = sum(1 for x, y in zip(normalize_sequence(a), normalize_sequence(b)) if x == y)
    return matches / max(len(a), len(b)) * 100.0


def longest_common_subsequence(a, b, max_length=MAX_EXACT_LENGTH):
    if max_length is not None and (len(a) > max_length or len(b) > max_length):
        return _approximate_lcs(a, b, 1000, 10)
    if not a or not b:
        return 0
    prev = [0] * (len(b) + 1)
    for ca in a:
        curr = [0] * (len(b) + 1)
        for j, cb in enumerate(b, start=1):
            curr[j] = prev[j - 1] + 1 if ca == cb else max(prev[j], curr[j - 1])
        prev = curr
    return prev[-1]


def _approximate_lcs(a, b, window_size, num_windows):
    min_len = min(len(a), len(b))
    step = min_len // num_windows
    total = 0
    for i in range(num_windows):
        start = i * step
        total += longest_common_subsequence(a[start:start + window_size], b[start:start + window_size], None)
    return round(total / num_windows * (min_len / window_size))


def lcs_similarity(a, b):
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return longest_common_subsequence(a, b) / max_len


def analyze_edit_distance(sequence_a, sequence_b, max_exact_length=MAX_EXACT_LENGTH,
                          window_size=1000, window_count=20):
    """Edit distance summary with an operation breakdown (estimated for long inputs)"""
    len_a, len_b = len(sequence_a), len(sequence_b)
    is_long = len_a > max_exact_length or len_b > max_exact_length

    if is_long:
        approx = approximate_levenshtein(sequence_a, sequence_b, window_size, window_count)
        length_diff = abs(len_a - len_b)
        est_subs = max(0, round((approx.distance - length_diff) * 0.6))
        est_indels = approx.distance - est_subs
        ops = EditOperations(
            distance=approx.distance,
            insertions=round(est_indels * (0.6 if len_a < len_b else 0.4)),
            deletions=round(est_indels * (0.6 if len_a > len_b else 0.4)),
            substitutions=est_subs,
        )
        is_approximate = approx.is_approximate
        win_size, win_count = approx.window_size, approx.window_count
    elif max(len_a, len_b) > MAX_TRACEBACK_LENGTH:
        # exact distance, but too large for a full traceback matrix
        distance = _exact_levenshtein(sequence_a, sequence_b)
        length_diff = abs(len_a - len_b)
        ops = EditOperations(
            distance=distance,
            insertions=length_diff if len_a < len_b else 0,
            deletions=length_diff if len_a > len_b else 0,
            substitutions=max(0, distance - length_diff),
        )
        is_approximate = False
        win_size = win_count = None
    else:
        ops = levenshtein_with_operations(sequence_a, sequence_b)
        is_approximate = False
        win_size = win_count = None

    max_len = max(len_a, len_b)
    normalized = ops.distance / max_len if max_len > 0 else 0.0
    return EditDistanceMetrics(
        levenshtein_distance=ops.distance,
        normalized_levenshtein=normalized,
        levenshtein_similarity=1.0 - normalized,
        insertions=ops.insertions,
        deletions=ops.deletions,
        substitutions=ops.substitutions,
        is_approximate=is_approximate,
        window_size=win_size,
        window_count=win_count,
    )


def quick_similarity_estimate(a, b, sample_size=1000, num_samples=10, seed=0):
    """Cheap positional identity from random aligned samples (reproducible via seed)"""
    if not a or not b:
        return 0.0
    len_ratio = min(len(a), len(b)) / max(len(a), len(b))
    if len_ratio < 0.5:
        return len_ratio * 0.5

    min_len = min(len(a), len(b))
    if min_len <= sample_size:
        return percent_identity(a, b) / 100.0

    rng = np.random.default_rng(seed)
    starts = rng.integers(0, min_len - sample_size, size=num_samples)
    matches = 0
    for start in starts:
        sample_a = normalize_sequence(a[start:start + sample_size])
        sample_b = normalize_sequence(b[start:start + sample_size])
        matches += sum(1 for x, y in zip(sample_a, sample_b) if x == y)
    return matches / (num_samples * sample_size) * len_ratio
