"""
PhageCompare Rank Correlation Module
Spearman, Kendall, Pearson and Hoeffding's D over paired frequency profiles

Reference:
- Hoeffding (1948) "A non-parametric test of independence"

Version: 1.0.0
License: MIT
"""

import numpy as np
from scipy import stats

from .errors import InvalidParameter
from .models import RankCorrelationResult


def _paired(x, y):
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise InvalidParameter("Paired samples must have the same length")
    return x, y


def _degenerate(x, y):
    return x.size < 3 or np.ptp(x) == 0 or np.ptp(y) == 0


def compute_ranks(values):
    """1-based ranks with ties sharing their average rank"""
    return stats.rankdata(values, method="average")


def spearman_rho(x, y):
    """(rho, p_value); (0.0, 1.0) for fewer than 3 points or a constant sample"""
    x, y = _paired(x, y)
    if _degenerate(x, y):
        return 0.0, 1.0
    result = stats.spearmanr(x, y)
    return float(result[0]), float(result[1])


def kendall_tau(x, y):
    """(tau_b, p_value)"""
    x, y = _paired(x, y)
    if _degenerate(x, y):
        return 0.0, 1.0
    result = stats.kendalltau(x, y)
    return float(result[0]), float(result[1])


def pearson_correlation(x, y):
    x, y = _paired(x, y)
    if _degenerate(x, y):
        return 0.0
    return float(stats.pearsonr(x, y)[0])


def hoeffding_d(x, y):
    """
    Hoeffding's D dependence statistic (-0.5 to 1; 0 = independent, 1 = perfect dependence)

    Detects non-monotonic dependence that Spearman and Kendall miss.
    Returns 0.0 for fewer than 5 paired observations.
    """
    x, y = _paired(x, y)
    n = x.size
    if n < 5:
        return 0.0

    r = compute_ranks(x)
    s = compute_ranks(y)

    r_less = r[None, :] < r[:, None]
    s_less = s[None, :] < s[:, None]
    r_eq = r[None, :] == r[:, None]
    s_eq = s[None, :] == s[:, None]
    np.fill_diagonal(r_eq, False)
    np.fill_diagonal(s_eq, False)

    q = (
        1.0
        + (r_less & s_less).sum(axis=1)
        + 0.25 * (r_eq & s_eq).sum(axis=1)
        + 0.5 * ((r_eq & s_less).sum(axis=1) + (r_less & s_eq).sum(axis=1))
    )

    d1 = ((q - 1) * (q - 2)).sum()
    d2 = ((r - 1) * (r - 2) * (s - 1) * (s - 2)).sum()
    d3 = ((r - 2) * (s - 2) * (q - 1)).sum()

    denom = n * (n - 1) * (n - 2) * (n - 3) * (n - 4)
    numerator = 30.0 * ((n - 2) * (n - 3) * d1 + d2 - 2 * (n - 2) * d3)
    return float(numerator / denom)


def interpret_correlation(rho):
    strength = abs(rho)
    if strength >= 0.9:
        label = "very strong"
    elif strength >= 0.7:
        label = "strong"
    elif strength >= 0.5:
        label = "moderate"
    elif strength >= 0.3:
        label = "weak"
    else:
        return "negligible correlation"
    direction = "positive" if rho > 0 else "negative"
    return f"{label} {direction} correlation"


def analyze_rank_correlation(x, y):
    x, y = _paired(x, y)
    rho, rho_p = spearman_rho(x, y)
    tau, tau_p = kendall_tau(x, y)
    return RankCorrelationResult(
        spearman_rho=rho,
        spearman_p_value=rho_p,
        kendall_tau=tau,
        kendall_p_value=tau_p,
        pearson_r=pearson_correlation(x, y),
        hoeffding_d=hoeffding_d(x, y),
        interpretation=interpret_correlation(rho),
        n=int(x.size),
    )


def compare_frequency_distributions(freqs_a, freqs_b):
    """Rank correlation of two count mappings aligned over the union of their keys"""
    keys = sorted(set(freqs_a) | set(freqs_b))
    x = [freqs_a.get(key, 0) for key in keys]
    y = [freqs_b.get(key, 0) for key in keys]
    return analyze_rank_correlation(x, y)
