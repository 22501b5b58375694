import numpy as np
import pytest

from phagecompare.errors import InvalidParameter
from phagecompare.rank_correlation import (
    analyze_rank_correlation,
    compare_frequency_distributions,
    compute_ranks,
    hoeffding_d,
    interpret_correlation,
    kendall_tau,
    pearson_correlation,
    spearman_rho,
)


class TestRanks:
    def test_ties_share_average_rank(self):
        assert compute_ranks([10, 20, 20, 30]).tolist() == [1.0, 2.5, 2.5, 4.0]


class TestMonotonic:
    def test_perfect_positive(self):
        x = [1, 2, 3, 4, 5, 6]
        rho, p = spearman_rho(x, [v ** 2 for v in x])
        assert rho == pytest.approx(1.0)
        assert p < 0.01
        assert kendall_tau(x, [v ** 3 for v in x])[0] == pytest.approx(1.0)

    def test_perfect_negative(self):
        x = [1, 2, 3, 4, 5]
        assert spearman_rho(x, x[::-1])[0] == pytest.approx(-1.0)
        assert pearson_correlation(x, x[::-1]) == pytest.approx(-1.0)

    @pytest.mark.parametrize("x, y", [
        ([1, 2], [2, 1]),
        ([3, 3, 3, 3], [1, 2, 3, 4]),
        ([], []),
    ])
    def test_degenerate_inputs(self, x, y):
        assert spearman_rho(x, y) == (0.0, 1.0)
        assert kendall_tau(x, y) == (0.0, 1.0)
        assert pearson_correlation(x, y) == 0.0

    def test_length_mismatch(self):
        with pytest.raises(InvalidParameter):
            spearman_rho([1, 2, 3], [1, 2])


class TestHoeffding:
    def test_perfect_dependence(self):
        x = np.arange(12, dtype=float)
        assert hoeffding_d(x, x) == pytest.approx(1.0)

    def test_too_few_points(self):
        assert hoeffding_d([1, 2, 3, 4], [1, 2, 3, 4]) == 0.0

    def test_detects_non_monotonic_dependence(self):
        # integer grid keeps x ** 2 exactly symmetric, so its ties are exact
        x = np.arange(-20, 21, dtype=float)
        y = x ** 2
        assert abs(spearman_rho(x, y)[0]) < 1e-9
        assert hoeffding_d(x, y) > 0.0


class TestInterpretation:
    @pytest.mark.parametrize("rho, expected", [
        (0.95, "very strong positive correlation"),
        (0.75, "strong positive correlation"),
        (-0.6, "moderate negative correlation"),
        (0.35, "weak positive correlation"),
        (0.1, "negligible correlation"),
        (-0.29, "negligible correlation"),
    ])
    def test_labels(self, rho, expected):
        assert interpret_correlation(rho) == expected


class TestAnalysis:
    def test_result_fields(self):
        x = [5, 1, 4, 2, 8, 7, 3]
        result = analyze_rank_correlation(x, x)
        assert result.n == 7
        assert result.spearman_rho == pytest.approx(1.0)
        assert result.pearson_r == pytest.approx(1.0)
        assert result.interpretation == "very strong positive correlation"

    def test_frequency_union(self):
        result = compare_frequency_distributions({"AAA": 1, "CCC": 2, "GGG": 3}, {"CCC": 2, "GGG": 3, "TTT": 4})
        assert result.n == 4
