"""全局 Moran's I 测试"""

import numpy as np
import pytest

from lisa_moran.analysis import (
    DegenerateInputError,
    EmptyWeightsError,
    InsufficientUnitsError,
    NeighborGraph,
    SpatialConfigError,
    build_neighbor_graph,
    build_weights,
    global_moran,
)

from .conftest import make_grid


class TestCheckerboard:
    """完全负相关的 2×2 网格"""

    def test_statistic(self, checkerboard_weights, checkerboard_values):
        result = global_moran(checkerboard_values, checkerboard_weights)
        assert result.I == pytest.approx(-1.0)
        assert result.expected == pytest.approx(-1 / 3)
        assert result.n == 4
        assert result.S0 == pytest.approx(4.0)

    def test_randomization_variance(self, checkerboard_weights, checkerboard_values):
        result = global_moran(checkerboard_values, checkerboard_weights, assumption='randomization')
        assert result.variance == pytest.approx(2 / 9)
        assert result.z_score == pytest.approx(-np.sqrt(2.0))

    def test_normality_variance(self, checkerboard_weights, checkerboard_values):
        result = global_moran(checkerboard_values, checkerboard_weights, assumption='normality')
        assert result.variance == pytest.approx(0.2 - 1 / 9)
        assert result.assumption == 'normality'

    def test_repeatable(self, checkerboard_weights, checkerboard_values):
        first = global_moran(checkerboard_values, checkerboard_weights)
        second = global_moran(checkerboard_values, checkerboard_weights)
        assert first == second


class TestGradient:

    def test_positive_autocorrelation(self, gradient_frame):
        graph = build_neighbor_graph(gradient_frame.geometry.values, queen=False, snap=0.0)
        weights = build_weights(graph)
        result = global_moran(gradient_frame['jhum'].to_numpy(), weights)
        assert 0 < result.I <= 1
        assert result.z_score > 0
        assert result.p_value < 0.05

    def test_dense_formula(self, gradient_frame):
        graph = build_neighbor_graph(gradient_frame.geometry.values, queen=True, snap=0.0)
        weights = build_weights(graph)
        x = gradient_frame['crop'].to_numpy()
        W = weights.to_sparse().toarray()
        xc = x - x.mean()
        expected = len(x) / W.sum() * (xc @ W @ xc) / (xc @ xc)
        assert global_moran(x, weights).I == pytest.approx(expected)


class TestIslands:

    def test_island_counted_in_n(self):
        graph = NeighborGraph.from_dict({0: [1, 2], 1: [3], 2: [3], 3: [], 4: []})
        with pytest.warns(UserWarning):
            weights = build_weights(graph)
        x = np.array([1.0, 3.0, 2.0, 5.0, 4.0])

        result = global_moran(x, weights, assumption='normality')

        W = weights.to_sparse().toarray()
        xc = x - x.mean()
        assert result.n == 5
        assert result.S0 == pytest.approx(4.0)
        assert result.I == pytest.approx(5 / 4 * (xc @ W @ xc) / (xc @ xc))
        assert result.expected == pytest.approx(-0.25)

    def test_all_islands(self):
        graph = NeighborGraph.from_dict({i: [] for i in range(5)})
        with pytest.warns(UserWarning):
            weights = build_weights(graph)
        with pytest.raises(EmptyWeightsError):
            global_moran([1.0, 2.0, 3.0, 4.0, 5.0], weights)


class TestInvalidInput:

    def test_too_few_units(self):
        weights = build_weights(NeighborGraph.from_dict({0: [1], 1: []}))
        with pytest.raises(InsufficientUnitsError):
            global_moran([1.0, 2.0], weights)

    def test_randomization_needs_four_units(self):
        graph = build_neighbor_graph(make_grid(1, 3), queen=False, snap=0.0)
        weights = build_weights(graph)
        with pytest.raises(InsufficientUnitsError) as excinfo:
            global_moran([1.0, 2.0, 4.0], weights, assumption='randomization')
        assert excinfo.value.minimum == 4

    def test_constant_values(self, checkerboard_weights):
        with pytest.raises(DegenerateInputError):
            global_moran([2.0, 2.0, 2.0, 2.0], checkerboard_weights)

    def test_missing_values(self, checkerboard_weights):
        with pytest.raises(ValueError):
            global_moran([1.0, np.nan, 2.0, 3.0], checkerboard_weights)

    def test_unknown_assumption(self, checkerboard_weights, checkerboard_values):
        with pytest.raises(SpatialConfigError):
            global_moran(checkerboard_values, checkerboard_weights, assumption='exact')


class TestReport:

    def test_to_dict_and_report(self, checkerboard_weights, checkerboard_values):
        result = global_moran(checkerboard_values, checkerboard_weights)
        record = result.to_dict()
        assert record['moran_i'] == pytest.approx(-1.0)
        assert record['n'] == 4
        assert 'Moran I statistic' in result.report('checkerboard')

    def test_report_uses_alpha(self, gradient_frame):
        graph = build_neighbor_graph(gradient_frame.geometry.values, queen=True, snap=0.0)
        weights = build_weights(graph)
        result = global_moran(gradient_frame['crop'].to_numpy(), weights)

        strict = result.report(alpha=result.p_value / 2)
        loose = result.report(alpha=min(0.99, result.p_value * 2))
        assert '不显著' in strict
        assert '不显著' not in loose
