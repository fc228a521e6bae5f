"""空间权重矩阵测试"""

import numpy as np
import pytest

from lisa_moran.analysis import (
    IslandError,
    NeighborGraph,
    SpatialConfigError,
    WeightsMatrix,
    build_neighbor_graph,
    build_weights,
)

from .conftest import make_grid


@pytest.fixture
def graph_with_island():
    return NeighborGraph.from_dict({'a': ['b', 'c'], 'b': ['c'], 'c': [], 'd': []})


class TestRowStandardized:
    """行标准化权重"""

    def test_row_sums_equal_one(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3, queen=True)
        weights = build_weights(graph, style='W')
        for total in weights.row_sums().values():
            assert abs(total - 1.0) < 1e-9

    def test_equal_weights_per_neighbor(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3, queen=False)
        weights = build_weights(graph)
        assert weights.row(4) == {1: 0.25, 3: 0.25, 5: 0.25, 7: 0.25}
        assert weights.row(0) == {1: 0.5, 3: 0.5}

    def test_sparse_matches_mapping(self, checkerboard_weights):
        W = checkerboard_weights.to_sparse().toarray()
        assert W.shape == (4, 4)
        assert W[0, 1] == 0.5
        assert W[0, 3] == 0.0
        assert np.allclose(W.sum(axis=1), 1.0)

    def test_spatial_lag(self, checkerboard_weights):
        lag = checkerboard_weights.spatial_lag([1.0, 2.0, 3.0, 4.0])
        np.testing.assert_allclose(lag, [2.5, 2.5, 2.5, 2.5])

    def test_spatial_lag_from_mapping(self, checkerboard_weights):
        lag = checkerboard_weights.spatial_lag({0: 1.0, 1: 2.0, 2: 3.0, 3: 4.0})
        np.testing.assert_allclose(lag, [2.5, 2.5, 2.5, 2.5])

    def test_spatial_lag_length_checked(self, checkerboard_weights):
        with pytest.raises(ValueError):
            checkerboard_weights.spatial_lag([1.0, 2.0])

    def test_constants_on_cycle(self, checkerboard_weights):
        assert checkerboard_weights.S0 == pytest.approx(4.0)
        assert checkerboard_weights.S1 == pytest.approx(4.0)
        assert checkerboard_weights.S2 == pytest.approx(16.0)


class TestBinary:
    """二值权重"""

    def test_weights_are_one(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3, queen=True)
        weights = build_weights(graph, style='B')
        assert set(weights.row(4).values()) == {1.0}
        assert weights.row_sums()[4] == 8.0
        assert weights.S0 == pytest.approx(graph.n_links)

    def test_unknown_style(self, checkerboard_weights):
        graph = NeighborGraph.from_dict({0: [1], 1: []})
        with pytest.raises(SpatialConfigError):
            build_weights(graph, style='S')


class TestZeroPolicy:
    """孤立单元处理"""

    def test_fail_on_island(self, graph_with_island):
        with pytest.raises(IslandError) as excinfo:
            build_weights(graph_with_island, zero_policy=False)
        assert excinfo.value.unit_ids == ['d']

    def test_island_tolerated(self, graph_with_island):
        with pytest.warns(UserWarning):
            weights = build_weights(graph_with_island, zero_policy=True)
        assert weights.islands == ['d']
        assert weights.row('d') == {}
        assert weights.row_sums()['d'] == 0.0

        lag = weights.spatial_lag([1.0, 2.0, 3.0, 100.0])
        assert lag[3] == 0.0
        # 孤立单元的取值不进入其他单元的空间滞后
        assert lag[0] == pytest.approx(2.5)

    def test_no_warning_without_islands(self, recwarn):
        graph = build_neighbor_graph(make_grid(2, 2), queen=True)
        build_weights(graph)
        assert len(recwarn) == 0

    def test_unknown_unit_in_mapping(self):
        with pytest.raises(ValueError):
            WeightsMatrix(['a'], {'b': {'a': 1.0}})

    def test_unknown_neighbor_in_row(self):
        with pytest.raises(ValueError, match='未知邻居'):
            WeightsMatrix(['a', 'b'], {'a': {'b': 0.5, 'z': 0.5}, 'b': {'a': 1.0}})
