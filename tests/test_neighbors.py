"""邻接图构建测试"""

import pytest
from shapely.geometry import Polygon, box

from lisa_moran.analysis import GeometryDataError, NeighborGraph, build_neighbor_graph

from .conftest import make_grid


class TestContiguityRules:
    """queen / rook 规则"""

    def test_queen_counts_on_grid(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3, queen=True, snap=0.0)
        card = graph.cardinalities()
        assert card[4] == 8      # 中心
        assert card[0] == 3      # 角
        assert card[1] == 5      # 边

    def test_rook_counts_on_grid(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3, queen=False, snap=0.0)
        card = graph.cardinalities()
        assert card[4] == 4
        assert card[0] == 2
        assert card[1] == 3

    def test_corner_contact_only_for_queen(self):
        geoms = make_grid(2, 2)
        queen = build_neighbor_graph(geoms, queen=True, snap=0.0005)
        rook = build_neighbor_graph(geoms, queen=False, snap=0.0005)
        assert 3 in queen.neighbors_of(0)
        assert 3 not in rook.neighbors_of(0)
        assert set(rook.neighbors_of(0)) == {1, 2}

    def test_rook_is_subset_of_queen(self, grid_3x3):
        queen = build_neighbor_graph(grid_3x3, queen=True, snap=0.0005)
        rook = build_neighbor_graph(grid_3x3, queen=False, snap=0.0005)
        for uid in rook.unit_ids:
            assert set(rook.neighbors_of(uid)) <= set(queen.neighbors_of(uid))


class TestSnapTolerance:
    """边界间隙容差"""

    def test_small_gap_bridged_by_snap(self):
        geoms = [box(0, 0, 1, 1), box(1.0003, 0, 2, 1)]
        for queen in (True, False):
            graph = build_neighbor_graph(geoms, queen=queen, snap=0.0005)
            assert graph.neighbors_of(0) == (1,)

    def test_gap_without_snap(self):
        geoms = [box(0, 0, 1, 1), box(1.0003, 0, 2, 1)]
        graph = build_neighbor_graph(geoms, queen=True, snap=0.0)
        assert graph.islands() == [0, 1]

    def test_gap_wider_than_snap(self):
        geoms = [box(0, 0, 1, 1), box(1.01, 0, 2, 1)]
        graph = build_neighbor_graph(geoms, queen=True, snap=0.005)
        assert graph.n_links == 0

    def test_negative_snap_rejected(self, grid_3x3):
        with pytest.raises(ValueError):
            build_neighbor_graph(grid_3x3, snap=-0.1)


class TestGraphProperties:
    """对称性、自环和孤立单元"""

    def test_symmetric_without_self_loops(self, grid_3x3):
        for queen in (True, False):
            graph = build_neighbor_graph(grid_3x3, queen=queen)
            assert graph.is_symmetric()
            for uid in graph.unit_ids:
                assert uid not in graph.neighbors_of(uid)

    def test_isolated_polygon_is_island(self):
        geoms = make_grid(2, 2) + [box(10, 10, 11, 11)]
        graph = build_neighbor_graph(geoms, queen=True)
        assert graph.islands() == [4]
        assert len(graph) == 5
        assert graph.summary()['isolated_units'] == 1

    def test_custom_unit_ids_keep_order(self):
        geoms = make_grid(1, 3)
        graph = build_neighbor_graph(geoms, unit_ids=['c', 'a', 'b'], queen=False, snap=0.0)
        assert graph.unit_ids == ('c', 'a', 'b')
        assert set(graph.neighbors_of('a')) == {'c', 'b'}
        assert graph.neighbors_of('c') == ('a',)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            build_neighbor_graph(make_grid(1, 2), unit_ids=['x', 'x'])

    def test_empty_geometry_rejected(self):
        with pytest.raises(GeometryDataError):
            build_neighbor_graph([box(0, 0, 1, 1), Polygon()])


class TestFromDict:
    """由映射构建邻接图"""

    def test_links_are_symmetrized(self):
        graph = NeighborGraph.from_dict({'a': ['b'], 'b': [], 'c': []})
        assert graph.neighbors_of('b') == ('a',)
        assert graph.islands() == ['c']
        assert graph.n_links == 2

    def test_self_loop_dropped(self):
        graph = NeighborGraph.from_dict({'a': ['a', 'b'], 'b': []})
        assert graph.neighbors_of('a') == ('b',)

    def test_unknown_neighbor_rejected(self):
        with pytest.raises(ValueError):
            NeighborGraph.from_dict({'a': ['z']})

    def test_subset_drops_outside_links(self):
        graph = NeighborGraph.from_dict({0: [1, 2], 1: [2], 2: []})
        sub = graph.subset([0, 1])
        assert sub.unit_ids == (0, 1)
        assert sub.neighbors_of(0) == (1,)


class TestRookCornerContact:
    """小夹角角点接触与部分共享边"""

    @pytest.fixture
    def wedges(self):
        # 仅在 (0, 0) 处接触，两条边夹角很小
        a = Polygon([(0, 0), (1, 0.004), (1, 0.1)])
        b = Polygon([(0, 0), (1, -0.004), (1, -0.1)])
        return [a, b]

    def test_shallow_wedge_not_rook(self, wedges):
        graph = build_neighbor_graph(wedges, queen=False, snap=0.0005)
        assert graph.neighbors_of(0) == ()
        assert graph.neighbors_of(1) == ()

    def test_shallow_wedge_is_queen(self, wedges):
        graph = build_neighbor_graph(wedges, queen=True, snap=0.0005)
        assert graph.neighbors_of(0) == (1,)

    def test_shallow_wedge_without_snap(self, wedges):
        graph = build_neighbor_graph(wedges, queen=False, snap=0.0)
        assert graph.n_links == 0

    def test_offset_shared_edge_is_rook(self):
        geoms = [box(0, 0, 1, 1), box(1, 0.5, 2, 1.5)]
        graph = build_neighbor_graph(geoms, queen=False, snap=0.0005)
        assert graph.neighbors_of(0) == (1,)

    def test_short_edge_inside_long_edge(self):
        geoms = [box(0, 0, 1, 10), box(1, 4, 2, 5)]
        graph = build_neighbor_graph(geoms, queen=False, snap=0.0005)
        assert graph.neighbors_of(1) == (0,)
