"""
测试共享夹具

使用 shapely 构造规则网格多边形，不依赖真实 shapefile。
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest
import geopandas as gpd
from shapely.geometry import box

from lisa_moran.analysis import NeighborGraph, build_weights


def make_grid(nrows: int, ncols: int, size: float = 1.0):
    """按行优先顺序生成 nrows × ncols 的正方形网格"""
    return [
        box(c * size, r * size, (c + 1) * size, (r + 1) * size)
        for r in range(nrows)
        for c in range(ncols)
    ]


@pytest.fixture
def grid_3x3():
    return make_grid(3, 3)


@pytest.fixture
def checkerboard_weights():
    """2×2 网格 rook 邻接（4 单元环），行标准化"""
    graph = NeighborGraph.from_dict({0: [1, 2], 1: [0, 3], 2: [0, 3], 3: [1, 2]})
    return build_weights(graph, style='W')


@pytest.fixture
def checkerboard_values():
    return np.array([10.0, -10.0, -10.0, 10.0])


@pytest.fixture
def gradient_frame():
    """5×5 网格，取值为行号 + 列号（正空间自相关）"""
    n = 5
    geoms = make_grid(n, n)
    values = [float(r + c) for r in range(n) for c in range(n)]
    return gpd.GeoDataFrame(
        {
            'unit': [f'U{i:02d}' for i in range(n * n)],
            'jhum': values,
            'crop': [float((r * 7 + c * 3) % 5) for r in range(n) for c in range(n)],
        },
        geometry=geoms
    )
