"""
空间自相关分析模块

提供邻接图、空间权重、局部/全局 Moran's I 和 LISA 聚类分类。

核心组件:
    - neighbors: 由多边形几何构建邻接图（queen / rook，snap 容差）
    - weights: 空间权重矩阵（行标准化，zero policy）
    - local_moran: 局部 Moran's I（解析或条件置换推断）
    - global_moran: 全局 Moran's I 检验
    - classification: LISA 聚类类型和 p 值分级

数据流:
    几何 -> 邻接图 -> 权重 -> (局部统计, 全局统计) -> 聚类分类

参考文献:
    Anselin, L. (1995). Local Indicators of Spatial Association - LISA.
    Geographical Analysis, 27(2), 93-115.
"""

# 常量
from .constants import (
    CLUSTER_LABELS,
    DEFAULT_ALPHA,
    DEFAULT_PERMUTATIONS,
    DEFAULT_SNAP,
    PVALUE_CLASSES,
    ClusterLabel,
)

# 异常
from .errors import (
    DegenerateInputError,
    EmptyWeightsError,
    GeometryDataError,
    InsufficientUnitsError,
    IslandError,
    SpatialConfigError,
    VariableDataError,
)

# 空间单元
from .units import SpatialUnit, defined_units, units_from_frame

# 邻接与权重
from .neighbors import NeighborGraph, build_neighbor_graph
from .weights import WeightsMatrix, build_weights

# 统计量
from .local_moran import LocalMoranResult, local_moran, moran_scatter, standardize
from .global_moran import GlobalMoranResult, global_moran

# 分类
from .classification import classify_lisa, classify_lisa_array, classify_pvalues

__all__ = [
    # 常量
    'CLUSTER_LABELS',
    'DEFAULT_ALPHA',
    'DEFAULT_PERMUTATIONS',
    'DEFAULT_SNAP',
    'PVALUE_CLASSES',
    'ClusterLabel',
    # 异常
    'DegenerateInputError',
    'EmptyWeightsError',
    'GeometryDataError',
    'InsufficientUnitsError',
    'IslandError',
    'SpatialConfigError',
    'VariableDataError',
    # 空间单元
    'SpatialUnit',
    'defined_units',
    'units_from_frame',
    # 邻接与权重
    'NeighborGraph',
    'build_neighbor_graph',
    'WeightsMatrix',
    'build_weights',
    # 统计量
    'LocalMoranResult',
    'local_moran',
    'moran_scatter',
    'standardize',
    'GlobalMoranResult',
    'global_moran',
    # 分类
    'classify_lisa',
    'classify_lisa_array',
    'classify_pvalues',
]
