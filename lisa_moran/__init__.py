"""
LISA / Moran's I 空间自相关分析

对多边形级调查数据（NSS 第 77 轮游耕 / 非游耕种植比例）计算局部空间关联指标（LISA）
和全局 Moran's I，并将每个单元划分为 High-High / Low-Low / High-Low / Low-High /
Not Significant 五类。

核心模块:
    - analysis: 邻接图、空间权重、局部/全局 Moran's I、LISA 分类
    - utils: 配置、矢量数据 I/O、可视化
    - pipeline: 按变量独立执行的通用分析流程

工作流:
    1. 数据准备: 使用 utils.read_polygons 读取并校验多边形
    2. 邻接图: 使用 analysis.build_neighbor_graph（queen / rook，snap 容差）
    3. 空间权重: 使用 analysis.build_weights（行标准化，zero policy）
    4. 统计量: 使用 analysis.local_moran 和 analysis.global_moran
    5. 分类: 使用 analysis.classify_lisa_array

快速开始:
    >>> from lisa_moran import run_all, PRESETS
    >>> from lisa_moran.utils import read_polygons

    >>> gdf = read_polygons('NSS_jnj.shp')
    >>> preset = PRESETS['region']
    >>> results = run_all(gdf, preset.variables, preset.config)
    >>> results['jhum'].moran.I

参考文献:
    Anselin, L. (1995). Local Indicators of Spatial Association - LISA.
    Geographical Analysis, 27(2), 93-115.
"""

__version__ = '0.1.0'

from . import analysis
from . import utils

from .analysis import (
    ClusterLabel,
    NeighborGraph,
    WeightsMatrix,
    build_neighbor_graph,
    build_weights,
    classify_lisa,
    global_moran,
    local_moran,
)
from .pipeline import LisaResult, VariableSubset, merge_results, prepare_variable, run_all, run_lisa
from .utils import PRESETS, AnalysisVariable, LisaConfig

__all__ = [
    '__version__',
    # 模块
    'analysis',
    'utils',
    # 核心函数
    'ClusterLabel',
    'NeighborGraph',
    'WeightsMatrix',
    'build_neighbor_graph',
    'build_weights',
    'classify_lisa',
    'global_moran',
    'local_moran',
    # 流程
    'LisaResult',
    'VariableSubset',
    'merge_results',
    'prepare_variable',
    'run_all',
    'run_lisa',
    # 配置
    'PRESETS',
    'AnalysisVariable',
    'LisaConfig',
]
