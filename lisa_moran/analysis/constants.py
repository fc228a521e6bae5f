"""
LISA 分析常量定义

统一管理聚类标签、显著性分级和默认参数，避免代码重复。

参考文献:
    Anselin, L. (1995). Local Indicators of Spatial Association - LISA.
    Geographical Analysis, 27(2), 93-115.
"""

from enum import Enum
from typing import Dict, List, Tuple


# ============================================================================
# 默认参数
# ============================================================================

DEFAULT_SNAP: float = 0.0005
"""默认边界捕捉容差（坐标单位，经纬度约 50m）"""

DEFAULT_ALPHA: float = 0.05
"""默认显著性水平"""

DEFAULT_PERMUTATIONS: int = 999
"""条件置换检验默认置换次数"""

ROOK_CORNER_FACTOR: float = 3.0
"""rook 邻接判定: 共享边界长度须大于 ROOK_CORNER_FACTOR * snap（角点接触最多 2 * snap）"""

WEIGHT_STYLES: Tuple[str, ...] = ('W', 'B')
"""支持的权重样式: W=行标准化, B=二值"""

LOCAL_ASSUMPTIONS: Tuple[str, ...] = ('conditional', 'total')
"""局部 Moran's I 解析矩的随机化假设"""

GLOBAL_ASSUMPTIONS: Tuple[str, ...] = ('randomization', 'normality')
"""全局 Moran's I 方差假设"""

SIGNIFICANCE_METHODS: Tuple[str, ...] = ('analytic', 'permutation')
"""局部显著性推断方法"""


# ============================================================================
# LISA 聚类标签
# ============================================================================

class ClusterLabel(str, Enum):
    """LISA 聚类类型"""
    HIGH_HIGH = 'High-High'
    LOW_LOW = 'Low-Low'
    HIGH_LOW = 'High-Low'
    LOW_HIGH = 'Low-High'
    NOT_SIGNIFICANT = 'Not Significant'

    def __str__(self) -> str:
        return self.value


CLUSTER_LABELS: List[str] = [label.value for label in ClusterLabel]


# ============================================================================
# p 值显著性分级（左闭区间）
# ============================================================================

PVALUE_BREAKS: List[float] = [0.0, 0.01, 0.05, 0.10]
PVALUE_CLASSES: List[str] = ['p < 0.01', 'p < 0.05', 'p < 0.10', 'Not Significant']


# ============================================================================
# 配色
# ============================================================================

LISA_CLUSTER_PALETTE: Dict[str, str] = {
    'High-High': '#b2182b',
    'Low-Low': '#2166ac',
    'High-Low': '#ef8a62',
    'Low-High': '#67a9cf',
    'Not Significant': 'lightgrey',
}

# 游耕（jhum）用红色系，非游耕用蓝色系
PVALUE_PALETTE_RED: Dict[str, str] = {
    'p < 0.01': '#67001f',
    'p < 0.05': '#b2182b',
    'p < 0.10': '#ef8a62',
    'Not Significant': '#cccccc',
}

PVALUE_PALETTE_BLUE: Dict[str, str] = {
    'p < 0.01': '#053061',
    'p < 0.05': '#2166ac',
    'p < 0.10': '#67a9cf',
    'Not Significant': '#cccccc',
}
