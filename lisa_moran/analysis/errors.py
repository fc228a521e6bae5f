"""
空间自相关分析异常定义

所有异常均继承自 ValueError，调用方可以统一捕获输入/配置错误。
"""

from typing import Iterable, List


class SpatialConfigError(ValueError):
    """空间权重或统计配置无效"""


class IslandError(SpatialConfigError):
    """zero_policy 关闭时存在孤立单元（无邻居）"""

    def __init__(self, unit_ids: Iterable):
        self.unit_ids: List = list(unit_ids)
        preview = ', '.join(str(u) for u in self.unit_ids[:20])
        if len(self.unit_ids) > 20:
            preview += ', ...'
        super().__init__(
            f"存在 {len(self.unit_ids)} 个孤立单元（无邻居），"
            f"zero_policy=False 时无法行标准化: {preview}"
        )


class InsufficientUnitsError(SpatialConfigError):
    """有效单元数不足"""

    def __init__(self, n: int, minimum: int = 3):
        self.n = n
        self.minimum = minimum
        super().__init__(f"有效单元数不足: n={n}，至少需要 {minimum} 个")


class EmptyWeightsError(SpatialConfigError):
    """权重矩阵为空（所有单元均无邻居）"""


class DegenerateInputError(ValueError):
    """输入退化（如所有单元取值相同，方差为 0）"""


class GeometryDataError(ValueError):
    """几何数据无效（空几何、自相交等）"""


class VariableDataError(ValueError):
    """变量取值无效（非空但无法解析为数值）"""

    def __init__(self, column: str, unit_ids: Iterable):
        self.column = column
        self.unit_ids: List = list(unit_ids)
        preview = ', '.join(str(u) for u in self.unit_ids[:20])
        if len(self.unit_ids) > 20:
            preview += ', ...'
        super().__init__(
            f"变量列 '{column}' 中有 {len(self.unit_ids)} 个非数值取值: {preview}"
        )
