"""
分析配置

集中管理邻接、权重、显著性等参数，以及 NSS 第 77 轮数据的变量映射。

两套参考配置:
    REGION_CONFIG: NSS 区域级数据（rook 邻接，snap=0.0005，α=0.05）
    STATE_CONFIG:  邦级数据（queen 邻接，snap=0.005，α=0.01）
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from ..analysis.constants import (
    DEFAULT_ALPHA,
    DEFAULT_PERMUTATIONS,
    DEFAULT_SNAP,
    GLOBAL_ASSUMPTIONS,
    LOCAL_ASSUMPTIONS,
    SIGNIFICANCE_METHODS,
    WEIGHT_STYLES,
)
from ..analysis.errors import SpatialConfigError


@dataclass(frozen=True)
class LisaConfig:
    """LISA / Moran's I 分析参数"""

    queen: bool = True                    # True=queen 邻接, False=rook 邻接
    snap: float = DEFAULT_SNAP            # 边界捕捉容差（坐标单位）
    style: str = 'W'                      # 权重样式
    zero_policy: bool = True              # 是否容忍孤立单元
    alpha: float = DEFAULT_ALPHA          # 局部显著性水平
    method: str = 'analytic'              # 'analytic' 或 'permutation'
    permutations: int = DEFAULT_PERMUTATIONS
    seed: Optional[int] = None
    local_assumption: str = 'conditional'
    global_assumption: str = 'randomization'

    def validate(self) -> 'LisaConfig':
        """检查参数合法性，返回自身便于链式调用"""
        if self.snap < 0:
            raise SpatialConfigError(f"snap 容差不能为负数: {self.snap}")
        if self.style not in WEIGHT_STYLES:
            raise SpatialConfigError(f"不支持的权重样式: {self.style!r}，可选: {WEIGHT_STYLES}")
        if not 0 < self.alpha < 1:
            raise SpatialConfigError(f"显著性水平必须在 (0, 1) 之间，当前值: {self.alpha}")
        if self.method not in SIGNIFICANCE_METHODS:
            raise SpatialConfigError(f"不支持的显著性方法: {self.method!r}，可选: {SIGNIFICANCE_METHODS}")
        if self.method == 'permutation' and self.permutations < 1:
            raise SpatialConfigError(f"置换次数必须为正整数: {self.permutations}")
        if self.local_assumption not in LOCAL_ASSUMPTIONS:
            raise SpatialConfigError(
                f"不支持的局部方差假设: {self.local_assumption!r}，可选: {LOCAL_ASSUMPTIONS}"
            )
        if self.global_assumption not in GLOBAL_ASSUMPTIONS:
            raise SpatialConfigError(
                f"不支持的全局方差假设: {self.global_assumption!r}，可选: {GLOBAL_ASSUMPTIONS}"
            )
        return self

    def with_options(self, **changes) -> 'LisaConfig':
        """返回修改了部分参数的新配置（None 值忽略）"""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


@dataclass(frozen=True)
class AnalysisVariable:
    """分析变量: 列名和输出列后缀"""

    key: str       # 输出列后缀，如 'jhum'
    column: str    # 输入列名
    label: str = ''

    @property
    def display_name(self) -> str:
        return self.label or self.column


@dataclass(frozen=True)
class Preset:
    config: LisaConfig
    variables: List[AnalysisVariable] = field(default_factory=list)


REGION_CONFIG = LisaConfig(queen=False, snap=0.0005, alpha=0.05)
STATE_CONFIG = LisaConfig(queen=True, snap=0.005, alpha=0.01)

PRESETS: Dict[str, Preset] = {
    'region': Preset(
        config=REGION_CONFIG,
        variables=[
            AnalysisVariable('jhum', 'jhum_pc_jh', 'Jhum Cultivation'),
            AnalysisVariable('crop', 'pc_crop_no', 'Non-Jhum Crop'),
        ]
    ),
    'state': Preset(
        config=STATE_CONFIG,
        variables=[
            AnalysisVariable('jhum', 'pc_jhum', 'Jhum Cultivation'),
            AnalysisVariable('crop', 'pc_crop', 'Non-Jhum Crop'),
        ]
    ),
}


def parse_variable(text: str) -> AnalysisVariable:
    """
    解析命令行变量参数

    格式: 'column' 或 'key=column'，如 'jhum=jhum_pc_jh'
    """
    if '=' in text:
        key, column = text.split('=', 1)
        key, column = key.strip(), column.strip()
    else:
        key = column = text.strip()
    if not key or not column:
        raise ValueError(f"无效的变量参数: {text!r}")
    return AnalysisVariable(key=key, column=column)
