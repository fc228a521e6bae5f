"""
全局 Moran's I 计算模块

    I = (n / S0) · Σi Σj wij (xi - x̄)(xj - x̄) / Σi (xi - x̄)²

    E[I] = -1 / (n - 1)

方差:
    normality:
        Var[I] = (n²·S1 - n·S2 + 3·S0²) / (S0²·(n² - 1)) - E[I]²
    randomization:
        Var[I] = [n·((n² - 3n + 3)·S1 - n·S2 + 3·S0²) - b2·((n² - n)·S1 - 2n·S2 + 6·S0²)]
                 / ((n-1)(n-2)(n-3)·S0²) - E[I]²

    z = (I - E[I]) / sqrt(Var[I])，p 为标准正态双尾 p 值。

孤立单元（zero_policy=True）不参与交叉项，但计入 n。

参考文献:
    Cliff, A. D., & Ord, J. K. (1981). Spatial Processes: Models and Applications.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import numpy as np
from scipy.stats import norm

from .constants import DEFAULT_ALPHA, GLOBAL_ASSUMPTIONS
from .errors import DegenerateInputError, EmptyWeightsError, InsufficientUnitsError, SpatialConfigError
from .weights import WeightsMatrix


@dataclass(frozen=True)
class GlobalMoranResult:
    """全局 Moran's I 检验结果"""

    I: float
    expected: float
    variance: float
    z_score: float
    p_value: float
    n: int
    S0: float
    assumption: str = 'randomization'

    def to_dict(self) -> Dict:
        return {
            'moran_i': self.I,
            'moran_expected': self.expected,
            'moran_variance': self.variance,
            'moran_z': self.z_score,
            'moran_p': self.p_value,
            'n': self.n,
            'S0': self.S0,
            'assumption': self.assumption,
        }

    def report(self, title: str = '', alpha: float = DEFAULT_ALPHA) -> str:
        """生成文本报告（结论按显著性水平 alpha 判断）"""
        lines = [
            f"Moran I test under {self.assumption}" + (f": {title}" if title else ''),
            f"  Moran I statistic standard deviate = {self.z_score:.4f}, p-value = {self.p_value:.4g}",
            f"  Moran I statistic = {self.I:.6f}",
            f"  Expectation       = {self.expected:.6f}",
            f"  Variance          = {self.variance:.6f}",
            f"  n = {self.n}, S0 = {self.S0:.4f}",
        ]
        if self.p_value <= alpha:
            lines.append(f"  结论: 存在显著的空间自相关 (p <= {alpha})")
        else:
            lines.append(f"  结论: 空间自相关不显著 (p > {alpha})")
        return '\n'.join(lines)


def global_moran(
    values,
    weights: WeightsMatrix,
    assumption: str = 'randomization'
) -> GlobalMoranResult:
    """
    计算全局 Moran's I 及其显著性

    参数:
        values: 与 weights.unit_ids 对齐的取值（不含缺失值）
        weights: 空间权重矩阵
        assumption: 方差假设，'randomization' 或 'normality'

    返回:
        GlobalMoranResult
    """
    if assumption not in GLOBAL_ASSUMPTIONS:
        raise SpatialConfigError(f"不支持的全局方差假设: {assumption!r}，可选: {GLOBAL_ASSUMPTIONS}")

    x = np.asarray(
        [values[uid] for uid in weights.unit_ids] if isinstance(values, dict) else values,
        dtype=np.float64
    )
    n = len(x)
    if n != weights.n:
        raise ValueError(f"取值数量 ({n}) 与权重矩阵单元数 ({weights.n}) 不一致")
    if not np.all(np.isfinite(x)):
        raise ValueError("取值中存在 NaN 或无穷值，请先剔除缺失单元")
    if n < 3:
        raise InsufficientUnitsError(n)
    if assumption == 'randomization' and n < 4:
        # (n-1)(n-2)(n-3) 为 0，随机化方差无定义
        raise InsufficientUnitsError(n, minimum=4)

    W = weights.to_sparse()
    S0 = float(W.sum())
    if S0 == 0:
        raise EmptyWeightsError("权重矩阵为空（所有单元均无邻居），无法计算全局 Moran's I")

    xc = x - x.mean()
    denominator = float(xc @ xc)
    if denominator == 0:
        raise DegenerateInputError("所有单元取值相同，Moran's I 无定义")

    moran_i = (n / S0) * float(xc @ (W @ xc)) / denominator
    E_I = -1.0 / (n - 1)

    S1 = weights.S1
    S2 = weights.S2

    if assumption == 'normality':
        Var_I = (n ** 2 * S1 - n * S2 + 3 * S0 ** 2) / (S0 ** 2 * (n ** 2 - 1)) - E_I ** 2
    else:
        b2 = n * float((xc ** 4).sum()) / denominator ** 2
        A = n * ((n ** 2 - 3 * n + 3) * S1 - n * S2 + 3 * S0 ** 2)
        B = b2 * ((n ** 2 - n) * S1 - 2 * n * S2 + 6 * S0 ** 2)
        C = (n - 1) * (n - 2) * (n - 3) * S0 ** 2
        Var_I = (A - B) / C - E_I ** 2

    if not Var_I > 0:
        raise DegenerateInputError(f"Moran's I 方差非正 ({Var_I:.6g})，无法计算 z 值")

    z_score = (moran_i - E_I) / np.sqrt(Var_I)
    p_value = 2 * norm.sf(abs(z_score))

    return GlobalMoranResult(
        I=float(moran_i),
        expected=float(E_I),
        variance=float(Var_I),
        z_score=float(z_score),
        p_value=float(p_value),
        n=n,
        S0=S0,
        assumption=assumption,
    )
