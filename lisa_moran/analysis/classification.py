"""
LISA 聚类分类

根据标准化取值 z、标准化局部统计量 Z 和显著性 p 判定聚类类型，按顺序取第一个匹配项:

    1. z > 0, Z > 0, p ≤ α  ->  High-High
    2. z < 0, Z > 0, p ≤ α  ->  Low-Low
    3. z > 0, Z < 0, p ≤ α  ->  High-Low
    4. z < 0, Z < 0, p ≤ α  ->  Low-High
    5. 其他                  ->  Not Significant

z == 0 或 Z == 0 不满足任何严格不等式，归为 Not Significant。
"""

from typing import Sequence

import numpy as np

from .constants import DEFAULT_ALPHA, PVALUE_BREAKS, PVALUE_CLASSES, ClusterLabel


def _check_alpha(alpha: float) -> None:
    if not 0 < alpha < 1:
        raise ValueError(f"显著性水平必须在 (0, 1) 之间，当前值: {alpha}")


def classify_lisa(z: float, Z: float, p: float, alpha: float = DEFAULT_ALPHA) -> ClusterLabel:
    """单个单元的 LISA 聚类类型"""
    _check_alpha(alpha)

    # NaN 比较均为 False，自然落入 Not Significant
    if not p <= alpha:
        return ClusterLabel.NOT_SIGNIFICANT
    if z > 0 and Z > 0:
        return ClusterLabel.HIGH_HIGH
    if z < 0 and Z > 0:
        return ClusterLabel.LOW_LOW
    if z > 0 and Z < 0:
        return ClusterLabel.HIGH_LOW
    if z < 0 and Z < 0:
        return ClusterLabel.LOW_HIGH
    return ClusterLabel.NOT_SIGNIFICANT


def classify_lisa_array(
    z: Sequence[float],
    Z: Sequence[float],
    p: Sequence[float],
    alpha: float = DEFAULT_ALPHA
) -> np.ndarray:
    """向量化 LISA 分类，返回字符串数组"""
    _check_alpha(alpha)
    z = np.asarray(z, dtype=float)
    Z = np.asarray(Z, dtype=float)
    p = np.asarray(p, dtype=float)
    if not (z.shape == Z.shape == p.shape):
        raise ValueError(f"输入数组形状不一致: z={z.shape}, Z={Z.shape}, p={p.shape}")

    significant = p <= alpha
    conditions = [
        (z > 0) & (Z > 0) & significant,
        (z < 0) & (Z > 0) & significant,
        (z > 0) & (Z < 0) & significant,
        (z < 0) & (Z < 0) & significant,
    ]
    choices = [
        ClusterLabel.HIGH_HIGH.value,
        ClusterLabel.LOW_LOW.value,
        ClusterLabel.HIGH_LOW.value,
        ClusterLabel.LOW_HIGH.value,
    ]
    return np.select(conditions, choices, default=ClusterLabel.NOT_SIGNIFICANT.value)


def classify_pvalues(p: Sequence[float]) -> np.ndarray:
    """
    p 值显著性分级（左闭区间）

    [0, 0.01) -> 'p < 0.01'，[0.01, 0.05) -> 'p < 0.05'，[0.05, 0.10) -> 'p < 0.10'，
    其余（含 NaN）-> 'Not Significant'
    """
    p = np.asarray(p, dtype=float)
    conditions = [
        (p >= PVALUE_BREAKS[i]) & (p < PVALUE_BREAKS[i + 1])
        for i in range(len(PVALUE_BREAKS) - 1)
    ]
    return np.select(conditions, PVALUE_CLASSES[:-1], default=PVALUE_CLASSES[-1])
