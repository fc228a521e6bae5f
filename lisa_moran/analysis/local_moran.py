"""
局部 Moran's I (LISA) 计算模块

局部统计量:
    zi = (xi - x̄) / s          （s 为样本标准差，分母 n-1）
    lagi = Σj wij · zj          （孤立单元为 0）
    Ii = zi · lagi

解析推断（method='analytic'）:
    期望和方差采用常规局部 Moran 公式，在 Anselin 统计量 (zc/m2)·lag(zc) 上计算，
    再按 (n-1)/n 缩放以对应上面的 Ii（Z 值不受缩放影响）:

    conditional（默认）:
        E[Ii]   = -zc² · Wi / ((n-1) · m2)
        Var[Ii] = (zc/m2)² · n/(n-2) · (Wi2 - Wi²/(n-1)) · (m2 - zc²/(n-1))

    total（完全随机化）:
        E[Ii]   = -Wi / (n-1)
        Var[Ii] = A·Wi2 + B·(Wi² - Wi2) - Wi²/(n-1)²
        A = (n - b2)/(n-1),  B = (2·b2 - n)/((n-1)(n-2)),  b2 = m4/m2²

    Z = (Ii - E[Ii]) / sqrt(Var[Ii])，p 为标准正态双尾 p 值。

置换推断（method='permutation'）:
    条件置换：单元 i 保持自身取值，从其余 n-1 个取值中无放回抽取 |N(i)| 个作为邻居取值，
    重复 permutations 次。每个单元使用由 SeedSequence(seed) 派生的独立随机数生成器，
    因此结果只取决于 seed，与处理顺序无关。
    Z = (Ii - mean(sim)) / std(sim)，p = (min(#sim≥Ii, #sim≤Ii) + 1) / (permutations + 1)。

孤立单元和方差为 0 的单元: Z = 0, p = 1（归为不显著，不产生 NaN）。

参考文献:
    Anselin, L. (1995). Local Indicators of Spatial Association - LISA.
    Geographical Analysis, 27(2), 93-115.
    Sokal, R. R., Oden, N. L., & Thomson, B. A. (1998). Local spatial
    autocorrelation in a biological model. Geographical Analysis, 30(4), 331-354.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm

from .constants import DEFAULT_PERMUTATIONS, LOCAL_ASSUMPTIONS, SIGNIFICANCE_METHODS
from .errors import DegenerateInputError, InsufficientUnitsError, SpatialConfigError
from .weights import WeightsMatrix


@dataclass(frozen=True)
class LocalMoranResult:
    """局部 Moran's I 结果（每个数组与 unit_ids 对齐）"""

    unit_ids: Tuple[Hashable, ...]
    Ii: np.ndarray          # 局部 Moran's I
    expected: np.ndarray    # E[Ii]
    variance: np.ndarray    # Var[Ii]
    Z: np.ndarray           # 标准化统计量
    p: np.ndarray           # 显著性
    z: np.ndarray           # 标准化取值
    lag: np.ndarray         # 标准化取值的空间滞后
    method: str = 'analytic'
    assumption: str = 'conditional'
    permutations: int = 0
    seed: Optional[int] = None

    @property
    def n(self) -> int:
        return len(self.unit_ids)

    def to_dataframe(self) -> pd.DataFrame:
        """转换为 DataFrame（每单元一行，索引为单元ID）"""
        return pd.DataFrame(
            {
                'Ii': self.Ii,
                'E.Ii': self.expected,
                'Var.Ii': self.variance,
                'Z.Ii': self.Z,
                'P.Ii': self.p,
                'z': self.z,
                'lag_z': self.lag,
            },
            index=pd.Index(self.unit_ids, name='unit_id')
        )


def standardize(values) -> np.ndarray:
    """
    标准化为零均值、单位方差（样本标准差，分母 n-1）

    方差为 0 时抛出 DegenerateInputError。
    """
    x = np.asarray(values, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"取值必须是一维数组，当前维度: {x.ndim}")
    if not np.all(np.isfinite(x)):
        raise ValueError("取值中存在 NaN 或无穷值，请先剔除缺失单元")
    if len(x) < 2:
        raise InsufficientUnitsError(len(x), minimum=2)

    sd = x.std(ddof=1)
    if sd == 0 or not np.isfinite(sd):
        raise DegenerateInputError(f"所有单元取值相同（均值 {x.mean():.6g}），无法标准化")
    return (x - x.mean()) / sd


def _analytic_moments(
    zc: np.ndarray,
    Wi: np.ndarray,
    Wi2: np.ndarray,
    assumption: str
) -> Tuple[np.ndarray, np.ndarray]:
    """Anselin 统计量 (zc/m2)·lag(zc) 的期望和方差"""
    n = len(zc)
    m2 = (zc ** 2).sum() / n

    if assumption == 'conditional':
        expected = -(zc ** 2 * Wi) / ((n - 1) * m2)
        variance = (
            (zc / m2) ** 2
            * (n / (n - 2))
            * (Wi2 - Wi ** 2 / (n - 1))
            * (m2 - zc ** 2 / (n - 1))
        )
    else:
        m4 = (zc ** 4).sum() / n
        b2 = m4 / m2 ** 2
        expected = -Wi / (n - 1)
        A = (n - b2) / (n - 1)
        B = (2 * b2 - n) / ((n - 1) * (n - 2))
        variance = A * Wi2 + B * (Wi ** 2 - Wi2) - Wi ** 2 / (n - 1) ** 2

    return expected, variance


def _permutation_inference(
    z: np.ndarray,
    Ii: np.ndarray,
    weights: WeightsMatrix,
    permutations: int,
    seed: Optional[int]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """条件置换检验，返回 (E, Var, Z, p)"""
    n = len(z)
    W = weights.to_sparse()
    children = np.random.SeedSequence(seed).spawn(n)

    expected = np.zeros(n)
    variance = np.zeros(n)
    Z = np.zeros(n)
    p = np.ones(n)

    for i in range(n):
        start, end = W.indptr[i], W.indptr[i + 1]
        w_i = W.data[start:end]
        k = len(w_i)
        if k == 0:
            continue

        rng = np.random.default_rng(children[i])
        others = np.delete(z, i)
        # 每行独立打乱其余 n-1 个取值，取前 k 个即为无放回抽样
        draws = rng.permuted(np.tile(others, (permutations, 1)), axis=1)[:, :k]
        sim = z[i] * (draws @ w_i)

        expected[i] = sim.mean()
        variance[i] = sim.var(ddof=1) if permutations > 1 else 0.0
        if variance[i] > 0:
            Z[i] = (Ii[i] - expected[i]) / np.sqrt(variance[i])

        larger = int((sim >= Ii[i]).sum())
        smaller = int((sim <= Ii[i]).sum())
        p[i] = (min(larger, smaller) + 1) / (permutations + 1)

    return expected, variance, Z, p


def local_moran(
    values,
    weights: WeightsMatrix,
    method: str = 'analytic',
    assumption: str = 'conditional',
    permutations: int = DEFAULT_PERMUTATIONS,
    seed: Optional[int] = None
) -> LocalMoranResult:
    """
    计算局部 Moran's I

    参数:
        values: 与 weights.unit_ids 对齐的取值（不含缺失值）
        weights: 空间权重矩阵
        method: 'analytic'（正态近似）或 'permutation'（条件置换）
        assumption: 解析矩假设，'conditional' 或 'total'
        permutations: 置换次数（method='permutation' 时使用）
        seed: 随机种子（method='permutation' 时使用，固定后结果可复现）

    返回:
        LocalMoranResult
    """
    if method not in SIGNIFICANCE_METHODS:
        raise SpatialConfigError(f"不支持的显著性方法: {method!r}，可选: {SIGNIFICANCE_METHODS}")
    if assumption not in LOCAL_ASSUMPTIONS:
        raise SpatialConfigError(f"不支持的局部方差假设: {assumption!r}，可选: {LOCAL_ASSUMPTIONS}")
    if method == 'permutation' and permutations < 1:
        raise SpatialConfigError(f"置换次数必须为正整数: {permutations}")

    x = np.asarray(
        [values[uid] for uid in weights.unit_ids] if isinstance(values, dict) else values,
        dtype=np.float64
    )
    n = len(x)
    if n != weights.n:
        raise ValueError(f"取值数量 ({n}) 与权重矩阵单元数 ({weights.n}) 不一致")
    if n < 3:
        raise InsufficientUnitsError(n)

    z = standardize(x)
    lag = weights.spatial_lag(z)
    Ii = z * lag

    if method == 'analytic':
        W = weights.to_sparse()
        Wi = np.asarray(W.sum(axis=1)).flatten()
        Wi2 = np.asarray(W.multiply(W).sum(axis=1)).flatten()

        zc = x - x.mean()
        expected, variance = _analytic_moments(zc, Wi, Wi2, assumption)
        # Anselin 统计量 -> zi·lagi
        scale = (n - 1) / n
        expected = expected * scale
        variance = variance * scale ** 2

        Z = np.zeros(n)
        positive = variance > 0
        Z[positive] = (Ii[positive] - expected[positive]) / np.sqrt(variance[positive])
        p = np.ones(n)
        p[positive] = 2 * norm.sf(np.abs(Z[positive]))
        used_permutations = 0
        used_seed = None
    else:
        expected, variance, Z, p = _permutation_inference(z, Ii, weights, permutations, seed)
        used_permutations = permutations
        used_seed = seed

    return LocalMoranResult(
        unit_ids=weights.unit_ids,
        Ii=Ii,
        expected=expected,
        variance=variance,
        Z=Z,
        p=p,
        z=z,
        lag=lag,
        method=method,
        assumption=assumption,
        permutations=used_permutations,
        seed=used_seed,
    )


def moran_scatter(values, weights: WeightsMatrix) -> pd.DataFrame:
    """
    Moran 散点图数据

    x 为标准化取值，y 为原始取值空间滞后的标准化值。
    拟合直线斜率保存在 DataFrame.attrs['slope']。
    """
    x = standardize(values)
    lag = weights.spatial_lag(np.asarray(values, dtype=np.float64))

    sd = lag.std(ddof=1)
    y = (lag - lag.mean()) / sd if sd > 0 else np.zeros_like(lag)

    frame = pd.DataFrame({'x': x, 'y': y}, index=pd.Index(weights.unit_ids, name='unit_id'))
    frame.attrs['slope'] = float(np.polyfit(x, y, 1)[0])
    return frame
