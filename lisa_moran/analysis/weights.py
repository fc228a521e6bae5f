"""
空间权重矩阵模块

将邻接图转换为空间权重矩阵，用于空间滞后和 Moran's I 计算。

数据结构:
    权重以显式的映射结构保存: {单元ID: {邻居ID: 权重}}，与线性代数库解耦；
    需要矩阵运算时通过 to_sparse() 得到 CSR 稀疏矩阵（行列顺序与 unit_ids 一致）。

权重样式:
    - W: 行标准化，每个邻居权重为 1/邻居数，非孤立单元行和为 1
    - B: 二值权重，每个邻居权重为 1

孤立单元（zero policy）:
    - zero_policy=True:  孤立单元权重行为空，空间滞后为 0，不影响也不受邻居影响
    - zero_policy=False: 存在孤立单元时在计算前抛出 IslandError
"""

from __future__ import annotations

import warnings
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Union

import numpy as np
from scipy.sparse import csr_matrix

from .constants import WEIGHT_STYLES
from .errors import IslandError, SpatialConfigError
from .neighbors import NeighborGraph


class WeightsMatrix:
    """
    空间权重矩阵

    属性:
        unit_ids: 单元 ID（行列顺序）
        weights: {单元ID: {邻居ID: 权重}}
        style: 权重样式 ('W' 或 'B')
        zero_policy: 是否容忍孤立单元
    """

    def __init__(
        self,
        unit_ids: Sequence[Hashable],
        weights: Mapping[Hashable, Mapping[Hashable, float]],
        style: str = 'W',
        zero_policy: bool = True
    ):
        self.unit_ids = tuple(unit_ids)
        self.style = style
        self.zero_policy = zero_policy
        self._index = {uid: i for i, uid in enumerate(self.unit_ids)}

        unknown = [uid for uid in weights if uid not in self._index]
        if unknown:
            raise ValueError(f"权重中存在未知单元: {unknown}")
        unknown = sorted(
            {nbr for row in weights.values() for nbr in row if nbr not in self._index},
            key=str
        )
        if unknown:
            raise ValueError(f"权重行中存在未知邻居: {unknown}")

        self.weights: Dict[Hashable, Dict[Hashable, float]] = {
            uid: dict(weights.get(uid, {})) for uid in self.unit_ids
        }
        self._sparse: Optional[csr_matrix] = None

    @classmethod
    def from_graph(
        cls,
        graph: NeighborGraph,
        style: str = 'W',
        zero_policy: bool = True
    ) -> 'WeightsMatrix':
        """由邻接图构建权重矩阵"""
        if style not in WEIGHT_STYLES:
            raise SpatialConfigError(f"不支持的权重样式: {style!r}，可选: {WEIGHT_STYLES}")

        islands = graph.islands()
        if islands:
            if not zero_policy:
                raise IslandError(islands)
            warnings.warn(
                f"{len(islands)} 个孤立单元将以空权重行参与计算（zero_policy=True）"
            )

        weights: Dict[Hashable, Dict[Hashable, float]] = {}
        for uid in graph.unit_ids:
            nbrs = graph.neighbors_of(uid)
            if not nbrs:
                weights[uid] = {}
                continue
            w = 1.0 / len(nbrs) if style == 'W' else 1.0
            weights[uid] = {nbr: w for nbr in nbrs}

        return cls(graph.unit_ids, weights, style=style, zero_policy=zero_policy)

    def __len__(self) -> int:
        return len(self.unit_ids)

    @property
    def n(self) -> int:
        return len(self.unit_ids)

    def row(self, uid: Hashable) -> Dict[Hashable, float]:
        """获取指定单元的权重行"""
        return self.weights[uid]

    def row_sums(self) -> Dict[Hashable, float]:
        """每行权重和"""
        return {uid: float(sum(row.values())) for uid, row in self.weights.items()}

    @property
    def islands(self) -> List[Hashable]:
        """孤立单元（空权重行）"""
        return [uid for uid in self.unit_ids if not self.weights[uid]]

    def to_sparse(self) -> csr_matrix:
        """转换为 CSR 稀疏矩阵（n × n）"""
        if self._sparse is None:
            rows, cols, data = [], [], []
            for uid, row in self.weights.items():
                i = self._index[uid]
                for nbr, w in row.items():
                    rows.append(i)
                    cols.append(self._index[nbr])
                    data.append(w)
            self._sparse = csr_matrix(
                (
                    np.asarray(data, dtype=np.float64),
                    (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))
                ),
                shape=(self.n, self.n),
                dtype=np.float64
            )
        return self._sparse

    def _as_vector(self, values: Union[Sequence[float], Mapping[Hashable, float], np.ndarray]) -> np.ndarray:
        if isinstance(values, Mapping):
            values = [values[uid] for uid in self.unit_ids]
        y = np.asarray(values, dtype=np.float64)
        if y.shape != (self.n,):
            raise ValueError(f"数值长度 ({y.shape}) 与单元数 ({self.n}) 不一致")
        return y

    def spatial_lag(self, values) -> np.ndarray:
        """
        计算空间滞后项 Wy

        参数:
            values: 与 unit_ids 对齐的数组，或 {单元ID: 值} 映射

        返回:
            空间滞后值 (n,)，孤立单元为 0
        """
        return self.to_sparse() @ self._as_vector(values)

    @property
    def S0(self) -> float:
        """所有权重之和"""
        return float(self.to_sparse().sum())

    @property
    def S1(self) -> float:
        """S1 = 1/2 Σi Σj (wij + wji)²"""
        W = self.to_sparse()
        W_sym = W + W.T
        return 0.5 * float(W_sym.multiply(W_sym).sum())

    @property
    def S2(self) -> float:
        """S2 = Σi (wi. + w.i)²"""
        W = self.to_sparse()
        row_sums = np.asarray(W.sum(axis=1)).flatten()
        col_sums = np.asarray(W.sum(axis=0)).flatten()
        return float(((row_sums + col_sums) ** 2).sum())

    def summary(self) -> Dict:
        """权重矩阵摘要统计"""
        counts = np.array([len(self.weights[uid]) for uid in self.unit_ids], dtype=float)
        return {
            'n_units': self.n,
            'style': self.style,
            'zero_policy': self.zero_policy,
            'total_connections': int(counts.sum()),
            'avg_neighbors': float(counts.mean()) if self.n else 0.0,
            'isolated_units': len(self.islands),
            'S0': self.S0,
        }


def build_weights(
    graph: NeighborGraph,
    style: str = 'W',
    zero_policy: bool = True
) -> WeightsMatrix:
    """
    由邻接图构建空间权重矩阵

    参数:
        graph: 邻接图
        style: 权重样式（'W' 行标准化，'B' 二值）
        zero_policy: 是否容忍孤立单元（False 时存在孤立单元抛出 IslandError）

    返回:
        WeightsMatrix
    """
    return WeightsMatrix.from_graph(graph, style=style, zero_policy=zero_policy)
