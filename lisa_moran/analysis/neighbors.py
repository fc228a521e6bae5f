"""
邻接图构建模块

根据多边形几何接触关系构建邻接图（NeighborGraph），支持 queen / rook 两种邻接方式。

邻接规则:
    - queen: 两个多边形边界上任意一点（顶点或边）距离不超过 snap 即视为相邻，含角点接触
    - rook:  两个多边形必须共享一段长度为正的边界，仅角点接触不算相邻

容差:
    独立数字化的行政边界很少有逐位一致的顶点，因此所有接触判断都使用 snap 容差。
    snap > 0 时 rook 须同时满足:
        1. A 的边界落在 B 边界 snap 缓冲区内的长度大于 ROOK_CORNER_FACTOR * snap；
        2. 两者落在对方边界 snap 范围内的顶点中，至少有两个相距超过 snap。
    条件 2 排除小夹角的角点接触（缓冲区覆盖长度约为 snap / sin θ，可超过条件 1 的阈值）。
    共享线段的两个端点必为某一方的顶点，因此真正的共享边总能满足条件 2。

实现:
    使用 STRtree 空间索引的 dwithin 谓词筛选候选对，再逐对精确判断。
    原始的有向接触结果取并集对称化，并去除自环。孤立单元保留为空邻居列表。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import shapely
from scipy.spatial.distance import pdist
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from .constants import DEFAULT_SNAP, ROOK_CORNER_FACTOR
from .errors import GeometryDataError


@dataclass(frozen=True)
class NeighborGraph:
    """
    邻接图

    属性:
        unit_ids: 单元 ID（保持输入顺序）
        neighbors: {单元ID: 邻居ID元组}，邻居按输入顺序排列
    """

    unit_ids: Tuple[Hashable, ...]
    neighbors: Dict[Hashable, Tuple[Hashable, ...]]

    @classmethod
    def from_dict(
        cls,
        mapping: Mapping[Hashable, Iterable[Hashable]],
        order: Optional[Sequence[Hashable]] = None
    ) -> 'NeighborGraph':
        """
        由 {单元ID: 邻居ID} 映射构建邻接图（自动对称化并去除自环）

        参数:
            mapping: 邻接映射，可以只给出单向关系
            order: 单元顺序（默认使用 mapping 的键顺序）
        """
        unit_ids = tuple(order) if order is not None else tuple(mapping.keys())
        if len(set(unit_ids)) != len(unit_ids):
            raise ValueError("单元ID存在重复")

        known = set(unit_ids)
        missing = [uid for uid in mapping if uid not in known]
        if missing:
            raise ValueError(f"邻接映射中的单元不在 order 中: {missing}")

        links: Dict[Hashable, set] = {uid: set() for uid in unit_ids}
        for uid, nbrs in mapping.items():
            for nbr in nbrs:
                if nbr not in known:
                    raise ValueError(f"单元 {uid!r} 的邻居 {nbr!r} 不存在")
                if nbr == uid:
                    continue
                links[uid].add(nbr)
                links[nbr].add(uid)

        return cls._from_links(unit_ids, links)

    @classmethod
    def _from_links(
        cls,
        unit_ids: Tuple[Hashable, ...],
        links: Dict[Hashable, set]
    ) -> 'NeighborGraph':
        position = {uid: i for i, uid in enumerate(unit_ids)}
        neighbors = {
            uid: tuple(sorted(links[uid], key=position.__getitem__))
            for uid in unit_ids
        }
        return cls(unit_ids=unit_ids, neighbors=neighbors)

    def __len__(self) -> int:
        return len(self.unit_ids)

    def __contains__(self, uid) -> bool:
        return uid in self.neighbors

    def neighbors_of(self, uid: Hashable) -> Tuple[Hashable, ...]:
        """获取指定单元的邻居"""
        return self.neighbors[uid]

    def cardinalities(self) -> Dict[Hashable, int]:
        """每个单元的邻居数"""
        return {uid: len(self.neighbors[uid]) for uid in self.unit_ids}

    def islands(self) -> List[Hashable]:
        """孤立单元（无邻居）"""
        return [uid for uid in self.unit_ids if not self.neighbors[uid]]

    @property
    def n_links(self) -> int:
        """有向邻接关系总数（对称图中为无向边数的 2 倍）"""
        return sum(len(nbrs) for nbrs in self.neighbors.values())

    def is_symmetric(self) -> bool:
        """检查 A∈N(B) ⇔ B∈N(A)"""
        for uid, nbrs in self.neighbors.items():
            for nbr in nbrs:
                if uid not in self.neighbors.get(nbr, ()):
                    return False
        return True

    def subset(self, unit_ids: Iterable[Hashable]) -> 'NeighborGraph':
        """保留指定单元并删除指向其他单元的邻接关系"""
        wanted = set(unit_ids)
        keep = [uid for uid in self.unit_ids if uid in wanted]
        keep_set = set(keep)
        links = {
            uid: {nbr for nbr in self.neighbors[uid] if nbr in keep_set}
            for uid in keep
        }
        return self._from_links(tuple(keep), links)

    def summary(self) -> Dict:
        """邻接图摘要统计"""
        counts = np.array(list(self.cardinalities().values()), dtype=float)
        n = len(self.unit_ids)
        return {
            'n_units': n,
            'n_links': self.n_links,
            'avg_neighbors': float(counts.mean()) if n else 0.0,
            'min_neighbors': int(counts.min()) if n else 0,
            'max_neighbors': int(counts.max()) if n else 0,
            'isolated_units': len(self.islands()),
            'density': float(self.n_links / (n * n)) if n else 0.0,
        }


def _shared_boundary_length(
    a: BaseGeometry,
    b: BaseGeometry,
    snap: float,
    b_buffer: Optional[BaseGeometry] = None
) -> float:
    """A 的边界落在 B 边界 snap 范围内的长度"""
    if snap > 0:
        zone = b_buffer if b_buffer is not None else b.boundary.buffer(snap)
        return a.boundary.intersection(zone).length
    return a.boundary.intersection(b.boundary).length


def _near_vertices(a: BaseGeometry, b: BaseGeometry, snap: float) -> np.ndarray:
    """A 的边界顶点中距 B 边界不超过 snap 的坐标"""
    coords = shapely.get_coordinates(a.boundary)
    near = shapely.dwithin(shapely.points(coords), b.boundary, snap)
    return coords[near]


def _contact_span(a: BaseGeometry, b: BaseGeometry, snap: float) -> float:
    """接触区域的顶点跨度: 双方近边界顶点之间的最大距离（单点接触为 0）"""
    near = np.vstack([_near_vertices(a, b, snap), _near_vertices(b, a, snap)])
    if len(near) < 2:
        return 0.0
    return float(pdist(near).max())


def build_neighbor_graph(
    geometries: Sequence[BaseGeometry],
    unit_ids: Optional[Sequence[Hashable]] = None,
    queen: bool = True,
    snap: float = DEFAULT_SNAP,
    verbose: bool = False
) -> NeighborGraph:
    """
    根据多边形几何构建邻接图

    参数:
        geometries: 多边形序列（Polygon / MultiPolygon，GeoSeries 亦可）
        unit_ids: 单元 ID（默认 0..n-1）
        queen: True 为 queen 邻接（含角点），False 为 rook 邻接（须共享边）
        snap: 边界捕捉容差（坐标单位，非负）
        verbose: 是否打印进度

    返回:
        NeighborGraph（对称、无自环、孤立单元保留空邻居）
    """
    if snap < 0:
        raise ValueError(f"snap 容差不能为负数: {snap}")

    geoms = np.empty(len(geometries), dtype=object)
    geoms[:] = list(geometries)
    n = len(geoms)

    if unit_ids is None:
        unit_ids = list(range(n))
    unit_ids = tuple(unit_ids)
    if len(unit_ids) != n:
        raise ValueError(f"unit_ids 数量 ({len(unit_ids)}) 与几何数量 ({n}) 不一致")
    if len(set(unit_ids)) != n:
        raise ValueError("单元ID存在重复")

    bad = [unit_ids[i] for i, g in enumerate(geoms) if g is None or g.is_empty]
    if bad:
        raise GeometryDataError(f"存在空几何: {bad}")

    if verbose:
        mode = 'queen' if queen else 'rook'
        print(f"  构建邻接图（n={n}, 方式={mode}, snap={snap}）...")

    links: Dict[Hashable, set] = {uid: set() for uid in unit_ids}
    if n < 2:
        return NeighborGraph._from_links(unit_ids, links)

    tree = STRtree(geoms)
    if snap > 0:
        left, right = tree.query(geoms, predicate='dwithin', distance=snap)
    else:
        left, right = tree.query(geoms, predicate='intersects')

    # dwithin 对称，只保留 i < j 的无序对
    mask = left < right
    left = left[mask]
    right = right[mask]

    if verbose:
        print(f"    候选邻接对: {len(left)}")

    buffers: Dict[int, BaseGeometry] = {}

    def boundary_zone(idx: int) -> Optional[BaseGeometry]:
        if snap <= 0:
            return None
        if idx not in buffers:
            buffers[idx] = geoms[idx].boundary.buffer(snap)
        return buffers[idx]

    threshold = ROOK_CORNER_FACTOR * snap
    for i, j in zip(left.tolist(), right.tolist()):
        a, b = geoms[i], geoms[j]
        if queen:
            links[unit_ids[i]].add(unit_ids[j])
            links[unit_ids[j]].add(unit_ids[i])
            continue

        # 小夹角角点接触: 缓冲区覆盖长度可能超过阈值，但近边界顶点只有接触点一处
        if snap > 0 and _contact_span(a, b, snap) <= snap:
            continue

        # rook: 分别判断两个方向，任一方向满足即相邻（有向结果取并集）
        if _shared_boundary_length(a, b, snap, boundary_zone(j)) > threshold:
            links[unit_ids[i]].add(unit_ids[j])
        if _shared_boundary_length(b, a, snap, boundary_zone(i)) > threshold:
            links[unit_ids[j]].add(unit_ids[i])

    # 对称化
    for uid in unit_ids:
        for nbr in list(links[uid]):
            links[nbr].add(uid)

    graph = NeighborGraph._from_links(unit_ids, links)

    if verbose:
        summary = graph.summary()
        print(f"    完成！邻接关系: {summary['n_links']}，"
              f"平均邻居数: {summary['avg_neighbors']:.2f}，"
              f"孤立单元: {summary['isolated_units']}")

    return graph
