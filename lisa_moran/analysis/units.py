"""
空间单元定义

每个空间单元包含 ID、多边形几何和一个变量取值（可能缺失）。
取值缺失的单元在该变量的分析中被剔除，但仍可参与其他变量的分析。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Hashable, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry

from .errors import VariableDataError


@dataclass(frozen=True)
class SpatialUnit:
    """空间单元（加载后只读）"""

    unit_id: Hashable
    geometry: BaseGeometry
    value: Optional[float] = None

    @property
    def is_defined(self) -> bool:
        return self.value is not None and not math.isnan(self.value)


def units_from_frame(
    gdf: gpd.GeoDataFrame,
    value_column: str,
    id_column: Optional[str] = None
) -> List[SpatialUnit]:
    """
    将 GeoDataFrame 的一列转换为空间单元列表（保持行顺序，含缺失单元）

    参数:
        gdf: 多边形 GeoDataFrame
        value_column: 变量列名
        id_column: 单元ID列名（默认使用索引）
    """
    if value_column not in gdf.columns:
        raise ValueError(f"缺少变量列: {value_column}")
    if id_column is not None and id_column not in gdf.columns:
        raise ValueError(f"缺少ID列: {id_column}")

    ids = gdf[id_column].tolist() if id_column else gdf.index.tolist()
    raw = gdf[value_column]
    values = pd.to_numeric(raw, errors='coerce')

    # 缺失值视为未定义，非空但无法解析的取值视为数据错误
    invalid = values.isna() & raw.notna()
    if invalid.any():
        raise VariableDataError(value_column, [uid for uid, bad in zip(ids, invalid) if bad])

    return [
        SpatialUnit(
            unit_id=uid,
            geometry=geom,
            value=None if pd.isna(val) else float(val)
        )
        for uid, geom, val in zip(ids, gdf.geometry.values, values.values)
    ]


def defined_units(units: List[SpatialUnit]) -> List[SpatialUnit]:
    """剔除取值缺失的单元"""
    return [unit for unit in units if unit.is_defined]
