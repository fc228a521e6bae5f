"""
矢量数据 I/O 模块

职责:
- 读取多边形数据（shapefile / GeoPackage / GeoJSON 等）
- 加载时校验几何（空几何、自相交）
- 保存逐单元结果和全局统计摘要
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import geopandas as gpd
import pandas as pd

from ..analysis.errors import GeometryDataError
from ..analysis.global_moran import GlobalMoranResult

logger = logging.getLogger(__name__)


def validate_geometries(
    gdf: gpd.GeoDataFrame,
    id_column: Optional[str] = None
) -> None:
    """
    检查几何有效性

    异常:
        GeometryDataError: 存在空几何、非面要素或无效（自相交等）几何
    """
    ids = gdf[id_column] if id_column else pd.Series(gdf.index, index=gdf.index)
    geoms = gdf.geometry

    missing = geoms.isna() | geoms.is_empty
    if missing.any():
        raise GeometryDataError(f"存在空几何: {ids[missing].tolist()}")

    non_polygon = ~geoms.geom_type.isin(['Polygon', 'MultiPolygon'])
    if non_polygon.any():
        raise GeometryDataError(f"存在非面要素: {ids[non_polygon].tolist()}")

    invalid = ~geoms.is_valid
    if invalid.any():
        raise GeometryDataError(f"存在无效几何（自相交等）: {ids[invalid].tolist()}")


def read_polygons(
    path: Union[str, Path],
    id_column: Optional[str] = None,
    validate: bool = True
) -> gpd.GeoDataFrame:
    """
    读取多边形数据

    参数:
        path: 矢量文件路径
        id_column: 单元ID列名（提供时检查是否存在且唯一）
        validate: 是否校验几何

    返回:
        GeoDataFrame
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"输入文件不存在: {path}")

    logger.info(f"正在读取矢量数据: {path}")
    gdf = gpd.read_file(path)
    logger.info(f"单元数量: {len(gdf)}，字段: {list(gdf.columns)}")

    if id_column is not None:
        if id_column not in gdf.columns:
            raise ValueError(f"缺少ID列: {id_column}")
        if gdf[id_column].duplicated().any():
            raise ValueError(f"ID列 '{id_column}' 存在重复值")

    if validate:
        validate_geometries(gdf, id_column)

    return gdf


def save_results(
    gdf: gpd.GeoDataFrame,
    output_path: Union[str, Path]
) -> Path:
    """
    保存逐单元结果

    根据扩展名选择格式: .gpkg / .csv（不含几何） / .parquet，其他扩展名追加 .gpkg。
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix == '.gpkg':
        gdf.to_file(output_path, driver='GPKG')
    elif output_path.suffix == '.csv':
        gdf.drop(columns=['geometry'], errors='ignore').to_csv(output_path, index=False)
    elif output_path.suffix == '.parquet':
        gdf.to_parquet(output_path)
    else:
        output_path = Path(str(output_path) + '.gpkg')
        gdf.to_file(output_path, driver='GPKG')

    logger.info(f"结果已保存: {output_path}")
    return output_path


def global_summary_frame(results: Dict[str, GlobalMoranResult]) -> pd.DataFrame:
    """全局 Moran's I 摘要表（每变量一行）"""
    rows = []
    for key, result in results.items():
        row = {'variable': key}
        row.update(result.to_dict())
        rows.append(row)
    return pd.DataFrame(rows)


def save_global_summary(
    results: Dict[str, GlobalMoranResult],
    output_path: Union[str, Path]
) -> Path:
    """保存全局 Moran's I 摘要 CSV"""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    global_summary_frame(results).to_csv(output_path, index=False)
    logger.info(f"全局统计摘要已保存: {output_path}")
    return output_path
