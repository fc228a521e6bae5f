"""
LISA 结果可视化

- 聚类图: 按 LISA 聚类类型着色的分级设色图
- p 值图: 按显著性分级着色
- Moran 散点图: 标准化取值 vs 标准化空间滞后，含拟合直线

所有函数显式接收输出目录，不依赖全局状态。
"""

from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Union

import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.patches import Patch
import numpy as np
import geopandas as gpd
import pandas as pd

from ..analysis.constants import (
    LISA_CLUSTER_PALETTE,
    PVALUE_CLASSES,
    PVALUE_PALETTE_BLUE,
    PVALUE_PALETTE_RED,
)

if TYPE_CHECKING:
    from ..pipeline import LisaResult


def _categorical_map(
    gdf: gpd.GeoDataFrame,
    column: str,
    palette: Mapping[str, str],
    title: str,
    legend_title: str,
    figsize: tuple = (8, 6)
) -> Figure:
    fig, ax = plt.subplots(figsize=figsize)

    colors = gdf[column].map(palette).fillna(palette.get('Not Significant', '#cccccc'))
    gdf.plot(ax=ax, color=colors.tolist(), edgecolor='black', linewidth=0.3)

    present = set(gdf[column].dropna())
    handles = [
        Patch(facecolor=color, edgecolor='black', label=label)
        for label, color in palette.items() if label in present
    ]
    ax.legend(handles=handles, title=legend_title, loc='lower right', fontsize=9)
    ax.set_title(title, fontsize=13)
    ax.set_axis_off()
    plt.tight_layout()
    return fig


def plot_cluster_map(
    gdf: gpd.GeoDataFrame,
    cluster_column: str,
    title: str = 'LISA Clusters',
    save_path: Optional[Union[str, Path]] = None,
    dpi: int = 600
) -> Figure:
    """绘制 LISA 聚类图"""
    fig = _categorical_map(gdf, cluster_column, LISA_CLUSTER_PALETTE, title, 'Cluster Type')
    if save_path:
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        print(f"图表已保存: {save_path}")
    return fig


def plot_pvalue_map(
    gdf: gpd.GeoDataFrame,
    pval_class_column: str,
    title: str = 'LISA Significance',
    palette: Optional[Mapping[str, str]] = None,
    save_path: Optional[Union[str, Path]] = None,
    dpi: int = 600
) -> Figure:
    """绘制 p 值显著性分级图"""
    palette = palette or PVALUE_PALETTE_RED
    ordered = {label: palette[label] for label in PVALUE_CLASSES}
    fig = _categorical_map(gdf, pval_class_column, ordered, title, 'LISA p-values')
    if save_path:
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        print(f"图表已保存: {save_path}")
    return fig


def plot_moran_scatter(
    scatter: pd.DataFrame,
    title: str = 'Moran Scatter Plot',
    xlabel: str = 'Standardized value',
    ylabel: str = 'Spatial lag',
    save_path: Optional[Union[str, Path]] = None,
    dpi: int = 600
) -> Figure:
    """
    绘制 Moran 散点图

    参数:
        scatter: 含 x, y 列的 DataFrame（moran_scatter 输出）
    """
    fig, ax = plt.subplots(figsize=(6, 6))

    x = scatter['x'].to_numpy()
    y = scatter['y'].to_numpy()
    ax.scatter(x, y, s=30, facecolor='#a6cee3', edgecolor='#1f78b4', alpha=0.6)

    slope = scatter.attrs.get('slope')
    if slope is None:
        slope = float(np.polyfit(x, y, 1)[0])
    intercept = y.mean() - slope * x.mean()
    xs = np.linspace(x.min(), x.max(), 50)
    ax.plot(xs, intercept + slope * xs, color='darkred', linewidth=1.5,
            label=f'slope = {slope:.3f}')

    ax.axhline(0, linestyle='--', color='grey', linewidth=0.8)
    ax.axvline(0, linestyle='--', color='grey', linewidth=0.8)
    ax.set_xlabel(xlabel, fontsize=12)
    ax.set_ylabel(ylabel, fontsize=12)
    ax.set_title(title, fontsize=13, fontweight='bold')
    ax.legend(loc='upper left', fontsize=9)
    ax.grid(True, linestyle='--', alpha=0.4)
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        print(f"图表已保存: {save_path}")
    return fig


def plot_all(
    results: Dict[str, 'LisaResult'],
    output_dir: Union[str, Path],
    dpi: int = 300
) -> List[Path]:
    """
    为每个变量输出聚类图、p 值图和散点图

    参数:
        results: {变量key: LisaResult}
        output_dir: 输出目录（不存在时创建）
        dpi: 图片分辨率

    返回:
        已保存的文件路径列表
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    palettes = [PVALUE_PALETTE_RED, PVALUE_PALETTE_BLUE]
    saved: List[Path] = []

    for i, (key, result) in enumerate(results.items()):
        name = result.variable.display_name

        path = output_dir / f'{key}_lisa_cluster.png'
        fig = plot_cluster_map(result.frame, f'cluster_{key}',
                               title=f'LISA Clusters of\n{name}', save_path=path, dpi=dpi)
        plt.close(fig)
        saved.append(path)

        path = output_dir / f'{key}_pvalue_map.png'
        fig = plot_pvalue_map(result.frame, f'pval_class_{key}',
                              title=f'LISA Significance\n({name})',
                              palette=palettes[i % len(palettes)], save_path=path, dpi=dpi)
        plt.close(fig)
        saved.append(path)

        path = output_dir / f'{key}_moran_scatter.png'
        fig = plot_moran_scatter(result.scatter, title=f'Moran Scatter Plot: {name}',
                                 xlabel=f'Standardized {name}', ylabel=f'Spatial Lag of {name}',
                                 save_path=path, dpi=dpi)
        plt.close(fig)
        saved.append(path)

    return saved
