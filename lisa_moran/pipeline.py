"""
LISA / Moran's I 分析流程

对每个变量独立执行同一套流程（游耕 jhum 与非游耕 non-jhum 分别调用一次）:
    1. 剔除该变量缺失的单元
    2. 构建邻接图（queen / rook，snap 容差）
    3. 构建空间权重矩阵（行标准化，zero policy）
    4. 局部 Moran's I（解析或条件置换）
    5. 全局 Moran's I
    6. LISA 聚类分类和 p 值分级
    7. Moran 散点图数据

各变量的数据子集互不共享可变状态。

使用方法:
    python -m lisa_moran lisa --input <NSS_jnj.shp> --preset region -o <result.gpkg>
"""

from __future__ import annotations

import argparse
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import geopandas as gpd

from .analysis.classification import classify_lisa_array, classify_pvalues
from .analysis.constants import CLUSTER_LABELS
from .analysis.global_moran import GlobalMoranResult, global_moran
from .analysis.local_moran import LocalMoranResult, local_moran, moran_scatter
from .analysis.neighbors import NeighborGraph, build_neighbor_graph
from .analysis.units import SpatialUnit, defined_units, units_from_frame
from .analysis.weights import WeightsMatrix, build_weights
from .utils.config import AnalysisVariable, LisaConfig


@dataclass
class LisaResult:
    """单个变量的分析结果"""

    variable: AnalysisVariable
    config: LisaConfig
    frame: gpd.GeoDataFrame        # 该变量的有效单元子集（已追加结果列）
    graph: NeighborGraph
    weights: WeightsMatrix
    local: LocalMoranResult
    moran: GlobalMoranResult
    scatter: pd.DataFrame
    n_excluded: int = 0

    @property
    def result_columns(self) -> List[str]:
        k = self.variable.key
        return [
            f'Ii_{k}', f'Z.Ii_{k}', f'P.Ii_{k}',
            f'cluster_{k}', f'pval_class_{k}',
            f'z_{k}', f'lag_z_{k}',
        ]

    def cluster_counts(self) -> Dict[str, int]:
        """各聚类类型的单元数"""
        counts = self.frame[f'cluster_{self.variable.key}'].value_counts()
        return {label: int(counts.get(label, 0)) for label in CLUSTER_LABELS}

    def summary(self) -> str:
        """生成摘要报告"""
        graph_summary = self.graph.summary()
        lines = [
            "",
            "=" * 60,
            f"LISA 分析结果: {self.variable.display_name} ({self.variable.column})",
            "=" * 60,
            f"  有效单元: {len(self.frame)}（剔除缺失 {self.n_excluded}）",
            f"  平均邻居数: {graph_summary['avg_neighbors']:.2f}，孤立单元: {graph_summary['isolated_units']}",
            f"  显著性水平 α = {self.config.alpha}，方法: {self.local.method}",
            "",
            "LISA 聚类:",
        ]
        for label, count in self.cluster_counts().items():
            lines.append(f"  {label}: {count}")
        lines.append("")
        lines.append(self.moran.report(self.variable.display_name, alpha=self.config.alpha))
        lines.append(f"  散点图拟合斜率 = {self.scatter.attrs.get('slope', np.nan):.4f}")
        return '\n'.join(lines)


@dataclass
class VariableSubset:
    """单个变量的有效单元子集及其邻接图和空间权重"""

    variable: AnalysisVariable
    frame: gpd.GeoDataFrame        # 有效单元（保持原索引）
    units: List[SpatialUnit]
    graph: NeighborGraph
    weights: WeightsMatrix
    n_excluded: int = 0

    @property
    def values(self) -> np.ndarray:
        return np.array([unit.value for unit in self.units], dtype=np.float64)


def prepare_variable(
    gdf: gpd.GeoDataFrame,
    variable: AnalysisVariable,
    config: Optional[LisaConfig] = None,
    id_column: Optional[str] = None,
    verbose: bool = False
) -> VariableSubset:
    """
    剔除该变量缺失的单元，并在剩余单元上构建邻接图和空间权重

    参数:
        gdf: 多边形 GeoDataFrame
        variable: 分析变量
        config: 分析参数（默认 LisaConfig()）
        id_column: 单元ID列名（默认使用索引）
        verbose: 是否打印进度

    返回:
        VariableSubset
    """
    config = (config or LisaConfig()).validate()

    # 1. 剔除缺失单元
    units = units_from_frame(gdf, variable.column, id_column=id_column)
    keep = np.array([unit.is_defined for unit in units], dtype=bool)
    defined = defined_units(units)
    n_excluded = len(units) - len(defined)

    if verbose:
        print(f"\n[1] 有效单元: {len(defined)}（剔除缺失 {n_excluded}）")

    # 2. 邻接图
    if verbose:
        print("\n[2] 构建邻接图...")
    graph = build_neighbor_graph(
        [unit.geometry for unit in defined],
        unit_ids=[unit.unit_id for unit in defined],
        queen=config.queen,
        snap=config.snap,
        verbose=verbose
    )

    # 3. 空间权重（孤立单元检查在任何统计量之前）
    if verbose:
        print("\n[3] 构建空间权重矩阵...")
    weights = build_weights(graph, style=config.style, zero_policy=config.zero_policy)

    return VariableSubset(
        variable=variable,
        frame=gdf.loc[keep].copy(),
        units=defined,
        graph=graph,
        weights=weights,
        n_excluded=n_excluded,
    )


def run_lisa(
    gdf: gpd.GeoDataFrame,
    variable: AnalysisVariable,
    config: Optional[LisaConfig] = None,
    id_column: Optional[str] = None,
    verbose: bool = True
) -> LisaResult:
    """
    对单个变量执行完整 LISA 流程

    参数:
        gdf: 多边形 GeoDataFrame
        variable: 分析变量
        config: 分析参数（默认 LisaConfig()）
        id_column: 单元ID列名（默认使用索引）
        verbose: 是否打印进度

    返回:
        LisaResult
    """
    config = (config or LisaConfig()).validate()
    k = variable.key

    if verbose:
        print("\n" + "=" * 60)
        print(f"LISA 分析: {variable.display_name} ({variable.column})")
        print("=" * 60)

    # 1-3. 有效单元、邻接图、空间权重
    prepared = prepare_variable(gdf, variable, config, id_column=id_column, verbose=verbose)
    subset = prepared.frame
    graph = prepared.graph
    weights = prepared.weights
    x = prepared.values

    # 4. 局部 Moran's I
    if verbose:
        print(f"\n[4] 计算局部 Moran's I（{config.method}）...")
    local = local_moran(
        x,
        weights,
        method=config.method,
        assumption=config.local_assumption,
        permutations=config.permutations,
        seed=config.seed
    )

    # 5. 全局 Moran's I
    if verbose:
        print(f"\n[5] 计算全局 Moran's I（{config.global_assumption}）...")
    moran = global_moran(x, weights, assumption=config.global_assumption)

    # 6. 聚类分类
    clusters = classify_lisa_array(local.z, local.Z, local.p, alpha=config.alpha)
    pval_classes = classify_pvalues(local.p)

    subset[f'Ii_{k}'] = local.Ii
    subset[f'Z.Ii_{k}'] = local.Z
    subset[f'P.Ii_{k}'] = local.p
    subset[f'cluster_{k}'] = clusters
    subset[f'pval_class_{k}'] = pval_classes
    subset[f'z_{k}'] = local.z
    subset[f'lag_z_{k}'] = local.lag

    # 7. 散点图数据
    scatter = moran_scatter(x, weights)

    result = LisaResult(
        variable=variable,
        config=config,
        frame=subset,
        graph=graph,
        weights=weights,
        local=local,
        moran=moran,
        scatter=scatter,
        n_excluded=prepared.n_excluded,
    )

    if verbose:
        print(result.summary())

    return result


def run_all(
    gdf: gpd.GeoDataFrame,
    variables: Iterable[AnalysisVariable],
    config: Optional[LisaConfig] = None,
    id_column: Optional[str] = None,
    verbose: bool = True
) -> Dict[str, LisaResult]:
    """对多个变量分别执行 LISA 流程，返回 {变量key: LisaResult}"""
    results: Dict[str, LisaResult] = {}
    for variable in variables:
        if variable.key in results:
            raise ValueError(f"变量 key 重复: {variable.key}")
        results[variable.key] = run_lisa(
            gdf, variable, config=config, id_column=id_column, verbose=verbose
        )
    return results


def merge_results(
    gdf: gpd.GeoDataFrame,
    results: Dict[str, LisaResult]
) -> gpd.GeoDataFrame:
    """将各变量结果列并回完整数据（缺失单元对应列为空）"""
    merged = gdf.copy()
    for result in results.values():
        for col in result.result_columns:
            merged[col] = result.frame[col].reindex(merged.index)
    return merged


def run_analysis(
    input_path: str,
    output_path: str,
    variables: List[AnalysisVariable],
    config: Optional[LisaConfig] = None,
    id_column: Optional[str] = None,
    plot_dir: Optional[str] = None,
    verbose: bool = True
) -> Dict[str, LisaResult]:
    """
    读取矢量数据、执行分析并保存结果

    参数:
        input_path: 多边形数据路径（.shp / .gpkg / .geojson）
        output_path: 逐单元结果输出路径（.gpkg / .csv / .parquet）
        variables: 分析变量列表
        config: 分析参数
        id_column: 单元ID列名
        plot_dir: 图表输出目录（None 时不绘图）
        verbose: 是否打印详细信息

    输出文件:
        <output>                 逐单元结果
        <output>_moran.csv       全局 Moran's I 摘要
        <plot_dir>/*.png         聚类图、p 值图、散点图
    """
    from .utils.io import read_polygons, save_global_summary, save_results

    print("\n[读取] " + str(input_path))
    gdf = read_polygons(input_path, id_column=id_column)
    print(f"  单元数量: {len(gdf)}")

    results = run_all(gdf, variables, config=config, id_column=id_column, verbose=verbose)

    merged = merge_results(gdf, results)
    saved = save_results(merged, output_path)
    print(f"\n[保存] 逐单元结果: {saved}")

    summary_path = saved.with_name(saved.stem + '_moran.csv')
    save_global_summary({k: r.moran for k, r in results.items()}, summary_path)
    print(f"  全局统计摘要: {summary_path}")

    if plot_dir:
        from .utils.plotting import plot_all

        figures = plot_all(results, plot_dir)
        print(f"  图表: {len(figures)} 张 -> {plot_dir}")

    return results


def add_config_arguments(parser) -> None:
    """邻接、权重和显著性参数（未指定时使用预设值）"""
    from .utils.config import PRESETS

    group = parser.add_argument_group('分析参数')
    group.add_argument('--preset', default='region', choices=sorted(PRESETS),
                       help='参数预设: region（rook, snap=0.0005, α=0.05）或 state（queen, snap=0.005, α=0.01）')
    group.add_argument('--queen', dest='queen', action='store_const', const=True, default=None,
                       help='queen 邻接（含角点接触）')
    group.add_argument('--rook', dest='queen', action='store_const', const=False,
                       help='rook 邻接（须共享边）')
    group.add_argument('--snap', type=float, default=None,
                       help='边界捕捉容差（坐标单位）')
    group.add_argument('--style', default=None, choices=['W', 'B'],
                       help='权重样式: W=行标准化, B=二值')
    group.add_argument('--zero-policy', dest='zero_policy', action=argparse.BooleanOptionalAction,
                       default=None, help='是否容忍孤立单元（--no-zero-policy 时存在孤立单元即报错）')
    group.add_argument('--global-assumption', default=None, choices=['randomization', 'normality'],
                       help='全局 Moran\'s I 方差假设')


def add_lisa_arguments(parser) -> None:
    """lisa 模式参数"""
    parser.add_argument('--input', required=True,
                        help='多边形数据路径 (.shp/.gpkg/.geojson)')
    parser.add_argument('-o', '--output', required=True,
                        help='输出文件路径 (.gpkg/.csv/.parquet)')
    parser.add_argument('--variables', nargs='+', default=None,
                        help='分析变量，格式 column 或 key=column（默认使用预设变量）')
    parser.add_argument('--id-column', default=None,
                        help='单元ID字段名（默认使用行索引）')

    add_config_arguments(parser)

    lisa_group = parser.add_argument_group('局部统计参数')
    lisa_group.add_argument('--alpha', type=float, default=None,
                            help='LISA 显著性水平')
    lisa_group.add_argument('--method', default=None, choices=['analytic', 'permutation'],
                            help='显著性推断方法')
    lisa_group.add_argument('--permutations', type=int, default=None,
                            help='置换次数 (默认: 999)')
    lisa_group.add_argument('--seed', type=int, default=None,
                            help='置换检验随机种子')
    lisa_group.add_argument('--local-assumption', default=None, choices=['conditional', 'total'],
                            help='局部 Moran\'s I 解析矩假设')

    parser.add_argument('--plot-dir', default=None,
                        help='图表输出目录（不指定则不绘图）')
    parser.add_argument('--quiet', action='store_true',
                        help='静默模式')


def config_from_args(args) -> LisaConfig:
    """由命令行参数和预设构建配置"""
    from .utils.config import PRESETS

    preset = PRESETS[args.preset]
    return preset.config.with_options(
        queen=args.queen,
        snap=args.snap,
        style=args.style,
        zero_policy=args.zero_policy,
        alpha=getattr(args, 'alpha', None),
        method=getattr(args, 'method', None),
        permutations=getattr(args, 'permutations', None),
        seed=getattr(args, 'seed', None),
        local_assumption=getattr(args, 'local_assumption', None),
        global_assumption=args.global_assumption,
    ).validate()


def main(args=None):
    """
    LISA 分析主函数
    """
    from .utils.config import PRESETS, parse_variable

    if args is None:
        parser = argparse.ArgumentParser(
            description='LISA 聚类与 Moran\'s I 分析',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        add_lisa_arguments(parser)
        args = parser.parse_args()

    if not Path(args.input).exists():
        print(f"错误: 输入文件不存在 - {args.input}")
        sys.exit(1)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"错误: {e}")
        sys.exit(1)
    preset = PRESETS[args.preset]
    variables = [parse_variable(v) for v in args.variables] if args.variables else preset.variables

    print("\n" + "=" * 60)
    print("LISA 聚类与 Moran's I 分析")
    print("=" * 60)
    print(f"\n输入: {args.input}")
    print(f"输出: {args.output}")
    print(f"\n分析参数:")
    print(f"  变量: {', '.join(v.column for v in variables)}")
    print(f"  邻接: {'queen' if config.queen else 'rook'}，snap = {config.snap}")
    print(f"  权重: {config.style}，zero_policy = {config.zero_policy}")
    print(f"  显著性: α = {config.alpha}，方法 = {config.method}")

    try:
        run_analysis(
            input_path=args.input,
            output_path=args.output,
            variables=variables,
            config=config,
            id_column=args.id_column,
            plot_dir=args.plot_dir,
            verbose=not args.quiet
        )

        print("\n" + "=" * 60)
        print("✓ LISA 分析完成!")
        print("=" * 60)

    except Exception as e:
        print(f"\n错误: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
