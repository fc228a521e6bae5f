#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
NSS 第 77 轮游耕 / 非游耕 LISA 分析脚本

依次对游耕（jhum）和非游耕（non-jhum）比例执行同一套流程，输出结果表、全局统计摘要和图表。

使用方法:
    python script/run_nss_analysis.py <NSS_jnj.shp> -o <output_dir> [--preset region|state]

示例:
    # 区域级数据（rook, snap=0.0005, α=0.05）
    python script/run_nss_analysis.py data/NSS_jnj.shp -o output/region

    # 邦级数据（queen, snap=0.005, α=0.01），置换检验
    python script/run_nss_analysis.py data/state_j_nj.shp -o output/state --preset state \\
        --method permutation --seed 2018
"""

import sys
import argparse
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lisa_moran import PRESETS, merge_results, run_all
from lisa_moran.utils.io import read_polygons, save_global_summary, save_results
from lisa_moran.utils.plotting import plot_all


def main():
    parser = argparse.ArgumentParser(description='NSS 游耕 / 非游耕 LISA 分析')
    parser.add_argument('input', help='多边形数据路径 (.shp)')
    parser.add_argument('-o', '--output-dir', required=True, help='输出目录')
    parser.add_argument('--preset', default='region', choices=sorted(PRESETS),
                        help='参数预设 (默认: region)')
    parser.add_argument('--method', default=None, choices=['analytic', 'permutation'],
                        help='显著性推断方法')
    parser.add_argument('--seed', type=int, default=None, help='置换检验随机种子')
    parser.add_argument('--no-plot', action='store_true', help='不输出图表')
    args = parser.parse_args()

    preset = PRESETS[args.preset]
    config = preset.config.with_options(method=args.method, seed=args.seed).validate()
    output_dir = Path(args.output_dir)

    gdf = read_polygons(args.input)
    print(f"单元数量: {len(gdf)}")

    results = run_all(gdf, preset.variables, config)

    for key, result in results.items():
        print(f"\n{result.variable.display_name} 聚类统计: {result.cluster_counts()}")

    save_results(merge_results(gdf, results), output_dir / 'lisa_results.gpkg')
    save_global_summary({k: r.moran for k, r in results.items()}, output_dir / 'moran_summary.csv')

    if not args.no_plot:
        saved = plot_all(results, output_dir / 'figures')
        print(f"\n已输出 {len(saved)} 张图表")


if __name__ == '__main__':
    main()
