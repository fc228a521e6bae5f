"""
LISA / Moran's I 空间自相关分析 - 命令行接口

模式:
    lisa:       完整流程（邻接图 + 权重 + 局部/全局 Moran's I + 聚类分类 + 输出）
    moran:      仅计算全局 Moran's I
    neighbors:  构建邻接图并输出摘要

使用方法:
    # NSS 区域级数据（rook, snap=0.0005, α=0.05）
    python -m lisa_moran lisa --input NSS_jnj.shp --preset region -o result.gpkg --plot-dir figures

    # 邦级数据（queen, snap=0.005, α=0.01）
    python -m lisa_moran lisa --input state_j_nj.shp --preset state -o state_result.gpkg

    # 自定义变量和置换检验
    python -m lisa_moran lisa --input data.gpkg --variables jhum=jhum_pc_jh crop=pc_crop_no \\
        --method permutation --permutations 999 --seed 42 -o result.gpkg

    # 全局 Moran's I
    python -m lisa_moran moran --input NSS_jnj.shp --variables jhum_pc_jh pc_crop_no
"""

import argparse
import sys
import traceback


def create_lisa_parser(subparsers):
    """创建完整 LISA 流程的参数解析器"""
    from .pipeline import add_lisa_arguments

    parser = subparsers.add_parser(
        'lisa',
        help='LISA 模式 - 局部/全局 Moran\'s I 与聚类分类',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description='对每个变量独立计算局部/全局 Moran\'s I，并输出 LISA 聚类'
    )
    add_lisa_arguments(parser)
    return parser


def create_moran_parser(subparsers):
    """创建全局 Moran's I 模式的参数解析器"""
    from .pipeline import add_config_arguments

    parser = subparsers.add_parser(
        'moran',
        help='全局 Moran\'s I 模式',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description='计算各变量的全局 Moran\'s I 检验'
    )
    parser.add_argument('--input', required=True,
                        help='多边形数据路径 (.shp/.gpkg/.geojson)')
    parser.add_argument('--variables', nargs='+', default=None,
                        help='分析变量，格式 column 或 key=column（默认使用预设变量）')
    parser.add_argument('-o', '--output', default=None,
                        help='摘要 CSV 输出路径（可选）')
    add_config_arguments(parser)
    return parser


def create_neighbors_parser(subparsers):
    """创建邻接图模式的参数解析器"""
    from .pipeline import add_config_arguments

    parser = subparsers.add_parser(
        'neighbors',
        help='邻接图模式 - 输出邻接摘要',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description='构建邻接图并打印邻居数统计和孤立单元'
    )
    parser.add_argument('--input', required=True,
                        help='多边形数据路径 (.shp/.gpkg/.geojson)')
    parser.add_argument('--id-column', default=None,
                        help='单元ID字段名（默认使用行索引）')
    parser.add_argument('-o', '--output', default=None,
                        help='邻接表 CSV 输出路径（可选，每行一对邻居）')
    add_config_arguments(parser)
    return parser


def run_lisa(args):
    """执行完整 LISA 流程"""
    from .pipeline import main as lisa_main
    lisa_main(args)


def run_moran(args):
    """执行全局 Moran's I 计算"""
    from .analysis import global_moran
    from .pipeline import config_from_args, prepare_variable
    from .utils.config import PRESETS, parse_variable
    from .utils.io import read_polygons, save_global_summary

    config = config_from_args(args)
    preset = PRESETS[args.preset]
    variables = [parse_variable(v) for v in args.variables] if args.variables else preset.variables

    gdf = read_polygons(args.input)
    results = {}
    for variable in variables:
        prepared = prepare_variable(gdf, variable, config)
        results[variable.key] = global_moran(
            prepared.values, prepared.weights, assumption=config.global_assumption
        )
        print(f"\n{variable.display_name}: 有效单元 {len(prepared.units)}（剔除缺失 {prepared.n_excluded}）")
        print(results[variable.key].report(variable.display_name, alpha=config.alpha))

    if args.output:
        save_global_summary(results, args.output)
        print(f"\n摘要已保存: {args.output}")


def run_neighbors(args):
    """构建邻接图并输出摘要"""
    from .analysis import build_neighbor_graph
    from .pipeline import config_from_args
    from .utils.io import read_polygons

    import pandas as pd

    config = config_from_args(args)
    gdf = read_polygons(args.input, id_column=args.id_column)
    unit_ids = gdf[args.id_column].tolist() if args.id_column else gdf.index.tolist()

    graph = build_neighbor_graph(
        gdf.geometry.values, unit_ids=unit_ids,
        queen=config.queen, snap=config.snap, verbose=True
    )

    summary = graph.summary()
    print(f"\n邻接图摘要:")
    print(f"  单元数量: {summary['n_units']}")
    print(f"  邻接关系: {summary['n_links']}")
    print(f"  平均邻居数: {summary['avg_neighbors']:.2f}")
    print(f"  邻居数范围: {summary['min_neighbors']} - {summary['max_neighbors']}")
    print(f"  孤立单元: {summary['isolated_units']}")
    if graph.islands():
        print(f"  孤立单元ID: {graph.islands()}")

    if args.output:
        pairs = pd.DataFrame(
            [(uid, nbr) for uid in graph.unit_ids for nbr in graph.neighbors_of(uid)],
            columns=['unit_id', 'neighbor_id']
        )
        pairs.to_csv(args.output, index=False)
        print(f"\n邻接表已保存: {args.output}")


def main():
    """主入口函数"""
    parser = argparse.ArgumentParser(
        prog='python -m lisa_moran',
        description='LISA 与 Moran\'s I 空间自相关分析',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
模式说明:
    lisa        完整流程（局部/全局 Moran's I + LISA 聚类 + 输出）
    moran       全局 Moran's I 检验
    neighbors   邻接图摘要

示例:
    python -m lisa_moran lisa --input NSS_jnj.shp --preset region -o result.gpkg
    python -m lisa_moran moran --input state_j_nj.shp --preset state
    python -m lisa_moran neighbors --input NSS_jnj.shp --rook --snap 0.0005
        """
    )

    subparsers = parser.add_subparsers(
        dest='mode',
        title='运行模式',
        description='选择运行模式',
        metavar='MODE'
    )

    create_lisa_parser(subparsers)
    create_moran_parser(subparsers)
    create_neighbors_parser(subparsers)

    args = parser.parse_args()

    if args.mode is None:
        parser.print_help()
        sys.exit(0)

    if args.mode == 'lisa':
        run_lisa(args)
        return

    try:
        if args.mode == 'moran':
            run_moran(args)
        elif args.mode == 'neighbors':
            run_neighbors(args)
        else:
            parser.print_help()
            sys.exit(1)
    except Exception as e:
        print(f"\n错误: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
