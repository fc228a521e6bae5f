"""
工具模块

核心组件:
    - config: 分析参数和 NSS 变量预设
    - io: 矢量数据读取、几何校验和结果保存
    - plotting: 聚类图、p 值图和 Moran 散点图（按需导入，依赖 matplotlib）
"""

from .config import (
    PRESETS,
    REGION_CONFIG,
    STATE_CONFIG,
    AnalysisVariable,
    LisaConfig,
    parse_variable,
)
from .io import (
    global_summary_frame,
    read_polygons,
    save_global_summary,
    save_results,
    validate_geometries,
)

__all__ = [
    # 配置
    'PRESETS',
    'REGION_CONFIG',
    'STATE_CONFIG',
    'AnalysisVariable',
    'LisaConfig',
    'parse_variable',
    # I/O
    'global_summary_frame',
    'read_polygons',
    'save_global_summary',
    'save_results',
    'validate_geometries',
]
