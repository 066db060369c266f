"""
生成流水线阶段定义

阶段严格顺序执行（后一阶段依赖前一阶段的结果）：
读取 → 字段替换 → 表格生成 → 表格拼接 → 打包输出
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """流水线阶段枚举"""
    LOAD_PACKAGE = "LOAD_PACKAGE"
    RENDER_FIELDS = "RENDER_FIELDS"
    BUILD_TABLE = "BUILD_TABLE"
    SPLICE_TABLE = "SPLICE_TABLE"
    SERIALIZE = "SERIALIZE"


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# 文档生成流水线各阶段配置
GENERATION_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.LOAD_PACKAGE.value, 0, 10),
    PipelineStage(StageEnum.RENDER_FIELDS.value, 10, 50),
    PipelineStage(StageEnum.BUILD_TABLE.value, 50, 60),
    PipelineStage(StageEnum.SPLICE_TABLE.value, 60, 90),
    PipelineStage(StageEnum.SERIALIZE.value, 90, 100),
]
