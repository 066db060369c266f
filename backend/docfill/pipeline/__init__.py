"""
流水线模块 - 模板分析与文档生成编排

职责：
- 定义生成阶段
- 执行流水线并跟踪任务进度
- 异常到用户提示的映射
"""

from .executor import DocumentGenerator, GenerationResult, user_message
from .stages import GENERATION_STAGES, PipelineStage, StageEnum

__all__ = [
    "DocumentGenerator",
    "GenerationResult",
    "user_message",
    "PipelineStage",
    "StageEnum",
    "GENERATION_STAGES",
]
