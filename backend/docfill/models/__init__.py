"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- FieldDefinition: 标记扫描结果
- ScalarValue / TableAnchor: 字段渲染取值
- LineItem / TableData: 商品表格数据
- GenerationJob: 生成任务状态与生命周期
"""

from .field import FieldDefinition, FieldValue, ScalarValue, TableAnchor, find_table_field
from .job import DocFormat, GenerationJob, JobProgress, JobStatus
from .line_item import LineItem, TableData

__all__ = [
    "FieldDefinition",
    "FieldValue",
    "ScalarValue",
    "TableAnchor",
    "find_table_field",
    "LineItem",
    "TableData",
    "GenerationJob",
    "JobProgress",
    "JobStatus",
    "DocFormat",
]
