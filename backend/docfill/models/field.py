"""
字段模型 - 标记扫描结果与渲染取值

FieldDefinition 由扫描产生，之后只读；
渲染阶段使用 ScalarValue / TableAnchor 两种取值区分普通字段与表格字段
"""

from __future__ import annotations

from typing import Sequence, Union

from pydantic import BaseModel


class FieldDefinition(BaseModel):
    """字段定义（扫描结果，创建后不可修改）"""

    original_tag: str      # 原始标记文本，如 "{- 甲方 -}"
    field_name: str        # 去除首尾空白后的标记内容
    is_table: bool = False

    model_config = {"frozen": True}


class ScalarValue(BaseModel):
    """普通字段取值（按原文本写入，不再解析其中的标记）"""

    text: str = ""

    model_config = {"frozen": True}


class TableAnchor(BaseModel):
    """表格字段取值（渲染为占位令牌，随后被表格替换）"""

    sentinel: str

    model_config = {"frozen": True}


FieldValue = Union[ScalarValue, TableAnchor]


def find_table_field(fields: Sequence[FieldDefinition]) -> FieldDefinition | None:
    """返回第一个表格字段（多个表格字段时只使用第一个）"""
    for field in fields:
        if field.is_table:
            return field
    return None
