"""
模板渲染器 - 普通字段替换 + 表格字段占位令牌

职责：
1. 读取文档主体（word/document.xml）
2. 表格字段的取值替换为本次渲染唯一的占位令牌
3. 调用替换引擎完成所有标记替换，错误聚合为 TemplateSyntaxError
4. 写回新的文档包（输入包不修改）

测试要点：
- test_render_scalar: 普通字段替换
- test_render_split_runs: 标记拆分在多个文本行
- test_render_table_sentinel: 表格字段渲染为占位令牌
- test_render_errors_aggregated: 多个错误合并抛出
- test_render_missing_primary_part: 缺少文档主体
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Mapping

from ..config import get_config
from ..interfaces import ITemplateRenderer, ParseError, TemplateSyntaxError
from ..models import FieldValue, ScalarValue, TableAnchor
from .engine import TemplateEngine
from .ooxml import parse_part, serialize_part
from .package import DocumentPackage

logger = logging.getLogger(__name__)


@dataclass
class RenderedPackage:
    """渲染结果"""
    package: DocumentPackage
    sentinel: str | None = None
    table_field_name: str | None = None
    replaced: int = 0


class TemplateRenderer(ITemplateRenderer):
    """模板渲染器实现"""

    def __init__(self, engine: TemplateEngine | None = None, primary_part: str | None = None):
        config = get_config()
        self.engine = engine or TemplateEngine(
            config.placeholder.start,
            config.placeholder.end,
            linebreaks=config.placeholder.linebreaks,
            strict_missing=config.placeholder.strict_missing,
        )
        self.primary_part = primary_part or config.package.docx_primary_part
        self.sentinel_config = config.sentinel

    def render(
        self,
        package: DocumentPackage,
        field_values: Mapping[str, Any],
        table_field_name: str | None = None,
    ) -> RenderedPackage:
        """渲染文档主体"""
        if not package.has_part(self.primary_part):
            raise ParseError(f"无法找到文档主体 (document part): {self.primary_part}")

        xml = package.read_part(self.primary_part)
        root = parse_part(xml)

        values: dict[str, FieldValue] = {
            name: ScalarValue(text=_to_text(value)) for name, value in field_values.items()
        }

        sentinel = None
        if table_field_name:
            sentinel = self.new_sentinel(xml.decode("utf-8", errors="ignore"))
            values[table_field_name] = TableAnchor(sentinel=sentinel)

        stats, errors = self.engine.render_tree(root, values)
        if errors:
            logger.warning(f"模板标记错误 {len(errors)} 处")
            raise TemplateSyntaxError(errors)

        output = package.copy()
        output.write_part(self.primary_part, serialize_part(root))
        logger.info(f"字段替换完成: {stats.replaced} 处，表格占位 {len(stats.anchors)} 处")

        return RenderedPackage(
            package=output,
            sentinel=sentinel,
            table_field_name=table_field_name,
            replaced=stats.replaced,
        )

    def new_sentinel(self, existing_text: str = "") -> str:
        """生成占位令牌：前缀 + 随机数字 + 后缀，保证不与文档现有内容重复"""
        cfg = self.sentinel_config
        while True:
            token = f"{cfg.prefix}{secrets.randbelow(cfg.random_max)}{cfg.suffix}"
            if token not in existing_text:
                return token


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
