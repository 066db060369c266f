"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from docfill.interfaces import IPlaceholderScanner

    class MyScanner(IPlaceholderScanner):
        def scan(self, raw_text: str, table_keyword: str) -> list[FieldDefinition]:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Mapping, Sequence

if TYPE_CHECKING:
    from .models import FieldDefinition, LineItem, TableData
    from .template.package import DocumentPackage
    from .template.renderer import RenderedPackage
    from .template.splicer import SpliceResult
    from .template.spreadsheet import SheetFillResult


# ============================================================================
# 模板处理模块接口
# ============================================================================

class IPlaceholderScanner(ABC):
    """标记扫描器接口 - 识别文本中的 {-字段-} 标记"""

    @abstractmethod
    def scan(self, raw_text: str, table_keyword: str) -> list[FieldDefinition]:
        """
        扫描原始文本中的所有标记

        Args:
            raw_text: 从文档中提取的纯文本
            table_keyword: 表格字段关键字

        Returns:
            去重后的字段定义（普通字段在前，表格字段在后）；
            未找到标记时返回空列表
        """
        ...


class ITableFragmentBuilder(ABC):
    """表格片段生成器接口 - 商品明细 → 表格XML"""

    @abstractmethod
    def build(
        self,
        items: Sequence[LineItem],
        total: float,
        headers: Sequence[str],
    ) -> str:
        """
        生成 w:tbl 片段

        Args:
            items: 商品明细（按录入顺序）
            total: 合计金额
            headers: 8个列标题

        Returns:
            表格XML片段文本（相同输入输出完全一致）
        """
        ...


class ITemplateRenderer(ABC):
    """模板渲染器接口 - 普通字段替换"""

    @abstractmethod
    def render(
        self,
        package: DocumentPackage,
        field_values: Mapping[str, str],
        table_field_name: str | None = None,
    ) -> RenderedPackage:
        """
        渲染文档主体

        Args:
            package: 文档包
            field_values: 字段名 → 填写值
            table_field_name: 表格字段名（渲染为占位令牌）

        Returns:
            渲染后的文档包及占位令牌

        Raises:
            ParseError: 缺少文档主体
            TemplateSyntaxError: 标记语法错误（聚合）
        """
        ...


class IPackageSplicer(ABC):
    """文档拼接器接口 - 用表格替换占位段落"""

    @abstractmethod
    def splice(
        self,
        package: DocumentPackage,
        sentinel: str,
        fragment: str,
    ) -> SpliceResult:
        """
        在文档主体中定位占位令牌并替换为表格

        未找到占位令牌时不报错，仅给出告警并原样返回

        Raises:
            ParseError: 文档主体XML无法解析
        """
        ...


class ISpreadsheetFiller(ABC):
    """Excel模板填充器接口"""

    @abstractmethod
    def fill(
        self,
        data: bytes,
        field_values: Mapping[str, str],
        table_data: TableData | None = None,
        fields: Sequence[FieldDefinition] = (),
    ) -> SheetFillResult:
        """
        填充Excel模板

        Returns:
            填充后的xlsx字节及表格插入情况；未找到表格标记时只告警

        Raises:
            ParseError: 文件为空或不是有效的xlsx
        """
        ...


# ============================================================================
# 异常定义
# ============================================================================

class DocFillError(Exception):
    """基础异常"""
    pass


class ParseError(DocFillError):
    """文档解析错误（文件为空/不是有效压缩包/缺少文档主体/XML损坏）"""
    pass


class NoPlaceholderError(DocFillError):
    """文档中未找到任何标记"""
    pass


class GenerationError(DocFillError):
    """生成错误"""
    pass


class TemplateSyntaxError(GenerationError):
    """模板标记错误（聚合所有标记的错误）"""

    def __init__(self, errors: Sequence):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]


class AnchorNotFoundWarning(UserWarning):
    """渲染后未找到表格占位令牌（不中断生成，输出不含表格）"""
    pass
