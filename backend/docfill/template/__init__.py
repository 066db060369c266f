"""
模板处理模块 - 标记扫描/字段渲染/表格生成/XML拼接/Excel填充

子模块：
- package: docx/xlsx 压缩包读写
- scanner: 标记扫描
- table_builder: 商品表格片段生成
- engine: 标记替换引擎
- renderer: 文档主体渲染
- splicer: 表格拼接
- spreadsheet: Excel模板填充
- csv_export: 商品表格CSV导出
"""

from .csv_export import export_csv
from .engine import TagError, TemplateEngine
from .package import DocumentPackage
from .renderer import RenderedPackage, TemplateRenderer
from .scanner import PlaceholderScanner, extract_docx_text, iter_xlsx_text
from .splicer import PackageSplicer, SpliceResult, SpliceState
from .spreadsheet import SheetFillResult, SpreadsheetFiller
from .table_builder import SheetRow, TableFragmentBuilder, build_sheet_rows

__all__ = [
    "DocumentPackage",
    "PlaceholderScanner",
    "extract_docx_text",
    "iter_xlsx_text",
    "TableFragmentBuilder",
    "SheetRow",
    "build_sheet_rows",
    "TemplateEngine",
    "TagError",
    "TemplateRenderer",
    "RenderedPackage",
    "PackageSplicer",
    "SpliceResult",
    "SpliceState",
    "SpreadsheetFiller",
    "SheetFillResult",
    "export_csv",
]
