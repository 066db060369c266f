"""
标记扫描器 - 识别模板中的 {-字段-} 标记

职责：
1. 从docx文档主体或xlsx所有单元格提取纯文本
2. 匹配分隔符包围的标记（非贪婪，可跨行）
3. 去重（保留首次出现的原始标记），按"普通字段在前、表格字段在后"稳定排序

测试要点：
- test_scan_scalar_before_table: 表格字段排在最后
- test_scan_dedup: 同一标记只出现一次
- test_scan_unterminated: 未闭合标记静默跳过
- test_scan_docx_split_runs: 标记被拆分到多个文本行
- test_scan_xlsx: Excel所有工作表单元格
"""

from __future__ import annotations

import io
import re
from typing import Iterable, Iterator

from openpyxl import load_workbook

from ..config import get_config
from ..interfaces import IPlaceholderScanner, ParseError
from ..models import FieldDefinition
from .ooxml import paragraph_text, parse_part, qn
from .package import DOCX_PRIMARY_PART, DocumentPackage


def compile_placeholder_pattern(start: str, end: str) -> re.Pattern[str]:
    """{-内容-}：内容非贪婪匹配，可跨行"""
    return re.compile(re.escape(start) + r"([\s\S]+?)" + re.escape(end))


class PlaceholderScanner(IPlaceholderScanner):
    """标记扫描器实现"""

    def __init__(self, start: str | None = None, end: str | None = None):
        placeholder = get_config().placeholder
        self.start = start or placeholder.start
        self.end = end or placeholder.end
        self.pattern = compile_placeholder_pattern(self.start, self.end)

    def scan(self, raw_text: str, table_keyword: str) -> list[FieldDefinition]:
        """扫描一段文本"""
        return self.scan_texts([raw_text], table_keyword)

    def scan_texts(self, texts: Iterable[str], table_keyword: str) -> list[FieldDefinition]:
        """扫描多段文本（标记不跨段），整体去重"""
        seen: set[str] = set()
        fields: list[FieldDefinition] = []

        for text in texts:
            for match in self.pattern.finditer(text):
                content = match.group(1).strip()
                if not content or content in seen:
                    continue
                seen.add(content)
                fields.append(FieldDefinition(
                    original_tag=match.group(0),
                    field_name=content,
                    is_table=table_keyword in content,
                ))

        # sorted() 稳定：同类保持首次出现顺序
        return sorted(fields, key=lambda f: f.is_table)

    # === 按格式取文本 ===

    def scan_docx(self, package: DocumentPackage | bytes, table_keyword: str | None = None) -> list[FieldDefinition]:
        if isinstance(package, bytes):
            package = DocumentPackage.from_bytes(package)
        keyword = table_keyword or get_config().placeholder.table_keyword
        return self.scan(extract_docx_text(package, get_config().package.docx_primary_part), keyword)

    def scan_xlsx(self, data: bytes, table_keyword: str | None = None) -> list[FieldDefinition]:
        keyword = table_keyword or get_config().placeholder.table_keyword
        return self.scan_texts(iter_xlsx_text(data), keyword)


def extract_docx_text(package: DocumentPackage, part: str = DOCX_PRIMARY_PART) -> str:
    """
    提取文档主体纯文本

    每个段落（含表格单元格中的段落）一行，段落之间空一行
    """
    if not package.has_part(part):
        raise ParseError(f"无法找到文档主体 (document part): {part}")
    root = parse_part(package.read_part(part))
    return "\n\n".join(paragraph_text(p) for p in root.iter(qn("p")))


def iter_xlsx_text(data: bytes) -> Iterator[str]:
    """依次产出所有工作表中字符串单元格的文本（按行优先）"""
    if not data:
        raise ParseError("无法读取文件内容: 文件为空")
    try:
        wb = load_workbook(io.BytesIO(data))
    except Exception as e:
        raise ParseError(f"不是有效的Excel文件: {e}") from e

    for ws in wb.worksheets:
        for row in ws.iter_rows():
            for cell in row:
                if isinstance(cell.value, str):
                    yield cell.value
