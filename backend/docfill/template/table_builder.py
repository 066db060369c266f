"""
表格片段生成器 - 商品明细 → Word表格XML / Excel行

职责：
1. 表头行（加粗、居中）
2. 明细行：[序号, 名称, 型号, 单位, 数量, 单价, 金额, 备注]（居中）
3. 合计行：前6列合并为右对齐的合计标签，合计金额居中，最后一列留空

约定：
- 文本转义 & < >
- 数值输出为普通十进制文本（整数不带小数，无千分位）
- 相同输入输出完全一致

测试要点：
- test_build_empty_items: 空明细只有表头+合计两行
- test_build_escape_roundtrip: 特殊字符转义后可原样解析回来
- test_build_deterministic: 相同输入输出一致
- test_build_sheet_rows: Excel行角色与取值
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..config import get_config
from ..interfaces import ITableFragmentBuilder
from ..models import LineItem

COLUMN_COUNT = 8
TOTAL_LABEL_SPAN = 6

_BORDER_EDGES = ("top", "left", "bottom", "right", "insideH", "insideV")


def escape_text(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_number(value: float | int) -> str:
    """201.11 → '201.11'，2.0 → '2'，0 → '0'"""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def format_cell(value: str | float | int) -> str:
    if isinstance(value, str):
        return value
    return format_number(value)


def item_values(index: int, item: LineItem) -> list[str | float]:
    """明细行取值（index 从0开始，序号从1开始）"""
    return [
        index + 1,
        item.name,
        item.model,
        item.unit,
        item.quantity,
        item.price,
        item.amount,
        item.remark or "",
    ]


@dataclass
class SheetRow:
    """Excel行（role: header / item / total）"""
    role: str
    values: list


class TableFragmentBuilder(ITableFragmentBuilder):
    """表格片段生成器实现"""

    def __init__(self, total_label: str | None = None, width_pct: int | None = None, border_size: int | None = None):
        table = get_config().table
        self.total_label = total_label if total_label is not None else table.total_label
        self.width_pct = width_pct or table.width_pct
        self.border_size = border_size or table.border_size

    def build(
        self,
        items: Sequence[LineItem],
        total: float,
        headers: Sequence[str],
    ) -> str:
        """生成 w:tbl 片段（使用 w: 前缀，由拼接器在声明命名空间后解析）"""
        _check_headers(headers)

        parts = ["<w:tbl>", self._table_properties(), "<w:tblGrid>" + "<w:gridCol/>" * COLUMN_COUNT + "</w:tblGrid>"]

        # 表头
        parts.append(self._row(self._cell(h, bold=True) for h in headers))

        # 明细
        for index, item in enumerate(items):
            parts.append(self._row(self._cell(v) for v in item_values(index, item)))

        # 合计
        parts.append(self._row([
            self._cell(self.total_label, bold=True, align="right", grid_span=TOTAL_LABEL_SPAN),
            self._cell(total, bold=True),
            self._cell(""),
        ]))

        parts.append("</w:tbl>")
        return "".join(parts)

    def _table_properties(self) -> str:
        borders = "".join(
            f'<w:{edge} w:val="single" w:sz="{self.border_size}" w:space="0" w:color="auto"/>'
            for edge in _BORDER_EDGES
        )
        return (
            f'<w:tblPr><w:tblW w:w="{self.width_pct}" w:type="pct"/>'
            f"<w:tblBorders>{borders}</w:tblBorders></w:tblPr>"
        )

    @staticmethod
    def _row(cells) -> str:
        return "<w:tr>" + "".join(cells) + "</w:tr>"

    @staticmethod
    def _cell(
        content: str | float | int,
        bold: bool = False,
        align: str = "center",
        grid_span: int = 0,
    ) -> str:
        span_xml = f'<w:gridSpan w:val="{grid_span}"/>' if grid_span > 0 else ""
        bold_xml = "<w:rPr><w:b/></w:rPr>" if bold else ""
        text = escape_text(format_cell(content))
        return (
            "<w:tc>"
            f'<w:tcPr><w:tcW w:w="0" w:type="auto"/>{span_xml}<w:vAlign w:val="center"/></w:tcPr>'
            f'<w:p><w:pPr><w:jc w:val="{align}"/></w:pPr>'
            f'<w:r>{bold_xml}<w:t xml:space="preserve">{text}</w:t></w:r></w:p>'
            "</w:tc>"
        )


def build_sheet_rows(
    items: Sequence[LineItem],
    total: float,
    headers: Sequence[str],
    total_label: str,
) -> list[SheetRow]:
    """Excel表格行：表头 + 明细 + 合计"""
    _check_headers(headers)
    rows = [SheetRow("header", list(headers))]
    rows.extend(SheetRow("item", item_values(i, item)) for i, item in enumerate(items))
    rows.append(SheetRow("total", [total_label, "", "", "", "", "", total, ""]))
    return rows


def _check_headers(headers: Sequence[str]) -> None:
    if len(headers) != COLUMN_COUNT:
        raise ValueError(f"表头必须为{COLUMN_COUNT}列，实际 {len(headers)} 列")
