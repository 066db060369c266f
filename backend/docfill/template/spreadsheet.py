"""
Excel模板填充器 - xlsx 版本的字段替换与表格插入

职责：
1. 遍历所有工作表的字符串单元格
2. 含表格标记的单元格清空，所在行作为表格插入行（全工作簿第一个）
3. 其余标记按已填写的字段替换（未填写的保留原样）
4. 在插入行写入表头，其下插入明细行与合计行，后续行整体下移

依赖：
- openpyxl: Excel操作

测试要点：
- test_fill_scalar: 普通字段替换
- test_fill_table_rows: 表格行插入与下移
- test_fill_table_styles: 表头/合计行样式
- test_fill_merged_anchor_row: 表格标记位于合并单元格
- test_fill_merged_rows_below_shift: 下方合并区域随行下移
- test_fill_missing_anchor: 未找到表格标记
"""

from __future__ import annotations

import io
import logging
import warnings
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from openpyxl import load_workbook
from openpyxl.styles import Alignment, Font

from ..config import get_config
from ..interfaces import AnchorNotFoundWarning, ISpreadsheetFiller, ParseError
from ..models import FieldDefinition, TableData, find_table_field
from .scanner import compile_placeholder_pattern
from .table_builder import TOTAL_LABEL_SPAN, build_sheet_rows

logger = logging.getLogger(__name__)

TOTAL_VALUE_COLUMN = 7


@dataclass
class SheetFillResult:
    """Excel填充结果"""
    content: bytes
    table_inserted: bool = False
    warnings: list[str] = field(default_factory=list)


class SpreadsheetFiller(ISpreadsheetFiller):
    """Excel模板填充器实现"""

    def __init__(
        self,
        headers: Sequence[str] | None = None,
        total_label: str | None = None,
    ):
        config = get_config()
        self.pattern = compile_placeholder_pattern(config.placeholder.start, config.placeholder.end)
        self.headers = list(headers or config.table.headers)
        self.total_label = total_label if total_label is not None else config.table.sheet_total_label

    def fill(
        self,
        data: bytes,
        field_values: Mapping[str, str],
        table_data: TableData | None = None,
        fields: Sequence[FieldDefinition] = (),
    ) -> SheetFillResult:
        """填充Excel模板"""
        if not data:
            raise ParseError("无法读取文件内容: 文件为空")
        try:
            wb = load_workbook(io.BytesIO(data))
        except Exception as e:
            raise ParseError(f"不是有效的Excel文件: {e}") from e

        table_field = find_table_field(fields)
        anchor = None

        for ws in wb.worksheets:
            for row in ws.iter_rows():
                for cell in row:
                    if not isinstance(cell.value, str):
                        continue
                    text = cell.value

                    if table_field and table_field.original_tag in text:
                        if anchor is None:
                            anchor = (ws, cell.row)
                        cell.value = None
                        continue

                    filled = self._substitute(text, field_values)
                    if filled != text:
                        cell.value = filled

        result_warnings: list[str] = []
        inserted = False
        if table_field and table_data is not None:
            if anchor is None:
                message = f"Excel模板中未找到表格标记 {table_field.original_tag}，已跳过表格插入"
                logger.warning(message)
                warnings.warn(message, AnchorNotFoundWarning, stacklevel=2)
                result_warnings.append(message)
            else:
                ws, row_idx = anchor
                self._insert_table(ws, row_idx, table_data)
                inserted = True

        buffer = io.BytesIO()
        wb.save(buffer)
        return SheetFillResult(content=buffer.getvalue(), table_inserted=inserted, warnings=result_warnings)

    def _substitute(self, text: str, field_values: Mapping[str, str]) -> str:
        def replace(match):
            key = match.group(1).strip()
            if key in field_values and field_values[key] is not None:
                return str(field_values[key])
            return match.group(0)

        return self.pattern.sub(replace, text)

    def _insert_table(self, ws, anchor_row: int, table_data: TableData) -> None:
        """插入行写表头，其下插入明细+合计，后续行下移"""
        rows = build_sheet_rows(table_data.items, table_data.total, self.headers, self.total_label)
        amount = len(rows) - 1

        # insert_rows 不移动合并区域：插入行上的合并拆开，其下的合并拆开后按新位置重建
        below = self._release_merged(ws, anchor_row)

        for cell in ws[anchor_row]:
            cell.value = None
        ws.insert_rows(anchor_row + 1, amount=amount)

        for min_col, min_row, max_col, max_row in below:
            ws.merge_cells(
                start_row=min_row + amount, start_column=min_col,
                end_row=max_row + amount, end_column=max_col,
            )

        for offset, sheet_row in enumerate(rows):
            row_idx = anchor_row + offset
            for col, value in enumerate(sheet_row.values, start=1):
                cell = ws.cell(row=row_idx, column=col)
                cell.value = None if value == "" else value
                self._style_cell(cell, sheet_row.role, col)

            if sheet_row.role == "total":
                ws.merge_cells(
                    start_row=row_idx, start_column=1,
                    end_row=row_idx, end_column=TOTAL_LABEL_SPAN,
                )

        logger.info(f"Excel表格已插入: {ws.title}!{anchor_row}，共 {len(rows)} 行")

    @staticmethod
    def _release_merged(ws, anchor_row: int) -> list[tuple[int, int, int, int]]:
        """拆开与插入行相交及其下方的合并区域，返回下方区域的边界"""
        below = []
        for rng in list(ws.merged_cells.ranges):
            if rng.max_row < anchor_row:
                continue
            if rng.min_row > anchor_row:
                below.append(rng.bounds)
            ws.unmerge_cells(rng.coord)
        return below

    @staticmethod
    def _style_cell(cell, role: str, col: int) -> None:
        if role == "header":
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
        elif role == "item":
            cell.alignment = Alignment(horizontal="center")
        else:
            cell.font = Font(bold=True)
            horizontal = "center" if col == TOTAL_VALUE_COLUMN else "right"
            cell.alignment = Alignment(horizontal=horizontal)
