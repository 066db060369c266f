"""
CSV导出 - 商品表格单独导出

格式：
- UTF-8 + BOM
- 第1行8列表头；每个明细一行 [序号, 名称, 型号, 单位, 数量, 单价, 金额, 备注]
- 末行 ["", "", "", "", "", 合计标签, 合计金额, ""]
- 默认逗号直接拼接，不加引号（值中含逗号/换行会错位）；quoting=True 时按标准CSV加引号
"""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ..models import LineItem
from .table_builder import format_cell, item_values

BOM = "\ufeff"


def build_csv_rows(
    items: Sequence[LineItem],
    total: float,
    headers: Sequence[str],
    total_label: str = "合计",
) -> list[list[str]]:
    rows = [list(headers)]
    rows.extend([format_cell(v) for v in item_values(i, item)] for i, item in enumerate(items))
    rows.append(["", "", "", "", "", total_label, format_cell(total), ""])
    return rows


def export_csv(
    items: Sequence[LineItem],
    total: float,
    headers: Sequence[str],
    total_label: str = "合计",
    quoting: bool = False,
) -> bytes:
    rows = build_csv_rows(items, total, headers, total_label)

    if quoting:
        buffer = io.StringIO()
        csv.writer(buffer, lineterminator="\n").writerows(rows)
        content = buffer.getvalue().rstrip("\n")
    else:
        content = "\n".join(",".join(row) for row in rows)

    return (BOM + content).encode("utf-8")
