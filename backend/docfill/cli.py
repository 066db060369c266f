"""
命令行入口

用法：
  docfill scan 合同模板.docx
  docfill fill 合同模板.docx --values values.yaml --items items.yaml -o 合同.docx
  docfill export-csv --items items.yaml -o 商品表格.csv

values 文件：字段名 → 值（YAML 或 JSON）
items 文件：明细列表，或 {items: [...], total: 合计}（缺省 total 时自动求和）
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from .config import get_config, reload_config, setup_logging
from .interfaces import DocFillError
from .models import LineItem, TableData
from .pipeline import DocumentGenerator, user_message

logger = logging.getLogger(__name__)


def load_mapping(path: str | Path) -> Any:
    """读取 YAML/JSON 文件（JSON 是 YAML 的子集）"""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_line_item(raw: dict[str, Any]) -> LineItem:
    """缺省单位取配置；缺省金额按数量×单价计算"""
    data = {"unit": get_config().table.default_unit, **raw}
    if "amount" not in data:
        data["amount"] = round(float(data.get("quantity", 1)) * float(data.get("price", 0)), 2)
    return LineItem(**data)


def load_table_data(path: str | Path) -> TableData:
    data = load_mapping(path) or []
    if isinstance(data, list):
        return TableData.from_items([load_line_item(item) for item in data])
    items = [load_line_item(item) for item in data.get("items", [])]
    if "total" in data:
        return TableData(items=items, total=data["total"])
    return TableData.from_items(items)


def cmd_scan(args: argparse.Namespace) -> int:
    generator = DocumentGenerator()
    fields = generator.analyze(args.template)
    print(json.dumps([f.model_dump() for f in fields], ensure_ascii=False, indent=2))
    return 0


def cmd_fill(args: argparse.Namespace) -> int:
    generator = DocumentGenerator()
    values = load_mapping(args.values) if args.values else {}
    table_data = load_table_data(args.items) if args.items else None

    result = generator.generate_to_file(
        args.template,
        values or {},
        table_data=table_data,
        output_path=args.output,
    )
    for flag in result.warnings:
        print(f"警告: {flag}", file=sys.stderr)
    print(result.output_path)
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    generator = DocumentGenerator()
    content = generator.export_csv(load_table_data(args.items))
    Path(args.output).write_bytes(content)
    print(args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docfill", description="合同模板填充工具（{-字段-} 标记）")
    parser.add_argument("--config", help="运行期配置YAML（默认 documents/docfill_runtime.yaml）")
    sub = parser.add_subparsers(dest="command", required=True)

    p_scan = sub.add_parser("scan", help="扫描模板中的标记，输出JSON")
    p_scan.add_argument("template", help=".docx 或 .xlsx 模板")
    p_scan.set_defaults(func=cmd_scan)

    p_fill = sub.add_parser("fill", help="填充模板并生成文档")
    p_fill.add_argument("template", help=".docx 或 .xlsx 模板")
    p_fill.add_argument("--values", help="字段取值文件（YAML/JSON）")
    p_fill.add_argument("--items", help="商品明细文件（YAML/JSON）")
    p_fill.add_argument("-o", "--output", help="输出路径（默认 Generated_<模板名>）")
    p_fill.set_defaults(func=cmd_fill)

    p_csv = sub.add_parser("export-csv", help="导出商品表格CSV")
    p_csv.add_argument("--items", required=True, help="商品明细文件（YAML/JSON）")
    p_csv.add_argument("-o", "--output", required=True, help="输出CSV路径")
    p_csv.set_defaults(func=cmd_export_csv)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = reload_config(args.config) if args.config else get_config()
    setup_logging(config)

    try:
        return args.func(args)
    except (DocFillError, ValueError, OSError) as e:
        logger.debug("命令执行失败", exc_info=True)
        print(user_message(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
