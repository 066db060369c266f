"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(make_docx, sample_table):
        data = make_docx(["甲方：{-甲方-}"])
"""

from __future__ import annotations

import io
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from docx import Document
from lxml import etree
from openpyxl import Workbook

import docfill.config.runtime_config as runtime_module
from docfill.config import RuntimeConfig
from docfill.models import LineItem, TableData


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def default_config() -> Generator[RuntimeConfig, None, None]:
    """每个测试使用默认配置（不读取工作目录下的YAML）"""
    previous = runtime_module._config
    runtime_module._config = RuntimeConfig()
    yield runtime_module._config
    runtime_module._config = previous


@pytest.fixture
def runtime_config(default_config: RuntimeConfig) -> RuntimeConfig:
    """运行期配置"""
    return default_config


# ============================================================================
# 数据模型 Fixtures
# ============================================================================

@pytest.fixture
def sample_items() -> list[LineItem]:
    """示例商品明细"""
    return [
        LineItem(id="1", name="螺丝", model="M3", unit="个", quantity=2, price=100.555, amount=201.11, remark=""),
        LineItem(id="2", name="螺母", model="M3", unit="盒", quantity=3, price=10, amount=30, remark="加急"),
    ]


@pytest.fixture
def sample_table(sample_items: list[LineItem]) -> TableData:
    """示例商品表格"""
    return TableData(items=sample_items, total=231.11)


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    """
    生成docx字节

    paragraphs 中每项为一个段落：字符串为单个文本行，列表为多个文本行（模拟标记被拆分）
    cells 为单行表格各单元格的文本
    """

    def _make(paragraphs: list[str | list[str]], cells: list[str] | None = None) -> bytes:
        doc = Document()
        for para in paragraphs:
            p = doc.add_paragraph()
            for text in [para] if isinstance(para, str) else para:
                p.add_run(text)
        if cells:
            table = doc.add_table(rows=1, cols=len(cells))
            for cell, text in zip(table.rows[0].cells, cells):
                cell.text = text
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_package() -> Callable[[dict[str, bytes]], bytes]:
    """按部件生成任意压缩包"""

    def _make(parts: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, data in parts.items():
                zf.writestr(name, data)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_xlsx() -> Callable[[dict[str, dict[str, object]]], bytes]:
    """生成xlsx字节：{工作表名: {单元格: 值}}"""

    def _make(sheets: dict[str, dict[str, object]]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        for title, cells in sheets.items():
            ws = wb.create_sheet(title)
            for ref, value in cells.items():
                ws[ref] = value
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def read_xml() -> Callable[..., etree._Element]:
    """读取压缩包中的XML部件"""

    def _read(data: bytes, part: str = "word/document.xml") -> etree._Element:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            return etree.fromstring(zf.read(part))

    return _read


@pytest.fixture
def docx_paragraphs() -> Callable[[bytes], list[str]]:
    """docx正文段落文本"""

    def _read(data: bytes) -> list[str]:
        return [p.text for p in Document(io.BytesIO(data)).paragraphs]

    return _read
