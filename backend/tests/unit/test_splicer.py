"""
文档拼接器单元测试

每个模块完成后必须运行：pytest tests/unit/test_splicer.py -v
"""

import io

import pytest
from docx import Document

from docfill.interfaces import AnchorNotFoundWarning, GenerationError, ParseError
from docfill.template import (
    DocumentPackage,
    PackageSplicer,
    SpliceState,
    TableFragmentBuilder,
    TemplateRenderer,
)
from docfill.template.ooxml import qn
from docfill.template.package import DOCX_PRIMARY_PART
from docfill.template.splicer import import_fragment

SENTINEL = "___INSERT_TABLE_HERE_42___"


@pytest.fixture
def fragment(runtime_config, sample_items) -> str:
    return TableFragmentBuilder().build(sample_items, 231.11, runtime_config.table.headers)


class TestSplice:
    """表格拼接测试"""

    def test_splice_replaces_paragraph(self, make_docx, docx_paragraphs, fragment):
        """测试占位段落被表格替换"""
        data = make_docx(["甲方：{-甲方-}", "{-商品信息表格-}", "以下无正文"])
        rendered = TemplateRenderer().render(
            DocumentPackage.from_bytes(data), {"甲方": "张三"}, "商品信息表格"
        )
        result = PackageSplicer().splice(rendered.package, rendered.sentinel, fragment)

        assert result.spliced
        assert result.states == [
            SpliceState.IDLE, SpliceState.PARSED, SpliceState.SPLICED, SpliceState.SERIALIZED,
        ]
        output = result.package.to_bytes()
        assert docx_paragraphs(output) == ["甲方：张三", "以下无正文"]

        table = Document(io.BytesIO(output)).tables[0]
        assert len(table.rows) == 4
        assert table.rows[0].cells[0].text == "序号"
        assert table.rows[1].cells[1].text == "螺丝"

    def test_splice_removes_sentinel(self, make_docx, read_xml, fragment):
        """测试输出中不再包含占位令牌"""
        data = make_docx(["{-商品信息表格-}"])
        rendered = TemplateRenderer().render(DocumentPackage.from_bytes(data), {}, "商品信息表格")
        result = PackageSplicer().splice(rendered.package, rendered.sentinel, fragment)
        root = read_xml(result.package.to_bytes())
        assert rendered.sentinel not in [t.text for t in root.iter(qn("t"))]
        assert root.find(f".//{qn('tbl')}") is not None

    def test_splice_by_text_fallback(self, make_docx, docx_paragraphs, fragment):
        """测试无书签时按文本完全相等定位"""
        data = make_docx(["前文", SENTINEL, "后文"])
        result = PackageSplicer().splice(DocumentPackage.from_bytes(data), SENTINEL, fragment)
        assert result.spliced
        assert docx_paragraphs(result.package.to_bytes()) == ["前文", "后文"]

    def test_splice_text_must_match_exactly(self, make_docx, fragment):
        """测试文本只包含占位令牌的一部分时不匹配"""
        data = make_docx([f"前缀{SENTINEL}"])
        with pytest.warns(AnchorNotFoundWarning):
            result = PackageSplicer().splice(DocumentPackage.from_bytes(data), SENTINEL, fragment)
        assert not result.spliced

    def test_splice_missing_anchor_warns(self, make_docx, fragment):
        """测试未找到占位令牌只告警，文档原样返回"""
        data = make_docx(["没有占位"])
        package = DocumentPackage.from_bytes(data)
        with pytest.warns(AnchorNotFoundWarning):
            result = PackageSplicer().splice(package, SENTINEL, fragment)

        assert not result.spliced
        assert result.state == SpliceState.SERIALIZED
        assert SpliceState.SKIPPED_NO_ANCHOR in result.states
        assert result.warnings
        assert result.package.read_part(DOCX_PRIMARY_PART) == package.read_part(DOCX_PRIMARY_PART)

    def test_splice_in_table_cell(self, make_docx, read_xml, fragment):
        """测试单元格中替换后以空段落结尾"""
        data = make_docx(["正文"], cells=[SENTINEL, "其他"])
        result = PackageSplicer().splice(DocumentPackage.from_bytes(data), SENTINEL, fragment)
        root = read_xml(result.package.to_bytes())
        cell = root.find(f".//{qn('tc')}")
        assert cell.find(qn("tbl")) is not None
        assert cell[-1].tag == qn("p")

    def test_splice_other_parts_passthrough(self, make_docx, fragment):
        """测试其余部件原样保留且顺序不变"""
        data = make_docx([SENTINEL])
        package = DocumentPackage.from_bytes(data)
        result = PackageSplicer().splice(package, SENTINEL, fragment)
        assert result.package.names == package.names
        for name in package.names:
            if name != DOCX_PRIMARY_PART:
                assert result.package.read_part(name) == package.read_part(name)

    def test_splice_malformed_xml(self, make_package, fragment):
        """测试文档主体XML损坏"""
        package = DocumentPackage.from_bytes(make_package({DOCX_PRIMARY_PART: b"<w:document><w:body>"}))
        with pytest.raises(ParseError):
            PackageSplicer().splice(package, SENTINEL, fragment)


class TestImportFragment:
    """表格片段导入测试"""

    def test_import_fragment(self, fragment):
        """测试解析出 w:tbl"""
        assert import_fragment(fragment).tag == qn("tbl")

    def test_import_invalid_fragment(self):
        """测试片段XML无效"""
        with pytest.raises(GenerationError):
            import_fragment("<w:tbl>")

    def test_import_fragment_without_table(self):
        """测试片段中没有表格"""
        with pytest.raises(GenerationError):
            import_fragment("<w:p/>")
