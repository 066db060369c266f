"""
WordprocessingML 公共定义 - 命名空间/解析/序列化/段落与文本行访问
"""

from __future__ import annotations

from lxml import etree

from ..interfaces import ParseError

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
NSMAP = {"w": W_NS}
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def qn(tag: str) -> str:
    """'p' → '{W_NS}p'"""
    return f"{{{W_NS}}}{tag}"


def parse_part(data: bytes) -> etree._Element:
    """解析XML部件（损坏时报 ParseError）"""
    parser = etree.XMLParser(resolve_entities=False, huge_tree=True)
    try:
        return etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"文档XML解析失败: {e}") from e


def serialize_part(root: etree._Element) -> bytes:
    return etree.tostring(
        root.getroottree(), xml_declaration=True, encoding="UTF-8", standalone=True
    )


def owning_paragraph(element: etree._Element) -> etree._Element | None:
    """最近的 w:p 祖先"""
    return next(element.iterancestors(qn("p")), None)


def paragraph_runs(paragraph: etree._Element) -> list[etree._Element]:
    """段落自身的文本行（不含文本框等嵌套段落中的行）"""
    return [r for r in paragraph.iter(qn("r")) if owning_paragraph(r) is paragraph]


def run_text(run: etree._Element) -> str:
    return "".join(t.text or "" for t in run.findall(qn("t")))


def paragraph_text(paragraph: etree._Element) -> str:
    return "".join(run_text(r) for r in paragraph_runs(paragraph))


def make_text(text: str) -> etree._Element:
    """新建 w:t（保留首尾空格）"""
    t = etree.Element(qn("t"))
    t.set(XML_SPACE, "preserve")
    t.text = text
    return t
