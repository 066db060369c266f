"""
文档拼接器 - 用商品表格替换占位段落

职责：
1. 解析渲染后的文档主体
2. 定位占位令牌：优先按书签名（w:bookmarkStart/@w:name），其次按 w:t 文本完全相等
3. 沿祖先链找到最近的 w:p，整段替换为导入的 w:tbl
4. 序列化写回文档包，其余部件原样保留

状态：IDLE → PARSED → {SPLICED | SKIPPED_NO_ANCHOR} → SERIALIZED
未找到占位令牌不报错：给出 AnchorNotFoundWarning，返回不含表格的文档

测试要点：
- test_splice_replaces_paragraph: 段落被表格替换
- test_splice_by_text_fallback: 无书签时按文本定位
- test_splice_missing_anchor_warns: 未找到占位令牌只告警
- test_splice_in_table_cell: 单元格中替换后补空段落
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum

from lxml import etree

from ..config import get_config
from ..interfaces import AnchorNotFoundWarning, GenerationError, IPackageSplicer
from .ooxml import W_NS, owning_paragraph, parse_part, qn, serialize_part
from .package import DocumentPackage

logger = logging.getLogger(__name__)


class SpliceState(str, Enum):
    """拼接状态"""
    IDLE = "IDLE"
    PARSED = "PARSED"
    SPLICED = "SPLICED"
    SKIPPED_NO_ANCHOR = "SKIPPED_NO_ANCHOR"
    SERIALIZED = "SERIALIZED"


@dataclass
class SpliceResult:
    """拼接结果"""
    package: DocumentPackage
    states: list[SpliceState] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def state(self) -> SpliceState:
        return self.states[-1]

    @property
    def spliced(self) -> bool:
        return SpliceState.SPLICED in self.states


class PackageSplicer(IPackageSplicer):
    """文档拼接器实现"""

    def __init__(self, primary_part: str | None = None):
        self.primary_part = primary_part or get_config().package.docx_primary_part

    def splice(
        self,
        package: DocumentPackage,
        sentinel: str,
        fragment: str,
    ) -> SpliceResult:
        """定位占位令牌并替换为表格"""
        states = [SpliceState.IDLE]

        root = parse_part(package.read_part(self.primary_part))
        states.append(SpliceState.PARSED)

        target = self.find_anchor_block(root, sentinel)
        if target is None:
            message = f"渲染结果中未找到表格占位令牌 {sentinel}，已跳过表格插入"
            logger.warning(message)
            warnings.warn(message, AnchorNotFoundWarning, stacklevel=2)
            states += [SpliceState.SKIPPED_NO_ANCHOR, SpliceState.SERIALIZED]
            return SpliceResult(package=package, states=states, warnings=[message])

        table = import_fragment(fragment)
        parent = target.getparent()
        parent.replace(target, table)
        # 单元格必须以段落结尾
        if parent.tag == qn("tc") and parent[-1] is table:
            table.addnext(etree.Element(qn("p")))
        states.append(SpliceState.SPLICED)

        output = package.copy()
        output.write_part(self.primary_part, serialize_part(root))
        states.append(SpliceState.SERIALIZED)
        logger.info("商品表格已插入文档")

        return SpliceResult(package=output, states=states)

    @staticmethod
    def find_anchor_block(root: etree._Element, sentinel: str) -> etree._Element | None:
        """占位令牌所在的段落（书签优先，文本兜底）"""
        for bookmark in root.iter(qn("bookmarkStart")):
            if bookmark.get(qn("name")) == sentinel:
                paragraph = owning_paragraph(bookmark)
                if paragraph is not None:
                    return paragraph

        for text in root.iter(qn("t")):
            if text.text == sentinel:
                paragraph = owning_paragraph(text)
                if paragraph is not None:
                    return paragraph

        return None


def import_fragment(fragment: str) -> etree._Element:
    """解析表格片段（外包一层声明 w 命名空间的根节点），返回 w:tbl"""
    wrapped = f'<root xmlns:w="{W_NS}">{fragment}</root>'
    try:
        holder = etree.fromstring(wrapped.encode("utf-8"))
    except etree.XMLSyntaxError as e:
        raise GenerationError(f"表格片段XML无效: {e}") from e

    table = holder.find(qn("tbl"))
    if table is None:
        raise GenerationError("表格片段中没有 w:tbl")
    return table
