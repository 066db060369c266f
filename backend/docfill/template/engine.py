"""
替换引擎 - 在文档主体的文本行中替换 {-字段-} 标记

Word 经常把一个标记拆到多个 w:r 中（拼写检查、格式变化等），例如：
    w:r "{-甲"   w:r "方-}"
因此按段落拼接全部 w:t 文本后再识别标记，替换值写入标记起始所在的 w:t，
标记在其他 w:t 中的残余字符删除；w:tab/w:br 等兄弟节点保持原位。

约定：
- 分隔符可配置，引擎没有自己的默认写法
- 取值按原文本写入，不再识别其中的标记（无递归展开）
- 每个替换值/文字片段独立成一个 w:t
- 表格字段（TableAnchor）写入占位令牌，并在其文本行前后加同名书签，
  供拼接器按属性定位
- 错误不中断扫描，全部收集后由调用方统一抛出
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from lxml import etree

from ..models import FieldValue, ScalarValue, TableAnchor
from .ooxml import make_text, paragraph_runs, qn


@dataclass
class TagError:
    """单个标记的错误"""
    kind: str          # unclosed_tag / unopened_tag / empty_tag / unresolved_tag
    tag: str
    paragraph: int
    message: str


@dataclass
class Segment:
    """段落文本中的一段：name 为 None 表示普通文字"""
    start: int
    end: int
    name: str | None = None


@dataclass
class _Piece:
    kind: str          # text / value / anchor
    text: str


@dataclass
class RenderStats:
    replaced: int = 0
    anchors: list[str] = field(default_factory=list)


class TemplateEngine:
    """标记替换引擎"""

    def __init__(
        self,
        start: str,
        end: str,
        *,
        linebreaks: bool = True,
        strict_missing: bool = False,
    ):
        if not start or not end:
            raise ValueError("分隔符不能为空")
        self.start = start
        self.end = end
        self.linebreaks = linebreaks
        self.strict_missing = strict_missing

    # === 词法 ===

    def tokenize(self, text: str, paragraph: int, errors: list[TagError]) -> list[Segment]:
        """把段落文本切分为文字段和标记段"""
        segments: list[Segment] = []
        pos = 0
        length = len(text)

        while pos < length:
            open_at = text.find(self.start, pos)
            close_at = text.find(self.end, pos)

            # 先出现结束符：缺少起始符
            if close_at != -1 and (open_at == -1 or close_at < open_at):
                stop = close_at + len(self.end)
                errors.append(TagError(
                    "unopened_tag", text[pos:stop], paragraph,
                    f"标记缺少起始符 \"{self.start}\": {text[pos:stop]!r}（第{paragraph + 1}段）",
                ))
                segments.append(Segment(pos, stop))
                pos = stop
                continue

            if open_at == -1:
                segments.append(Segment(pos, length))
                break

            if open_at > pos:
                segments.append(Segment(pos, open_at))

            body_at = open_at + len(self.start)
            close_at = text.find(self.end, body_at)
            next_open = text.find(self.start, body_at)

            if close_at == -1 or (next_open != -1 and next_open < close_at):
                stop = next_open if next_open != -1 else length
                errors.append(TagError(
                    "unclosed_tag", text[open_at:stop], paragraph,
                    f"标记未闭合: {text[open_at:stop]!r}（第{paragraph + 1}段）",
                ))
                segments.append(Segment(open_at, stop))
                pos = stop
                continue

            stop = close_at + len(self.end)
            name = text[body_at:close_at].strip()
            if not name:
                errors.append(TagError(
                    "empty_tag", text[open_at:stop], paragraph,
                    f"空标记: {text[open_at:stop]!r}（第{paragraph + 1}段）",
                ))
            segments.append(Segment(open_at, stop, name))
            pos = stop

        return segments

    # === 渲染 ===

    def render_tree(self, root: etree._Element, values: Mapping[str, FieldValue]) -> tuple[RenderStats, list[TagError]]:
        """替换整棵树中的标记，返回统计与错误"""
        stats = RenderStats()
        errors: list[TagError] = []
        bookmark_ids = _BookmarkIds(root)

        for index, paragraph in enumerate(list(root.iter(qn("p")))):
            self._render_paragraph(paragraph, index, values, stats, errors, bookmark_ids)

        return stats, errors

    def _render_paragraph(
        self,
        paragraph: etree._Element,
        index: int,
        values: Mapping[str, FieldValue],
        stats: RenderStats,
        errors: list[TagError],
        bookmark_ids: _BookmarkIds,
    ) -> None:
        runs = [r for r in paragraph_runs(paragraph) if r.find(qn("t")) is not None]
        if not runs:
            return
        # 以 w:t 为单位：同一文本行中 w:tab/w:br 等兄弟节点保持原位
        slots = [t for r in runs for t in r.findall(qn("t"))]
        texts = [t.text or "" for t in slots]
        full = "".join(texts)
        if self.start not in full and self.end not in full:
            return

        # 各 w:t 在段落文本中的起止位置
        bounds = []
        offset = 0
        for text in texts:
            bounds.append((offset, offset + len(text)))
            offset += len(text)

        pieces: list[list[_Piece]] = [[] for _ in slots]
        for segment in self.tokenize(full, index, errors):
            if not segment.name:
                # 文字段可能跨多个 w:t，按节点切开
                for i, (lo, hi) in enumerate(bounds):
                    a, b = max(lo, segment.start), min(hi, segment.end)
                    if a < b:
                        pieces[i].append(_Piece("text", full[a:b]))
                continue

            owner = _owner_slot(bounds, segment.start)
            pieces[owner].append(self._resolve(segment, full, index, values, stats, errors))

        anchors: dict[int, list[str]] = {}
        for slot, original, slot_pieces in zip(slots, texts, pieces):
            if all(p.kind == "text" for p in slot_pieces) and "".join(p.text for p in slot_pieces) == original:
                continue
            run = slot.getparent()
            anchors.setdefault(runs.index(run), []).extend(self._rewrite_text(slot, slot_pieces))

        for run_index, names in anchors.items():
            self._finish_run(runs[run_index], names, bookmark_ids)

    def _resolve(
        self,
        segment: Segment,
        full: str,
        index: int,
        values: Mapping[str, FieldValue],
        stats: RenderStats,
        errors: list[TagError],
    ) -> _Piece:
        value = values.get(segment.name)
        if value is None:
            if self.strict_missing:
                tag = full[segment.start:segment.end]
                errors.append(TagError(
                    "unresolved_tag", tag, index,
                    f"字段未填写: {segment.name}（第{index + 1}段）",
                ))
            value = ScalarValue(text="")

        stats.replaced += 1
        if isinstance(value, TableAnchor):
            stats.anchors.append(value.sentinel)
            return _Piece("anchor", value.sentinel)
        return _Piece("value", value.text)

    def _rewrite_text(self, slot: etree._Element, pieces: list[_Piece]) -> list[str]:
        """在原 w:t 位置写入新节点，返回其中的占位令牌"""
        run = slot.getparent()
        insert_at = run.index(slot)
        run.remove(slot)

        new_elements: list[etree._Element] = []
        anchors: list[str] = []
        for piece in pieces:
            if piece.kind == "anchor":
                new_elements.append(make_text(piece.text))
                anchors.append(piece.text)
            elif piece.kind == "value" and self.linebreaks:
                new_elements.extend(self._value_elements(piece.text))
            elif piece.text:
                new_elements.append(make_text(piece.text))

        for i, element in enumerate(new_elements):
            run.insert(insert_at + i, element)
        return anchors

    @staticmethod
    def _finish_run(run: etree._Element, anchors: list[str], bookmark_ids: _BookmarkIds) -> None:
        """清理空文本行；占位令牌所在文本行前后加书签"""
        if all(child.tag == qn("rPr") for child in run):
            run.getparent().remove(run)
            return

        for name in anchors:
            bookmark_id = bookmark_ids.next()
            start = etree.Element(qn("bookmarkStart"))
            start.set(qn("id"), bookmark_id)
            start.set(qn("name"), name)
            end = etree.Element(qn("bookmarkEnd"))
            end.set(qn("id"), bookmark_id)
            run.addprevious(start)
            run.addnext(end)

    @staticmethod
    def _value_elements(text: str) -> list[etree._Element]:
        """多行取值：行之间插入 w:br"""
        elements: list[etree._Element] = []
        for i, line in enumerate(text.replace("\r\n", "\n").split("\n")):
            if i:
                elements.append(etree.Element(qn("br")))
            if line:
                elements.append(make_text(line))
        return elements


def _owner_slot(bounds: list[tuple[int, int]], position: int) -> int:
    """包含该位置字符的 w:t"""
    for i, (lo, hi) in enumerate(bounds):
        if lo <= position < hi:
            return i
    return len(bounds) - 1


class _BookmarkIds:
    """书签 w:id 分配（从文档已有最大值之后开始）"""

    def __init__(self, root: etree._Element):
        used = [0]
        for tag in ("bookmarkStart", "bookmarkEnd"):
            for element in root.iter(qn(tag)):
                value = element.get(qn("id"), "")
                if value.isdigit():
                    used.append(int(value))
        self._next = max(used) + 1

    def next(self) -> str:
        value = self._next
        self._next += 1
        return str(value)
