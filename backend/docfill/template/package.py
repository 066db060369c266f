"""
文档包 - docx/xlsx 的内存压缩包表示

职责：
1. 一次性读入字节并解析为部件列表（不支持分段读取）
2. 按名称读写部件
3. 重新打包：保持部件顺序、各条目压缩方式与时间戳

测试要点：
- test_from_bytes_empty: 空输入报 ParseError
- test_from_bytes_not_zip: 非压缩包报 ParseError
- test_roundtrip_passthrough: 未修改部件原样输出
"""

from __future__ import annotations

import copy
import io
import zipfile
from pathlib import Path

from ..interfaces import ParseError
from ..models import DocFormat

DOCX_PRIMARY_PART = "word/document.xml"
XLSX_WORKBOOK_PART = "xl/workbook.xml"


class DocumentPackage:
    """内存中的文档包（每次生成独立持有一份）"""

    def __init__(self, entries: list[tuple[zipfile.ZipInfo, bytes]]):
        self._infos: dict[str, zipfile.ZipInfo] = {}
        self._parts: dict[str, bytes] = {}
        for info, data in entries:
            self._infos[info.filename] = info
            self._parts[info.filename] = data

    @classmethod
    def from_bytes(cls, data: bytes) -> DocumentPackage:
        """解析文档包字节"""
        if not data:
            raise ParseError("无法读取文件内容: 文件为空")
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                entries = [(info, zf.read(info)) for info in zf.infolist()]
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise ParseError(f"不是有效的文档包: {e}") from e
        return cls(entries)

    @classmethod
    def from_path(cls, path: str | Path) -> DocumentPackage:
        """从文件一次性读入"""
        return cls.from_bytes(Path(path).read_bytes())

    # === 部件访问 ===

    @property
    def names(self) -> list[str]:
        return list(self._parts)

    def has_part(self, name: str) -> bool:
        return name in self._parts

    def read_part(self, name: str) -> bytes:
        if name not in self._parts:
            raise ParseError(f"文档包中缺少部件: {name}")
        return self._parts[name]

    def write_part(self, name: str, data: bytes) -> None:
        """覆盖（或新增）部件"""
        if name not in self._infos:
            info = zipfile.ZipInfo(name)
            info.compress_type = zipfile.ZIP_DEFLATED
            self._infos[name] = info
        self._parts[name] = data

    def copy(self) -> DocumentPackage:
        """复制一份（部件字节不可变，浅复制即可）"""
        return DocumentPackage(
            [(copy.copy(self._infos[name]), data) for name, data in self._parts.items()]
        )

    def detect_format(
        self,
        primary_part: str = DOCX_PRIMARY_PART,
        workbook_part: str = XLSX_WORKBOOK_PART,
    ) -> DocFormat:
        """根据部件判断模板格式"""
        if primary_part in self._parts:
            return DocFormat.DOCX
        if workbook_part in self._parts:
            return DocFormat.XLSX
        raise ParseError("无法找到文档主体 (document part)，请确保上传的是有效的 Word (.docx) 或 Excel (.xlsx) 文件")

    # === 输出 ===

    def to_bytes(self) -> bytes:
        """重新打包"""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, data in self._parts.items():
                zf.writestr(self._infos[name], data)
        return buffer.getvalue()
