"""
流水线执行器 - 编排模板分析与文档生成

职责：
1. 分析模板：识别格式并扫描标记
2. 按顺序执行生成阶段（读取→替换→表格→拼接→输出），更新任务进度
3. 失败时整体失败：要么返回完整文档，要么不输出
4. 写文件时先写临时文件再替换，失败不影响已有产物
5. 异常 → 面向用户的提示文本

测试要点：
- test_generate_docx_with_table: 完整生成流程
- test_generate_missing_anchor_flag: 表格占位丢失只记告警
- test_generate_failure_marks_job: 失败时任务状态
- test_generate_to_file_atomic: 失败时不覆盖已有文件
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..config import RuntimeConfig, get_config
from ..interfaces import (
    NoPlaceholderError,
    ParseError,
    TemplateSyntaxError,
)
from ..models import DocFormat, FieldDefinition, GenerationJob, TableData, find_table_field
from ..template import (
    DocumentPackage,
    PackageSplicer,
    PlaceholderScanner,
    SpreadsheetFiller,
    TableFragmentBuilder,
    TemplateRenderer,
    export_csv,
)
from .stages import GENERATION_STAGES, PipelineStage, StageEnum

logger = logging.getLogger(__name__)

NO_FIELDS_MESSAGE = "未能在文档中找到 {-字段-} 格式的标记。请检查模板。"
ANCHOR_MISSING_FLAG = "表格占位未找到:已跳过表格插入"


@dataclass
class GenerationResult:
    """生成结果"""
    content: bytes
    doc_format: DocFormat
    job: GenerationJob
    fields: list[FieldDefinition] = field(default_factory=list)
    table_inserted: bool = False
    output_path: Path | None = None

    @property
    def warnings(self) -> list[str]:
        return list(self.job.flags)


class DocumentGenerator:
    """文档生成器（每次调用独立持有文档包与XML树，调用方负责同一文档不并发生成）"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        scanner: PlaceholderScanner | None = None,
        renderer: TemplateRenderer | None = None,
        builder: TableFragmentBuilder | None = None,
        splicer: PackageSplicer | None = None,
        sheet_filler: SpreadsheetFiller | None = None,
    ):
        self.config = config or get_config()
        self.scanner = scanner or PlaceholderScanner()
        self.renderer = renderer or TemplateRenderer()
        self.builder = builder or TableFragmentBuilder()
        self.splicer = splicer or PackageSplicer()
        self.sheet_filler = sheet_filler or SpreadsheetFiller()

    # === 模板分析 ===

    def analyze(self, source: bytes | str | Path, require_fields: bool = True) -> list[FieldDefinition]:
        """扫描模板中的标记"""
        data, name = _read_source(source)
        package = DocumentPackage.from_bytes(data)
        doc_format = self._detect_format(package)
        keyword = self.config.placeholder.table_keyword

        if doc_format == DocFormat.DOCX:
            fields = self.scanner.scan_docx(package, keyword)
        else:
            fields = self.scanner.scan_xlsx(data, keyword)

        logger.info(f"模板分析完成: {name or '<bytes>'}，字段 {len(fields)} 个")
        if not fields and require_fields:
            raise NoPlaceholderError(NO_FIELDS_MESSAGE)
        return fields

    # === 文档生成 ===

    def generate(
        self,
        source: bytes | str | Path,
        field_values: Mapping[str, Any],
        table_data: TableData | None = None,
        fields: Sequence[FieldDefinition] | None = None,
        job: GenerationJob | None = None,
    ) -> GenerationResult:
        """执行生成流水线"""
        data, name = _read_source(source)
        job = job or GenerationJob(job_id=str(uuid.uuid4()), source_name=name)
        job.mark_running()

        context: dict[str, Any] = {
            "data": data,
            "field_values": dict(field_values),
            "table_data": table_data,
            "fields": list(fields) if fields is not None else None,
        }

        try:
            for stage in GENERATION_STAGES:
                self._execute_stage(job, stage, context)
            job.mark_succeeded()
        except Exception as e:
            logger.exception(f"文档生成失败: {job.job_id}")
            job.mark_failed(user_message(e))
            raise

        return GenerationResult(
            content=context["output"],
            doc_format=context["doc_format"],
            job=job,
            fields=context["fields"],
            table_inserted=context.get("table_inserted", False),
        )

    def generate_to_file(
        self,
        template_path: str | Path,
        field_values: Mapping[str, Any],
        table_data: TableData | None = None,
        fields: Sequence[FieldDefinition] | None = None,
        output_path: str | Path | None = None,
    ) -> GenerationResult:
        """生成并写入文件（先写临时文件，成功后替换目标）"""
        template_path = Path(template_path)
        if output_path is None:
            output_path = template_path.with_name(self.config.export.output_prefix + template_path.name)
        output_path = Path(output_path)

        result = self.generate(template_path, field_values, table_data, fields)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=output_path.parent, prefix=".docfill-", suffix=output_path.suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(result.content)
            os.replace(tmp_name, output_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        result.output_path = output_path
        logger.info(f"[{result.job.job_id}] 已输出: {output_path}")
        return result

    def export_csv(self, table_data: TableData) -> bytes:
        """商品表格CSV"""
        table = self.config.table
        return export_csv(
            table_data.items,
            table_data.total,
            table.headers,
            table.csv_total_label,
            quoting=self.config.export.csv_quoting,
        )

    def _detect_format(self, package: DocumentPackage) -> DocFormat:
        parts = self.config.package
        return package.detect_format(parts.docx_primary_part, parts.xlsx_workbook_part)

    # === 阶段执行 ===

    def _execute_stage(self, job: GenerationJob, stage: PipelineStage, context: dict) -> None:
        """执行单个阶段"""
        job.progress.stage = stage.name
        job.progress.percent = stage.progress_start
        logger.info(f"[{job.job_id}] 开始阶段: {stage.name}")

        try:
            if stage.name == StageEnum.LOAD_PACKAGE.value:
                self._stage_load(job, context)

            elif stage.name == StageEnum.RENDER_FIELDS.value:
                self._stage_render(job, context)

            elif stage.name == StageEnum.BUILD_TABLE.value:
                self._stage_build_table(job, context)

            elif stage.name == StageEnum.SPLICE_TABLE.value:
                self._stage_splice(job, context)

            elif stage.name == StageEnum.SERIALIZE.value:
                self._stage_serialize(job, context)

        except Exception as e:
            logger.error(f"[{job.job_id}] 阶段失败 {stage.name}: {e}")
            raise

        job.progress.percent = stage.progress_end
        job.progress.message = f"完成阶段: {stage.name}"

    def _stage_load(self, job: GenerationJob, context: dict) -> None:
        """读取文档包并确定格式与字段"""
        package = DocumentPackage.from_bytes(context["data"])
        doc_format = self._detect_format(package)
        job.doc_format = doc_format
        context["package"] = package
        context["doc_format"] = doc_format

        if context["fields"] is None:
            context["fields"] = self.analyze(context["data"], require_fields=False)
        context["table_field"] = find_table_field(context["fields"])

    def _stage_render(self, job: GenerationJob, context: dict) -> None:
        """字段替换（Excel在此阶段一次完成替换与表格插入）"""
        table_field = context["table_field"]
        table_data = context["table_data"]
        values = context["field_values"]

        if context["doc_format"] == DocFormat.XLSX:
            result = self.sheet_filler.fill(context["data"], values, table_data, context["fields"])
            context["sheet_result"] = result
            context["table_inserted"] = result.table_inserted
            for message in result.warnings:
                job.add_flag(ANCHOR_MISSING_FLAG)
                logger.warning(f"[{job.job_id}] {message}")
            return

        table_name = None
        if table_field is not None:
            if table_data is None:
                # 没有表格数据：表格标记按空值处理
                values[table_field.field_name] = ""
            else:
                table_name = table_field.field_name

        context["rendered"] = self.renderer.render(context["package"], values, table_name)

    def _stage_build_table(self, job: GenerationJob, context: dict) -> None:
        """生成表格片段"""
        rendered = context.get("rendered")
        if rendered is None or rendered.sentinel is None:
            return
        table_data: TableData = context["table_data"]
        context["fragment"] = self.builder.build(
            table_data.items, table_data.total, self.config.table.headers
        )

    def _stage_splice(self, job: GenerationJob, context: dict) -> None:
        """表格拼接"""
        rendered = context.get("rendered")
        if rendered is None:
            return
        if "fragment" not in context:
            context["final_package"] = rendered.package
            return

        result = self.splicer.splice(rendered.package, rendered.sentinel, context["fragment"])
        context["final_package"] = result.package
        context["table_inserted"] = result.spliced
        if not result.spliced:
            job.add_flag(ANCHOR_MISSING_FLAG)

    def _stage_serialize(self, job: GenerationJob, context: dict) -> None:
        """输出字节"""
        if context["doc_format"] == DocFormat.XLSX:
            context["output"] = context["sheet_result"].content
        else:
            context["output"] = context["final_package"].to_bytes()


def _read_source(source: bytes | str | Path) -> tuple[bytes, str | None]:
    """一次性读入全部字节（不支持分段读取）"""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    path = Path(source)
    return path.read_bytes(), path.name


def user_message(error: BaseException) -> str:
    """异常 → 面向用户的提示"""
    if isinstance(error, NoPlaceholderError):
        return NO_FIELDS_MESSAGE
    if isinstance(error, TemplateSyntaxError):
        return "文档模板错误: " + "; ".join(error.messages)
    if isinstance(error, ParseError):
        if "document part" in str(error):
            return "解析错误: 无法找到文档主体，请确保上传的是有效的 Word (.docx) 文件"
        return f"解析错误: {error}"
    return f"生成错误: {error}"
