"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from docfill.models import (
    FieldDefinition,
    GenerationJob,
    JobStatus,
    LineItem,
    ScalarValue,
    TableAnchor,
    TableData,
    find_table_field,
)


@pytest.fixture
def temp_job() -> GenerationJob:
    """测试任务"""
    return GenerationJob(job_id="test-job-001")


class TestFieldDefinition:
    """字段定义测试"""

    def test_frozen(self):
        """测试扫描结果不可修改"""
        field = FieldDefinition(original_tag="{-甲方-}", field_name="甲方")
        with pytest.raises(ValidationError):
            field.field_name = "乙方"

    def test_find_table_field_first(self):
        """测试多个表格字段时取第一个"""
        fields = [
            FieldDefinition(original_tag="{-甲方-}", field_name="甲方"),
            FieldDefinition(original_tag="{-商品信息表格-}", field_name="商品信息表格", is_table=True),
            FieldDefinition(original_tag="{-商品信息表格2-}", field_name="商品信息表格2", is_table=True),
        ]
        assert find_table_field(fields).field_name == "商品信息表格"

    def test_find_table_field_none(self):
        """测试没有表格字段"""
        assert find_table_field([FieldDefinition(original_tag="{-A-}", field_name="A")]) is None

    def test_field_values(self):
        """测试两种取值"""
        assert ScalarValue().text == ""
        assert TableAnchor(sentinel="___X___").sentinel == "___X___"


class TestLineItem:
    """商品明细测试"""

    def test_create_rounds_amount(self):
        """测试金额按两位小数计算"""
        item = LineItem.create("螺丝", 2, 100.555, model="M3")
        assert item.amount == 201.11
        assert item.unit == "个"
        assert item.id

    def test_create_with_id(self):
        """测试指定行标识"""
        assert LineItem.create("螺母", 1, 5, id="row-1").id == "row-1"

    def test_default_ids_unique(self):
        """测试默认行标识不重复"""
        assert LineItem().id != LineItem().id


class TestTableData:
    """商品表格测试"""

    def test_from_items(self, sample_items: list[LineItem]):
        """测试由明细计算合计"""
        table = TableData.from_items(sample_items)
        assert table.total == 231.11

    def test_total_mismatch(self, sample_items: list[LineItem]):
        """测试合计与明细不一致"""
        with pytest.raises(ValidationError, match="合计金额不一致"):
            TableData(items=sample_items, total=1)

    def test_empty(self):
        """测试空明细"""
        table = TableData()
        assert table.items == []
        assert table.total == 0


class TestJob:
    """任务模型测试"""

    def test_mark_running(self, temp_job: GenerationJob):
        """测试标记运行中"""
        temp_job.mark_running("TEST_STAGE")
        assert temp_job.status == JobStatus.RUNNING
        assert temp_job.progress.stage == "TEST_STAGE"
        assert temp_job.started_at is not None

    def test_mark_succeeded(self, temp_job: GenerationJob):
        """测试标记成功"""
        temp_job.mark_running()
        temp_job.mark_succeeded()
        assert temp_job.status == JobStatus.SUCCEEDED
        assert temp_job.progress.percent == 100

    def test_mark_failed(self, temp_job: GenerationJob):
        """测试标记失败"""
        temp_job.mark_running()
        temp_job.mark_failed("Test error")
        assert temp_job.status == JobStatus.FAILED
        assert "Test error" in temp_job.errors

    def test_add_flag(self, temp_job: GenerationJob):
        """测试添加告警标记"""
        temp_job.add_flag("测试警告")
        temp_job.add_flag("测试警告")  # 重复添加
        assert temp_job.flags == ["测试警告"]
