"""
CSV导出单元测试

每个模块完成后必须运行：pytest tests/unit/test_csv_export.py -v
"""

import csv
import io

from docfill.models import LineItem
from docfill.template import export_csv
from docfill.template.csv_export import build_csv_rows


def decode(content: bytes) -> list[str]:
    return content.decode("utf-8-sig").split("\n")


class TestExportCsv:
    """CSV导出测试"""

    def test_export_lines(self, runtime_config):
        """测试表头/明细/合计行"""
        item = LineItem(name="name", model="model", unit="unit", quantity=2, price=100.555, amount=201.11, remark="remark")
        lines = decode(export_csv([item], 201.11, runtime_config.table.headers))
        assert lines[0] == ",".join(runtime_config.table.headers)
        assert lines[1] == "1,name,model,unit,2,100.555,201.11,remark"
        assert lines[2] == ",,,,,合计,201.11,"
        assert len(lines) == 3

    def test_export_bom(self, runtime_config, sample_items):
        """测试UTF-8 BOM"""
        content = export_csv(sample_items, 231.11, runtime_config.table.headers)
        assert content.startswith(b"\xef\xbb\xbf")
        assert not content.endswith(b"\n")

    def test_export_empty_items(self, runtime_config):
        """测试空明细"""
        lines = decode(export_csv([], 0, runtime_config.table.headers))
        assert lines[1:] == [",,,,,合计,0,"]

    def test_export_unquoted_comma(self, runtime_config):
        """测试默认不加引号：值中的逗号会多出一列"""
        item = LineItem(name="a,b", quantity=1, price=1, amount=1)
        lines = decode(export_csv([item], 1, runtime_config.table.headers))
        assert len(lines[1].split(",")) == 9

    def test_export_quoting(self, runtime_config):
        """测试加引号后可按标准CSV读回"""
        item = LineItem(name="a,b", remark="第一行\n第二行", quantity=1, price=1, amount=1)
        content = export_csv([item], 1, runtime_config.table.headers, quoting=True)
        rows = list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))
        assert rows[1][1] == "a,b"
        assert rows[1][7] == "第一行\n第二行"
        assert rows[-1] == ["", "", "", "", "", "合计", "1", ""]

    def test_build_csv_rows_custom_label(self, runtime_config, sample_items):
        """测试自定义合计标签"""
        rows = build_csv_rows(sample_items, 231.11, runtime_config.table.headers, "总计")
        assert rows[-1][5] == "总计"
        assert rows[2] == ["2", "螺母", "M3", "盒", "3", "10", "30", "加急"]
