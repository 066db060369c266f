"""
合同模板填充系统 - 后端核心模块

模块结构：
- config/     运行期配置加载
- models/     数据模型定义
- template/   模板处理（标记扫描/字段渲染/表格生成/XML拼接/Excel填充）
- pipeline/   生成流水线编排
- cli.py      命令行入口
"""

__version__ = "0.1.0"
