"""
运行期配置 - 读取 documents/docfill_runtime.yaml

职责：
- 加载标记分隔符/表格关键字/表头/占位令牌/导出等运行参数
- 提供环境变量覆盖机制（前缀 DOCFILL_，嵌套分隔符 __）
- 类型安全的配置访问
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_HEADERS = ["序号", "商品名称", "型号", "单位", "数量", "单价", "金额", "备注"]


class PlaceholderConfig(BaseModel):
    """标记配置"""

    start: str = "{-"
    end: str = "-}"
    table_keyword: str = "商品信息表格"
    strict_missing: bool = False   # 未填写的字段是否报错（默认渲染为空）
    linebreaks: bool = True        # 值中的换行转为 w:br


class TableConfig(BaseModel):
    """商品表格配置"""

    headers: list[str] = Field(default_factory=lambda: list(DEFAULT_HEADERS))
    total_label: str = "合计："        # Word表格合计行
    sheet_total_label: str = "合计"    # Excel合计行
    csv_total_label: str = "合计"      # CSV合计行
    width_pct: int = 5000              # 1/50 百分比，5000 = 100%
    border_size: int = 4
    default_unit: str = "个"

    @field_validator("headers")
    @classmethod
    def _check_headers(cls, value: list[str]) -> list[str]:
        if len(value) != 8:
            raise ValueError(f"表头必须为8列，实际 {len(value)} 列")
        return value


class SentinelConfig(BaseModel):
    """表格占位令牌配置"""

    prefix: str = "___INSERT_TABLE_HERE_"
    suffix: str = "___"
    random_max: int = 100000


class PackageConfig(BaseModel):
    """文档包配置"""

    docx_primary_part: str = "word/document.xml"
    xlsx_workbook_part: str = "xl/workbook.xml"


class ExportConfig(BaseModel):
    """导出配置"""

    output_prefix: str = "Generated_"
    csv_quoting: bool = False      # 默认逗号直接拼接，不加引号


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "docfill.log"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    placeholder: PlaceholderConfig = Field(default_factory=PlaceholderConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    sentinel: SentinelConfig = Field(default_factory=SentinelConfig)
    package: PackageConfig = Field(default_factory=PackageConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "DOCFILL_",
        "env_nested_delimiter": "__",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """环境变量优先于YAML（YAML各节以初始化参数传入）"""
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置（文件不存在时使用默认值；环境变量逐项覆盖）"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        # 以普通字典传入，便于与环境变量按字段合并
        return cls(**{key: cls._extract(runtime_opts, key) for key in cls.model_fields})

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（支持 {default: 值} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("documents/docfill_runtime.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        default_path = DEFAULT_CONFIG_PATH
        if not default_path.exists():
            fallback_path = Path("config/docfill_runtime.yaml")
            if fallback_path.exists():
                default_path = fallback_path
        _config = RuntimeConfig.from_yaml(default_path)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config


def setup_logging(config: RuntimeConfig | None = None) -> None:
    """按配置初始化根日志"""
    cfg = (config or get_config()).logging
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if cfg.log_to_file:
        handlers.append(logging.FileHandler(cfg.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
