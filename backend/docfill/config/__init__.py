"""
配置层 - 加载运行期配置

职责：
- 加载 documents/docfill_runtime.yaml（标记分隔符/表格关键字/表头/导出选项）
- 提供环境变量覆盖机制
- 提供类型安全的配置访问接口
"""

from .runtime_config import (
    ExportConfig,
    LoggingConfig,
    PackageConfig,
    PlaceholderConfig,
    RuntimeConfig,
    SentinelConfig,
    TableConfig,
    get_config,
    reload_config,
    setup_logging,
)

__all__ = [
    "RuntimeConfig",
    "PlaceholderConfig",
    "TableConfig",
    "SentinelConfig",
    "PackageConfig",
    "ExportConfig",
    "LoggingConfig",
    "get_config",
    "reload_config",
    "setup_logging",
]
