"""Configuration Package"""

from .loader import (
    ReportingConfig,
    ScanConfig,
    YarnAuditConfig,
    find_config_file,
    load_config,
    merge_env_config,
)

__all__ = [
    "ReportingConfig",
    "ScanConfig",
    "YarnAuditConfig",
    "find_config_file",
    "load_config",
    "merge_env_config",
]
