"""설정 파일 로더"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_URL = "https://registry.npmjs.org/-/npm/v1/security/audits"


class YarnAuditConfig(BaseModel):
    """Yarn audit 분석기 설정"""

    enabled: bool = True
    yarn_path: str = "yarn"
    skip_dev_dependencies: bool = False
    dev_dependency_policy: Literal["flagged", "declared"] = "flagged"
    audit_url: str = DEFAULT_AUDIT_URL
    request_timeout: float = 30.0
    process_timeout: float = 300.0
    user_agent: str = "yarn-audit-analyzer/0.1.0"


class ReportingConfig(BaseModel):
    """리포팅 설정"""

    json_output: str | None = None
    fail_on_findings: bool = True
    fail_on_severity: Literal["critical", "high", "medium", "low", "info"] = "high"


class ScanConfig(BaseModel):
    """전체 설정"""

    version: str = "1.0"
    parallel: bool = True
    max_workers: int = Field(default=4, ge=1)
    yarn_audit: YarnAuditConfig = Field(default_factory=YarnAuditConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)


def find_config_file(workspace: str) -> Path | None:
    """설정 파일 찾기"""
    config_names = [
        ".yarn-audit.yml",
        ".yarn-audit.yaml",
        "yarn-audit.yml",
        "yarn-audit.yaml",
        ".github/yarn-audit.yml",
        ".github/yarn-audit.yaml",
    ]

    workspace_path = Path(workspace)
    for name in config_names:
        config_path = workspace_path / name
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: str | Path | None = None, workspace: str | None = None) -> ScanConfig:
    """설정 파일 로드"""
    # 설정 파일 경로 결정
    if config_path:
        path = Path(config_path)
    elif workspace:
        path = find_config_file(workspace)
    else:
        path = find_config_file(os.getcwd())

    # 기본 설정 반환
    if not path or not path.exists():
        return ScanConfig()

    # YAML 로드
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return ScanConfig(**data)
    except Exception as e:
        logger.warning("Failed to load config from %s: %s", path, e)
        return ScanConfig()


def merge_env_config(config: ScanConfig) -> ScanConfig:
    """환경 변수로 설정 오버라이드"""

    def _env_to_bool(name: str) -> bool | None:
        raw = os.getenv(name)
        if raw is None:
            return None
        normalized = raw.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False
        return None

    def _env_to_str(name: str) -> str | None:
        raw = os.getenv(name)
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        return None

    # 분석기
    enabled_env = _env_to_bool("YARN_AUDIT_ENABLED")
    if enabled_env is not None:
        config.yarn_audit.enabled = enabled_env
    skip_dev_env = _env_to_bool("YARN_AUDIT_SKIP_DEV")
    if skip_dev_env is not None:
        config.yarn_audit.skip_dev_dependencies = skip_dev_env
    url_env = _env_to_str("YARN_AUDIT_URL")
    if url_env:
        config.yarn_audit.audit_url = url_env
    yarn_path_env = _env_to_str("YARN_AUDIT_YARN_PATH")
    if yarn_path_env:
        config.yarn_audit.yarn_path = yarn_path_env

    # 리포팅
    severity_env = _env_to_str("YARN_AUDIT_FAIL_ON_SEVERITY")
    if severity_env and severity_env.lower() in {"critical", "high", "medium", "low", "info"}:
        config.reporting.fail_on_severity = severity_env.lower()
    json_output_env = _env_to_str("YARN_AUDIT_JSON_OUTPUT")
    if json_output_env:
        config.reporting.json_output = json_output_env

    return config
