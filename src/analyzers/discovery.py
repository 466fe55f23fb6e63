"""워크스페이스에서 분석 대상 lockfile 찾기"""

import logging
import os
from fnmatch import fnmatch
from pathlib import Path

from .base import DependencyRecord
from .yarn_audit import YARN_LOCK

logger = logging.getLogger(__name__)

EXCLUDED_SCAN_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    ".tox",
    "__pycache__",
    "node_modules",
    ".yarn",
    "vendor",
    "dist",
    "build",
}


def find_files(
    workspace: str | Path,
    patterns: list[str],
    max_results: int | None = None,
    excluded_dirs: set[str] | None = None,
) -> list[Path]:
    """워크스페이스에서 파일 패턴에 맞는 파일을 찾는다.

    vendor/cache 디렉토리는 탐색하지 않는다.
    """
    excluded = EXCLUDED_SCAN_DIRS if excluded_dirs is None else excluded_dirs
    matched: list[Path] = []
    normalized_patterns = [p.strip() for p in patterns if p and p.strip()]
    if not normalized_patterns:
        return matched

    for root, dirs, files in os.walk(Path(workspace), topdown=True):
        dirs[:] = [d for d in dirs if d not in excluded]
        root_path = Path(root)

        for file_name in files:
            if not any(fnmatch(file_name, pattern) for pattern in normalized_patterns):
                continue
            matched.append(root_path / file_name)
            if max_results is not None and len(matched) >= max_results:
                return sorted(matched)

    return sorted(matched)


def discover_dependencies(workspace: str | Path) -> list[DependencyRecord]:
    """yarn.lock 파일마다 DependencyRecord 생성"""
    workspace_path = Path(workspace)
    records = []
    for lock_file in find_files(workspace_path, [YARN_LOCK]):
        try:
            display_name = lock_file.relative_to(workspace_path).as_posix()
        except ValueError:
            display_name = str(lock_file)
        records.append(DependencyRecord(file_path=lock_file, display_name=display_name))

    logger.info("Found %d %s file(s) in %s", len(records), YARN_LOCK, workspace_path)
    return records
