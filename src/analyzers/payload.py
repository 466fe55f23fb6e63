"""npm audit API payload 생성

yarn이 만든 audit request와 package.json을 합쳐 advisory 서비스가 받는
형태로 정규화한다. 같은 입력에 대해 항상 같은 payload를 만든다 (I/O 없음).
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .audit_request import AuditRequest
from .errors import PayloadSchemaError
from .manifest import ManifestDeclaration

# npm audit API가 요구하는 고정 메타데이터
CONSTANT_METADATA = {
    "npm_version": "6.9.0",
    "node_version": "v10.5.0",
    "platform": "linux",
}

# 레지스트리에서 조회할 수 없는 의존성 스펙
_NON_REGISTRY_PREFIXES = ("file:", "link:", "http:", "https:", "git", "github:")


class DevDependencyPolicy(str, Enum):
    """dev 의존성 제외 규칙

    - flagged: audit request에서 "dev": true로 표시된 항목 제외
    - declared: devDependencies에만 선언된 최상위 항목 제외
    """

    FLAGGED = "flagged"
    DECLARED = "declared"


class DependencyVersionIndex:
    """모듈 이름 → 해석된 버전 (한 번의 분석에서만 사용)"""

    def __init__(self) -> None:
        self._versions: dict[str, list[str]] = {}

    def add(self, name: str, version: str) -> None:
        versions = self._versions.setdefault(name, [])
        if version not in versions:
            versions.append(version)

    def get(self, name: str) -> str | None:
        versions = self._versions.get(name)
        return versions[0] if versions else None

    def versions(self, name: str) -> tuple[str, ...]:
        return tuple(self._versions.get(name, ()))

    def __contains__(self, name: object) -> bool:
        return name in self._versions

    def __len__(self) -> int:
        return len(self._versions)


@dataclass(frozen=True)
class AuditPayload:
    """advisory 서비스 요청 본문"""

    data: dict[str, Any]
    skip_dev_dependencies: bool = False

    def to_json(self) -> str:
        return json.dumps(self.data, sort_keys=True, separators=(",", ":"))


def should_skip_dependency(name: str, spec: str) -> bool:
    """npm 레지스트리에 없는 의존성(로컬 경로, URL, git)인지 확인"""
    spec = spec.strip()
    if spec.startswith(_NON_REGISTRY_PREFIXES):
        return True
    # "user/repo" 형식의 GitHub 축약 (npm: alias는 허용)
    return "/" in spec and not spec.startswith("npm:")


class PayloadBuilder:
    """audit request + manifest → AuditPayload, DependencyVersionIndex"""

    def __init__(self, dev_policy: DevDependencyPolicy = DevDependencyPolicy.FLAGGED):
        self.dev_policy = DevDependencyPolicy(dev_policy)

    def build(
        self,
        audit_request: AuditRequest,
        manifest: ManifestDeclaration,
        skip_dev_dependencies: bool = False,
    ) -> tuple[AuditPayload, DependencyVersionIndex]:
        if not isinstance(audit_request, dict):
            raise PayloadSchemaError("Audit request must be an object")
        dependencies = audit_request.get("dependencies")
        if not isinstance(dependencies, dict):
            raise PayloadSchemaError("Audit request is missing the 'dependencies' object")

        index = DependencyVersionIndex()
        payload: dict[str, Any] = {}

        if manifest.name:
            payload["name"] = manifest.name
        if manifest.version:
            payload["version"] = manifest.version

        payload["requires"] = self._build_requires(manifest, skip_dev_dependencies)

        excluded: set[str] = set()
        if skip_dev_dependencies and self.dev_policy is DevDependencyPolicy.DECLARED:
            excluded = set(manifest.dev_dependencies) - set(manifest.dependencies)

        built: dict[str, Any] = {}
        for name in sorted(dependencies):
            if name in excluded:
                continue
            entry = dependencies[name]
            if self._is_flagged_dev(entry, skip_dev_dependencies):
                continue
            built[name] = self._build_dependency(name, entry, index, skip_dev_dependencies)
        payload["dependencies"] = built

        payload["install"] = []
        payload["remove"] = []
        payload["metadata"] = {
            **CONSTANT_METADATA,
            "skip_dev_dependencies": skip_dev_dependencies,
        }

        return AuditPayload(data=payload, skip_dev_dependencies=skip_dev_dependencies), index

    @staticmethod
    def _build_requires(manifest: ManifestDeclaration, skip_dev: bool) -> dict[str, str]:
        declared = dict(manifest.dependencies)
        if not skip_dev:
            for name, spec in manifest.dev_dependencies.items():
                declared.setdefault(name, spec)

        return {
            name: declared[name]
            for name in sorted(declared)
            if not should_skip_dependency(name, declared[name])
        }

    def _is_flagged_dev(self, entry: Any, skip_dev: bool) -> bool:
        return (
            skip_dev
            and self.dev_policy is DevDependencyPolicy.FLAGGED
            and isinstance(entry, dict)
            and entry.get("dev") is True
        )

    def _build_dependency(
        self,
        path: str,
        entry: Any,
        index: DependencyVersionIndex,
        skip_dev: bool,
    ) -> dict[str, Any]:
        if not isinstance(entry, dict):
            raise PayloadSchemaError(f"Dependency '{path}' must be an object")
        version = entry.get("version")
        if not isinstance(version, str) or not version:
            raise PayloadSchemaError(f"Dependency '{path}' is missing 'version'")

        name = path.rsplit(" > ", 1)[-1]
        index.add(name, version)

        built: dict[str, Any] = {"version": version}
        # 설치되지 않은 패키지(optional의 하위 의존성 등)는 integrity가 없다
        if isinstance(entry.get("integrity"), str):
            built["integrity"] = entry["integrity"]
        if "requires" in entry:
            requires = entry["requires"]
            if not isinstance(requires, dict):
                raise PayloadSchemaError(f"Dependency '{path}' has non-object 'requires'")
            built["requires"] = {key: requires[key] for key in sorted(requires)}
        if isinstance(entry.get("dev"), bool):
            built["dev"] = entry["dev"]

        if "dependencies" in entry:
            nested = entry["dependencies"]
            if not isinstance(nested, dict):
                raise PayloadSchemaError(f"Dependency '{path}' has non-object 'dependencies'")
            built["dependencies"] = {
                child: self._build_dependency(f"{path} > {child}", nested[child], index, skip_dev)
                for child in sorted(nested)
                if not self._is_flagged_dev(nested[child], skip_dev)
            }
        return built
