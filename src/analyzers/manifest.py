"""package.json (manifest) 읽기"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ManifestError

MANIFEST_FILE = "package.json"


@dataclass(frozen=True)
class ManifestDeclaration:
    """manifest에 선언된 최상위 의존성과 버전 범위"""

    name: str | None = None
    version: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ManifestDeclaration":
        if not isinstance(data, dict):
            raise ManifestError(f"package.json must be a JSON object, got {type(data).__name__}")

        return cls(
            name=data.get("name") if isinstance(data.get("name"), str) else None,
            version=data.get("version") if isinstance(data.get("version"), str) else None,
            dependencies=cls._section(data, "dependencies"),
            dev_dependencies=cls._section(data, "devDependencies"),
        )

    @staticmethod
    def _section(data: dict, key: str) -> dict[str, str]:
        section = data.get(key) or {}
        if not isinstance(section, dict):
            raise ManifestError(f"package.json '{key}' must be an object")
        for name, spec in section.items():
            if not isinstance(spec, str):
                raise ManifestError(f"package.json '{key}.{name}' must be a version string")
        return dict(section)


def read_manifest(path: Path) -> ManifestDeclaration:
    """manifest 파일을 읽어 파싱한다."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestError(f"{path} not found") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Unable to read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse {path}: {e}") from e
    return ManifestDeclaration.from_dict(data)
