"""Base Analyzer Interface"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from .errors import ErrorKind


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        mapping = {
            "critical": cls.CRITICAL,
            "high": cls.HIGH,
            "moderate": cls.MEDIUM,
            "medium": cls.MEDIUM,
            "low": cls.LOW,
            "info": cls.INFO,
        }
        return mapping.get(str(value).lower(), cls.INFO)

    @property
    def rank(self) -> int:
        order = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]
        return order.index(self)

    # str 비교 대신 심각도 순서로 비교
    def __ge__(self, other: "Severity") -> bool:
        return self.rank >= Severity(other).rank

    def __gt__(self, other: "Severity") -> bool:
        return self.rank > Severity(other).rank

    def __le__(self, other: "Severity") -> bool:
        return self.rank <= Severity(other).rank

    def __lt__(self, other: "Severity") -> bool:
        return self.rank < Severity(other).rank


@dataclass
class VulnerabilityEvidence:
    """의존성에 첨부되는 취약점 근거"""

    name: str
    source: str
    module_name: str
    resolved_version: str
    vulnerable_versions: str
    severity: Severity
    identifiers: list[str] = field(default_factory=list)
    patched_versions: str | None = None
    title: str | None = None
    description: str | None = None
    recommendation: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DependencyRecord:
    """스캔 대상 아티팩트 (lockfile)

    식별 필드(file_path, display_name)는 엔진 소유이며 분석기는
    evidence 컬렉션에만 항목을 추가한다.
    """

    file_path: Path
    display_name: str
    evidence: list[VulnerabilityEvidence] = field(default_factory=list)

    def add_evidence(self, entry: VulnerabilityEvidence) -> None:
        self.evidence.append(entry)


class AnalysisStatus(str, Enum):
    ANALYZED = "analyzed"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    FAILED = "failed"


class AnalysisStage(str, Enum):
    PREPARE = "prepare"
    PROCESS = "process"
    EXTRACT = "extract"
    MANIFEST = "manifest"
    PAYLOAD = "payload"
    ADVISORY = "advisory"
    MAPPING = "mapping"


@dataclass(frozen=True)
class AnalysisError:
    """어느 의존성의 어느 단계에서 실패했는지 기술"""

    kind: ErrorKind
    stage: AnalysisStage
    dependency: str
    message: str


@dataclass
class AnalysisResult:
    """의존성 하나에 대한 분석 결과"""

    dependency: DependencyRecord
    status: AnalysisStatus
    evidence: list[VulnerabilityEvidence] = field(default_factory=list)
    error: AnalysisError | None = None
    execution_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status in (AnalysisStatus.ANALYZED, AnalysisStatus.SKIPPED)


class DependencyAnalyzer(Protocol):
    """엔진이 주입받아 사용하는 분석기 인터페이스"""

    @property
    def name(self) -> str: ...

    @property
    def enabled(self) -> bool: ...

    def prepare(self) -> Any: ...

    def analyze(self, dependency: DependencyRecord, cancel_event: Any = None) -> AnalysisResult: ...
