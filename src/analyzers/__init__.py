"""Yarn Audit Analyzers Package"""

from .advisory import Advisory, AdvisoryClient
from .audit_request import AuditRequestExtractor
from .base import (
    AnalysisError,
    AnalysisResult,
    AnalysisStage,
    AnalysisStatus,
    DependencyRecord,
    Severity,
    VulnerabilityEvidence,
)
from .discovery import discover_dependencies
from .lifecycle import AnalyzerLifecycle, LifecycleState, LifecycleStatus
from .manifest import ManifestDeclaration, read_manifest
from .parallel import ParallelAnalyzer
from .payload import AuditPayload, DependencyVersionIndex, DevDependencyPolicy, PayloadBuilder
from .process import ProcessResult, ProcessRunner
from .result_mapper import ResultMapper
from .yarn_audit import YarnAuditAnalyzer

__all__ = [
    "Advisory",
    "AdvisoryClient",
    "AnalysisError",
    "AnalysisResult",
    "AnalysisStage",
    "AnalysisStatus",
    "AnalyzerLifecycle",
    "AuditPayload",
    "AuditRequestExtractor",
    "DependencyRecord",
    "DependencyVersionIndex",
    "DevDependencyPolicy",
    "LifecycleState",
    "LifecycleStatus",
    "ManifestDeclaration",
    "ParallelAnalyzer",
    "PayloadBuilder",
    "ProcessResult",
    "ProcessRunner",
    "ResultMapper",
    "Severity",
    "VulnerabilityEvidence",
    "YarnAuditAnalyzer",
    "discover_dependencies",
    "read_manifest",
]
