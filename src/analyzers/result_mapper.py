"""advisory → 의존성 취약점 근거 매핑"""

import logging

from .advisory import Advisory
from .base import DependencyRecord, Severity, VulnerabilityEvidence
from .payload import DependencyVersionIndex
from .semver import satisfies

logger = logging.getLogger(__name__)


class ResultMapper:
    """해석된 버전이 advisory의 취약 범위에 포함될 때만 근거를 추가한다."""

    def __init__(self, source: str = "yarn-audit"):
        self.source = source

    def apply(
        self,
        advisories: list[Advisory],
        index: DependencyVersionIndex,
        dependency: DependencyRecord,
    ) -> list[VulnerabilityEvidence]:
        attached: list[VulnerabilityEvidence] = []
        seen: set[tuple[str, str]] = set()

        for advisory in advisories:
            version = self.matching_version(advisory, index)
            if version is None:
                continue
            key = (advisory.id, advisory.module_name)
            if key in seen:
                continue
            seen.add(key)

            evidence = self.to_evidence(advisory, version)
            dependency.add_evidence(evidence)
            attached.append(evidence)
            logger.debug(
                "%s@%s matches %s (%s)",
                advisory.module_name,
                version,
                evidence.name,
                advisory.vulnerable_versions,
            )

        return attached

    @staticmethod
    def matching_version(advisory: Advisory, index: DependencyVersionIndex) -> str | None:
        for version in index.versions(advisory.module_name):
            if satisfies(version, advisory.vulnerable_versions):
                return version
        return None

    def to_evidence(self, advisory: Advisory, version: str) -> VulnerabilityEvidence:
        return VulnerabilityEvidence(
            name=advisory.github_advisory_id or advisory.id,
            source=self.source,
            module_name=advisory.module_name,
            resolved_version=version,
            vulnerable_versions=advisory.vulnerable_versions,
            severity=Severity.from_string(advisory.severity),
            identifiers=advisory.identifiers,
            patched_versions=advisory.patched_versions,
            title=advisory.title,
            description=advisory.overview,
            recommendation=advisory.recommendation,
            url=advisory.url,
            metadata={
                "advisory_id": advisory.id,
                "cwe": list(advisory.cwe),
                "cvss_score": advisory.cvss_score,
                "cvss_vector": advisory.cvss_vector,
            },
        )
