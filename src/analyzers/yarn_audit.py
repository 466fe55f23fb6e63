"""Yarn Audit Analyzer

yarn.lock 의존성 그래프의 취약점을 NPM Audit API로 확인한다.

1. `yarn audit --offline --json --verbose` 실행 (lockfile 디렉토리)
2. verbose 출력에서 audit request 복원
3. package.json과 합쳐 NPM Audit API payload 생성
4. payload 제출 후 advisory 수신
5. 해석된 버전이 취약 범위에 포함되면 의존성에 근거 추가
"""

import logging
import threading
import time
from pathlib import Path

from .advisory import DEFAULT_AUDIT_URL, DEFAULT_USER_AGENT, AdvisoryClient
from .audit_request import AuditRequestExtractor
from .base import (
    AnalysisError,
    AnalysisResult,
    AnalysisStage,
    AnalysisStatus,
    DependencyRecord,
    VulnerabilityEvidence,
)
from .errors import ErrorKind, InvalidTargetError, ProcessInterrupted, YarnAuditError
from .lifecycle import AnalyzerLifecycle, LifecycleState
from .manifest import MANIFEST_FILE, read_manifest
from .payload import DevDependencyPolicy, PayloadBuilder
from .process import ProcessRunner
from .result_mapper import ResultMapper

logger = logging.getLogger(__name__)

YARN_LOCK = "yarn.lock"


class YarnAuditAnalyzer:
    """yarn.lock 의존성 분석기

    협력 객체(runner, client 등)는 주입할 수 있다. 의존성 간에 공유되는
    상태는 lifecycle 하나뿐이므로 여러 스레드에서 동시에 analyze()를
    호출해도 된다.
    """

    def __init__(
        self,
        yarn_path: str = "yarn",
        enabled: bool = True,
        skip_dev_dependencies: bool = False,
        dev_policy: DevDependencyPolicy | str = DevDependencyPolicy.FLAGGED,
        process_timeout: float | None = 300,
        audit_url: str = DEFAULT_AUDIT_URL,
        request_timeout: float = 30,
        user_agent: str = DEFAULT_USER_AGENT,
        runner: ProcessRunner | None = None,
        extractor: AuditRequestExtractor | None = None,
        builder: PayloadBuilder | None = None,
        client: AdvisoryClient | None = None,
        mapper: ResultMapper | None = None,
        lifecycle: AnalyzerLifecycle | None = None,
    ):
        self.yarn_path = yarn_path
        self.configured_enabled = enabled
        self.skip_dev_dependencies = skip_dev_dependencies
        self.process_timeout = process_timeout
        self.runner = runner or ProcessRunner()
        self.extractor = extractor or AuditRequestExtractor()
        self.builder = builder or PayloadBuilder(DevDependencyPolicy(dev_policy))
        self.client = client or AdvisoryClient(
            url=audit_url, timeout=request_timeout, user_agent=user_agent
        )
        self.mapper = mapper or ResultMapper()
        self.lifecycle = lifecycle or AnalyzerLifecycle(self.name)

    @property
    def name(self) -> str:
        return "Yarn Audit Analyzer"

    @property
    def enabled(self) -> bool:
        return self.lifecycle.enabled

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    def prepare(self) -> LifecycleState:
        """분석 전에 한 번 호출. yarn 실행 파일이 없으면 InitializationError."""
        if not self.configured_enabled:
            logger.debug("%s is disabled; skipping yarn executable check", self.name)
            return self.lifecycle.disable("Disabled by configuration.")
        return self.lifecycle.probe(self.runner, self.yarn_path, timeout=self.process_timeout)

    @staticmethod
    def should_process(lock_file: Path) -> bool:
        """node_modules 내부, 빈 파일, yarn.lock이 아닌 파일은 건너뛴다."""
        if lock_file.name != YARN_LOCK:
            return False
        if "node_modules" in lock_file.parts:
            return False
        return lock_file.is_file() and lock_file.stat().st_size > 0

    def audit_args(self) -> list[str]:
        # offline audit은 지원되지 않지만 verbose 출력에 audit request가 남는다
        args = ["audit", "--offline"]
        if self.skip_dev_dependencies:
            args.extend(["--groups", "dependencies"])
        args.extend(["--json", "--verbose"])
        return args

    def analyze(
        self,
        dependency: DependencyRecord,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisResult:
        """의존성 하나를 분석한다.

        ProcessInterrupted를 제외한 모든 실패는 FAILED 결과로 반환된다.
        """
        start_time = time.time()

        state = self.lifecycle.state
        if not state.enabled:
            logger.debug(
                "%s is not enabled (%s); skipping %s",
                self.name,
                state.status.value,
                dependency.display_name,
            )
            return self._result(dependency, AnalysisStatus.DISABLED, start_time)

        lock_file = Path(dependency.file_path)
        if not self.should_process(lock_file):
            logger.debug("Skipping %s", lock_file)
            return self._result(dependency, AnalysisStatus.SKIPPED, start_time)

        stage = AnalysisStage.PREPARE
        try:
            folder = lock_file.parent
            if not folder.is_dir():
                raise InvalidTargetError(f"{folder} should have been a directory.")

            stage = AnalysisStage.PROCESS
            result = self.runner.run(
                self.yarn_path,
                self.audit_args(),
                cwd=folder,
                cancel_event=cancel_event,
                timeout=self.process_timeout,
            )
            logger.debug("yarn audit exited with %d in %s", result.returncode, folder)

            stage = AnalysisStage.EXTRACT
            audit_request = self.extractor.extract(
                result.stdout, result.stderr, source=str(lock_file)
            )

            stage = AnalysisStage.MANIFEST
            manifest = read_manifest(folder / MANIFEST_FILE)

            stage = AnalysisStage.PAYLOAD
            payload, index = self.builder.build(audit_request, manifest, self.skip_dev_dependencies)

            stage = AnalysisStage.ADVISORY
            advisories = self.client.submit(payload)

            stage = AnalysisStage.MAPPING
            evidence = self.mapper.apply(advisories, index, dependency)

        except ProcessInterrupted:
            logger.info("%s interrupted while analyzing %s", self.name, lock_file)
            raise
        except YarnAuditError as e:
            if e.disables_analyzer:
                self.lifecycle.disable(
                    f"{e} The analyzer is being disabled and may result in false negatives."
                )
            logger.error("%s failed on %s (%s): %s", self.name, lock_file, stage.value, e)
            return self._failure(dependency, e.kind, stage, str(e), start_time)
        except Exception as e:
            logger.exception("%s failed unexpectedly on %s", self.name, lock_file)
            return self._failure(dependency, ErrorKind.UNEXPECTED, stage, str(e), start_time)

        logger.info(
            "%s: %d vulnerabilities in %s", self.name, len(evidence), dependency.display_name
        )
        return self._result(dependency, AnalysisStatus.ANALYZED, start_time, evidence=evidence)

    def _failure(
        self,
        dependency: DependencyRecord,
        kind: ErrorKind,
        stage: AnalysisStage,
        message: str,
        start_time: float,
    ) -> AnalysisResult:
        error = AnalysisError(
            kind=kind,
            stage=stage,
            dependency=dependency.display_name,
            message=message,
        )
        return self._result(dependency, AnalysisStatus.FAILED, start_time, error=error)

    @staticmethod
    def _result(
        dependency: DependencyRecord,
        status: AnalysisStatus,
        start_time: float,
        evidence: list[VulnerabilityEvidence] | None = None,
        error: AnalysisError | None = None,
    ) -> AnalysisResult:
        return AnalysisResult(
            dependency=dependency,
            status=status,
            evidence=evidence or [],
            error=error,
            execution_time=time.time() - start_time,
        )
