"""YarnAuditAnalyzer 테스트"""

import json
from pathlib import Path

import httpx
import pytest

from analyzers.audit_request import EXPECTED_ERROR
from analyzers.base import AnalysisStage, AnalysisStatus, DependencyRecord
from analyzers.errors import (
    ErrorKind,
    InitializationError,
    ProcessInterrupted,
    ProcessLaunchError,
)
from analyzers.lifecycle import LifecycleStatus
from analyzers.process import ProcessResult
from analyzers.yarn_audit import YarnAuditAnalyzer


def _audit_stdout(version: str = "4.17.0") -> str:
    request = {
        "name": "app",
        "install": [],
        "remove": [],
        "metadata": {},
        "requires": {"lodash": "^4.17.0"},
        "dependencies": {
            "lodash": {"version": version, "integrity": "sha512-x", "requires": {}, "dev": False}
        },
    }
    lines = [
        json.dumps({"type": "verbose", "data": "Checking for \"package.json\""}),
        json.dumps({"type": "verbose", "data": "Audit Request: " + json.dumps(request)}),
        json.dumps({"type": "verbose", "data": "Performing \"POST\" request"}),
    ]
    return "\n".join(lines) + "\n"


class _FakeRunner:
    def __init__(
        self,
        probe_code: int = 0,
        audit_stdout: str | None = None,
        audit_error=None,
        probe_error=None,
    ):
        self.probe_code = probe_code
        self.audit_stdout = _audit_stdout() if audit_stdout is None else audit_stdout
        self.audit_error = audit_error
        self.probe_error = probe_error
        self.calls = []

    def run(self, command, args=None, cwd=None, cancel_event=None, timeout=None):
        args = list(args or [])
        self.calls.append({"cmd": [command, *args], "cwd": cwd, "timeout": timeout})
        if args == ["--help"]:
            if self.probe_error:
                raise self.probe_error
            return ProcessResult([command, *args], self.probe_code, "", "")
        if self.audit_error:
            raise self.audit_error
        # offline 모드에서는 종료 코드가 non-zero여도 출력은 유효하다
        return ProcessResult([command, *args], 1, self.audit_stdout, EXPECTED_ERROR)

    @property
    def audit_calls(self):
        return [c for c in self.calls if c["cmd"][1:2] == ["audit"]]


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


def _advisories(vulnerable_versions: str) -> dict:
    return {
        "actions": [],
        "advisories": {
            "1673": {
                "id": 1673,
                "module_name": "lodash",
                "vulnerable_versions": vulnerable_versions,
                "patched_versions": ">=4.17.21",
                "severity": "high",
                "title": "Command Injection",
                "github_advisory_id": "GHSA-35jh-r3h4-6jhm",
                "cves": ["CVE-2021-23337"],
            }
        },
    }


@pytest.fixture
def project(tmp_path) -> Path:
    app = tmp_path / "app"
    app.mkdir()
    (app / "package.json").write_text(
        json.dumps({"name": "app", "version": "1.0.0", "dependencies": {"lodash": "^4.17.0"}})
    )
    (app / "yarn.lock").write_text('lodash@^4.17.0:\n  version "4.17.0"\n')
    return app


def _record(project: Path) -> DependencyRecord:
    return DependencyRecord(file_path=project / "yarn.lock", display_name="app/yarn.lock")


def _serve(monkeypatch, payload=None, status_code: int = 200, error: Exception | None = None):
    posted = []

    def fake_post(url, content=None, headers=None, timeout=None):
        posted.append(json.loads(content))
        if error:
            raise error
        return _FakeResponse(payload, status_code)

    monkeypatch.setattr("analyzers.advisory.httpx.post", fake_post)
    return posted


def _prepared(runner: _FakeRunner, **kwargs) -> YarnAuditAnalyzer:
    analyzer = YarnAuditAnalyzer(runner=runner, **kwargs)
    analyzer.prepare()
    return analyzer


def test_vulnerable_version_gets_one_evidence_entry(project, monkeypatch):
    posted = _serve(monkeypatch, _advisories("<4.17.21"))
    runner = _FakeRunner()
    analyzer = _prepared(runner)
    record = _record(project)

    result = analyzer.analyze(record)

    assert result.status is AnalysisStatus.ANALYZED
    assert result.error is None
    assert len(record.evidence) == 1
    assert record.evidence[0].name == "GHSA-35jh-r3h4-6jhm"
    assert record.evidence[0].resolved_version == "4.17.0"
    assert result.evidence == record.evidence

    assert runner.audit_calls[0]["cmd"] == ["yarn", "audit", "--offline", "--json", "--verbose"]
    assert Path(runner.audit_calls[0]["cwd"]) == project
    assert posted[0]["requires"] == {"lodash": "^4.17.0"}
    assert posted[0]["dependencies"]["lodash"]["version"] == "4.17.0"


def test_version_outside_range_gets_no_evidence(project, monkeypatch):
    _serve(monkeypatch, _advisories("<4.17.0"))
    analyzer = _prepared(_FakeRunner())
    record = _record(project)

    result = analyzer.analyze(record)

    assert result.status is AnalysisStatus.ANALYZED
    assert record.evidence == []


def test_probe_launch_failure_disables_and_blocks_analysis(project, monkeypatch):
    posted = _serve(monkeypatch, _advisories("<4.17.21"))
    runner = _FakeRunner(probe_error=ProcessLaunchError("No such file or directory: 'yarn'"))
    analyzer = YarnAuditAnalyzer(runner=runner)

    with pytest.raises(InitializationError):
        analyzer.prepare()

    results = [analyzer.analyze(_record(project)) for _ in range(3)]

    assert analyzer.state.status is LifecycleStatus.DISABLED
    assert all(r.status is AnalysisStatus.DISABLED for r in results)
    assert runner.audit_calls == []
    assert posted == []


def test_probe_command_not_found_disables(project):
    analyzer = YarnAuditAnalyzer(runner=_FakeRunner(probe_code=127))

    with pytest.raises(InitializationError):
        analyzer.prepare()

    assert analyzer.enabled is False


def test_disabled_by_configuration_skips_probe(project):
    runner = _FakeRunner()
    analyzer = YarnAuditAnalyzer(runner=runner, enabled=False)

    state = analyzer.prepare()

    assert state.status is LifecycleStatus.DISABLED
    assert runner.calls == []
    assert analyzer.analyze(_record(project)).status is AnalysisStatus.DISABLED


def test_unprepared_analyzer_does_not_run(project):
    runner = _FakeRunner()
    analyzer = YarnAuditAnalyzer(runner=runner)

    result = analyzer.analyze(_record(project))

    assert result.status is AnalysisStatus.DISABLED
    assert runner.calls == []


def test_skip_dev_dependencies_adds_groups_flag(project, monkeypatch):
    posted = _serve(monkeypatch, _advisories("<4.17.21"))
    runner = _FakeRunner()
    analyzer = _prepared(runner, skip_dev_dependencies=True)

    analyzer.analyze(_record(project))

    assert runner.audit_calls[0]["cmd"] == [
        "yarn",
        "audit",
        "--offline",
        "--groups",
        "dependencies",
        "--json",
        "--verbose",
    ]
    assert posted[0]["metadata"]["skip_dev_dependencies"] is True


def test_transport_failure_disables_analyzer(project, monkeypatch):
    _serve(monkeypatch, error=httpx.ConnectError("connection refused"))
    runner = _FakeRunner()
    analyzer = _prepared(runner)

    first = analyzer.analyze(_record(project))
    second = analyzer.analyze(_record(project))

    assert first.status is AnalysisStatus.FAILED
    assert first.error.kind is ErrorKind.TRANSPORT
    assert first.error.stage is AnalysisStage.ADVISORY
    assert first.error.dependency == "app/yarn.lock"
    assert analyzer.state.status is LifecycleStatus.DISABLED
    assert second.status is AnalysisStatus.DISABLED
    assert len(runner.audit_calls) == 1


def test_missing_audit_request_fails_locally(project, monkeypatch):
    _serve(monkeypatch, _advisories("<4.17.21"))
    analyzer = _prepared(_FakeRunner(audit_stdout='{"type":"info","data":"nothing"}\n'))

    result = analyzer.analyze(_record(project))

    assert result.status is AnalysisStatus.FAILED
    assert result.error.kind is ErrorKind.AUDIT_REQUEST_NOT_FOUND
    assert result.error.stage is AnalysisStage.EXTRACT
    assert analyzer.enabled is True


def test_response_schema_failure_fails_locally(project, monkeypatch):
    _serve(monkeypatch, {"unexpected": True})
    analyzer = _prepared(_FakeRunner())

    result = analyzer.analyze(_record(project))

    assert result.error.kind is ErrorKind.RESPONSE_SCHEMA
    assert analyzer.enabled is True


def test_rejected_request_fails_locally(project, monkeypatch):
    _serve(monkeypatch, {}, status_code=429)
    analyzer = _prepared(_FakeRunner())

    result = analyzer.analyze(_record(project))

    assert result.error.kind is ErrorKind.AUTH_OR_QUOTA
    assert analyzer.enabled is True


def test_missing_manifest_fails_locally(project, monkeypatch):
    _serve(monkeypatch, _advisories("<4.17.21"))
    (project / "package.json").unlink()
    analyzer = _prepared(_FakeRunner())

    result = analyzer.analyze(_record(project))

    assert result.error.kind is ErrorKind.MANIFEST
    assert result.error.stage is AnalysisStage.MANIFEST
    assert analyzer.enabled is True


def test_launch_failure_during_analysis_disables(project):
    analyzer = _prepared(_FakeRunner(audit_error=ProcessLaunchError("yarn vanished")))

    result = analyzer.analyze(_record(project))

    assert result.error.kind is ErrorKind.LAUNCH_FAILURE
    assert result.error.stage is AnalysisStage.PROCESS
    assert analyzer.enabled is False


def test_interrupted_process_propagates_without_disabling(project):
    analyzer = _prepared(_FakeRunner(audit_error=ProcessInterrupted("cancelled")))

    with pytest.raises(ProcessInterrupted):
        analyzer.analyze(_record(project))

    assert analyzer.enabled is True


def test_lockfile_inside_node_modules_is_skipped(tmp_path):
    nested = tmp_path / "node_modules" / "pkg"
    nested.mkdir(parents=True)
    (nested / "yarn.lock").write_text("x")
    runner = _FakeRunner()
    analyzer = _prepared(runner)

    result = analyzer.analyze(DependencyRecord(nested / "yarn.lock", "pkg/yarn.lock"))

    assert result.status is AnalysisStatus.SKIPPED
    assert runner.audit_calls == []


def test_empty_lockfile_is_skipped(project):
    (project / "yarn.lock").write_text("")
    runner = _FakeRunner()
    analyzer = _prepared(runner)

    result = analyzer.analyze(_record(project))

    assert result.status is AnalysisStatus.SKIPPED
    assert runner.audit_calls == []


def test_prepare_bounds_probe_with_process_timeout():
    runner = _FakeRunner()

    YarnAuditAnalyzer(runner=runner, process_timeout=45).prepare()

    assert runner.calls[0]["cmd"] == ["yarn", "--help"]
    assert runner.calls[0]["timeout"] == 45
