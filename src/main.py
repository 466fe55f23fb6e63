#!/usr/bin/env python3
"""Yarn Audit Analyzer - 실행 오케스트레이션 및 결과 출력"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from analyzers import (
    AnalysisResult,
    AnalysisStatus,
    DependencyRecord,
    ParallelAnalyzer,
    Severity,
    VulnerabilityEvidence,
    YarnAuditAnalyzer,
    discover_dependencies,
)
from analyzers.errors import InitializationError
from config import ScanConfig

logger = logging.getLogger(__name__)
console = Console()

SEVERITY_COLORS = {
    Severity.CRITICAL: "red",
    Severity.HIGH: "orange1",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "dim",
}

SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]


def build_analyzer(config: ScanConfig) -> YarnAuditAnalyzer:
    """설정으로 분석기 생성"""
    settings = config.yarn_audit
    return YarnAuditAnalyzer(
        yarn_path=settings.yarn_path,
        enabled=settings.enabled,
        skip_dev_dependencies=settings.skip_dev_dependencies,
        dev_policy=settings.dev_dependency_policy,
        process_timeout=settings.process_timeout,
        audit_url=settings.audit_url,
        request_timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )


def run_analysis(
    records: list[DependencyRecord],
    analyzer: YarnAuditAnalyzer,
    config: ScanConfig,
    show_progress: bool = True,
) -> list[AnalysisResult]:
    """분석기 준비 후 모든 의존성 분석

    준비 실패는 스캔을 중단하지 않는다. 분석기가 비활성화되어
    모든 의존성이 DISABLED 결과를 받는다.
    """
    try:
        analyzer.prepare()
    except InitializationError as e:
        console.print(f"[yellow]⚠ {analyzer.name} disabled: {e}[/yellow]")

    runner = ParallelAnalyzer(analyzer, max_workers=config.max_workers)
    if config.parallel:
        return runner.run_parallel(records, show_progress=show_progress)
    return runner.run_sequential(records)


def print_summary(results: list[AnalysisResult]) -> None:
    """분석 결과 요약 출력"""
    table = Table(title="🔍 Yarn Audit Summary")
    table.add_column("Lockfile", style="cyan")
    table.add_column("Status")
    table.add_column("Vulnerabilities", justify="right")
    table.add_column("Time", justify="right")

    for result in results:
        if result.status is AnalysisStatus.FAILED and result.error:
            status = f"❌ Failed ({result.error.stage.value}): {result.error.message}"
        elif result.status is AnalysisStatus.DISABLED:
            status = "⏸ Not analyzed (analyzer disabled)"
        elif result.status is AnalysisStatus.SKIPPED:
            status = "⏭ Skipped"
        else:
            status = "✅ Analyzed"
        table.add_row(
            result.dependency.display_name,
            status,
            str(len(result.evidence)),
            f"{result.execution_time:.2f}s",
        )

    console.print(table)
    console.print()

    severity_counts = {s: 0 for s in Severity}
    for evidence in _all_evidence(results):
        severity_counts[evidence.severity] += 1

    severity_table = Table(title="📊 Vulnerabilities by Severity")
    severity_table.add_column("Severity", style="bold")
    severity_table.add_column("Count", justify="right")
    for severity in SEVERITY_ORDER:
        count = severity_counts[severity]
        if count > 0:
            color = SEVERITY_COLORS[severity]
            severity_table.add_row(f"[{color}]{severity.value.upper()}[/{color}]", str(count))
    console.print(severity_table)


def print_evidence_detail(results: list[AnalysisResult]) -> None:
    """발견된 취약점 상세 출력"""
    entries = [
        (result.dependency, evidence) for result in results for evidence in result.evidence
    ]
    if not entries:
        console.print("\n[green]No vulnerable dependencies found![/green]\n")
        return

    entries.sort(key=lambda item: SEVERITY_ORDER.index(item[1].severity))
    console.print("\n[bold]📋 Detailed Findings[/bold]\n")

    for i, (dependency, evidence) in enumerate(entries, 1):
        color = SEVERITY_COLORS[evidence.severity]
        header = Text()
        header.append(f"#{i} ", style="bold")
        header.append(f"{evidence.module_name}@{evidence.resolved_version} ", style="cyan")
        header.append(evidence.name, style="bold")

        body_lines = [
            f"[{color}][{evidence.severity.value.upper()}][/{color}] "
            f"{evidence.title or 'Vulnerability'}",
            f"[dim]📁 {dependency.display_name}[/dim]",
            f"[dim]Vulnerable: {evidence.vulnerable_versions}[/dim]",
        ]
        if evidence.patched_versions:
            body_lines.append(f"[green]💡 Patched: {evidence.patched_versions}[/green]")
        if evidence.identifiers:
            body_lines.append(f"[dim]IDs: {', '.join(evidence.identifiers[:5])}[/dim]")
        if evidence.url:
            body_lines.append(f"[dim]{evidence.url}[/dim]")

        console.print(
            Panel("\n".join(body_lines), title=header, border_style=color, padding=(0, 1))
        )


def _all_evidence(results: list[AnalysisResult]) -> list[VulnerabilityEvidence]:
    return [evidence for result in results for evidence in result.evidence]


def build_report(results: list[AnalysisResult]) -> dict[str, Any]:
    """JSON 리포트 구성"""
    report_results = []
    for result in results:
        report_results.append(
            {
                "lockfile": str(result.dependency.file_path),
                "name": result.dependency.display_name,
                "status": result.status.value,
                "execution_time": round(result.execution_time, 3),
                "error": (
                    {
                        "kind": result.error.kind.value,
                        "stage": result.error.stage.value,
                        "message": result.error.message,
                    }
                    if result.error
                    else None
                ),
                "vulnerabilities": [
                    {
                        "name": e.name,
                        "source": e.source,
                        "module": e.module_name,
                        "version": e.resolved_version,
                        "vulnerable_versions": e.vulnerable_versions,
                        "patched_versions": e.patched_versions,
                        "severity": e.severity.value,
                        "identifiers": e.identifiers,
                        "title": e.title,
                        "url": e.url,
                        "metadata": e.metadata,
                    }
                    for e in result.evidence
                ],
            }
        )

    return {
        "version": "1.0",
        "summary": {
            "lockfiles": len(results),
            "analyzed": sum(1 for r in results if r.status is AnalysisStatus.ANALYZED),
            "failed": sum(1 for r in results if r.status is AnalysisStatus.FAILED),
            "disabled": sum(1 for r in results if r.status is AnalysisStatus.DISABLED),
            "vulnerabilities": len(_all_evidence(results)),
        },
        "results": report_results,
    }


def write_json_report(results: list[AnalysisResult], output_path: str) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_report(results), f, indent=2)
    console.print(f"  [green]✓[/green] JSON report saved: {output_path}")


def should_fail(results: list[AnalysisResult], config: ScanConfig) -> bool:
    """취약점 기준으로 실패 여부 판단"""
    if not config.reporting.fail_on_findings:
        return False

    threshold = Severity.from_string(config.reporting.fail_on_severity)
    return any(evidence.severity >= threshold for evidence in _all_evidence(results))


def main(workspace: str, config: ScanConfig, show_progress: bool = True) -> int:
    """메인 함수"""
    records = discover_dependencies(workspace)
    if not records:
        console.print("[dim]No yarn.lock files found[/dim]")
        return 0

    analyzer = build_analyzer(config)
    results = run_analysis(records, analyzer, config, show_progress=show_progress)

    print_summary(results)
    print_evidence_detail(results)

    if config.reporting.json_output:
        write_json_report(results, config.reporting.json_output)

    if should_fail(results, config):
        console.print(
            f"\n[bold red]❌ Yarn audit failed: Found vulnerabilities at or above "
            f"{config.reporting.fail_on_severity} severity[/bold red]"
        )
        return 1

    console.print("\n[bold green]✅ Yarn audit completed[/bold green]")
    return 0


if __name__ == "__main__":
    from config import load_config, merge_env_config

    sys.exit(main(".", merge_env_config(load_config(workspace="."))))
