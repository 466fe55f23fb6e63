#!/usr/bin/env python3
"""Yarn Audit CLI

yarn.lock 파일의 의존성 취약점을 NPM Audit API로 확인하는 CLI 도구
"""

import argparse
import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def parse_args() -> argparse.Namespace:
    """명령행 인자 파싱"""
    parser = argparse.ArgumentParser(
        prog="yarn-audit-scan",
        description="Yarn Audit Analyzer - yarn.lock vulnerability analysis via the NPM Audit API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 현재 디렉토리 스캔
  yarn-audit-scan

  # 특정 디렉토리 스캔, devDependencies 제외
  yarn-audit-scan /path/to/project --skip-dev

  # JSON 리포트 저장
  yarn-audit-scan --json yarn-audit.json

  # 설정 파일 사용
  yarn-audit-scan --config .yarn-audit.yml
        """,
    )

    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="스캔할 디렉토리 경로 (기본: 현재 디렉토리)",
    )

    analyzer_group = parser.add_argument_group("Analyzer Options")
    analyzer_group.add_argument(
        "--skip-dev",
        dest="skip_dev",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="devDependencies 제외",
    )
    analyzer_group.add_argument(
        "--dev-policy",
        choices=["flagged", "declared"],
        help="dev 의존성 제외 규칙 (기본: flagged)",
    )
    analyzer_group.add_argument(
        "--yarn",
        dest="yarn_path",
        metavar="PATH",
        help="yarn 실행 파일 경로",
    )
    analyzer_group.add_argument(
        "--audit-url",
        metavar="URL",
        help="NPM Audit API 엔드포인트",
    )
    analyzer_group.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="병렬 분석 worker 수",
    )
    analyzer_group.add_argument(
        "--sequential",
        action="store_true",
        help="lockfile을 순차 분석",
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--severity-threshold",
        choices=["critical", "high", "medium", "low", "info"],
        help="실패 기준 심각도 (기본: high)",
    )
    output_group.add_argument(
        "--json",
        dest="json_output",
        metavar="FILE",
        help="JSON 출력 파일",
    )
    output_group.add_argument(
        "--no-fail",
        action="store_true",
        help="취약점 발견 시에도 실패하지 않음",
    )

    parser.add_argument(
        "--config",
        metavar="FILE",
        help="설정 파일 경로",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="상세 출력",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="최소 출력",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    return parser.parse_args()


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose, show_path=False)],
    )


def main() -> int:
    """CLI 메인 함수"""
    args = parse_args()
    configure_logging(args.verbose, args.quiet)

    from config import load_config, merge_env_config

    workspace = os.path.abspath(args.path)
    config = merge_env_config(load_config(args.config, workspace=workspace))

    # 명령행 인자가 설정 파일/환경 변수보다 우선
    if args.skip_dev is not None:
        config.yarn_audit.skip_dev_dependencies = args.skip_dev
    if args.dev_policy:
        config.yarn_audit.dev_dependency_policy = args.dev_policy
    if args.yarn_path:
        config.yarn_audit.yarn_path = args.yarn_path
    if args.audit_url:
        config.yarn_audit.audit_url = args.audit_url
    if args.workers:
        config.max_workers = max(1, args.workers)
    if args.sequential:
        config.parallel = False
    if args.severity_threshold:
        config.reporting.fail_on_severity = args.severity_threshold
    if args.json_output:
        config.reporting.json_output = args.json_output
    if args.no_fail:
        config.reporting.fail_on_findings = False

    from analyzers.errors import ProcessInterrupted

    try:
        from main import main as run_main

        return run_main(workspace, config, show_progress=not args.quiet)
    except (KeyboardInterrupt, ProcessInterrupted):
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
