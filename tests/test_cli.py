"""CLI 테스트"""

import sys

import cli


def test_parse_args_defaults(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["yarn-audit-scan"])
    args = cli.parse_args()
    assert args.path == "."
    assert args.skip_dev is None
    assert args.no_fail is False


def test_parse_args_analyzer_options(monkeypatch):
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "yarn-audit-scan",
            "/repo",
            "--skip-dev",
            "--dev-policy",
            "declared",
            "--yarn",
            "/usr/bin/yarn",
            "--workers",
            "2",
            "--json",
            "report.json",
        ],
    )
    args = cli.parse_args()
    assert args.path == "/repo"
    assert args.skip_dev is True
    assert args.dev_policy == "declared"
    assert args.yarn_path == "/usr/bin/yarn"
    assert args.workers == 2
    assert args.json_output == "report.json"


def test_main_applies_cli_overrides(monkeypatch, tmp_path):
    monkeypatch.setattr(
        sys,
        "argv",
        ["yarn-audit-scan", str(tmp_path), "--no-skip-dev", "--no-fail", "--sequential"],
    )
    captured = {}

    def fake_run_main(workspace, config, show_progress=True):
        captured["workspace"] = workspace
        captured["config"] = config
        return 0

    import main as main_module

    monkeypatch.setattr(main_module, "main", fake_run_main)

    assert cli.main() == 0
    assert captured["workspace"] == str(tmp_path)
    assert captured["config"].yarn_audit.skip_dev_dependencies is False
    assert captured["config"].reporting.fail_on_findings is False
    assert captured["config"].parallel is False


def test_main_returns_130_on_interrupt(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", ["yarn-audit-scan", str(tmp_path)])

    def fake_run_main(workspace, config, show_progress=True):
        raise KeyboardInterrupt

    import main as main_module

    monkeypatch.setattr(main_module, "main", fake_run_main)

    assert cli.main() == 130
