"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from addon_smoke import cli
from addon_smoke.config import AppSettings
from addon_smoke.config.errors import ConfigError


@pytest.fixture
def run_check(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock = AsyncMock(return_value=0)
    monkeypatch.setattr(cli, "run_check", mock)
    monkeypatch.setattr(cli, "bootstrap_logging_from_app_settings", MagicMock())
    return mock


class TestMain:
    def test_no_command_prints_help(
        self, run_check: AsyncMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert cli.main([]) == 0

        assert "usage: addon-smoke" in capsys.readouterr().out
        run_check.assert_not_awaited()

    def test_test_without_checker_prints_help(
        self, run_check: AsyncMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert cli.main(["test"]) == 0

        out = capsys.readouterr().out
        assert "cluster-autoscaler" in out
        assert "datadog-agent" in out
        run_check.assert_not_awaited()

    def test_unknown_checker_is_a_usage_error(self, run_check: AsyncMock) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["test", "istio"])

        assert exc_info.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_runs_named_checker(self, run_check: AsyncMock, tmp_path: Path) -> None:
        run_check.return_value = 1

        code = cli.main(["--config-dir", str(tmp_path), "--debug", "test", "cert-manager"])

        assert code == 1
        args, kwargs = run_check.await_args
        assert args[0] == "cert-manager"
        assert isinstance(args[1], AppSettings)
        assert kwargs["debug"] is True

    def test_ingress_flags(self, run_check: AsyncMock, tmp_path: Path) -> None:
        cli.main(
            [
                "--config-dir",
                str(tmp_path),
                "test",
                "ingress",
                "--no-dns-check",
                "--ingress-class-name",
                "nginx",
            ]
        )

        settings = run_check.await_args.args[1]
        assert settings.ingress.dns_check is False
        assert settings.ingress.ingress_class_name == "nginx"

    def test_missing_config_dir_exits_2(
        self, run_check: AsyncMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = cli.main(["--config-dir", str(tmp_path / "missing"), "test", "fluent"])

        assert code == 2
        assert "error: Configuration file not found" in capsys.readouterr().err
        run_check.assert_not_awaited()

    def test_non_positive_timeout_exits_2(self, run_check: AsyncMock, tmp_path: Path) -> None:
        code = cli.main(["--config-dir", str(tmp_path), "--timeout", "0", "test", "fluent"])

        assert code == 2
        run_check.assert_not_awaited()

    def test_metrics_file_written_after_run(
        self, run_check: AsyncMock, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        configure = MagicMock()
        write = MagicMock()
        monkeypatch.setattr(cli, "configure_prometheus_metrics", configure)
        monkeypatch.setattr(cli, "write_metrics_textfile", write)
        target = tmp_path / "smoke.prom"

        cli.main(
            ["--config-dir", str(tmp_path), "--metrics-file", str(target), "test", "fluent"]
        )

        configure.assert_called_once_with()
        write.assert_called_once_with(str(target))


class TestApplyCliOverrides:
    def _args(self, *argv: str) -> object:
        return cli.build_parser().parse_args([*argv, "test", "ingress"])

    def test_flags_override_settings(self) -> None:
        args = self._args("--log-level", "debug", "--log-format", "text", "--timeout", "2.5")

        settings = cli.apply_cli_overrides(AppSettings(), args)

        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "text"
        assert settings.run.timeout_seconds == 150.0

    def test_no_flags_keeps_settings(self) -> None:
        original = AppSettings()

        assert cli.apply_cli_overrides(original, self._args()) is original

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigError, match="--timeout"):
            cli.apply_cli_overrides(AppSettings(), self._args("--timeout", "-1"))
