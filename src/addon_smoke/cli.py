"""Command line entry point: ``addon-smoke test <checker>``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

from addon_smoke import __version__
from addon_smoke.config.errors import ConfigError
from addon_smoke.config.loader import load_config
from addon_smoke.config.models import AppSettings
from addon_smoke.observability.logging import bootstrap_logging_from_app_settings
from addon_smoke.observability.metrics import (
    configure_prometheus_metrics,
    write_metrics_textfile,
)
from addon_smoke.runner import EXIT_OK, EXIT_SETUP_ERROR, run_check
from addon_smoke.runtime.errors import MissingDependencyError

_CHECKER_HELP = {
    "cluster-autoscaler": "test cluster-autoscaler",
    "ingress": "test ingress (ingress-controller, external-dns)",
    "fluent": "test fluent (fluent-bit, fluentd)",
    "cert-manager": "test cert-manager",
    "datadog-agent": "test datadog-agent",
}

logger = logging.getLogger("addon_smoke")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="addon-smoke",
        description="Smoke tests for Kubernetes cluster add-ons.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and preserve created resources",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: from config, INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default=None,
        help="Log output format (default: from config, json)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="MINUTES",
        help="Upper bound for readiness waits in minutes (default: 10)",
    )
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory holding appsettings.json (default: ./config when present)",
    )
    parser.add_argument(
        "--metrics-file",
        default=None,
        help="Write Prometheus metrics in textfile-collector format at exit",
    )

    commands = parser.add_subparsers(dest="command")
    test = commands.add_parser("test", help="run one add-on check")
    checkers = test.add_subparsers(dest="checker")
    for name, help_text in _CHECKER_HELP.items():
        sub = checkers.add_parser(name, help=help_text, description=help_text)
        if name == "ingress":
            sub.add_argument(
                "--no-dns-check",
                action="store_true",
                help="Skip waiting for the external DNS record",
            )
            sub.add_argument(
                "--ingress-class-name",
                default=None,
                help="Ingress class name (default: INGRESS_CLASS_NAME or alb)",
            )
    parser.set_defaults(_test_parser=test)
    return parser


def apply_cli_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """Flags take precedence over environment variables and config files."""
    updates: dict[str, Any] = {}

    logging_updates = {
        key: value
        for key, value in (("level", args.log_level), ("format", args.log_format))
        if value is not None
    }
    if logging_updates:
        updates["logging"] = settings.logging.model_copy(update=logging_updates)

    if args.timeout is not None:
        if args.timeout <= 0:
            raise ConfigError("--timeout must be greater than 0")
        updates["run"] = settings.run.model_copy(update={"timeout_minutes": args.timeout})

    ingress_updates: dict[str, Any] = {}
    if getattr(args, "no_dns_check", False):
        ingress_updates["dns_check"] = False
    if getattr(args, "ingress_class_name", None):
        ingress_updates["ingress_class_name"] = args.ingress_class_name
    if ingress_updates:
        updates["ingress"] = settings.ingress.model_copy(update=ingress_updates)

    return settings.model_copy(update=updates) if updates else settings


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK
    if args.checker is None:
        args._test_parser.print_help()
        return EXIT_OK

    try:
        settings = apply_cli_overrides(load_config(config_dir=args.config_dir), args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    bootstrap_logging_from_app_settings(settings, debug=args.debug)
    logger.debug("log level: %s", settings.logging.level)

    if args.metrics_file:
        try:
            configure_prometheus_metrics()
        except MissingDependencyError as exc:
            logger.error("error: %s", exc)
            return EXIT_SETUP_ERROR

    try:
        return asyncio.run(run_check(args.checker, settings, debug=args.debug))
    finally:
        if args.metrics_file:
            write_metrics_textfile(args.metrics_file)


def run() -> None:
    sys.exit(main())
