"""Command-line interface for the deploy orchestrator."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional

from .artifacts import ArtifactLocator
from .config import AppConfig, load_config
from .exceptions import ArtifactError
from .health import HealthChecker
from .orchestrator import DeployOrchestrator, list_reports, load_report
from .utils.logging import get_logger, set_verbose

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploy-orchestrator",
        description="Build, ship and verify a web archive on a remote service via SSH.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy", help="Build, transfer, restart and health-check"
    )
    deploy_parser.add_argument("--host", help="Target server host")
    deploy_parser.add_argument("--port", type=int, default=None, help="SSH port")
    deploy_parser.add_argument("--user", help="SSH username")
    deploy_parser.add_argument(
        "--auth-method",
        choices=["password", "key"],
        help="SSH authentication method",
    )
    deploy_parser.add_argument("--key-path", help="Path to SSH private key", default=None)
    deploy_parser.add_argument("--password", help="SSH password", default=None)
    deploy_parser.add_argument(
        "--skip-build", action="store_true", help="Do not run the build command"
    )
    _add_artifact_arguments(deploy_parser)
    _add_health_arguments(deploy_parser)

    locate_parser = subparsers.add_parser(
        "locate", help="Print the artifact that would be deployed"
    )
    _add_artifact_arguments(locate_parser)

    check_parser = subparsers.add_parser(
        "check", help="Poll the readiness endpoint only"
    )
    _add_health_arguments(check_parser)

    logs_parser = subparsers.add_parser("logs", help="View deployment run reports")
    logs_parser.add_argument(
        "--list", "-l", action="store_true", dest="list_logs",
        help="List all available reports",
    )
    logs_parser.add_argument("--file", "-f", type=str, help="Show a specific report file")

    return parser


def _add_artifact_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--artifact-dir", default=None, help="Build output directory")
    parser.add_argument("--pattern", default=None, help="Artifact filename glob")


def _add_health_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--health-url", "--url", dest="health_url", default=None,
                        help="Readiness endpoint URL")
    parser.add_argument("--max-attempts", type=int, default=None,
                        help="Probe attempts before giving up")
    parser.add_argument("--interval", type=float, default=None,
                        help="Seconds between probe attempts")


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Copy explicitly passed flags onto ``config``; CLI wins over file and env."""
    target = config.target
    if getattr(args, "host", None):
        target.host = args.host
    if getattr(args, "port", None):
        target.port = args.port
    if getattr(args, "user", None):
        target.username = args.user
    if getattr(args, "auth_method", None):
        target.auth_method = args.auth_method
    if getattr(args, "key_path", None) is not None:
        target.key_path = args.key_path
    if getattr(args, "password", None) is not None:
        target.password = args.password

    if getattr(args, "artifact_dir", None):
        config.artifact.directory = args.artifact_dir
    if getattr(args, "pattern", None):
        config.artifact.pattern = args.pattern

    if getattr(args, "health_url", None):
        config.health.url = args.health_url
    if getattr(args, "max_attempts", None) is not None:
        config.health.max_attempts = args.max_attempts
    if getattr(args, "interval", None) is not None:
        config.health.interval = args.interval
    return config


def handle_deploy_command(args: argparse.Namespace, config: AppConfig) -> int:
    orchestrator = DeployOrchestrator(config, skip_build=args.skip_build)
    result = orchestrator.run()
    if result.ok:
        print(f"✅ Deployed {result.artifact.name if result.artifact else ''} "
              f"(healthy after {result.attempts} attempt(s))")
        return 0
    print(f"❌ Deployment failed: {result.last_error}")
    return 1


def handle_locate_command(config: AppConfig) -> int:
    locator = ArtifactLocator(compute_checksum=config.artifact.checksum)
    try:
        artifact = locator.locate(config.artifact.directory, config.artifact.pattern)
    except ArtifactError as exc:
        print(f"❌ {exc}")
        return 1
    print(artifact.local_path)
    if artifact.checksum:
        print(f"sha256 {artifact.checksum}")
    return 0


def handle_check_command(config: AppConfig) -> int:
    if not config.health.url:
        raise ValueError("Missing health check URL (--url)")
    report = HealthChecker(config.health_check()).run()
    if report.healthy:
        print(f"✅ {config.health.url} healthy after {report.attempts} attempt(s)")
        return 0
    print(f"❌ {config.health.url} not healthy after {report.attempts} attempt(s): "
          f"{report.last_error}")
    return 1


def handle_logs_command(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle the logs subcommand."""
    report_dir = Path(config.reports.directory)
    reports = list_reports(report_dir)

    if args.list_logs:
        if not reports:
            print("📁 No deployment reports found.")
            return 0
        print(f"📁 Reports in: {report_dir}\n")
        print(f"{'#':<4} {'Status':<10} {'Attempts':<9} {'Artifact':<30} {'File'}")
        print("-" * 90)
        for i, path in enumerate(reports, 1):
            data = load_report(path)
            artifact = (data.get("artifact") or {}).get("name", "?")
            print(f"{i:<4} {data.get('status', '?'):<10} {data.get('attempts', 0):<9} "
                  f"{artifact:<30} {path.name}")
        return 0

    if args.file:
        target_file = Path(args.file)
        if not target_file.exists():
            target_file = report_dir / args.file
        if not target_file.exists():
            print(f"❌ Report not found: {args.file}")
            return 1
    elif reports:
        target_file = reports[0]
    else:
        print("📁 No deployment reports found. Run a deployment first.")
        return 0

    print(json.dumps(load_report(target_file), indent=2))
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    config = apply_cli_overrides(load_config(args.config), args)

    if args.command == "deploy":
        return handle_deploy_command(args, config)
    if args.command == "locate":
        return handle_locate_command(config)
    if args.command == "check":
        return handle_check_command(config)
    if args.command == "logs":
        return handle_logs_command(args, config)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_verbose(args.verbose)
    try:
        return dispatch_command(args)
    except (ValueError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 2
