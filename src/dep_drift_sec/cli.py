"""dep-drift-sec CLI: detect dependency drift and supply-chain risks.

Usage::

    dep-drift-sec check [--path PATH] [--json] [--env {local,ci,prod}]

Exit codes::

    0  clean
    1  drift only
    2  security findings only
    3  drift and security findings
    4  internal error
"""

import argparse
import asyncio
import logging
import sys

from dep_drift_sec import __version__
from dep_drift_sec.analysis.summary import EXIT_INTERNAL_ERROR
from dep_drift_sec.models import Environment, ScanResult
from dep_drift_sec.report.console import format_console_report
from dep_drift_sec.report.json_report import format_json_error, format_json_report
from dep_drift_sec.scanner import Scanner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="dep-drift-sec",
        description="Detect dependency drift and basic security risks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser(
        "check",
        help="Run drift and security checks on a Node project",
    )
    check.add_argument(
        "--path",
        default=".",
        help="Path to the Node project (default: current directory)",
    )
    check.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output the report as JSON",
    )
    check.add_argument(
        "--env",
        choices=[e.value for e in Environment],
        default=Environment.local.value,
        help="Environment the scan runs in (default: local)",
    )
    check.add_argument(
        "--upload",
        action="store_true",
        default=False,
        help="Upload results (reserved, not available in this CLI)",
    )
    check.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Enable verbose logging",
    )
    return parser


async def _run_scan(path: str, environment: str) -> ScanResult:
    scanner = Scanner(on_status=logger.info)
    try:
        return await scanner.scan(path, environment)
    finally:
        await scanner.close()


def run_check(args: argparse.Namespace) -> int:
    """Execute ``check`` and return the process exit code."""
    try:
        if args.upload:
            print("Warning: Upload is not enabled in the open-source CLI.", file=sys.stderr)

        result = asyncio.run(_run_scan(args.path, args.env))
        output = format_json_report(result) if args.json else format_console_report(result)
        sys.stdout.write(output + ("\n" if args.json else ""))
        return result.summary.recommended_exit_code
    except Exception as e:
        logger.debug("Scan failed", exc_info=True)
        if args.json:
            sys.stdout.write(format_json_error(str(e), EXIT_INTERNAL_ERROR) + "\n")
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the recommended exit code."""
    from dotenv import load_dotenv

    load_dotenv()  # NPM_REGISTRY_URL, NPM_TOKEN, DEP_DRIFT_SEC_TIMEOUT

    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    return run_check(args)


if __name__ == "__main__":
    sys.exit(main())
