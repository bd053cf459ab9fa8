#!/usr/bin/env python3
"""
Defender Status Report — Microsoft Defender health across a fleet of hosts.

Usage:
  python main.py                          # local machine only
  python main.py srv1 srv2
  python main.py --file hosts.txt
  python main.py --file hosts.txt --max-concurrency 10
  python main.py --file hosts.txt --output-dir C:\\Reports --email
  python main.py --file hosts.txt --debug

Environment variables (or .env):
  MAX_CONCURRENCY  Parallel probes (default 5).
  OUTPUT_DIR       Where HTML reports are written (default ./reports).
  SMTP_SERVER, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, MAIL_FROM, MAIL_TO
                   Required for --email. STARTTLS is always used.

Exit codes:
  0  reports written (some hosts may have been skipped)
  1  host list missing, empty, or malformed
  2  no host returned a status record
  3  --email requested but mail settings are incomplete
"""

import argparse
import logging
import socket
import sys
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from core.collector import collect, require_records
from core.config import Settings, get_settings
from core.errors import EmptyResultError, HostListError
from core.formatter import disable_color, print_summary
from core.hosts import load_hosts, parse_hosts
from core.probe import HostProbe
from core.remote import PowerShellStatusSource, StatusSource
from output.mailer import SmtpMailer
from output.writer import ReportWriter

logger = logging.getLogger("defenderreport.cli")

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_EMPTY_RESULT = 2
EXIT_CONFIG_ERROR = 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="defender-report",
        description="Collect Microsoft Defender status from hosts and write HTML reports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py srv1.corp.local srv2.corp.local
  python main.py --file hosts.txt --max-concurrency 10
  python main.py --file hosts.txt --email
        """,
    )
    parser.add_argument(
        "hosts",
        nargs="*",
        metavar="HOST",
        help="Host names to query (default: the local machine when no --file is given)",
    )
    parser.add_argument(
        "--file",
        metavar="PATH",
        help="Path to a text file with one host per line; only the first column is read",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        metavar="N",
        help="Maximum number of hosts probed in parallel (default: MAX_CONCURRENCY or 5)",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        metavar="DIR",
        help="Directory for HTML reports (default: OUTPUT_DIR or ./reports)",
    )
    parser.add_argument(
        "--email",
        action="store_true",
        help="Email the overview report using the SMTP settings from the environment",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log each host as it is processed",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in the terminal summary",
    )
    return parser


def _resolve_hosts(args: argparse.Namespace) -> list[str]:
    hosts: list[str] = []
    if args.file:
        hosts.extend(load_hosts(args.file))
    if args.hosts:
        hosts.extend(parse_hosts(args.hosts))
    if not hosts:
        hosts.append(socket.gethostname())
    return hosts


def run(
    args: argparse.Namespace, settings: Settings, source: Optional[StatusSource] = None, now: Optional[datetime] = None
) -> int:
    """Execute one collection run and return its exit code."""
    try:
        hosts = _resolve_hosts(args)
    except HostListError as e:
        logger.error("Invalid host list: %s", e)
        return EXIT_INPUT_ERROR

    limit = args.max_concurrency if args.max_concurrency is not None else settings.max_concurrency
    if limit < 1:
        logger.error("--max-concurrency must be at least 1, got %d", limit)
        return EXIT_INPUT_ERROR

    mailer = None
    if args.email:
        try:
            mailer = SmtpMailer(settings.mail_settings())
        except ValueError as e:
            logger.error("%s", e)
            return EXIT_CONFIG_ERROR

    source = source or PowerShellStatusSource(timeout=settings.query_timeout)
    probe = HostProbe(source, attempts=settings.ping_count, timeout=settings.ping_timeout)

    logger.info("Querying %d host(s), %d at a time", len(hosts), limit)
    records = collect(hosts, probe, concurrency_limit=limit, trace=args.debug or settings.debug)

    try:
        records = require_records(records, attempted=len(hosts))
    except EmptyResultError as e:
        logger.error("%s; no reports written", e)
        return EXIT_EMPTY_RESULT

    records.sort(key=lambda r: r.host.lower())
    writer = ReportWriter(args.output_dir or settings.output_dir, mailer=mailer, subject=settings.mail_subject)
    summary = writer.publish(records, generated_at=now)

    print_summary(records, now)
    if len(hosts) > len(records):
        logger.warning("%d host(s) returned no status", len(hosts) - len(records))
    if summary.failed:
        logger.warning("%d report(s) could not be written", len(summary.failed))
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logging.basicConfig(
        level=logging.DEBUG if (args.debug or settings.debug) else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    # Apply color preference before any output
    if args.no_color:
        disable_color()

    return run(args, settings)


if __name__ == "__main__":
    sys.exit(main())
