"""
Command Line Entry Point

Usage:
    thelook-analytics generate --output data/raw --orders 5000
    thelook-analytics list --group customers
    thelook-analytics run --raw-path data/raw --report rfm_segments --print
"""

import argparse
import sys
from typing import List, Optional

import structlog

from thelook.analytics.catalog import ReportGroup, list_reports
from thelook.config import get_settings
from thelook.config.logging import configure_logging
from thelook.data.generators import DataGenerator
from thelook.pipeline import ReportPipeline
from thelook.reporting.reports import ReportFormat, render_report

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="thelook-analytics",
        description="TheLook e-commerce warehouse analytics",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Logging level (default: {settings.monitoring.log_level})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Write a synthetic raw extract")
    generate.add_argument("--output", default=settings.data_lake.raw_path, help="Output directory")
    generate.add_argument("--users", type=int, default=1000, help="Number of users")
    generate.add_argument("--products", type=int, default=300, help="Number of products")
    generate.add_argument("--orders", type=int, default=3000, help="Number of orders")
    generate.add_argument("--dirty-rows", type=int, default=0, help="Defective order items to append")
    generate.add_argument("--seed", type=int, default=42, help="Random seed")

    list_cmd = subparsers.add_parser("list", help="List available reports")
    list_cmd.add_argument(
        "--group",
        choices=[g.value for g in ReportGroup],
        default=None,
        help="Only list reports of this group",
    )

    run = subparsers.add_parser("run", help="Load, clean, validate and build reports")
    run.add_argument("--raw-path", default=settings.data_lake.raw_path, help="Directory of raw extracts")
    run.add_argument("--reports-path", default=settings.data_lake.reports_path, help="Report output directory")
    run.add_argument(
        "--input-format",
        choices=["csv", "jsonl", "parquet"],
        default="csv",
        help="Format of the raw extracts",
    )
    run.add_argument(
        "--format",
        choices=[f.value for f in ReportFormat],
        default=settings.data_lake.default_format,
        help="Report output format",
    )
    run.add_argument(
        "--report",
        action="append",
        dest="reports",
        default=None,
        help="Report to build (repeatable, default: all)",
    )
    run.add_argument("--no-write", action="store_true", help="Do not write report files")
    run.add_argument("--print", action="store_true", dest="print_reports", help="Print reports to stdout")
    run.add_argument("--max-rows", type=int, default=20, help="Rows shown per printed report")
    run.add_argument(
        "--fail-on-validation-error",
        action="store_true",
        default=None,
        help="Abort when an error-level quality check fails",
    )

    return parser


def cmd_generate(args: argparse.Namespace) -> int:
    data = DataGenerator(output_dir=args.output, seed=args.seed).generate_all(
        n_users=args.users,
        n_products=args.products,
        n_orders=args.orders,
        dirty_rows=args.dirty_rows,
    )
    for name, df in data.items():
        print(f"{name}: {len(df)} rows")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    for definition in list_reports(args.group):
        print(f"{definition.name:<34} {definition.group.value:<10} {definition.title}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    pipeline = ReportPipeline(
        raw_path=args.raw_path,
        reports_path=args.reports_path,
        input_format=args.input_format,
        report_format=args.format,
        write_reports=not args.no_write,
        fail_on_validation_error=args.fail_on_validation_error,
    )
    result = pipeline.run(args.reports)

    if args.print_reports:
        for report in result.reports:
            print(render_report(report, max_rows=args.max_rows))
            print()

    for name, path in result.written.items():
        print(f"{name}: {path}")

    print(
        f"Built {len(result.reports)} reports, "
        f"rejected {result.rows_rejected} rows, "
        f"{len(result.validation_errors)} failed quality checks"
    )
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "list": cmd_list,
    "run": cmd_run,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return COMMANDS[args.command](args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
