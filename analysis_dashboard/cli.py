"""
Command-line interface for the analysis dashboard.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import requests

from .analyzer import DEFAULT_LIMIT, DashboardAnalyzer
from .interfaces import AnalysisSource
from .navigation import resolve_navigation
from .reporting import export_groups_csv, export_worksheets, print_summary, save_view_json
from .sources import DEFAULT_FETCH_LIMIT, FileAnalysisSource, FirestoreAnalysisSource


logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize the most recent survey analyses, one card per package"
    )

    parser.add_argument(
        "--input",
        nargs="+",
        default=None,
        help="Exported analyses (.json, .jsonl or .csv)"
    )

    parser.add_argument(
        "--project-id",
        default=os.environ.get("FIRESTORE_PROJECT_ID"),
        help="Firestore project to query. Default: $FIRESTORE_PROJECT_ID"
    )

    parser.add_argument(
        "--api-key",
        default=os.environ.get("FIRESTORE_API_KEY"),
        help="Firestore API key. Default: $FIRESTORE_API_KEY"
    )

    parser.add_argument("--customer-id", default=None, help="Only analyses for this customer")
    parser.add_argument("--study-id", default=None, help="Only analyses for this study")

    parser.add_argument(
        "--fetch-limit",
        type=_positive_int,
        default=DEFAULT_FETCH_LIMIT,
        help=f"Number of analyses requested from the source. Default: {DEFAULT_FETCH_LIMIT}"
    )

    parser.add_argument(
        "--top",
        type=_positive_int,
        default=DEFAULT_LIMIT,
        help=f"Number of package cards to keep. Default: {DEFAULT_LIMIT}"
    )

    parser.add_argument(
        "--select",
        metavar="PACKAGE",
        default=None,
        help="Print the navigation target for this package card"
    )

    parser.add_argument(
        "--language",
        default=None,
        help="Language chip clicked together with --select"
    )

    parser.add_argument(
        "--output-dir",
        default="./output",
        help="Output directory for exports. Default: ./output"
    )

    parser.add_argument("--save-json", action="store_true", help="Save the dashboard as JSON")
    parser.add_argument("--export-csv", action="store_true", help="Export package cards to CSV")
    parser.add_argument(
        "--get-worksheets",
        action="store_true",
        help="Export language variants to an Excel file with one sheet per package"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO"
    )
    return parser


def build_source(args: argparse.Namespace, parser: argparse.ArgumentParser) -> AnalysisSource:
    if args.input:
        return FileAnalysisSource(args.input)
    if args.project_id:
        return FirestoreAnalysisSource(args.project_id, api_key=args.api_key)
    parser.error("one of --input or --project-id is required")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.language and not args.select:
        parser.error("--language requires --select")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    source = build_source(args, parser)
    logger.debug("Using %s", type(source).__name__)

    try:
        records = source.fetch_analyses(
            customer_id=args.customer_id,
            study_id=args.study_id,
            limit=args.fetch_limit,
        )
        customers = source.list_customers()
    except (requests.RequestException, OSError, ValueError) as e:
        print(f"Error loading analyses: {e}", file=sys.stderr)
        return 1

    analyzer = DashboardAnalyzer(limit=args.top)
    view = analyzer.analyze(records, customers=customers)
    print_summary(view)

    if args.select:
        group = next((g for g in view.groups if g.package_name == args.select), None)
        if group is None:
            print(f"Error: package {args.select!r} is not on the dashboard", file=sys.stderr)
            return 1
        target = resolve_navigation(group, args.language)
        print("/".join(target.key))

    output_dir = Path(args.output_dir)
    name = args.customer_id or "all"
    if args.save_json:
        results_file = save_view_json(view, output_dir, name)
        print(f"Dashboard saved to: {results_file}")
    if args.export_csv:
        groups_file = export_groups_csv(view, output_dir, name)
        print(f"Package cards saved to: {groups_file}")
    if args.get_worksheets:
        excel_file = export_worksheets(view, output_dir, name)
        if excel_file is not None:
            print(f"Worksheets saved to: {excel_file}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
