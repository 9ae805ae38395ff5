"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List
import logging

import pandas as pd

from .models import DashboardView, PackageGroup


def print_summary(view: DashboardView) -> None:
    stats = view.stats
    logger.info("\n" + "=" * 60)
    logger.info("RECENT ANALYSES")
    logger.info("=" * 60)
    logger.info("Customers: %s", stats.total_customers)
    logger.info("Total analyses: %s", stats.total_analyses)
    logger.info("Active studies: %s", stats.active_studies)
    logger.info("Packages: %s", stats.total_packages)
    logger.info("-" * 60)
    if view.is_empty:
        logger.info("No analyses available")
    for group in view.groups:
        logger.info(
            "%s  %s  [%s]  %s fields  %s",
            group.package_name,
            group.display_title or "",
            ", ".join(language.upper() for language in group.languages),
            group.fields_count,
            group.latest_date.date(),
        )
    if view.skipped:
        logger.info("-" * 60)
        logger.info("Skipped analyses (malformed dates): %s", len(view.skipped))
    logger.info("=" * 60)


def group_to_row(group: PackageGroup) -> Dict:
    primary = group.primary_record
    return {
        "customer_id": primary.customer_id,
        "study_id": primary.study_id,
        "package_name": group.package_name,
        "title": group.display_title,
        "languages": ",".join(group.languages),
        "primary_language": primary.language,
        "fields_count": group.fields_count,
        "latest_date": group.latest_date,
        "screenshot_url": group.screenshot_url,
    }


def view_to_rows(view: DashboardView) -> List[Dict]:
    return [group_to_row(group) for group in view.groups]


def save_view_json(view: DashboardView, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    results_file = output_dir / f"{name}_dashboard.json"
    payload = {
        "stats": {
            "total_customers": view.stats.total_customers,
            "total_analyses": view.stats.total_analyses,
            "active_studies": view.stats.active_studies,
            "total_packages": view.stats.total_packages,
        },
        "groups": view_to_rows(view),
        "skipped": [
            {
                "package_name": item.record.package_name,
                "language": item.record.language,
                "reason": item.reason,
            }
            for item in view.skipped
        ],
    }
    with open(results_file, 'w') as f:
        json.dump(payload, f, indent=2, default=str)
    return results_file


def export_groups_csv(view: DashboardView, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    groups_file = output_dir / f"{name}_groups.csv"
    columns = [
        "customer_id",
        "study_id",
        "package_name",
        "title",
        "languages",
        "primary_language",
        "fields_count",
        "latest_date",
        "screenshot_url",
    ]
    df = pd.DataFrame(view_to_rows(view), columns=columns)
    df.to_csv(groups_file, index=False)
    return groups_file


def _variant_frame(group: PackageGroup) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "language": record.language,
                "analysis_id": record.id,
                "version": record.version,
                "analysis_date": str(record.analysis_date),
                "fields_count": record.fields_count,
                "title": record.display_title,
                "primary": record is group.primary_record,
            }
            for record in group.sorted_variants
        ]
    )


def export_worksheets(view: DashboardView, output_dir: Path, name: str) -> Path | None:
    if view.is_empty:
        return None
    output_dir.mkdir(parents=True, exist_ok=True)
    excel_file = output_dir / f"{name}_worksheets.xlsx"
    used = set()
    with pd.ExcelWriter(excel_file, engine='openpyxl') as writer:
        for group in view.groups:
            # Excel sheet names have a 31 character limit
            base = re.sub(r"[\[\]:*?/\\]", "_", group.package_name)
            sheet_name = base[:31]
            suffix = 1
            while sheet_name.lower() in used:
                suffix += 1
                tag = f"_{suffix}"
                sheet_name = base[: 31 - len(tag)] + tag
            used.add(sheet_name.lower())
            _variant_frame(group).to_excel(writer, sheet_name=sheet_name, index=False)
    return excel_file
logger = logging.getLogger(__name__)
