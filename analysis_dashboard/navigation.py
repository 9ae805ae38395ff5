"""
Click routing for dashboard package cards.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import NavigationTarget, PackageGroup


logger = logging.getLogger(__name__)


def resolve_navigation(group: PackageGroup, language: Optional[str] = None) -> NavigationTarget:
    """Decide where a click on a package card (or one of its language chips) leads.

    A language chip click targets that language. A card click targets the
    only language when there is just one, otherwise the package itself so
    the destination can offer the language choice. A language that is not
    among the group's variants falls back to the primary record.

    Args:
        group: The selected package group
        language: Language of the clicked chip, if any

    Returns:
        NavigationTarget with or without a language
    """
    if language:
        record = group.variant(language)
        if record is None:
            logger.info(
                "Language %r not available for package %s; using %s",
                language,
                group.package_name,
                group.primary_record.language,
            )
            record = group.primary_record
        return NavigationTarget(
            customer_id=record.customer_id,
            study_id=record.study_id,
            package_name=record.package_name,
            language=record.language,
        )

    record = group.primary_record
    if len(group.language_variants) == 1:
        return NavigationTarget(
            customer_id=record.customer_id,
            study_id=record.study_id,
            package_name=record.package_name,
            language=record.language,
        )
    return NavigationTarget(
        customer_id=record.customer_id,
        study_id=record.study_id,
        package_name=record.package_name,
    )
