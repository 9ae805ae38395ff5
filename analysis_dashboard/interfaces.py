"""
Interfaces for analysis record sources.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from .models import AnalysisRecord


class AnalysisSource(Protocol):
    """Supply snapshots of analysis records for the dashboard."""

    def fetch_analyses(
        self,
        customer_id: Optional[str] = None,
        study_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AnalysisRecord]:
        ...

    def list_customers(self) -> Optional[List[Dict]]:
        ...
