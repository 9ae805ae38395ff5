"""
Analysis Dashboard

Collapses survey analysis runs into one card per package, keeping the most
recent run of every language, and decides where a card click navigates.
"""

__version__ = "0.1.0"

from .analyzer import DashboardAnalyzer, build_dashboard
from .cli import main
from .exceptions import AnalysisDashboardError, MalformedTimestamp
from .models import AnalysisRecord, NavigationTarget, PackageGroup
from .navigation import resolve_navigation
from .time_utils import extract_time

__all__ = [
    "AnalysisDashboardError",
    "AnalysisRecord",
    "DashboardAnalyzer",
    "MalformedTimestamp",
    "NavigationTarget",
    "PackageGroup",
    "build_dashboard",
    "extract_time",
    "main",
    "resolve_navigation",
]
