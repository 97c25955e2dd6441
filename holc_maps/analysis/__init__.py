"""
Analysis package for HOLC Equity Maps

Per-grade aggregation, the end-to-end analysis run and its presentation.
"""

from .aggregate import calculate_percentage, summarize_by_grade
from .pipeline import AnalysisResult, run_analysis

__all__ = [
    "calculate_percentage",
    "summarize_by_grade",
    "AnalysisResult",
    "run_analysis",
]
