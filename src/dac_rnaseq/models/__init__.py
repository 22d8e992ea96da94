"""
Data models and report generators for differential expression.

This includes:
- DifferentialExpressionReport: end-to-end report for one contrast
- AnalysisConfig: Configuration for the report
"""

from .analysis_report import AnalysisConfig, DifferentialExpressionReport

__all__ = [
    "AnalysisConfig",
    "DifferentialExpressionReport",
]
