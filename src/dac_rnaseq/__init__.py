"""
DAC RNA-seq – differential expression walkthrough on featureCounts data.

This package provides:
- core
- models
- services
- jobs
- r_integration
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("dac-rnaseq")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"


from .jobs.deseq_jobs import (
    differential_expression_report_job,
    annotate_results_job,
)
from .jobs.plot_jobs import (
    write_volcano_plot_job,
    write_ma_plot_job,
    write_pca_plot_job,
)

__all__ = [
    "differential_expression_report_job",
    "annotate_results_job",
    "write_volcano_plot_job",
    "write_ma_plot_job",
    "write_pca_plot_job",
]
