"""
Example: the DAC vs DMSO report inside a pypipegraph2 workflow.

Add the jobs to your run.py; they rerun when inputs or parameters change.
"""

import pypipegraph2 as ppg
from pathlib import Path
from dac_rnaseq import (
    differential_expression_report_job,
    write_volcano_plot_job,
    write_pca_plot_job,
)

# Paths (adjust!)
counts_dir = Path("incoming/counts")
sample_sheet = Path("incoming/samples.tsv")
annotation_table = Path("incoming/gene_symbols.tsv")
output_dir = Path("results/dac_vs_dmso")

ppg.new()

###############################################################################
# Full report
###############################################################################

report_job = differential_expression_report_job(
    counts_dir=counts_dir,
    sample_sheet=sample_sheet,
    output_dir=output_dir,
    treated="DAC",
    reference="DMSO",
    annotation_source="table",
    annotation_table=annotation_table,
)

tables = output_dir / "report_assets" / "tables"

###############################################################################
# Extra plots from the written tables
###############################################################################

# stricter fold change cutoff for the presentation volcano
volcano_job = write_volcano_plot_job(
    filename="volcano_lfc2.png",
    folder=output_dir / "extra_plots",
    df=tables / "deseq2_results.tsv",
    log_threshold=2.0,
    top_n_labels=20,
    title="DAC vs DMSO (|log2FC| >= 2)",
    dependencies=[report_job],
)

pca_job = write_pca_plot_job(
    filename="pca_top1000.png",
    folder=output_dir / "extra_plots",
    vst=tables / "vst.tsv",
    metadata=tables / "sample_metadata.tsv",
    ntop=1000,
    dependencies=[report_job],
)

ppg.run()
