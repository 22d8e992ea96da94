#!/usr/bin/env python3
"""
Quick Start Script - DAC vs DMSO differential expression

Runs the whole walkthrough on your featureCounts files and writes the
report folder. Adjust paths and parameters as needed.
"""

from pathlib import Path
from dac_rnaseq.services.io import differential_expression_report

# ============================================================================
# CONFIGURATION - ADJUST THESE PATHS FOR YOUR DATA
# ============================================================================

# Folder with one featureCounts file per sample (SRR id in the file name)
COUNTS_DIR = Path("incoming/counts")

# Sample sheet with columns "sample" and "treatment"
SAMPLE_SHEET = Path("incoming/samples.tsv")

# Output directory for the report
OUTPUT_DIR = Path("results/dac_vs_dmso")

# Treatment labels as written in the sample sheet
TREATED = "DAC"
REFERENCE = "DMSO"

# Significance: padj < PADJ_THRESHOLD and |log2FC| >= LFC_THRESHOLD
PADJ_THRESHOLD = 0.05
LFC_THRESHOLD = 1.0

# Gene symbols: "orgdb" (R + org.Hs.eg.db), "table" or "none"
ANNOTATION_SOURCE = "orgdb"
ANNOTATION_TABLE = None

# ============================================================================
# RUN
# ============================================================================


def main():
    if not COUNTS_DIR.exists():
        print(f"ERROR: Count folder not found: {COUNTS_DIR}")
        return
    if not SAMPLE_SHEET.exists():
        print(f"ERROR: Sample sheet not found: {SAMPLE_SHEET}")
        return

    result = differential_expression_report(
        counts_dir=COUNTS_DIR,
        sample_sheet=SAMPLE_SHEET,
        output_dir=OUTPUT_DIR,
        treated=TREATED,
        reference=REFERENCE,
        padj_threshold=PADJ_THRESHOLD,
        lfc_threshold=LFC_THRESHOLD,
        annotation_source=ANNOTATION_SOURCE,
        annotation_table=ANNOTATION_TABLE,
    )

    summary = result["summary"]
    print("\n" + "=" * 60)
    print(f"{TREATED} vs {REFERENCE}")
    print("=" * 60)
    print(f"  Genes tested:      {summary['n_tested']}")
    print(f"  With padj:         {summary['n_with_padj']}")
    print(f"  Significant:       {summary['n_significant']}")
    print(f"    up:              {summary['n_up']}")
    print(f"    down:            {summary['n_down']}")
    print(f"\nReport: {result['output_dir'] / 'report.md'}")


if __name__ == "__main__":
    main()
