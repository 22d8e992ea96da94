"""
Shaping of differential-expression results for tables and plots.
"""

import numpy as np
import pandas as pd
from typing import Dict
from pandas import DataFrame


OUTPUT_COLUMNS = [
    "symbol",
    "gene_id",
    "baseMean",
    "log2FoldChange",
    "stat",
    "pvalue",
    "padj",
    "significant",
    "neg_log10_padj",
]


def label_significance(
    results: DataFrame,
    padj_threshold: float = 0.05,
    lfc_threshold: float = 1.0,
    padj_col: str = "padj",
    lfc_col: str = "log2FoldChange",
) -> DataFrame:
    """
    Add the significance flag and the transformed adjusted p-value.

    A gene is significant when padj < `padj_threshold` and
    |log2FoldChange| >= `lfc_threshold`. Genes without an adjusted p-value
    (independent filtering, outliers) are not significant and get a
    transformed p-value of 0.

    Parameters
    ----------
    results : DataFrame
        Result table with padj and log2FoldChange columns.
    padj_threshold : float
        Adjusted p-value cutoff (strict).
    lfc_threshold : float
        Absolute log2 fold change cutoff (inclusive).

    Returns
    -------
    DataFrame
        Copy with boolean "significant" and float "neg_log10_padj".
    """
    for col in (padj_col, lfc_col):
        if col not in results.columns:
            raise ValueError(f"Column '{col}' not found in results")

    labelled = results.copy()
    padj = pd.to_numeric(labelled[padj_col], errors="coerce")
    lfc = pd.to_numeric(labelled[lfc_col], errors="coerce")

    significant = (padj < padj_threshold) & (lfc.abs() >= lfc_threshold)
    labelled["significant"] = significant.fillna(False).astype(bool)

    with np.errstate(divide="ignore"):
        transformed = -np.log10(padj)
    labelled["neg_log10_padj"] = transformed.where(padj.notna(), 0.0)
    return labelled


def shape_results(
    results: DataFrame,
    padj_threshold: float = 0.05,
    lfc_threshold: float = 1.0,
) -> DataFrame:
    """
    Label results and lay them out in output column order.

    The gene id index becomes the "gene_id" column; a missing "symbol"
    column is added as all-null.
    """
    shaped = label_significance(
        results, padj_threshold=padj_threshold, lfc_threshold=lfc_threshold
    )
    if "gene_id" not in shaped.columns:
        shaped = shaped.rename_axis("gene_id").reset_index()
    if "symbol" not in shaped.columns:
        shaped["symbol"] = np.nan
    return shaped[OUTPUT_COLUMNS]


def summarize_results(results: DataFrame, lfc_col: str = "log2FoldChange") -> Dict:
    """
    Count tested, adjusted and significant genes.

    `results` must already carry the "significant" flag.
    """
    if "significant" not in results.columns:
        raise ValueError("Results are not labelled; run label_significance")
    significant = results["significant"].astype(bool)
    lfc = pd.to_numeric(results[lfc_col], errors="coerce")
    return {
        "n_tested": int(len(results)),
        "n_with_padj": int(results["padj"].notna().sum()),
        "n_significant": int(significant.sum()),
        "n_up": int((significant & (lfc > 0)).sum()),
        "n_down": int((significant & (lfc < 0)).sum()),
    }


def top_genes(results: DataFrame, n: int = 20) -> DataFrame:
    """The `n` significant genes with the smallest adjusted p-value."""
    hits = results[results["significant"].astype(bool)]
    return hits.sort_values(
        by=["padj", "log2FoldChange"],
        key=lambda s: s.abs() if s.name == "log2FoldChange" else s,
        ascending=[True, False],
    ).head(n)
