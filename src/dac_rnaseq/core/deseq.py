"""
DESeq2 model construction and fitting through pydeseq2.

All numerical work (size factors, dispersion shrinkage, the negative
binomial GLM, Wald tests, Benjamini-Hochberg adjustment, VST) is done by
pydeseq2. This module only arranges the inputs in the orientation pydeseq2
expects and hands the outputs back as gene-indexed DataFrames.
"""

import pandas as pd
from typing import List, Optional, Tuple
from pandas import DataFrame

from pydeseq2.dds import DeseqDataSet
from pydeseq2.ds import DeseqStats
from pydeseq2.default_inference import DefaultInference

from .counts import check_sample_alignment


RESULT_STAT_COLUMNS = [
    "baseMean",
    "log2FoldChange",
    "lfcSE",
    "stat",
    "pvalue",
    "padj",
]


def build_deseq_dataset(
    count_matrix: DataFrame,
    metadata: DataFrame,
    design: str = "~treatment",
    n_cpus: int = 1,
    refit_cooks: bool = True,
    quiet: bool = True,
) -> DeseqDataSet:
    """
    Wrap count matrix and sample metadata into a DeseqDataSet.

    Parameters
    ----------
    count_matrix : DataFrame
        Raw integer counts, genes x samples.
    metadata : DataFrame
        Sample metadata indexed by sample, same order as the matrix
        columns.
    design : str
        Wilkinson design formula over metadata columns.
    n_cpus : int
        Worker processes used by pydeseq2.
    refit_cooks : bool
        Refit genes flagged as Cook's distance outliers.
    quiet : bool
        Silence pydeseq2 progress output.

    Returns
    -------
    DeseqDataSet
        Unfitted dataset (samples x genes, as pydeseq2 stores it).
    """
    check_sample_alignment(count_matrix, metadata)

    counts = count_matrix.T.copy()
    counts.index = counts.index.astype(str)
    counts.columns = counts.columns.astype(str)
    obs = metadata.copy()
    obs.index = obs.index.astype(str)

    inference = DefaultInference(n_cpus=n_cpus)
    return DeseqDataSet(
        counts=counts,
        metadata=obs,
        design=design,
        refit_cooks=refit_cooks,
        inference=inference,
        quiet=quiet,
    )


def fit_deseq(dds: DeseqDataSet) -> DeseqDataSet:
    """Fit size factors, dispersions and log fold changes in place."""
    print(
        f"  Fitting DESeq2 model on {dds.n_obs} samples x {dds.n_vars} genes"
    )
    dds.deseq2()
    return dds


def _shrinkage_coefficient(
    design_columns: List[str], factor: str, treated: str, reference: str
) -> str:
    candidates = [
        c
        for c in design_columns
        if factor in c
        and (
            c.endswith(f"[T.{treated}]")
            or c.endswith(f"_{treated}_vs_{reference}")
        )
    ]
    if not candidates:
        raise ValueError(
            f"No design coefficient for {factor} {treated} vs {reference}. "
            f"Design columns: {design_columns}"
        )
    return candidates[0]


def differential_expression(
    dds: DeseqDataSet,
    factor: str,
    treated: str,
    reference: str,
    alpha: float = 0.05,
    shrink_lfc: bool = False,
    quiet: bool = True,
) -> DataFrame:
    """
    Wald test of `treated` against `reference` on a fitted dataset.

    Parameters
    ----------
    dds : DeseqDataSet
        Dataset after `fit_deseq`.
    factor : str
        Metadata column holding the treatment.
    treated : str
        Tested level (numerator of the fold change).
    reference : str
        Reference level (denominator).
    alpha : float
        Significance level used by independent filtering.
    shrink_lfc : bool
        Replace log fold changes by their shrunk estimates.
    quiet : bool
        Silence pydeseq2 progress output.

    Returns
    -------
    DataFrame
        Indexed by gene id with baseMean, log2FoldChange, lfcSE, stat,
        pvalue and padj.
    """
    levels = set(dds.obs[factor].astype(str))
    for level in (treated, reference):
        if level not in levels:
            raise ValueError(
                f"Level '{level}' not found in '{factor}': {sorted(levels)}"
            )

    ds = DeseqStats(
        dds,
        contrast=[factor, treated, reference],
        alpha=alpha,
        inference=dds.inference,
        quiet=quiet,
    )
    ds.summary()

    if shrink_lfc:
        coeff = _shrinkage_coefficient(
            list(dds.obsm["design_matrix"].columns),
            factor,
            treated,
            reference,
        )
        print(f"  Shrinking log fold changes ({coeff})")
        ds.lfc_shrink(coeff=coeff)

    results = ds.results_df[RESULT_STAT_COLUMNS].copy()
    results.index.name = "gene_id"
    return results


def variance_stabilize(dds: DeseqDataSet, blind: bool = True) -> DataFrame:
    """
    Variance stabilising transformation of the counts.

    Parameters
    ----------
    dds : DeseqDataSet
        Dataset (fitted or not).
    blind : bool
        Ignore the design when fitting the dispersion trend, as DESeq2's
        `vst(blind=TRUE)` does for sample QC.

    Returns
    -------
    DataFrame
        VST values, genes x samples.
    """
    dds.vst(use_design=not blind)
    return pd.DataFrame(
        dds.layers["vst_counts"],
        index=dds.obs_names,
        columns=dds.var_names,
    ).T


def normalized_counts(dds: DeseqDataSet) -> DataFrame:
    """Size-factor normalised counts, genes x samples."""
    if "normed_counts" not in dds.layers:
        raise ValueError("Dataset has no size factors yet; run fit_deseq")
    return pd.DataFrame(
        dds.layers["normed_counts"],
        index=dds.obs_names,
        columns=dds.var_names,
    ).T


def run_deseq2(
    count_matrix: DataFrame,
    metadata: DataFrame,
    factor: str = "treatment",
    treated: str = "DAC",
    reference: str = "DMSO",
    alpha: float = 0.05,
    shrink_lfc: bool = False,
    n_cpus: int = 1,
    design: Optional[str] = None,
) -> Tuple[DeseqDataSet, DataFrame]:
    """
    Build, fit and test in one call.

    Returns
    -------
    tuple
        (fitted DeseqDataSet, results DataFrame)
    """
    if design is None:
        design = f"~{factor}"
    dds = build_deseq_dataset(
        count_matrix, metadata, design=design, n_cpus=n_cpus
    )
    fit_deseq(dds)
    results = differential_expression(
        dds,
        factor=factor,
        treated=treated,
        reference=reference,
        alpha=alpha,
        shrink_lfc=shrink_lfc,
    )
    return dds, results
