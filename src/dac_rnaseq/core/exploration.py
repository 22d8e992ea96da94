"""
Sample-level diagnostics on variance-stabilised counts.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple
from pandas import DataFrame
from scipy.spatial.distance import pdist, squareform
from sklearn.decomposition import PCA

from .counts import check_sample_alignment


def top_variable_genes(vst: DataFrame, ntop: Optional[int] = 500) -> DataFrame:
    """
    Rows of `vst` with the highest variance across samples.

    Parameters
    ----------
    vst : DataFrame
        Transformed counts, genes x samples.
    ntop : int, optional
        Number of genes to keep. None keeps all genes.

    Returns
    -------
    DataFrame
        Subset of `vst`, most variable gene first.
    """
    if ntop is None:
        return vst
    variances = vst.var(axis=1)
    order = variances.sort_values(ascending=False, kind="mergesort").index
    return vst.loc[order[: min(ntop, len(order))]]


def sample_pca(
    vst: DataFrame,
    metadata: DataFrame,
    ntop: Optional[int] = 500,
    n_components: int = 2,
) -> Tuple[DataFrame, np.ndarray]:
    """
    PCA of samples on the most variable genes.

    Mirrors DESeq2's `plotPCA`: select the `ntop` genes by variance,
    centre each gene and project the samples.

    Parameters
    ----------
    vst : DataFrame
        Transformed counts, genes x samples.
    metadata : DataFrame
        Sample metadata aligned with the columns of `vst`.
    ntop : int, optional
        Number of most variable genes; None uses all genes.
    n_components : int
        Number of principal components.

    Returns
    -------
    tuple
        (coordinates, explained_variance_ratio). Coordinates are indexed
        by sample with columns PC1..PCn plus the metadata columns.
    """
    check_sample_alignment(vst, metadata)
    n_samples = vst.shape[1]
    if n_components > min(n_samples, vst.shape[0]):
        raise ValueError(
            f"Cannot compute {n_components} components from "
            f"{n_samples} samples x {vst.shape[0]} genes"
        )

    selected = top_variable_genes(vst, ntop)
    pca = PCA(n_components=n_components)
    projected = pca.fit_transform(selected.T.to_numpy(dtype=float))

    coordinates = pd.DataFrame(
        projected,
        index=vst.columns,
        columns=[f"PC{i + 1}" for i in range(n_components)],
    )
    # rows already checked to follow vst column order
    coordinates = coordinates.join(metadata.set_axis(vst.columns, axis=0))
    return coordinates, pca.explained_variance_ratio_


def manual_pca(
    vst: DataFrame, metadata: DataFrame, n_components: int = 2
) -> Tuple[DataFrame, np.ndarray]:
    """PCA over every gene rather than the top-variance subset."""
    return sample_pca(vst, metadata, ntop=None, n_components=n_components)


def sample_distances(vst: DataFrame) -> DataFrame:
    """Euclidean distances between samples, samples x samples."""
    distances = squareform(pdist(vst.T.to_numpy(dtype=float)))
    return pd.DataFrame(distances, index=vst.columns, columns=vst.columns)
