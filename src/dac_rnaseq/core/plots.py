from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.figure import Figure
from pandas import DataFrame, Series


UP_COLOR = "#d62728"
DOWN_COLOR = "#1f77b4"
NS_COLOR = "lightgrey"


def plot_pca(
    coordinates: DataFrame,
    explained_variance: Sequence[float],
    color_by: str = "treatment",
    x: str = "PC1",
    y: str = "PC2",
    label_samples: bool = True,
    point_size: float = 80,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (6, 5),
) -> Figure:
    """
    Scatter samples on two principal components.

    Parameters
    ----------
    coordinates : DataFrame
        Output of `sample_pca`, indexed by sample.
    explained_variance : sequence of float
        Explained variance ratio per component, used in the axis labels.
    color_by : str
        Metadata column used for the colour.
    x, y : str
        Component columns to plot.
    label_samples : bool
        Write the sample id next to each point.

    Returns
    -------
    Figure
        Matplotlib figure.
    """
    for col in (x, y, color_by):
        if col not in coordinates.columns:
            raise ValueError(
                f"Column '{col}' not found. "
                f"Available columns: {list(coordinates.columns)}"
            )

    fig, ax = plt.subplots(figsize=figsize)
    sns.scatterplot(
        data=coordinates,
        x=x,
        y=y,
        hue=color_by,
        s=point_size,
        ax=ax,
    )
    if label_samples:
        for sample, row in coordinates.iterrows():
            ax.annotate(
                str(sample),
                (row[x], row[y]),
                xytext=(4, 4),
                textcoords="offset points",
                fontsize=8,
            )

    ix = int(x.replace("PC", "")) - 1
    iy = int(y.replace("PC", "")) - 1
    ax.set_xlabel(f"{x}: {explained_variance[ix] * 100:.1f}% variance")
    ax.set_ylabel(f"{y}: {explained_variance[iy] * 100:.1f}% variance")
    ax.set_title(title if title is not None else "Sample PCA")
    fig.tight_layout()
    return fig


def plot_ma(
    results: DataFrame,
    mean_column: str = "baseMean",
    log_fc_column: str = "log2FoldChange",
    significant_column: str = "significant",
    point_size: float = 6,
    alpha: float = 0.6,
    y_limit: Optional[float] = None,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 6),
) -> Figure:
    """
    MA plot: mean of normalised counts against log2 fold change.

    Significant genes are coloured by direction. Genes with a zero mean or
    an undefined fold change are left out. With `y_limit` set, larger
    fold changes are drawn as triangles on the border.
    """
    for col in (mean_column, log_fc_column, significant_column):
        if col not in results.columns:
            raise ValueError(f"Column '{col}' not found in results")

    df = results[[mean_column, log_fc_column, significant_column]].copy()
    df = df[(df[mean_column] > 0) & df[log_fc_column].notna()]

    x = np.log10(df[mean_column].to_numpy(dtype=float))
    y = df[log_fc_column].to_numpy(dtype=float)
    sig = df[significant_column].astype(bool).to_numpy()

    clipped = np.zeros(len(y), dtype=bool)
    if y_limit is not None:
        clipped = np.abs(y) > y_limit
        y = np.clip(y, -y_limit, y_limit)

    fig, ax = plt.subplots(figsize=figsize)
    groups = [
        (~sig, NS_COLOR, "not significant"),
        (sig & (y > 0), UP_COLOR, "up"),
        (sig & (y < 0), DOWN_COLOR, "down"),
    ]
    for mask, color, label in groups:
        inside = mask & ~clipped
        ax.scatter(
            x[inside],
            y[inside],
            s=point_size,
            alpha=alpha,
            c=color,
            edgecolors="none",
            label=f"{label} ({int(mask.sum())})",
        )
        if clipped.any():
            ax.scatter(
                x[mask & clipped],
                y[mask & clipped],
                s=point_size * 2,
                alpha=alpha,
                c=color,
                marker="^",
                edgecolors="none",
            )

    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_xlabel(r"$\log_{10}$ mean of normalized counts")
    ax.set_ylabel(r"$\log_{2}$ fold change")
    ax.set_title(title if title is not None else "MA plot")
    ax.legend(frameon=False, fontsize=8)
    fig.tight_layout()
    return fig


def volcano_plot(
    df: DataFrame,
    log_fc_column: str,
    y_column: str,
    fdr_column: Optional[str] = None,
    name_column: Optional[str] = None,
    top_n_labels: int = 0,
    transform_y: bool = True,  # True -> plot -log10(y), False -> plot raw y
    log_threshold: float = 1.0,  # abs(logFC) threshold
    fdr_threshold: float = 0.05,  # FDR threshold (always on raw FDR scale)
    point_size: float = 12,
    alpha: float = 0.75,
    title: Optional[str] = None,
    xlabel: Optional[str] = None,
    ylabel: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 6),
    y_clip_min: float = 1e-300,  # avoids -log10(0)
    y_clip_max: Optional[
        float
    ] = None,  # clips extreme y-values, shows as triangles
    label_fontsize: int = 9,
):
    """
    Volcano plot of fold change against (transformed) significance.

    Parameters
    ----------
    df : DataFrame
        Result table.
    log_fc_column : str
        Fold change column (x axis).
    y_column : str
        P-value or FDR column (y axis). Undefined values are drawn at
        y = 1 on the raw scale, i.e. 0 after transformation.
    fdr_column : str, optional
        Column used for the significance call; defaults to `y_column`.
    name_column : str, optional
        Labels for the top genes. Falls back to the index when empty.
    top_n_labels : int
        Number of most significant genes to label.
    transform_y : bool
        Plot -log10(y) instead of y.
    log_threshold : float
        |log fold change| threshold, inclusive.
    fdr_threshold : float
        FDR threshold, strict, on the raw scale.
    y_clip_min : float
        Lower clip before the log transform.
    y_clip_max : float, optional
        Upper clip on the plotted scale; clipped genes are triangles.

    Returns
    -------
    tuple
        (fig, ax)
    """
    if fdr_column is None:
        fdr_column = y_column
    for col in (log_fc_column, y_column, fdr_column):
        if col not in df.columns:
            raise ValueError(
                f"Column '{col}' not found. Available columns: {list(df.columns)}"
            )

    data = df[df[log_fc_column].notna()].copy()
    lfc = data[log_fc_column].to_numpy(dtype=float)
    raw_y = data[y_column].astype(float).fillna(1.0).to_numpy()
    fdr = data[fdr_column].astype(float).to_numpy()

    if transform_y:
        y = -np.log10(np.clip(raw_y, y_clip_min, None))
    else:
        y = raw_y

    clipped = np.zeros(len(y), dtype=bool)
    if y_clip_max is not None:
        clipped = y > y_clip_max
        y = np.minimum(y, y_clip_max)

    with np.errstate(invalid="ignore"):
        sig = (fdr < fdr_threshold) & (np.abs(lfc) >= log_threshold)
    up = sig & (lfc > 0)
    down = sig & (lfc < 0)

    fig, ax = plt.subplots(figsize=figsize)
    for mask, color, label in (
        (~sig, NS_COLOR, "not significant"),
        (up, UP_COLOR, "up"),
        (down, DOWN_COLOR, "down"),
    ):
        ax.scatter(
            lfc[mask & ~clipped],
            y[mask & ~clipped],
            s=point_size,
            alpha=alpha,
            c=color,
            edgecolors="none",
            label=f"{label} ({int(mask.sum())})",
        )
        if clipped.any():
            ax.scatter(
                lfc[mask & clipped],
                y[mask & clipped],
                s=point_size * 1.5,
                alpha=alpha,
                c=color,
                marker="^",
                edgecolors="none",
            )

    ax.axvline(log_threshold, linestyle="--", linewidth=1, color="grey")
    ax.axvline(-log_threshold, linestyle="--", linewidth=1, color="grey")
    if transform_y:
        ax.axhline(
            -np.log10(fdr_threshold), linestyle="--", linewidth=1, color="grey"
        )
    else:
        ax.axhline(fdr_threshold, linestyle="--", linewidth=1, color="grey")

    if top_n_labels > 0 and sig.any():
        names = _label_names(data, name_column)
        order = np.argsort(-y[sig], kind="mergesort")[:top_n_labels]
        sig_idx = np.flatnonzero(sig)[order]
        for i in sig_idx:
            ax.annotate(
                names.iloc[i],
                (lfc[i], y[i]),
                xytext=(3, 3),
                textcoords="offset points",
                fontsize=label_fontsize,
            )

    if xlabel is None:
        xlabel = r"$\log_{2}$ fold change"
    if ylabel is None:
        ylabel = (
            rf"$-\log_{{10}}$({y_column})" if transform_y else str(y_column)
        )
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(title if title is not None else "Volcano plot")
    ax.legend(frameon=False, fontsize=8)
    fig.tight_layout()
    return fig, ax


def _label_names(data: DataFrame, name_column: Optional[str]) -> Series:
    index_names = pd.Series(data.index.astype(str), index=data.index)
    if name_column is None:
        return index_names.reset_index(drop=True)
    if name_column not in data.columns:
        raise ValueError(f"Column '{name_column}' not found")
    # genes without a symbol keep their identifier
    names = data[name_column].where(data[name_column].notna(), index_names)
    return names.astype(str).reset_index(drop=True)


def plot_sample_distances(
    distances: DataFrame,
    metadata: Optional[DataFrame] = None,
    color_by: str = "treatment",
    cmap: str = "Blues_r",
    annot: bool = False,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (7, 6),
) -> Figure:
    """
    Heatmap of sample-to-sample distances.

    With metadata, tick labels read "<sample> (<treatment>)".
    """
    labels = [str(s) for s in distances.index]
    if metadata is not None and color_by in metadata.columns:
        groups = metadata[color_by].astype(str)
        labels = [f"{s} ({groups.get(s, '?')})" for s in distances.index]

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(
        distances,
        ax=ax,
        cmap=cmap,
        annot=annot,
        fmt=".1f",
        square=True,
        xticklabels=labels,
        yticklabels=labels,
        cbar_kws={"label": "Euclidean distance"},
        linewidths=0.5,
    )
    ax.set_title(
        title if title is not None else "Sample distances (VST)",
        fontsize=14,
        pad=10,
    )
    plt.tight_layout()
    return fig


def plot_library_sizes(
    sizes: Series,
    metadata: Optional[DataFrame] = None,
    color_by: str = "treatment",
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (7, 4),
) -> Figure:
    """Bar plot of assigned reads per sample, in millions."""
    frame = pd.DataFrame(
        {"sample": sizes.index.astype(str), "reads": sizes.to_numpy() / 1e6}
    )
    hue = None
    if metadata is not None and color_by in metadata.columns:
        frame[color_by] = metadata[color_by].astype(str).reindex(
            sizes.index
        ).to_numpy()
        hue = color_by

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(data=frame, x="sample", y="reads", hue=hue, dodge=False, ax=ax)
    ax.set_xlabel("")
    ax.set_ylabel("Assigned reads (millions)")
    ax.tick_params(axis="x", rotation=45)
    ax.set_title(title if title is not None else "Library sizes")
    fig.tight_layout()
    return fig
