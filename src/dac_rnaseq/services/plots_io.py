import matplotlib.pyplot as plt
from pathlib import Path
from typing import List, Optional, Tuple, Union
from pandas import DataFrame

from dac_rnaseq.core.exploration import sample_pca
from dac_rnaseq.core.plots import plot_ma, plot_pca, volcano_plot
from .io import read_dataframe, read_results, save_figure


def _as_frame(df: Union[Path, str, DataFrame], reader=read_dataframe) -> DataFrame:
    if isinstance(df, (str, Path)):
        return reader(df)
    if isinstance(df, DataFrame):
        return df
    raise TypeError("df must be a DataFrame or a path to a file")


def write_volcano_plot(
    filename: Union[Path, str],
    folder: Union[Path, str],
    df: Union[Path, str, DataFrame],
    log_fc_column: str = "log2FoldChange",
    y_column: str = "padj",
    fdr_column: Optional[str] = None,
    name_column: Optional[str] = "symbol",
    top_n_labels: int = 10,
    transform_y: bool = True,
    log_threshold: float = 1.0,
    fdr_threshold: float = 0.05,
    point_size: float = 12,
    alpha: float = 0.75,
    title: Optional[str] = None,
    xlabel: Optional[str] = None,
    ylabel: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 6),
    y_clip_min: float = 1e-300,
    y_clip_max: Optional[float] = None,
    label_fontsize: int = 9,
) -> List[Path]:
    df = _as_frame(df, read_results)
    if name_column is not None and name_column not in df.columns:
        name_column = None
    if "gene_id" in df.columns:
        df = df.set_index("gene_id")
    fig, ax = volcano_plot(
        df=df,
        log_fc_column=log_fc_column,
        y_column=y_column,
        fdr_column=fdr_column,
        name_column=name_column,
        top_n_labels=top_n_labels,
        transform_y=transform_y,
        log_threshold=log_threshold,
        fdr_threshold=fdr_threshold,
        point_size=point_size,
        alpha=alpha,
        title=title,
        xlabel=xlabel,
        ylabel=ylabel,
        figsize=figsize,
        y_clip_min=y_clip_min,
        y_clip_max=y_clip_max,
        label_fontsize=label_fontsize,
    )
    written = save_figure(fig, Path(folder), str(filename))
    plt.close(fig)
    return written


def write_ma_plot(
    filename: Union[Path, str],
    folder: Union[Path, str],
    df: Union[Path, str, DataFrame],
    y_limit: Optional[float] = None,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 6),
) -> List[Path]:
    df = _as_frame(df, read_results)
    fig = plot_ma(df, y_limit=y_limit, title=title, figsize=figsize)
    written = save_figure(fig, Path(folder), str(filename))
    plt.close(fig)
    return written


def write_pca_plot(
    filename: Union[Path, str],
    folder: Union[Path, str],
    vst: Union[Path, str, DataFrame],
    metadata: Union[Path, str, DataFrame],
    ntop: Optional[int] = 500,
    color_by: str = "treatment",
    title: Optional[str] = None,
) -> List[Path]:
    """
    PCA plot from a VST table (genes x samples) and sample metadata.
    """
    vst = _as_frame(vst)
    metadata = _as_frame(metadata)
    if "gene_id" in vst.columns:
        vst = vst.set_index("gene_id")
    if "sample" in metadata.columns:
        metadata = metadata.set_index("sample")
    coordinates, variance = sample_pca(vst, metadata, ntop=ntop)
    fig = plot_pca(coordinates, variance, color_by=color_by, title=title)
    written = save_figure(fig, Path(folder), str(filename))
    plt.close(fig)
    return written
