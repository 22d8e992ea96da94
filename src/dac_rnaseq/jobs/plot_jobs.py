from pypipegraph2 import (
    Job,
    FileGeneratingJob,
    FunctionInvariant,
    ParameterInvariant,
)
from pathlib import Path
from typing import List, Optional, Tuple, Union
from dac_rnaseq.services.plots_io import (
    write_volcano_plot,
    write_ma_plot,
    write_pca_plot,
)
from dac_rnaseq.core.plots import volcano_plot, plot_ma, plot_pca
from pandas import DataFrame


def write_volcano_plot_job(
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
    figsize: Tuple[float, float] = (8, 6),
    y_clip_max: Optional[float] = None,
    dependencies: List[Job] = [],
):
    def __dump(
        outfile,
        filename=filename,
        folder=folder,
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
        figsize=figsize,
        y_clip_max=y_clip_max,
    ):
        write_volcano_plot(
            filename=filename,
            folder=folder,
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
            figsize=figsize,
            y_clip_max=y_clip_max,
        )

    io_func_invariant = FunctionInvariant(
        f"write_volcano_plot_{filename}_{str(folder)}", write_volcano_plot
    )
    core_func_invariant = FunctionInvariant(
        f"volcano_plot_{filename}_{str(folder)}", volcano_plot
    )
    params = ParameterInvariant(
        f"write_volcano_plot_params{filename}_{str(folder)}",
        [
            str(filename),
            str(folder),
            log_fc_column,
            y_column,
            fdr_column,
            name_column,
            top_n_labels,
            transform_y,
            log_threshold,
            fdr_threshold,
            point_size,
            alpha,
            title,
            figsize,
            y_clip_max,
        ],
    )
    return (
        FileGeneratingJob(Path(folder) / filename, __dump)
        .depends_on(dependencies)
        .depends_on([io_func_invariant, core_func_invariant, params])
    )


def write_ma_plot_job(
    filename: Union[Path, str],
    folder: Union[Path, str],
    df: Union[Path, str, DataFrame],
    y_limit: Optional[float] = None,
    title: Optional[str] = None,
    dependencies: List[Job] = [],
):
    def __dump(
        outfile, filename=filename, folder=folder, df=df, y_limit=y_limit, title=title
    ):
        write_ma_plot(
            filename=filename, folder=folder, df=df, y_limit=y_limit, title=title
        )

    params = ParameterInvariant(
        f"write_ma_plot_params{filename}_{str(folder)}",
        [str(filename), str(folder), y_limit, title],
    )
    return (
        FileGeneratingJob(Path(folder) / filename, __dump)
        .depends_on(dependencies)
        .depends_on(
            [
                FunctionInvariant(
                    f"plot_ma_{filename}_{str(folder)}", plot_ma
                ),
                params,
            ]
        )
    )


def write_pca_plot_job(
    filename: Union[Path, str],
    folder: Union[Path, str],
    vst: Union[Path, str],
    metadata: Union[Path, str],
    ntop: Optional[int] = 500,
    color_by: str = "treatment",
    title: Optional[str] = None,
    dependencies: Optional[List[Job]] = None,
) -> Job:
    """
    write_pca_plot_job creates a job that draws the sample PCA from a VST
    table and the sample metadata table.

    Parameters
    ----------
    filename : Union[Path, str]
        Output file name including the suffix, e.g. "pca.png".
    folder : Union[Path, str]
        Output folder.
    vst : Union[Path, str]
        VST table, genes x samples, with a gene_id column.
    metadata : Union[Path, str]
        Sample metadata table with a sample column.
    ntop : Optional[int], optional
        Number of most variable genes, None for all genes, by default 500.
    color_by : str, optional
        Metadata column used for colouring, by default "treatment".
    title : str, optional
        Plot title.
    dependencies : Optional[List[Job]], optional
        Any additional dependencies for the job, by default None.

    Returns
    -------
    Job
        The job that generates the PCA plot.
    """

    def __dump(
        outfile,
        filename=filename,
        folder=folder,
        vst=vst,
        metadata=metadata,
        ntop=ntop,
        color_by=color_by,
        title=title,
    ):
        write_pca_plot(
            filename=filename,
            folder=folder,
            vst=vst,
            metadata=metadata,
            ntop=ntop,
            color_by=color_by,
            title=title,
        )

    if dependencies is None:
        dependencies = []

    return (
        FileGeneratingJob(Path(folder) / filename, __dump)
        .depends_on(
            [
                FunctionInvariant(f"plot_pca_{filename}_{str(folder)}", plot_pca),
                ParameterInvariant(
                    f"write_pca_plot_params{filename}_{str(folder)}",
                    [str(vst), str(metadata), ntop, color_by, title],
                ),
            ]
        )
        .depends_on(dependencies)
    )
