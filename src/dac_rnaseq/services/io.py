import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from pandas import DataFrame

from dac_rnaseq.core.annotation import annotate_results, read_annotation_table
from dac_rnaseq.core.results import OUTPUT_COLUMNS, label_significance


def save_figure(
    f,
    folder: Union[Path, str],
    name: str,
    formats: Sequence[str] = (".png", ".svg", ".pdf"),
    bbox_inches: str = "tight",
    dpi: int = 300,
) -> List[Path]:
    """
    Save a figure under `folder` once per format.

    If `name` already carries a suffix, only that format is written.
    Returns the written paths.
    """
    folder = Path(folder)
    folder.mkdir(exist_ok=True, parents=True)
    name = str(name)
    suffix = Path(name).suffix
    if suffix:
        formats = [suffix]
        name = name[: -len(suffix)]
    written = []
    for fmt in formats:
        fmt = fmt if fmt.startswith(".") else f".{fmt}"
        out = folder / (name + fmt)
        f.savefig(out, bbox_inches=bbox_inches, dpi=dpi)
        written.append(out)
    return written


def read_dataframe(path: Union[str, Path], **kwargs) -> DataFrame:
    """
    Read a tabular file into a pandas DataFrame based on file extension.

    Rules:
    - .csv        -> read as CSV
    - .tsv        -> read as TSV
    - .txt        -> treated as TSV
    - .xls/.xlsx  -> read as Excel
    - other       -> try TSV, raise error if that fails

    Additional keyword arguments are forwarded to the pandas reader.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"File does not exist: {path}")

    suffix = path.suffix.lower()

    try:
        if suffix == ".csv":
            return pd.read_csv(path, **kwargs)

        if suffix in {".tsv", ".txt"}:
            return pd.read_csv(path, sep="\t", **kwargs)

        if suffix in {".xls", ".xlsx"}:
            return pd.read_excel(path, **kwargs)

        try:
            return pd.read_csv(path, sep="\t", **kwargs)
        except Exception as exc:
            raise ValueError(
                f"Unsupported file extension '{suffix}'. "
                "Tried to read as TSV but failed."
            ) from exc

    except Exception as exc:
        raise RuntimeError(f"Failed to read file '{path}': {exc}") from exc


def write_results(results: DataFrame, output_file: Union[Path, str]) -> Path:
    """
    Write a shaped result table as TSV in output column order.
    """
    missing = [c for c in OUTPUT_COLUMNS if c not in results.columns]
    if missing:
        raise ValueError(
            f"Results missing output columns {missing}; run shape_results"
        )
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    results[OUTPUT_COLUMNS].to_csv(output_file, sep="\t", index=False)
    return output_file


def read_results(results_file: Union[Path, str]) -> DataFrame:
    """Read a results TSV written by `write_results`."""
    results = read_dataframe(results_file)
    if "significant" in results.columns:
        results["significant"] = results["significant"].astype(bool)
    return results


def write_matrix(
    matrix: DataFrame, output_file: Union[Path, str], index_label: str
) -> Path:
    """Write a gene- or sample-indexed table as TSV."""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    matrix.to_csv(output_file, sep="\t", index_label=index_label)
    return output_file


def annotate_results_file(
    results_file: Union[Path, str],
    output_file: Union[Path, str],
    annotation_table: Optional[Union[Path, str]] = None,
    id_col: str = "gene_id",
    symbol_col: str = "symbol",
    orgdb: str = "org.Hs.eg.db",
    padj_threshold: float = 0.05,
    lfc_threshold: float = 1.0,
) -> Path:
    """
    Add (or replace) gene symbols in an existing results table.

    Symbols come from `annotation_table` if given, otherwise from the
    OrgDb package through R.
    """
    results = read_dataframe(results_file)
    if "gene_id" not in results.columns:
        raise ValueError("Results table has no 'gene_id' column")
    results = results.drop(columns=["symbol"], errors="ignore")

    if annotation_table is not None:
        lookup = read_annotation_table(annotation_table, id_col, symbol_col)
    else:
        from dac_rnaseq.r_integration.annotation_wrapper import orgdb_lookup

        lookup = orgdb_lookup(orgdb=orgdb)

    annotated = annotate_results(results, lookup, gene_col="gene_id")
    annotated = label_significance(
        annotated, padj_threshold=padj_threshold, lfc_threshold=lfc_threshold
    )
    return write_results(annotated, output_file)


def differential_expression_report(
    counts_dir: Union[Path, str],
    sample_sheet: Union[Path, str],
    output_dir: Union[Path, str],
    **kwargs,
) -> Dict:
    """
    Run the full walkthrough and write the report folder.

    Service wrapper around models.DifferentialExpressionReport.

    Parameters
    ----------
    counts_dir : Path or str
        Folder with featureCounts files.
    sample_sheet : Path or str
        Table with sample and treatment columns.
    output_dir : Path or str
        Report folder.
    **kwargs
        Further AnalysisConfig fields (thresholds, labels, annotation
        source, ...).

    Returns
    -------
    dict
        Summary metrics and written files.
    """
    from dac_rnaseq.models.analysis_report import (
        AnalysisConfig,
        DifferentialExpressionReport,
    )

    config = AnalysisConfig(out_dir=output_dir, **kwargs)
    report = DifferentialExpressionReport(
        config=config, counts_dir=counts_dir, sample_sheet_path=sample_sheet
    )
    return report.build()
