"""
Count ingestion for the DAC RNA-seq walkthrough.

Reads per-sample featureCounts tables, tags every row with its sample and
treatment, and reshapes the long records into the gene-by-sample count
matrix and the sample metadata table that the DESeq2 model needs.

The count matrix columns and the metadata rows must describe the same
samples in the same order. Every function handing both tables on calls
`check_sample_alignment`.
"""

import re
import warnings
import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from pandas import DataFrame, Series


FEATURECOUNTS_COLUMNS = [
    "Geneid",
    "Chr",
    "Start",
    "End",
    "Strand",
    "Length",
    "count",
]
RECORD_COLUMNS = ["gene_id", "sample", "treatment", "count"]
DEFAULT_SAMPLE_PATTERN = r"(SRR\d+)"


def sample_id_from_path(
    path: Union[Path, str], pattern: str = DEFAULT_SAMPLE_PATTERN
) -> str:
    """
    Derive the sample identifier from a count file name.

    Parameters
    ----------
    path : Path or str
        Count file path. Only the file name is searched.
    pattern : str
        Regular expression; the first capture group (or the whole match if
        the pattern has no group) is the sample id.

    Returns
    -------
    str
        Sample identifier, e.g. "SRR8474231".
    """
    name = Path(path).name
    match = re.search(pattern, name)
    if match is None:
        raise ValueError(
            f"Could not derive a sample id from '{name}' "
            f"with pattern '{pattern}'"
        )
    return match.group(1) if match.groups() else match.group(0)


def read_count_file(
    path: Union[Path, str],
    sample: str,
    treatment: str,
    skiprows: int = 2,
) -> DataFrame:
    """
    Read one featureCounts output file into long count records.

    featureCounts writes a "# Program:..." comment line and a header line
    before the data. Both are skipped and the seven columns are named
    explicitly.

    Parameters
    ----------
    path : Path or str
        featureCounts file.
    sample : str
        Sample id attached to every row.
    treatment : str
        Treatment label attached to every row.
    skiprows : int
        Number of preamble lines.

    Returns
    -------
    DataFrame
        Columns gene_id, sample, treatment, count.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Count file not found: {path}")

    raw = pd.read_csv(path, sep="\t", skiprows=skiprows, header=None)
    if raw.shape[1] != len(FEATURECOUNTS_COLUMNS):
        raise ValueError(
            f"Count file '{path.name}' has {raw.shape[1]} columns, expected "
            f"{len(FEATURECOUNTS_COLUMNS)} ({', '.join(FEATURECOUNTS_COLUMNS)})"
        )
    raw.columns = FEATURECOUNTS_COLUMNS

    if not pd.api.types.is_numeric_dtype(raw["count"]):
        raise ValueError(f"Count file '{path.name}' has non-numeric counts")
    if (raw["count"] % 1 != 0).any():
        raise ValueError(
            f"Count file '{path.name}' has fractional counts; "
            "raw integer counts are required"
        )
    if (raw["count"] < 0).any():
        raise ValueError(f"Count file '{path.name}' has negative counts")
    if raw["Geneid"].duplicated().any():
        dups = raw.loc[raw["Geneid"].duplicated(), "Geneid"].unique()[:5]
        raise ValueError(
            f"Count file '{path.name}' has duplicated gene ids: {list(dups)}"
        )

    records = pd.DataFrame(
        {
            "gene_id": raw["Geneid"].astype(str),
            "sample": sample,
            "treatment": treatment,
            "count": raw["count"].astype("int64"),
        }
    )
    return records[RECORD_COLUMNS]


def discover_count_files(
    folder: Union[Path, str], glob: str = "*.txt"
) -> List[Path]:
    """Sorted list of count files in `folder` matching `glob`."""
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Count folder not found: {folder}")
    files = sorted(p for p in folder.glob(glob) if p.is_file())
    if not files:
        raise FileNotFoundError(
            f"No count files matching '{glob}' found in {folder}"
        )
    return files


def read_sample_sheet(
    sample_sheet: Union[Path, str],
    sample_col: str = "sample",
    treatment_col: str = "treatment",
) -> DataFrame:
    """
    Load the sample sheet assigning a treatment to every sample id.

    Parameters
    ----------
    sample_sheet : Path or str
        TSV (or CSV by suffix) with at least a sample and a treatment
        column.
    sample_col : str
        Name of the sample id column.
    treatment_col : str
        Name of the treatment column.

    Returns
    -------
    DataFrame
        Two columns, "sample" and "treatment", both strings.
    """
    sample_sheet = Path(sample_sheet)
    if not sample_sheet.exists():
        raise FileNotFoundError(f"Sample sheet not found: {sample_sheet}")

    if sample_sheet.suffix == ".csv":
        sheet = pd.read_csv(sample_sheet)
    else:
        sheet = pd.read_csv(sample_sheet, sep="\t")

    missing = [c for c in (sample_col, treatment_col) if c not in sheet.columns]
    if missing:
        raise ValueError(
            f"Sample sheet missing required columns: {missing}. "
            f"Found: {list(sheet.columns)}"
        )
    sheet = sheet[[sample_col, treatment_col]].astype(str)
    sheet.columns = ["sample", "treatment"]
    if sheet["sample"].duplicated().any():
        raise ValueError("Sample sheet lists a sample more than once")
    return sheet.reset_index(drop=True)


def assign_treatments(
    files: List[Union[Path, str]],
    sample_table: DataFrame,
    pattern: str = DEFAULT_SAMPLE_PATTERN,
) -> Dict[Path, str]:
    """
    Match count files to the sample sheet by their derived sample id.

    Files whose sample id is not in the sheet are skipped with a warning.
    Samples in the sheet without a file are an error.

    Returns
    -------
    dict
        Mapping count file -> treatment label, in file order.
    """
    treatment_by_sample = dict(
        zip(sample_table["sample"], sample_table["treatment"])
    )
    assigned: Dict[Path, str] = {}
    seen = set()
    for f in files:
        f = Path(f)
        sample = sample_id_from_path(f, pattern)
        if sample not in treatment_by_sample:
            warnings.warn(
                f"Skipping '{f.name}': sample '{sample}' not in sample sheet"
            )
            continue
        assigned[f] = treatment_by_sample[sample]
        seen.add(sample)

    missing = [s for s in treatment_by_sample if s not in seen]
    if missing:
        raise ValueError(f"No count file found for samples: {missing}")
    return assigned


def load_count_records(
    sample_files: Dict[Union[Path, str], str],
    pattern: str = DEFAULT_SAMPLE_PATTERN,
    skiprows: int = 2,
) -> DataFrame:
    """
    Read several count files into one long table of count records.

    Parameters
    ----------
    sample_files : dict
        Mapping count file path -> treatment label.
    pattern : str
        Sample id regular expression applied to each file name.
    skiprows : int
        Preamble lines per file.

    Returns
    -------
    DataFrame
        Columns gene_id, sample, treatment, count.
    """
    if not sample_files:
        raise ValueError("No count files given")

    frames = []
    samples = []
    for path, treatment in sample_files.items():
        sample = sample_id_from_path(path, pattern)
        if sample in samples:
            raise ValueError(f"Sample id '{sample}' derived from two files")
        samples.append(sample)
        print(f"  Reading {Path(path).name} -> {sample} ({treatment})")
        frames.append(read_count_file(path, sample, treatment, skiprows))

    return pd.concat(frames, ignore_index=True)


def _ordered_treatments(
    treatments: List[str], reference: Optional[str]
) -> List[str]:
    levels = sorted(set(treatments))
    if reference is not None:
        if reference not in levels:
            raise ValueError(
                f"Reference level '{reference}' not among treatments {levels}"
            )
        levels.remove(reference)
        levels.insert(0, reference)
    return levels


def pivot_count_records(
    records: DataFrame, reference: Optional[str] = None
) -> Tuple[DataFrame, DataFrame]:
    """
    Reshape long count records into a count matrix and sample metadata.

    Samples are ordered by treatment (reference level first) and then by
    sample id. The metadata rows are built from that same ordering.

    Parameters
    ----------
    records : DataFrame
        Long records as returned by `load_count_records`.
    reference : str, optional
        Reference (control) treatment level.

    Returns
    -------
    tuple
        (count_matrix, metadata) where count_matrix is genes x samples
        (index "gene_id") and metadata is indexed by sample with a
        categorical "treatment" column.
    """
    missing = [c for c in RECORD_COLUMNS if c not in records.columns]
    if missing:
        raise ValueError(f"Count records missing columns: {missing}")

    sample_treatment = records[["sample", "treatment"]].drop_duplicates()
    if sample_treatment["sample"].duplicated().any():
        raise ValueError("A sample carries more than one treatment label")

    levels = _ordered_treatments(
        sample_treatment["treatment"].tolist(), reference
    )
    sample_treatment = sample_treatment.assign(
        _level=sample_treatment["treatment"].map(levels.index)
    ).sort_values(["_level", "sample"])
    sample_order = sample_treatment["sample"].tolist()

    count_matrix = records.pivot(
        index="gene_id", columns="sample", values="count"
    )
    if count_matrix.isna().any().any():
        incomplete = count_matrix.columns[count_matrix.isna().any()].tolist()
        raise ValueError(
            "Count files cover different gene sets; samples with missing "
            f"genes: {incomplete}"
        )
    count_matrix = count_matrix[sample_order].astype("int64")
    count_matrix.columns.name = None

    metadata = pd.DataFrame(
        {
            "treatment": pd.Categorical(
                sample_treatment["treatment"].tolist(), categories=levels
            )
        },
        index=pd.Index(sample_order, name="sample"),
    )

    check_sample_alignment(count_matrix, metadata)
    return count_matrix, metadata


def check_sample_alignment(count_matrix: DataFrame, metadata: DataFrame) -> None:
    """
    Raise if count matrix columns and metadata rows differ in set or order.
    """
    columns = [str(c) for c in count_matrix.columns]
    rows = [str(r) for r in metadata.index]
    if set(columns) != set(rows):
        only_counts = sorted(set(columns) - set(rows))
        only_meta = sorted(set(rows) - set(columns))
        raise ValueError(
            "Count matrix and metadata describe different samples "
            f"(only in counts: {only_counts}, only in metadata: {only_meta})"
        )
    for position, (column, row) in enumerate(zip(columns, rows)):
        if column != row:
            raise ValueError(
                f"Sample order mismatch at position {position}: count matrix "
                f"column '{column}' vs metadata row '{row}'"
            )


def filter_low_count_genes(
    count_matrix: DataFrame, min_total: int = 1
) -> DataFrame:
    """
    Drop genes whose total count across samples is <= `min_total`.
    """
    keep = count_matrix.sum(axis=1) > min_total
    print(
        f"  Keeping {int(keep.sum())} of {len(keep)} genes "
        f"(total count > {min_total})"
    )
    return count_matrix.loc[keep].copy()


def library_sizes(count_matrix: DataFrame) -> Series:
    """Total assigned reads per sample."""
    sizes = count_matrix.sum(axis=0)
    sizes.name = "library_size"
    return sizes
