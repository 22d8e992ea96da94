"""
Gene identifier to symbol annotation.

The lookup itself is external (an annotation database or a local table);
this module only prepares the identifiers and joins the answer back onto
the result table. Identifiers without a symbol stay null.
"""

import re
import warnings
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union
from pandas import DataFrame


Lookup = Union[Mapping[str, Optional[str]], Callable[[List[str]], Mapping]]

_VERSION_SUFFIX = re.compile(r"^(ENS[A-Z]*G\d+)\.\d+(_PAR_Y)?$")


def strip_version(gene_id: str) -> str:
    """
    Remove the Ensembl version suffix.

    >>> strip_version("ENSG00000141510.18")
    'ENSG00000141510'
    """
    gene_id = str(gene_id)
    match = _VERSION_SUFFIX.match(gene_id)
    if match is None:
        return gene_id
    return match.group(1) + (match.group(2) or "")


def read_annotation_table(
    path: Union[Path, str],
    id_col: str = "gene_id",
    symbol_col: str = "symbol",
) -> Dict[str, str]:
    """
    Load an identifier -> symbol mapping from a local table.

    Parameters
    ----------
    path : Path or str
        TSV (CSV by suffix) with an identifier and a symbol column.
    id_col : str
        Identifier column.
    symbol_col : str
        Symbol column.

    Returns
    -------
    dict
        Version-stripped identifier -> symbol. Rows with an empty symbol
        are dropped; the first symbol wins for repeated identifiers.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Annotation table not found: {path}")
    if path.suffix == ".csv":
        table = pd.read_csv(path, dtype=str)
    else:
        table = pd.read_csv(path, sep="\t", dtype=str)

    for col in (id_col, symbol_col):
        if col not in table.columns:
            raise ValueError(
                f"Column '{col}' not found in annotation table. "
                f"Available columns: {list(table.columns)}"
            )

    table = table[[id_col, symbol_col]].dropna()
    table = table[table[symbol_col].str.strip() != ""]
    table[id_col] = table[id_col].map(strip_version)
    table = table.drop_duplicates(subset=id_col, keep="first")
    return dict(zip(table[id_col], table[symbol_col]))


def lookup_symbols(gene_ids: List[str], lookup: Lookup) -> Dict[str, Optional[str]]:
    """
    Resolve version-stripped identifiers through `lookup`.

    Parameters
    ----------
    gene_ids : list of str
        Identifiers as found in the result table.
    lookup : mapping or callable
        Either an identifier -> symbol mapping or a function taking the
        list of stripped identifiers and returning such a mapping.

    Returns
    -------
    dict
        Original identifier -> symbol, None where nothing was found.
    """
    stripped = [strip_version(g) for g in gene_ids]
    if callable(lookup):
        unique_keys = list(dict.fromkeys(stripped))
        answer = lookup(unique_keys)
    else:
        answer = lookup

    symbols: Dict[str, Optional[str]] = {}
    for original, key in zip(gene_ids, stripped):
        symbol = answer.get(key)
        if symbol is not None and pd.isna(symbol):
            symbol = None
        symbols[original] = symbol
    return symbols


def annotate_results(
    results: DataFrame,
    lookup: Lookup,
    gene_col: Optional[str] = None,
    symbol_col: str = "symbol",
) -> DataFrame:
    """
    Add a gene symbol column to a result table.

    Parameters
    ----------
    results : DataFrame
        Result table, indexed by gene id unless `gene_col` is given.
    lookup : mapping or callable
        See `lookup_symbols`.
    gene_col : str, optional
        Column holding gene ids. Defaults to the index.
    symbol_col : str
        Name of the added column.

    Returns
    -------
    DataFrame
        Copy of `results` with `symbol_col`; unmatched genes are NaN.
    """
    annotated = results.copy()
    if gene_col is None:
        gene_ids = [str(g) for g in annotated.index]
    else:
        if gene_col not in annotated.columns:
            raise ValueError(f"Column '{gene_col}' not found in results")
        gene_ids = annotated[gene_col].astype(str).tolist()

    symbols = lookup_symbols(gene_ids, lookup)
    annotated[symbol_col] = [
        symbols[g] if symbols[g] is not None else np.nan for g in gene_ids
    ]

    n_missing = int(annotated[symbol_col].isna().sum())
    if n_missing:
        warnings.warn(
            f"{n_missing} of {len(annotated)} genes have no symbol annotation"
        )
    return annotated
