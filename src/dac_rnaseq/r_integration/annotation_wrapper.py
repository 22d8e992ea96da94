from pathlib import Path
from typing import Dict, List, Literal, Optional


# path to the annotation R functions
HERE = Path(__file__).resolve().parent  # .../src/dac_rnaseq/r_integration
PACKAGE_ROOT = HERE.parent  # .../src/dac_rnaseq
ANNOTATION_R_PATH = PACKAGE_ROOT / "r" / "annotation.R"

_MAP_IDS_R = None


def _load_map_gene_ids():
    """
    Source r/annotation.R and return MapGeneIds.
    """
    global _MAP_IDS_R
    if _MAP_IDS_R is not None:
        return _MAP_IDS_R

    import rpy2.robjects as ro

    if not ANNOTATION_R_PATH.exists():
        raise FileNotFoundError(
            f"annotation.R not found at: {ANNOTATION_R_PATH}"
        )

    r_source = ro.r["source"]
    r_source(str(ANNOTATION_R_PATH))

    _MAP_IDS_R = ro.globalenv["MapGeneIds"]
    return _MAP_IDS_R


# Wrapper functions


def map_ids(
    keys: List[str],
    keytype: str = "ENSEMBL",
    column: str = "SYMBOL",
    orgdb: str = "org.Hs.eg.db",
    multivals: Literal["first", "asNA"] = "first",
) -> Dict[str, Optional[str]]:
    """
    Python wrapper for R-function MapGeneIds from r/annotation.R, which
    calls AnnotationDbi::mapIds on the given OrgDb package.

    Returns a dict key -> value; keys the database does not know map to
    None.
    """
    if not keys:
        return {}

    map_gene_ids = _load_map_gene_ids()
    res = map_gene_ids(
        keys=_str_vector(keys),
        keytype=keytype,
        column=column,
        orgdb=orgdb,
        multivals=multivals,
    )
    names = list(res.names)
    values = list(res)
    mapped = {}
    for name, value in zip(names, values):
        # NA_character_ converts to an object whose str() is "NA"
        mapped[str(name)] = None if _is_na(value) else str(value)
    return {k: mapped.get(str(k)) for k in keys}


def _str_vector(keys: List[str]):
    from rpy2.robjects.vectors import StrVector

    return StrVector([str(k) for k in keys])


def _is_na(value) -> bool:
    from rpy2.rinterface import NA_Character

    return value is None or value is NA_Character or str(value) == "NA"


def orgdb_lookup(
    keytype: str = "ENSEMBL",
    column: str = "SYMBOL",
    orgdb: str = "org.Hs.eg.db",
):
    """
    Build a lookup callable for `core.annotation.annotate_results` backed
    by an OrgDb package.
    """

    def __lookup(keys: List[str]) -> Dict[str, Optional[str]]:
        print(f"  Querying {orgdb} for {len(keys)} {keytype} ids")
        return map_ids(keys, keytype=keytype, column=column, orgdb=orgdb)

    return __lookup
