"""
Tests for core/annotation.py and r_integration/annotation_wrapper.py.

The R side is never called; MapGeneIds is replaced by a fake.
"""
import pytest
import pandas as pd
import numpy as np
from unittest.mock import patch, MagicMock
from dac_rnaseq.core.annotation import (
    strip_version,
    read_annotation_table,
    lookup_symbols,
    annotate_results,
)
from dac_rnaseq.r_integration import annotation_wrapper


@pytest.fixture
def results_frame():
    return pd.DataFrame(
        {
            "baseMean": [100.0, 50.0, 10.0],
            "log2FoldChange": [2.0, -1.5, 0.1],
            "padj": [0.001, 0.01, 0.9],
        },
        index=pd.Index(
            ["ENSG00000141510.18", "ENSG00000012048.23", "ENSG00000999999.1"],
            name="gene_id",
        ),
    )


class TestStripVersion:
    """Test strip_version function."""

    def test_versioned(self):
        assert strip_version("ENSG00000141510.18") == "ENSG00000141510"

    def test_unversioned(self):
        assert strip_version("ENSG00000141510") == "ENSG00000141510"

    def test_par_y(self):
        assert strip_version("ENSG00000182378.14_PAR_Y") == "ENSG00000182378_PAR_Y"

    def test_other_identifiers_untouched(self):
        assert strip_version("TP53") == "TP53"
        assert strip_version("NM_000546.6") == "NM_000546.6"


class TestReadAnnotationTable:
    """Test read_annotation_table function."""

    def test_reads_mapping(self, tmp_path):
        path = tmp_path / "ann.tsv"
        pd.DataFrame(
            {
                "gene_id": ["ENSG1.2", "ENSG2", "ENSG1.3", "ENSG3"],
                "symbol": ["A", "B", "A2", ""],
            }
        ).to_csv(path, sep="\t", index=False)

        mapping = read_annotation_table(path)

        assert mapping == {"ENSG1": "A", "ENSG2": "B"}

    def test_custom_columns_csv(self, tmp_path):
        path = tmp_path / "ann.csv"
        pd.DataFrame({"ensembl": ["ENSG1"], "name": ["A"]}).to_csv(path, index=False)

        mapping = read_annotation_table(path, id_col="ensembl", symbol_col="name")

        assert mapping == {"ENSG1": "A"}

    def test_missing_column(self, tmp_path):
        path = tmp_path / "ann.tsv"
        pd.DataFrame({"gene_id": ["ENSG1"]}).to_csv(path, sep="\t", index=False)

        with pytest.raises(ValueError, match="symbol"):
            read_annotation_table(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_annotation_table(tmp_path / "nope.tsv")


class TestAnnotateResults:
    """Test lookup_symbols and annotate_results functions."""

    def test_mapping_lookup(self, results_frame):
        lookup = {"ENSG00000141510": "TP53", "ENSG00000012048": "BRCA1"}

        with pytest.warns(UserWarning, match="1 of 3"):
            annotated = annotate_results(results_frame, lookup)

        assert annotated["symbol"].tolist()[:2] == ["TP53", "BRCA1"]
        assert pd.isna(annotated["symbol"].iloc[2])
        assert "symbol" not in results_frame.columns

    def test_callable_lookup_gets_stripped_unique_keys(self, results_frame):
        calls = []

        def fake_lookup(keys):
            calls.append(list(keys))
            return {k: f"SYM_{k[-3:]}" for k in keys}

        annotated = annotate_results(results_frame, fake_lookup)

        assert calls == [
            ["ENSG00000141510", "ENSG00000012048", "ENSG00000999999"]
        ]
        assert annotated["symbol"].tolist() == ["SYM_510", "SYM_048", "SYM_999"]

    def test_nan_answers_become_null(self):
        symbols = lookup_symbols(["ENSG1.1", "ENSG2.1"], {"ENSG1": np.nan})
        assert symbols == {"ENSG1.1": None, "ENSG2.1": None}

    def test_gene_column(self, results_frame):
        frame = results_frame.reset_index()
        annotated = annotate_results(
            frame,
            {"ENSG00000141510": "TP53", "ENSG00000012048": "BRCA1",
             "ENSG00000999999": "X"},
            gene_col="gene_id",
        )
        assert annotated["symbol"].tolist() == ["TP53", "BRCA1", "X"]

    def test_unknown_gene_column(self, results_frame):
        with pytest.raises(ValueError):
            annotate_results(results_frame, {}, gene_col="ensembl")


class FakeRVector(list):
    """Stand-in for a named R character vector."""

    def __init__(self, values, names):
        super().__init__(values)
        self.names = names


class TestAnnotationWrapper:
    """Test map_ids and orgdb_lookup with the R call replaced."""

    def test_map_ids_converts_na(self):
        fake = MagicMock(
            return_value=FakeRVector(["TP53", "NA"], ["ENSG1", "ENSG2"])
        )
        with patch.object(
            annotation_wrapper, "_load_map_gene_ids", return_value=fake
        ), patch.object(
            annotation_wrapper, "_is_na", side_effect=lambda v: v == "NA"
        ), patch.object(annotation_wrapper, "_str_vector", side_effect=list):
            mapped = annotation_wrapper.map_ids(["ENSG1", "ENSG2", "ENSG3"])

        assert mapped == {"ENSG1": "TP53", "ENSG2": None, "ENSG3": None}
        kwargs = fake.call_args.kwargs
        assert kwargs["keytype"] == "ENSEMBL"
        assert kwargs["column"] == "SYMBOL"
        assert kwargs["orgdb"] == "org.Hs.eg.db"

    def test_map_ids_empty(self):
        assert annotation_wrapper.map_ids([]) == {}

    def test_orgdb_lookup_forwards(self, results_frame):
        with patch.object(
            annotation_wrapper,
            "map_ids",
            return_value={"ENSG00000141510": "TP53"},
        ) as mocked:
            lookup = annotation_wrapper.orgdb_lookup(orgdb="org.Mm.eg.db")
            with pytest.warns(UserWarning):
                annotated = annotate_results(results_frame, lookup)

        assert annotated["symbol"].iloc[0] == "TP53"
        args, kwargs = mocked.call_args
        assert kwargs["orgdb"] == "org.Mm.eg.db"
        assert args[0] == [
            "ENSG00000141510",
            "ENSG00000012048",
            "ENSG00000999999",
        ]

    def test_r_script_ships_with_package(self):
        assert annotation_wrapper.ANNOTATION_R_PATH.exists()
        assert "MapGeneIds" in annotation_wrapper.ANNOTATION_R_PATH.read_text()
