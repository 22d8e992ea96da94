"""
Tests for services/plots_io.py module.

This module tests plotting I/O service functions.
"""
import pytest
import pandas as pd
import numpy as np
import matplotlib
matplotlib.use('Agg')
from pathlib import Path
from unittest.mock import patch
from dac_rnaseq.core.plots import plot_pca
from dac_rnaseq.core.results import shape_results
from dac_rnaseq.services.io import write_matrix, write_results
from dac_rnaseq.services.plots_io import (
    write_volcano_plot,
    write_ma_plot,
    write_pca_plot,
)


@pytest.fixture
def results_table():
    rng = np.random.default_rng(3)
    n = 100
    raw = pd.DataFrame(
        {
            "baseMean": rng.lognormal(4, 1.5, n),
            "log2FoldChange": rng.normal(0, 2, n),
            "lfcSE": np.full(n, 0.3),
            "stat": rng.normal(0, 3, n),
            "pvalue": rng.uniform(0, 1, n),
            "padj": rng.uniform(0, 1, n),
        },
        index=pd.Index([f"ENSG{i:011d}" for i in range(n)], name="gene_id"),
    )
    raw.iloc[:10, raw.columns.get_loc("padj")] = 1e-8
    raw["symbol"] = [f"G{i}" for i in range(n)]
    return shape_results(raw)


@pytest.fixture
def vst_files(tmp_path):
    rng = np.random.default_rng(4)
    samples = [f"SRR{i}" for i in range(1, 7)]
    vst = pd.DataFrame(
        rng.normal(8, 1, size=(50, 6)),
        index=[f"ENSG{i}" for i in range(50)],
        columns=samples,
    )
    metadata = pd.DataFrame(
        {"treatment": ["DMSO"] * 3 + ["DAC"] * 3},
        index=pd.Index(samples, name="sample"),
    )
    return (
        write_matrix(vst, tmp_path / "vst.tsv", "gene_id"),
        write_matrix(metadata, tmp_path / "meta.tsv", "sample"),
    )


class TestWriteVolcanoPlot:
    """Test write_volcano_plot function."""

    def test_from_dataframe(self, tmp_path, results_table):
        written = write_volcano_plot("volcano.png", tmp_path, results_table)

        assert written == [tmp_path / "volcano.png"]
        assert written[0].exists()

    def test_from_file(self, tmp_path, results_table):
        results_file = write_results(results_table, tmp_path / "results.tsv")

        written = write_volcano_plot(
            "volcano", tmp_path / "plots", results_file, top_n_labels=5
        )

        assert {p.suffix for p in written} == {".png", ".svg", ".pdf"}
        assert all(p.exists() for p in written)

    def test_without_symbol_column(self, tmp_path, results_table):
        written = write_volcano_plot(
            "volcano.png", tmp_path, results_table.drop(columns=["symbol"])
        )
        assert written[0].exists()

    def test_wrong_type(self, tmp_path):
        with pytest.raises(TypeError):
            write_volcano_plot("volcano.png", tmp_path, [1, 2, 3])


class TestWriteMaPlot:
    """Test write_ma_plot function."""

    def test_writes_png(self, tmp_path, results_table):
        written = write_ma_plot("ma.png", tmp_path, results_table, y_limit=5)
        assert written[0].exists()


class TestWritePcaPlot:
    """Test write_pca_plot function."""

    def test_from_files(self, tmp_path, vst_files):
        vst_file, meta_file = vst_files

        written = write_pca_plot("pca.png", tmp_path / "plots", vst_file, meta_file)

        assert written == [tmp_path / "plots" / "pca.png"]
        assert written[0].exists()

    def test_all_genes(self, tmp_path, vst_files):
        vst_file, meta_file = vst_files
        written = write_pca_plot(
            "pca_all.png", tmp_path, vst_file, meta_file, ntop=None
        )
        assert written[0].exists()

    def test_numeric_sample_ids_keep_metadata(self, tmp_path):
        rng = np.random.default_rng(5)
        samples = ["101", "102", "103", "104"]
        vst = pd.DataFrame(
            rng.normal(8, 1, size=(30, 4)),
            index=[f"ENSG{i}" for i in range(30)],
            columns=samples,
        )
        metadata = pd.DataFrame(
            {"treatment": ["DMSO", "DMSO", "DAC", "DAC"]},
            index=pd.Index(samples, name="sample"),
        )
        vst_file = write_matrix(vst, tmp_path / "vst.tsv", "gene_id")
        meta_file = write_matrix(metadata, tmp_path / "meta.tsv", "sample")

        with patch(
            "dac_rnaseq.services.plots_io.plot_pca", wraps=plot_pca
        ) as mocked:
            write_pca_plot("pca.png", tmp_path, vst_file, meta_file)

        coordinates = mocked.call_args.args[0]
        assert coordinates["treatment"].tolist() == ["DMSO", "DMSO", "DAC", "DAC"]
