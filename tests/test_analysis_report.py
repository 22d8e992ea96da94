import json
from pathlib import Path
import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")

import pytest

from dac_rnaseq.core.results import OUTPUT_COLUMNS
from dac_rnaseq.models import AnalysisConfig, DifferentialExpressionReport
from dac_rnaseq.services.io import differential_expression_report, read_results


EXPECTED_PLOTS = [
    "library_sizes",
    "pca",
    "pca_all_genes",
    "sample_distances",
    "ma_plot",
    "volcano",
]


def test_report_with_annotation_table(
    tmp_path, counts_dir, sample_sheet, annotation_table
):
    cfg = AnalysisConfig(
        out_dir=tmp_path / "report",
        annotation_source="table",
        annotation_table=annotation_table,
    )
    report = DifferentialExpressionReport(cfg, counts_dir, sample_sheet)
    result = report.build()

    summary = result["summary"]
    assert summary["n_samples"] == 6
    assert summary["samples_per_level"] == {"DMSO": 3, "DAC": 3}
    assert summary["n_genes_total"] == 300
    assert summary["n_genes_kept"] == 298
    assert summary["n_tested"] == 298
    assert summary["n_annotated"] == 250
    assert summary["n_up"] >= 15
    assert summary["n_down"] >= 7
    assert summary["contrast"] == ["treatment", "DAC", "DMSO"]

    # count matrix columns follow the metadata rows
    assert list(report.count_matrix.columns) == list(report.metadata.index)
    assert list(report.metadata["treatment"].astype(str)) == ["DMSO"] * 3 + [
        "DAC"
    ] * 3

    results = read_results(result["files"]["results"])
    assert list(results.columns) == OUTPUT_COLUMNS
    assert results.loc[results["padj"].isna(), "neg_log10_padj"].eq(0).all()
    assert not results.loc[results["padj"].isna(), "significant"].any()
    assert results.loc[results["gene_id"] == "ENSG00000000001.2", "symbol"].iloc[
        0
    ] == "GENE1"

    for name in EXPECTED_PLOTS:
        assert (report.plots_dir / f"{name}.png").exists(), name
        assert (report.plots_dir / f"{name}.pdf").exists(), name

    for table in [
        "deseq2_results.tsv",
        "top_genes.tsv",
        "count_matrix.tsv",
        "sample_metadata.tsv",
        "normalized_counts.tsv",
        "vst.tsv",
    ]:
        assert (report.tables_dir / table).exists(), table

    md_text = (tmp_path / "report" / "report.md").read_text()
    assert "## Summary" in md_text
    assert "report_assets/plots/volcano.png" in md_text
    assert (tmp_path / "report" / "report.html").exists()

    payload = json.loads((tmp_path / "report" / "summary.json").read_text())
    assert payload["n_significant"] == summary["n_significant"]
    assert payload["config"]["treated"] == "DAC"


def test_report_without_annotation(tmp_path, counts_dir, sample_sheet):
    result = differential_expression_report(
        counts_dir,
        sample_sheet,
        tmp_path / "plain",
        annotation_source="none",
        lfc_threshold=2.0,
    )

    results = read_results(result["files"]["results"])
    assert results["symbol"].isna().all()
    sig = results[results["significant"]]
    assert (sig["log2FoldChange"].abs() >= 2.0).all()
    assert (sig["padj"] < 0.05).all()
    assert result["summary"]["n_annotated"] == 0


def test_report_table_source_requires_table(tmp_path, counts_dir, sample_sheet):
    cfg = AnalysisConfig(out_dir=tmp_path / "r", annotation_source="table")
    report = DifferentialExpressionReport(cfg, counts_dir, sample_sheet)
    with pytest.raises(ValueError, match="annotation_table"):
        report.build()


def test_report_unknown_reference(tmp_path, counts_dir, sample_sheet):
    cfg = AnalysisConfig(
        out_dir=tmp_path / "r", reference="PBS", annotation_source="none"
    )
    report = DifferentialExpressionReport(cfg, counts_dir, sample_sheet)
    with pytest.raises(ValueError, match="Reference level"):
        report.build()


def test_load_counts_only(tmp_path, counts_dir, sample_sheet):
    cfg = AnalysisConfig(out_dir=tmp_path / "r", min_total_count=100)
    report = DifferentialExpressionReport(cfg, counts_dir, sample_sheet)
    report.load_counts()

    assert (report.count_matrix.sum(axis=1) > 100).all()
    assert len(report.records) == 300 * 6
