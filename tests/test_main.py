"""
Tests for the typer command line interface.
"""
import pytest
from pathlib import Path
from unittest.mock import patch
from typer.testing import CliRunner
from dac_rnaseq.main import app


runner = CliRunner()


@pytest.fixture
def fake_report():
    return {
        "output_dir": Path("out"),
        "summary": {
            "n_tested": 298,
            "n_significant": 27,
            "n_up": 18,
            "n_down": 9,
        },
        "files": {},
    }


class TestInfo:
    def test_info(self):
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "Contrast: DAC vs DMSO" in result.output


class TestRun:
    """Test the run command."""

    @patch("dac_rnaseq.main.differential_expression_report")
    def test_run_defaults(self, mock_report, fake_report, tmp_path):
        mock_report.return_value = fake_report
        sheet = tmp_path / "samples.tsv"

        result = runner.invoke(
            app, ["run", str(sheet), "--counts-dir", str(tmp_path)]
        )

        assert result.exit_code == 0, result.output
        assert "27 significant genes (18 up, 9 down) of 298 tested" in result.output
        kwargs = mock_report.call_args.kwargs
        assert kwargs["sample_sheet"] == sheet
        assert kwargs["counts_dir"] == tmp_path
        assert kwargs["treated"] == "DAC"
        assert kwargs["reference"] == "DMSO"
        assert kwargs["padj_threshold"] == 0.05
        assert kwargs["lfc_threshold"] == 1.0

    @patch("dac_rnaseq.main.differential_expression_report")
    def test_run_with_annotation_table(self, mock_report, fake_report, tmp_path):
        mock_report.return_value = fake_report
        table = tmp_path / "ann.tsv"

        result = runner.invoke(
            app,
            [
                "run",
                str(tmp_path / "samples.tsv"),
                "--annotation-table",
                str(table),
                "--lfc-threshold",
                "2",
            ],
        )

        assert result.exit_code == 0, result.output
        kwargs = mock_report.call_args.kwargs
        assert kwargs["annotation_source"] == "table"
        assert kwargs["annotation_table"] == table
        assert kwargs["lfc_threshold"] == 2.0

    @patch("dac_rnaseq.main.differential_expression_report")
    def test_run_without_annotation(self, mock_report, fake_report, tmp_path):
        mock_report.return_value = fake_report

        result = runner.invoke(
            app, ["run", str(tmp_path / "samples.tsv"), "--no-annotation"]
        )

        assert result.exit_code == 0, result.output
        assert mock_report.call_args.kwargs["annotation_source"] == "none"


class TestAnnotate:
    @patch("dac_rnaseq.main.annotate_results_file")
    def test_annotate(self, mock_annotate, tmp_path):
        mock_annotate.return_value = tmp_path / "out.tsv"

        result = runner.invoke(
            app,
            [
                "annotate",
                str(tmp_path / "results.tsv"),
                str(tmp_path / "out.tsv"),
                "--orgdb",
                "org.Mm.eg.db",
            ],
        )

        assert result.exit_code == 0, result.output
        args, kwargs = mock_annotate.call_args
        assert args == (tmp_path / "results.tsv", tmp_path / "out.tsv")
        assert kwargs["orgdb"] == "org.Mm.eg.db"
        assert kwargs["annotation_table"] is None
