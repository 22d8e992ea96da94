"""
Differential Expression Report Module

End-to-end DAC vs control walkthrough: count ingestion, DESeq2 fit,
annotation, plots, tables and a markdown report.
"""

from __future__ import annotations

import json
import warnings
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

import matplotlib.pyplot as plt
import markdown as md
import pandas as pd

from ..core.annotation import annotate_results, read_annotation_table
from ..core.counts import (
    assign_treatments,
    discover_count_files,
    filter_low_count_genes,
    library_sizes,
    load_count_records,
    pivot_count_records,
    read_sample_sheet,
)
from ..core.deseq import (
    build_deseq_dataset,
    differential_expression,
    fit_deseq,
    normalized_counts,
    variance_stabilize,
)
from ..core.exploration import manual_pca, sample_distances, sample_pca
from ..core.plots import (
    plot_library_sizes,
    plot_ma,
    plot_pca,
    plot_sample_distances,
    volcano_plot,
)
from ..core.results import shape_results, summarize_results, top_genes
from ..services.io import save_figure, write_matrix, write_results


@dataclass
class AnalysisConfig:
    project_name: str = "DAC RNA-seq"
    out_dir: Union[str, Path] = "dac_rnaseq_report"
    assets_dirname: str = "report_assets"
    plots_dirname: str = "plots"
    tables_dirname: str = "tables"

    # Inputs
    counts_glob: str = "*.txt"
    sample_pattern: str = r"(SRR\d+)"
    sample_col: str = "sample"
    treatment_col: str = "treatment"

    # Design
    factor: str = "treatment"
    treated: str = "DAC"
    reference: str = "DMSO"
    min_total_count: int = 1
    n_cpus: int = 1
    shrink_lfc: bool = False

    # Thresholds
    padj_threshold: float = 0.05
    lfc_threshold: float = 1.0

    # Diagnostics
    pca_ntop: int = 500

    # Annotation: "orgdb", "table" or "none"
    annotation_source: str = "orgdb"
    orgdb: str = "org.Hs.eg.db"
    annotation_table: Optional[Union[str, Path]] = None

    # Labeling
    top_n_labels: int = 10
    top_n_hits_table: int = 50
    save_formats: tuple = (".png", ".pdf")


class DifferentialExpressionReport:
    """
    Report generator for a two-level treatment comparison.

    Inputs:
      - a folder of featureCounts files (one per sample)
      - a sample sheet assigning each sample id to a treatment

    Outputs:
      - tables (TSV): results, top genes, count matrix, metadata,
        normalized counts
      - plots: library sizes, PCA (top-variance and all genes), sample
        distances, MA, volcano
      - summary.json, report.md, report.html
    """

    def __init__(
        self,
        config: AnalysisConfig,
        counts_dir: Union[str, Path],
        sample_sheet_path: Union[str, Path],
    ):
        self.cfg = config
        self.counts_dir = Path(counts_dir)
        self.sample_sheet_path = Path(sample_sheet_path)

        self.out_dir = Path(self.cfg.out_dir)
        self.assets_dir = self.out_dir / self.cfg.assets_dirname
        self.plots_dir = self.assets_dir / self.cfg.plots_dirname
        self.tables_dir = self.assets_dir / self.cfg.tables_dirname

        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.plots_dir.mkdir(parents=True, exist_ok=True)
        self.tables_dir.mkdir(parents=True, exist_ok=True)

        self.records: Optional[pd.DataFrame] = None
        self.count_matrix: Optional[pd.DataFrame] = None
        self.metadata: Optional[pd.DataFrame] = None
        self.dds = None
        self.vst: Optional[pd.DataFrame] = None
        self.results: Optional[pd.DataFrame] = None
        self.files: Dict[str, Path] = {}
        self._summary: Optional[dict] = None

    # -----------------------
    # Main API
    # -----------------------
    def build(self) -> Dict:
        """
        Run the whole walkthrough and write every output.

        Returns
        -------
        dict
            {"output_dir", "summary", "files"}
        """
        print("=" * 60)
        print(f"Differential expression: {self.cfg.treated} vs {self.cfg.reference}")
        print("=" * 60)

        print("Step 1: Loading count files...")
        self.load_counts()
        print("Step 2: Building DESeq2 dataset...")
        self.dds = build_deseq_dataset(
            self.count_matrix,
            self.metadata,
            design=f"~{self.cfg.factor}",
            n_cpus=self.cfg.n_cpus,
        )
        print("Step 3: Variance stabilizing transformation...")
        self.vst = variance_stabilize(self.dds, blind=True)
        print("Step 4: Fitting negative binomial GLM...")
        fit_deseq(self.dds)
        raw_results = differential_expression(
            self.dds,
            factor=self.cfg.factor,
            treated=self.cfg.treated,
            reference=self.cfg.reference,
            alpha=self.cfg.padj_threshold,
            shrink_lfc=self.cfg.shrink_lfc,
        )
        print("Step 5: Annotating genes...")
        annotated = self.annotate(raw_results)
        self.results = shape_results(
            annotated,
            padj_threshold=self.cfg.padj_threshold,
            lfc_threshold=self.cfg.lfc_threshold,
        )

        print("Step 6: Writing tables...")
        summary = self._make_summary()
        self._summary = summary
        self._write_tables()
        print("Step 7: Plotting...")
        self._make_plots()
        self._write_summary_json(summary)
        self._write_markdown_report(summary)

        print(f"\nReport complete. Files saved to {self.out_dir}")
        return {
            "output_dir": self.out_dir,
            "summary": summary,
            "files": self.files,
        }

    def load_counts(self) -> None:
        sample_table = read_sample_sheet(
            self.sample_sheet_path,
            sample_col=self.cfg.sample_col,
            treatment_col=self.cfg.treatment_col,
        )
        files = discover_count_files(self.counts_dir, self.cfg.counts_glob)
        sample_files = assign_treatments(
            files, sample_table, pattern=self.cfg.sample_pattern
        )
        self.records = load_count_records(
            sample_files, pattern=self.cfg.sample_pattern
        )
        count_matrix, self.metadata = pivot_count_records(
            self.records, reference=self.cfg.reference
        )
        self.count_matrix = filter_low_count_genes(
            count_matrix, min_total=self.cfg.min_total_count
        )
        self.metadata = self.metadata.rename(
            columns={"treatment": self.cfg.factor}
        )

    def annotate(self, results: pd.DataFrame) -> pd.DataFrame:
        source = self.cfg.annotation_source
        if source == "none":
            return results
        if source == "table":
            if self.cfg.annotation_table is None:
                raise ValueError(
                    "annotation_source='table' requires annotation_table"
                )
            lookup = read_annotation_table(self.cfg.annotation_table)
        elif source == "orgdb":
            from ..r_integration.annotation_wrapper import orgdb_lookup

            lookup = orgdb_lookup(orgdb=self.cfg.orgdb)
        else:
            raise ValueError(f"Unknown annotation source: {source}")
        return annotate_results(results, lookup)

    # -----------------------
    # Summary
    # -----------------------
    def _make_summary(self) -> dict:
        summary: Dict[str, object] = {
            "project_name": self.cfg.project_name,
            "contrast": [self.cfg.factor, self.cfg.treated, self.cfg.reference],
            "n_samples": int(self.count_matrix.shape[1]),
            "samples_per_level": {
                str(k): int(v)
                for k, v in self.metadata[self.cfg.factor]
                .value_counts(sort=False)
                .items()
            },
            "n_genes_total": int(self.records["gene_id"].nunique()),
            "n_genes_kept": int(self.count_matrix.shape[0]),
            "padj_threshold": self.cfg.padj_threshold,
            "lfc_threshold": self.cfg.lfc_threshold,
            "n_annotated": int(self.results["symbol"].notna().sum()),
            "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
        summary.update(summarize_results(self.results))
        return summary

    def _write_tables(self) -> None:
        self.files["results"] = write_results(
            self.results, self.tables_dir / "deseq2_results.tsv"
        )
        top = top_genes(self.results, n=self.cfg.top_n_hits_table)
        self.files["top_genes"] = write_results(
            top, self.tables_dir / "top_genes.tsv"
        )
        self.files["count_matrix"] = write_matrix(
            self.count_matrix, self.tables_dir / "count_matrix.tsv", "gene_id"
        )
        self.files["sample_metadata"] = write_matrix(
            self.metadata, self.tables_dir / "sample_metadata.tsv", "sample"
        )
        self.files["normalized_counts"] = write_matrix(
            normalized_counts(self.dds),
            self.tables_dir / "normalized_counts.tsv",
            "gene_id",
        )
        self.files["vst"] = write_matrix(
            self.vst, self.tables_dir / "vst.tsv", "gene_id"
        )

    def _write_summary_json(self, summary: dict) -> None:
        out = self.out_dir / "summary.json"
        payload = dict(summary)
        payload["config"] = {k: str(v) for k, v in asdict(self.cfg).items()}
        out.write_text(json.dumps(payload, indent=2))
        self.files["summary"] = out

    # -----------------------
    # Plots
    # -----------------------
    def _make_plots(self) -> None:
        factor = self.cfg.factor
        plots_to_generate = [
            (
                "library_sizes",
                lambda: plot_library_sizes(
                    library_sizes(self.count_matrix), self.metadata, factor
                ),
            ),
            ("pca", lambda: self._plot_pca(self.cfg.pca_ntop, "PCA (top genes)")),
            ("pca_all_genes", lambda: self._plot_pca(None, "PCA (all genes)")),
            (
                "sample_distances",
                lambda: plot_sample_distances(
                    sample_distances(self.vst), self.metadata, factor
                ),
            ),
            (
                "ma_plot",
                lambda: plot_ma(
                    self.results,
                    title=f"MA plot: {self.cfg.treated} vs {self.cfg.reference}",
                ),
            ),
            ("volcano", self._plot_volcano),
        ]

        for plot_name, plot_func in plots_to_generate:
            try:
                fig = plot_func()
                paths = save_figure(
                    fig, self.plots_dir, plot_name, formats=self.cfg.save_formats
                )
                plt.close(fig)
                for path in paths:
                    self.files[f"{plot_name}{path.suffix}"] = path
                print(f"  Saved {plot_name}")
            except Exception as e:
                warnings.warn(f"Failed to generate {plot_name}: {e}")

    def _plot_pca(self, ntop: Optional[int], title: str):
        if ntop is None:
            coordinates, variance = manual_pca(self.vst, self.metadata)
        else:
            coordinates, variance = sample_pca(self.vst, self.metadata, ntop=ntop)
        return plot_pca(coordinates, variance, color_by=self.cfg.factor, title=title)

    def _plot_volcano(self):
        fig, _ = volcano_plot(
            self.results.set_index("gene_id"),
            log_fc_column="log2FoldChange",
            y_column="padj",
            name_column="symbol",
            top_n_labels=self.cfg.top_n_labels,
            log_threshold=self.cfg.lfc_threshold,
            fdr_threshold=self.cfg.padj_threshold,
            title=f"Volcano: {self.cfg.treated} vs {self.cfg.reference}",
        )
        return fig

    # -----------------------
    # Report writer
    # -----------------------
    def _write_markdown_report(self, summary: dict) -> None:
        report_text = f"# Differential Expression Report - {self.cfg.project_name}\n"

        report_text += "\n\n## Summary\n"
        report_text += (
            f"- Contrast: {self.cfg.treated} vs {self.cfg.reference} "
            f"({self.cfg.factor})\n"
        )
        report_text += f"- Samples: {summary['n_samples']}\n"
        report_text += (
            f"- Genes kept after filtering: {summary['n_genes_kept']} of "
            f"{summary['n_genes_total']}\n"
        )
        report_text += (
            f"- Significant (padj < {self.cfg.padj_threshold}, "
            f"|log2FC| >= {self.cfg.lfc_threshold}): "
            f"{summary['n_significant']} "
            f"({summary['n_up']} up, {summary['n_down']} down)\n"
        )
        report_text += f"- Genes with a symbol: {summary['n_annotated']}\n"
        report_text += f"- Generated: {summary['generated_at']}\n"

        report_text += "\n\n## Plots\n"
        for p in sorted(self.plots_dir.glob("*.png")):
            rel = (
                Path(self.cfg.assets_dirname)
                / Path(self.cfg.plots_dirname)
                / p.name
            )
            report_text += f"\n### {p.stem}\n\n![]({rel})\n"

        report_text += "\n\n## Tables\n"
        for t in sorted(self.tables_dir.glob("*.tsv")):
            rel = (
                Path(self.cfg.assets_dirname)
                / Path(self.cfg.tables_dirname)
                / t.name
            )
            report_text += f"\n- `{rel}`\n"

        report_md = self.out_dir / "report.md"
        report_md.write_text(report_text, encoding="utf-8")
        self.files["report_md"] = report_md

        out_html = self.out_dir / "report.html"
        out_html.write_text(md.markdown(report_text), encoding="utf-8")
        self.files["report_html"] = out_html
