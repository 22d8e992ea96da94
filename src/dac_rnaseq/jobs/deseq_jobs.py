from pypipegraph2 import (
    Job,
    MultiFileGeneratingJob,
    FileGeneratingJob,
    FunctionInvariant,
    ParameterInvariant,
)
from pathlib import Path
from typing import List, Optional, Union
from dac_rnaseq.services.io import (
    annotate_results_file,
    differential_expression_report,
)


def differential_expression_report_job(
    counts_dir: Union[Path, str],
    sample_sheet: Union[Path, str],
    output_dir: Union[Path, str],
    treated: str = "DAC",
    reference: str = "DMSO",
    factor: str = "treatment",
    padj_threshold: float = 0.05,
    lfc_threshold: float = 1.0,
    min_total_count: int = 1,
    annotation_source: str = "orgdb",
    annotation_table: Optional[Union[Path, str]] = None,
    orgdb: str = "org.Hs.eg.db",
    counts_glob: str = "*.txt",
    sample_pattern: str = r"(SRR\d+)",
    n_cpus: int = 1,
    dependencies: List[Job] = [],
) -> Job:
    """
    Job running the full DESeq2 walkthrough into `output_dir`.

    The job output is the results table, report.md and summary.json;
    plots and further tables are written alongside.
    """
    output_dir = Path(output_dir)
    outfiles = [
        output_dir / "report_assets" / "tables" / "deseq2_results.tsv",
        output_dir / "report.md",
        output_dir / "summary.json",
    ]

    def __dump(
        outfiles,
        counts_dir=counts_dir,
        sample_sheet=sample_sheet,
        output_dir=output_dir,
        treated=treated,
        reference=reference,
        factor=factor,
        padj_threshold=padj_threshold,
        lfc_threshold=lfc_threshold,
        min_total_count=min_total_count,
        annotation_source=annotation_source,
        annotation_table=annotation_table,
        orgdb=orgdb,
        counts_glob=counts_glob,
        sample_pattern=sample_pattern,
        n_cpus=n_cpus,
    ):
        differential_expression_report(
            counts_dir=counts_dir,
            sample_sheet=sample_sheet,
            output_dir=output_dir,
            treated=treated,
            reference=reference,
            factor=factor,
            padj_threshold=padj_threshold,
            lfc_threshold=lfc_threshold,
            min_total_count=min_total_count,
            annotation_source=annotation_source,
            annotation_table=annotation_table,
            orgdb=orgdb,
            counts_glob=counts_glob,
            sample_pattern=sample_pattern,
            n_cpus=n_cpus,
        )

    params = ParameterInvariant(
        f"differential_expression_report_params_{output_dir}",
        [
            str(counts_dir),
            str(sample_sheet),
            treated,
            reference,
            factor,
            padj_threshold,
            lfc_threshold,
            min_total_count,
            annotation_source,
            str(annotation_table),
            orgdb,
            counts_glob,
            sample_pattern,
            n_cpus,
        ],
    )
    return (
        MultiFileGeneratingJob(outfiles, __dump)
        .depends_on(dependencies)
        .depends_on([params])
    )


def annotate_results_job(
    results_file: Union[Path, str],
    output_file: Union[Path, str],
    annotation_table: Optional[Union[Path, str]] = None,
    orgdb: str = "org.Hs.eg.db",
    padj_threshold: float = 0.05,
    lfc_threshold: float = 1.0,
    dependencies: List[Job] = [],
) -> Job:
    def __dump(
        output_file,
        results_file=results_file,
        annotation_table=annotation_table,
        orgdb=orgdb,
        padj_threshold=padj_threshold,
        lfc_threshold=lfc_threshold,
    ):
        annotate_results_file(
            results_file=results_file,
            output_file=output_file,
            annotation_table=annotation_table,
            orgdb=orgdb,
            padj_threshold=padj_threshold,
            lfc_threshold=lfc_threshold,
        )

    return (
        FileGeneratingJob(Path(output_file), __dump)
        .depends_on(dependencies)
        .depends_on(
            [
                FunctionInvariant(
                    f"annotate_results_file_{output_file}",
                    annotate_results_file,
                )
            ]
        )
    )
