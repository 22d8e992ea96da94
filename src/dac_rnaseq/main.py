from pathlib import Path
from typing import Optional

import typer

from .config import settings
from .services.io import annotate_results_file, differential_expression_report

app = typer.Typer(
    help="Differential expression walkthrough for DAC-treated RNA-seq counts"
)


@app.command()
def info() -> None:
    """Show basic environment info."""
    typer.echo(f"Environment: {settings.environment}")
    typer.echo(f"Counts: {settings.counts_dir} ({settings.counts_glob})")
    typer.echo(f"Contrast: {settings.treated} vs {settings.reference}")
    typer.echo(
        f"Thresholds: padj < {settings.padj_threshold}, "
        f"|log2FC| >= {settings.lfc_threshold}"
    )
    typer.echo(f"Annotation: {settings.annotation_source}")


@app.command()
def run(
    sample_sheet: Path = typer.Argument(..., help="Sample sheet (sample, treatment)"),
    counts_dir: Path = typer.Option(
        settings.counts_dir, help="Folder with featureCounts files"
    ),
    output_dir: Path = typer.Option(settings.output_dir, help="Report folder"),
    treated: str = typer.Option(settings.treated),
    reference: str = typer.Option(settings.reference),
    padj_threshold: float = typer.Option(settings.padj_threshold),
    lfc_threshold: float = typer.Option(settings.lfc_threshold),
    annotation_table: Optional[Path] = typer.Option(
        settings.annotation_table,
        help="Local gene_id/symbol table, used instead of the OrgDb",
    ),
    no_annotation: bool = typer.Option(False, help="Skip symbol lookup"),
) -> None:
    """Run the full DESeq2 walkthrough and write the report folder."""
    if no_annotation:
        annotation_source = "none"
    elif annotation_table is not None:
        annotation_source = "table"
    else:
        annotation_source = settings.annotation_source
    result = differential_expression_report(
        counts_dir=counts_dir,
        sample_sheet=sample_sheet,
        output_dir=output_dir,
        treated=treated,
        reference=reference,
        factor=settings.factor,
        padj_threshold=padj_threshold,
        lfc_threshold=lfc_threshold,
        min_total_count=settings.min_total_count,
        annotation_source=annotation_source,
        annotation_table=annotation_table,
        orgdb=settings.orgdb,
        counts_glob=settings.counts_glob,
        sample_pattern=settings.sample_pattern,
        n_cpus=settings.n_cpus,
    )
    summary = result["summary"]
    typer.echo(
        f"{summary['n_significant']} significant genes "
        f"({summary['n_up']} up, {summary['n_down']} down) "
        f"of {summary['n_tested']} tested"
    )
    typer.echo(f"Report: {result['output_dir']}")


@app.command()
def annotate(
    results_file: Path,
    output_file: Path,
    annotation_table: Optional[Path] = typer.Option(None),
    orgdb: str = typer.Option(settings.orgdb),
) -> None:
    """Add gene symbols to an existing results table."""
    written = annotate_results_file(
        results_file,
        output_file,
        annotation_table=annotation_table,
        orgdb=orgdb,
        padj_threshold=settings.padj_threshold,
        lfc_threshold=settings.lfc_threshold,
    )
    typer.echo(f"Written {written}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
