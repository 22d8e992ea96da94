"""
Shared fixtures: a small synthetic DAC vs DMSO experiment written as
featureCounts files.
"""
import pytest
import numpy as np
import pandas as pd
from pathlib import Path


DMSO_SAMPLES = ["SRR8474231", "SRR8474232", "SRR8474233"]
DAC_SAMPLES = ["SRR8474234", "SRR8474235", "SRR8474236"]
N_GENES = 300
N_UP = 20
N_DOWN = 10


def _featurecounts_text(gene_ids, counts, sample):
    lines = [
        f'# Program:featureCounts v2.0.1; Command:"featureCounts" "-a" '
        f'"gencode.v38.annotation.gtf" "-o" "{sample}.txt" "{sample}.bam"',
        "\t".join(
            ["Geneid", "Chr", "Start", "End", "Strand", "Length", f"{sample}.bam"]
        ),
    ]
    for i, (gene_id, count) in enumerate(zip(gene_ids, counts)):
        start = 10000 + i * 5000
        lines.append(
            "\t".join(
                [
                    gene_id,
                    "chr1",
                    str(start),
                    str(start + 1500),
                    "+",
                    "1500",
                    str(int(count)),
                ]
            )
        )
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_featurecounts():
    """Factory writing one featureCounts file."""

    def _write(path, gene_ids, counts, sample):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_featurecounts_text(gene_ids, counts, sample))
        return path

    return _write


@pytest.fixture
def gene_ids():
    return [f"ENSG{i:011d}.{i % 7 + 1}" for i in range(1, N_GENES + 1)]


@pytest.fixture
def count_table(gene_ids):
    """
    Genes x samples negative binomial counts.

    The first N_UP genes are 8x higher in DAC, the next N_DOWN 8x lower.
    The last two genes are all-zero and single-read genes.
    """
    rng = np.random.default_rng(42)
    means = rng.lognormal(mean=5.0, sigma=1.0, size=N_GENES)
    dispersion = 0.05
    data = {}
    for sample in DMSO_SAMPLES + DAC_SAMPLES:
        mu = means.copy()
        if sample in DAC_SAMPLES:
            mu[:N_UP] *= 8
            mu[N_UP : N_UP + N_DOWN] /= 8
        n = 1 / dispersion
        p = n / (n + mu)
        data[sample] = rng.negative_binomial(n, p)
    table = pd.DataFrame(data, index=pd.Index(gene_ids, name="gene_id"))
    table.iloc[-2] = 0
    table.iloc[-1] = 0
    table.iloc[-1, 0] = 1
    return table


@pytest.fixture
def counts_dir(tmp_path, count_table, write_featurecounts):
    folder = tmp_path / "counts"
    for sample in count_table.columns:
        write_featurecounts(
            folder / f"{sample}.featureCounts.txt",
            count_table.index,
            count_table[sample],
            sample,
        )
    return folder


@pytest.fixture
def sample_sheet(tmp_path):
    sheet = pd.DataFrame(
        {
            "sample": DMSO_SAMPLES + DAC_SAMPLES,
            "treatment": ["DMSO"] * len(DMSO_SAMPLES) + ["DAC"] * len(DAC_SAMPLES),
        }
    )
    path = tmp_path / "samples.tsv"
    sheet.to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def annotation_table(tmp_path, gene_ids):
    """gene_id/symbol table without versions; the last 50 genes are missing."""
    table = pd.DataFrame(
        {
            "gene_id": [g.split(".")[0] for g in gene_ids[:-50]],
            "symbol": [f"GENE{i}" for i in range(1, N_GENES - 49)],
        }
    )
    path = tmp_path / "annotation.tsv"
    table.to_csv(path, sep="\t", index=False)
    return path
