from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = "development"

    counts_dir: Path = Path("incoming/counts")
    counts_glob: str = "*.txt"
    sample_pattern: str = r"(SRR\d+)"
    output_dir: Path = Path("results/dac_vs_dmso")

    factor: str = "treatment"
    treated: str = "DAC"
    reference: str = "DMSO"
    min_total_count: int = 1
    padj_threshold: float = 0.05
    lfc_threshold: float = 1.0
    n_cpus: int = 1

    annotation_source: str = "orgdb"
    orgdb: str = "org.Hs.eg.db"
    annotation_table: Path | None = None

    class Config:
        env_file = ".env"
        env_prefix = "DAC_RNASEQ_"


settings = Settings()
