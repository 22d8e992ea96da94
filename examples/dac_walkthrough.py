# %% [markdown]
# # Differential expression: DAC vs DMSO
#
# Walkthrough of a two-group RNA-seq comparison on featureCounts output.
# Each sample was treated either with decitabine (DAC) or with the DMSO
# vehicle. The steps are:
#
# 1. read the per-sample count files and tag them with sample and treatment
# 2. pivot to a gene x sample count matrix plus sample metadata
# 3. build the DESeq2 dataset (design `~treatment`)
# 4. drop genes with at most one read in total
# 5. VST and PCA for a look at the samples
# 6. fit the negative binomial GLM and test DAC vs DMSO
# 7. attach gene symbols
# 8. flag significant genes, MA plot and volcano plot

# %%
from pathlib import Path

import matplotlib.pyplot as plt

from dac_rnaseq.core.annotation import annotate_results, read_annotation_table
from dac_rnaseq.core.counts import (
    assign_treatments,
    discover_count_files,
    filter_low_count_genes,
    load_count_records,
    pivot_count_records,
    read_sample_sheet,
)
from dac_rnaseq.core.deseq import (
    build_deseq_dataset,
    differential_expression,
    fit_deseq,
    variance_stabilize,
)
from dac_rnaseq.core.exploration import manual_pca, sample_pca
from dac_rnaseq.core.plots import plot_ma, plot_pca, volcano_plot
from dac_rnaseq.core.results import shape_results, summarize_results, top_genes
from dac_rnaseq.services.io import save_figure, write_results

COUNTS_DIR = Path("incoming/counts")
SAMPLE_SHEET = Path("incoming/samples.tsv")
# set to None to query org.Hs.eg.db through R instead
ANNOTATION_TABLE = Path("incoming/gene_symbols.tsv")
OUTPUT_DIR = Path("results/walkthrough")

# %% [markdown]
# ## 1. Count files
#
# featureCounts writes one table per sample. The sample id (SRR accession)
# is part of the file name; the sample sheet says which treatment it got.

# %%
sheet = read_sample_sheet(SAMPLE_SHEET)
files = discover_count_files(COUNTS_DIR, "*.txt")
sample_files = assign_treatments(files, sheet)
records = load_count_records(sample_files)
records.head()

# %% [markdown]
# ## 2. Count matrix and metadata
#
# The matrix columns and the metadata rows come out in the same order,
# DMSO samples first so that DMSO is the reference level.

# %%
count_matrix, metadata = pivot_count_records(records, reference="DMSO")
print(count_matrix.shape)
metadata

# %% [markdown]
# ## 3./4. DESeq2 dataset and pre-filtering

# %%
count_matrix = filter_low_count_genes(count_matrix, min_total=1)
dds = build_deseq_dataset(count_matrix, metadata, design="~treatment")

# %% [markdown]
# ## 5. Sample-level exploration
#
# The VST is computed blind to the design. `sample_pca` follows DESeq2's
# `plotPCA` (top 500 variable genes); `manual_pca` uses every gene.

# %%
vst = variance_stabilize(dds, blind=True)

coordinates, variance = sample_pca(vst, metadata, ntop=500)
fig = plot_pca(coordinates, variance, title="PCA (top 500 genes)")
save_figure(fig, OUTPUT_DIR, "pca", formats=[".png"])

coordinates, variance = manual_pca(vst, metadata)
fig = plot_pca(coordinates, variance, title="PCA (all genes)")
save_figure(fig, OUTPUT_DIR, "pca_all_genes", formats=[".png"])
plt.show()

# %% [markdown]
# ## 6. Model fit and Wald test

# %%
fit_deseq(dds)
results = differential_expression(dds, "treatment", treated="DAC", reference="DMSO")
results.head()

# %% [markdown]
# ## 7. Gene symbols
#
# Ensembl ids lose their version suffix before the lookup. Genes without a
# symbol keep an empty symbol.

# %%
if ANNOTATION_TABLE is not None:
    lookup = read_annotation_table(ANNOTATION_TABLE)
else:
    from dac_rnaseq.r_integration.annotation_wrapper import orgdb_lookup

    lookup = orgdb_lookup(orgdb="org.Hs.eg.db")
annotated = annotate_results(results, lookup)

# %% [markdown]
# ## 8. Significance, MA and volcano plots
#
# Significant: padj < 0.05 and |log2FC| >= 1. Genes without an adjusted
# p-value are never significant.

# %%
shaped = shape_results(annotated, padj_threshold=0.05, lfc_threshold=1.0)
print(summarize_results(shaped))
top_genes(shaped, n=10)

# %%
fig = plot_ma(shaped, title="MA plot: DAC vs DMSO")
save_figure(fig, OUTPUT_DIR, "ma_plot", formats=[".png"])

fig, ax = volcano_plot(
    shaped.set_index("gene_id"),
    log_fc_column="log2FoldChange",
    y_column="padj",
    name_column="symbol",
    top_n_labels=15,
    title="Volcano: DAC vs DMSO",
)
save_figure(fig, OUTPUT_DIR, "volcano", formats=[".png"])
plt.show()

# %%
write_results(shaped, OUTPUT_DIR / "deseq2_results.tsv")
