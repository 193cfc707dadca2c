import pytest

from cn_status.gistic import (
    compare_gene_sets,
    compare_histologies,
    format_gistic_genes,
    format_gistic_scores,
    prepare_cytoband_level_gistic,
    prepare_gene_level_gistic,
    read_all_lesions,
    status_from_gistic_value,
)


def test_format_gistic_genes_long_form(gistic_dir):
    genes = format_gistic_genes(gistic_dir / "amp_genes.conf_90.txt")
    assert genes.columns.tolist() == ["cytoband", "q value", "residual q value", "wide peak boundaries", "gene"]
    assert sorted(genes["gene"]) == ["GENE_A", "GENE_B", "MYC"]
    myc = genes.loc[genes["gene"] == "MYC"].iloc[0]
    assert myc["cytoband"] == "8q24.21"
    assert myc["wide peak boundaries"] == "chr8:300-400"
    assert myc["q value"] == pytest.approx(0.5)


def test_format_gistic_genes_only(gistic_dir):
    genes = format_gistic_genes(gistic_dir / "del_genes.conf_90.txt", genes_only=True)
    assert genes.columns.tolist() == ["gene"]
    assert genes["gene"].tolist() == ["CDKN2A", "CDKN2B"]


def test_read_all_lesions_keeps_cn_values_half(gistic_dir):
    lesions = read_all_lesions(gistic_dir / "all_lesions.conf_90.txt")
    assert len(lesions) == 3
    assert all(name.endswith("- CN values") for name in lesions["Unique Name"])
    assert not any(str(c).startswith("Unnamed") for c in lesions.columns)


def test_status_from_gistic_value():
    assert status_from_gistic_value([-0.3, 0, 1.2]).tolist() == ["loss", "neutral", "gain"]


def test_prepare_gene_level_gistic(gistic_dir):
    peaks, gene_status = prepare_gene_level_gistic(
        gistic_dir / "all_lesions.conf_90.txt",
        gistic_dir / "amp_genes.conf_90.txt",
        gistic_dir / "del_genes.conf_90.txt",
        residual_q_threshold=0.1,
    )
    assert peaks.columns.tolist() == [
        "gene",
        "detection_peak",
        "cytoband",
        "wide peak boundaries",
        "q value",
        "residual q value",
    ]
    assert len(peaks) == 5
    cdkn2a = peaks.loc[peaks["gene"] == "CDKN2A"].iloc[0]
    assert cdkn2a["detection_peak"] == "Deletion Peak   1"

    assert gene_status.columns.tolist() == ["gene", "Kids_First_Biospecimen_ID", "status"]
    assert "MYC" not in set(gene_status["gene"])
    calls = {(r.gene, r.Kids_First_Biospecimen_ID): r.status for r in gene_status.itertuples()}
    assert calls[("GENE_A", "BS_A")] == "gain"
    assert calls[("GENE_B", "BS_B")] == "neutral"
    assert calls[("CDKN2B", "BS_A")] == "loss"
    assert len(gene_status) == 8


def test_prepare_cytoband_level_gistic(gistic_dir):
    cytobands = prepare_cytoband_level_gistic(gistic_dir / "all_lesions.conf_90.txt")
    assert cytobands.columns.tolist() == ["cytoband", "Kids_First_Biospecimen_ID", "status"]
    assert len(cytobands) == 6
    rows = {(r.cytoband, r.Kids_First_Biospecimen_ID): r.status for r in cytobands.itertuples()}
    assert rows[("1q21.3", "BS_A")] == "gain"
    assert rows[("8q24.21", "BS_B")] == "loss"
    assert rows[("9p21.3", "BS_B")] == "neutral"


def test_format_gistic_scores(tmp_path):
    path = tmp_path / "scores.gistic"
    path.write_text(
        "Type\tChromosome\tStart\tEnd\tq-value\tG-score\taverage amplitude\tfrequency\n"
        "Amp\t1\t1\t100\t1\t0.5\t0.1\t0.1\n"
        "Del\t23\t1\t100\t1\t0.3\t0.1\t0.1\n"
    )
    scores = format_gistic_scores(path)
    assert scores["Chromosome"].tolist() == ["1", "X"]
    assert scores["gscore"].tolist() == pytest.approx([0.5, -0.3])


def test_compare_gene_sets():
    overlap = compare_gene_sets(["A", "B", "C"], ["B", "C", "D"], "lgat_genes")
    assert overlap.shared == frozenset({"B", "C"})
    assert overlap.counts() == {
        "histology": "lgat_genes",
        "n_shared": 2,
        "n_cohort_only": 1,
        "n_histology_only": 1,
    }


def test_compare_histologies(gistic_dir):
    table = compare_histologies(
        gistic_dir / "amp_genes.conf_90.txt",
        {"hgat": gistic_dir / "del_genes.conf_90.txt"},
    )
    assert table.to_dict("records") == [
        {"histology": "hgat", "n_shared": 0, "n_cohort_only": 3, "n_histology_only": 2}
    ]
