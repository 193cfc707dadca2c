import pandas as pd

from cn_status import call_bins, tidy_gistic


def _write_inputs(tmp_path):
    sizes = tmp_path / "chrom.sizes"
    sizes.write_text("chr1\t2500\nchr2\t1000\n")
    seg = tmp_path / "consensus.seg"
    seg.write_text(
        "ID\tchrom\tloc.start\tloc.end\tcopy.num\n"
        "S1\tchr1\t0\t2500\t3\n"
        "S1\tchr2\t0\t1000\t1\n"
        "S2\tchr1\t0\t1000\t2\n"
    )
    bed = tmp_path / "uncallable.bed"
    bed.write_text("chr1\t2000\t2500\n")
    return sizes, seg, bed


def test_call_bins_main_writes_outputs(tmp_path):
    sizes, seg, bed = _write_inputs(tmp_path)
    out_dir = tmp_path / "out"
    rc = call_bins.main(
        [
            "--chrom-sizes", str(sizes),
            "--segments", str(seg),
            "--uncallable", str(bed),
            "--out-dir", str(out_dir),
            "--bin-size", "1000",
        ]
    )
    assert rc == 0

    calls = pd.read_csv(out_dir / "bin_calls.tsv.gz", sep="\t")
    s1 = calls.loc[calls["sample_id"] == "S1", "status"].tolist()
    s2 = calls.loc[calls["sample_id"] == "S2", "status"].tolist()
    assert s1 == ["gain", "gain", "uncallable", "loss"]
    assert s2 == ["neutral", "unstable", "uncallable", "unstable"]

    matrix = pd.read_csv(out_dir / "status_matrix.tsv.gz", sep="\t", index_col=0)
    assert matrix.shape == (2, 4)
    assert (out_dir / "run_config.json").exists()
    assert (out_dir / "status_counts.tsv").exists()


def test_call_bins_main_unknown_chromosome(tmp_path):
    sizes, seg, _ = _write_inputs(tmp_path)
    rc = call_bins.main(
        [
            "--chrom-sizes", str(sizes),
            "--segments", str(seg),
            "--out-dir", str(tmp_path / "out"),
            "--chroms", "chr1,chr7",
        ]
    )
    assert rc == 2


def test_tidy_gistic_main(gistic_dir):
    out_dir = gistic_dir / "tidy"
    rc = tidy_gistic.main(
        [
            "--all-lesions", str(gistic_dir / "all_lesions.conf_90.txt"),
            "--amp-genes", str(gistic_dir / "amp_genes.conf_90.txt"),
            "--del-genes", str(gistic_dir / "del_genes.conf_90.txt"),
            "--out-dir", str(out_dir),
            "--histology", f"hgat={gistic_dir / 'del_genes.conf_90.txt'}",
        ]
    )
    assert rc == 0
    gene_status = pd.read_csv(out_dir / "gistic_gene_status.tsv", sep="\t")
    assert set(gene_status["gene"]) == {"GENE_A", "GENE_B", "MYC", "CDKN2A", "CDKN2B"}
    assert (out_dir / "gistic_cytoband_status.tsv").exists()
    assert (out_dir / "gistic_histology_overlap.tsv").exists()


def test_call_bins_main_ploidy_table(tmp_path):
    sizes, seg, bed = _write_inputs(tmp_path)
    ploidy = tmp_path / "ploidy.tsv"
    ploidy.write_text("Kids_First_Biospecimen_ID\ttumor_ploidy\nS1\t3\n")
    out_dir = tmp_path / "out"
    rc = call_bins.main(
        [
            "--chrom-sizes", str(sizes),
            "--segments", str(seg),
            "--uncallable", str(bed),
            "--ploidy", str(ploidy),
            "--out-dir", str(out_dir),
            "--bin-size", "1000",
        ]
    )
    assert rc == 0

    calls = pd.read_csv(out_dir / "bin_calls.tsv.gz", sep="\t")
    s1 = calls.loc[calls["sample_id"] == "S1", "status"].tolist()
    s2 = calls.loc[calls["sample_id"] == "S2", "status"].tolist()
    assert s1 == ["neutral", "neutral", "uncallable", "loss"]
    assert s2 == ["neutral", "unstable", "uncallable", "unstable"]


def test_call_bins_main_bad_ploidy_table(tmp_path):
    sizes, seg, _ = _write_inputs(tmp_path)
    ploidy = tmp_path / "ploidy.tsv"
    ploidy.write_text("sample_id\tcopies\nS1\t3\n")
    rc = call_bins.main(
        [
            "--chrom-sizes", str(sizes),
            "--segments", str(seg),
            "--ploidy", str(ploidy),
            "--out-dir", str(tmp_path / "out"),
        ]
    )
    assert rc == 2


def test_tidy_gistic_main_scores(gistic_dir):
    scores_path = gistic_dir / "scores.gistic"
    scores_path.write_text(
        "Type\tChromosome\tStart\tEnd\tq-value\tG-score\taverage amplitude\tfrequency\n"
        "Amp\t24\t1\t100\t1\t0.5\t0.1\t0.1\n"
        "Del\t9\t1\t100\t1\t0.25\t0.1\t0.1\n"
    )
    out_dir = gistic_dir / "tidy"
    rc = tidy_gistic.main(
        [
            "--all-lesions", str(gistic_dir / "all_lesions.conf_90.txt"),
            "--amp-genes", str(gistic_dir / "amp_genes.conf_90.txt"),
            "--del-genes", str(gistic_dir / "del_genes.conf_90.txt"),
            "--scores", str(scores_path),
            "--out-dir", str(out_dir),
        ]
    )
    assert rc == 0
    scores = pd.read_csv(out_dir / "gistic_scores.tsv", sep="\t", dtype={"Chromosome": str})
    assert scores["Chromosome"].tolist() == ["Y", "9"]
    assert scores["gscore"].tolist() == [0.5, -0.25]
    assert not (out_dir / "gistic_histology_overlap.tsv").exists()
