import pandas as pd
import pytest

from cn_status.contigs import canonicalise_contig
from cn_status.errors import ConfigurationError
from cn_status.genome_bins import build_bins, iter_chroms, load_chrom_sizes, make_bin_table


def test_build_bins_caps_last_edge():
    assert build_bins(2_500, 1_000).tolist() == [0, 1_000, 2_000, 2_500]
    assert build_bins(2_000, 1_000).tolist() == [0, 1_000, 2_000]


def test_build_bins_rejects_bad_sizes():
    with pytest.raises(ConfigurationError):
        build_bins(0, 1_000)
    with pytest.raises(ConfigurationError):
        build_bins(1_000, 0)


def test_canonicalise_contig_aliases():
    assert canonicalise_contig("1") == "chr1"
    assert canonicalise_contig("chrX") == "chrX"
    assert canonicalise_contig("23") == "chrX"
    assert canonicalise_contig("24") == "chrY"
    assert canonicalise_contig("MT") is None
    assert canonicalise_contig("GL000192.1") is None


def test_load_chrom_sizes_accepts_fai(tmp_path):
    fai = tmp_path / "ref.fa.fai"
    fai.write_text("chr1\t2500\t6\t60\t61\nchr2\t1000\t2600\t60\t61\nchrM\t16569\t3700\t60\t61\n")
    sizes = load_chrom_sizes(fai)
    assert sizes["chrom"].tolist() == ["chr1", "chr2", "chrM"]
    assert sizes["length"].tolist() == [2500, 1000, 16569]


def test_iter_chroms_defaults_to_primary_in_karyotype_order():
    sizes = pd.DataFrame({"chrom": ["X", "2", "1", "MT"], "length": [300, 200, 100, 50]})
    assert [c.chrom for c in iter_chroms(sizes)] == ["chr1", "chr2", "chrX"]


def test_iter_chroms_missing_chromosome_is_configuration_error():
    sizes = pd.DataFrame({"chrom": ["chr1"], "length": [100]})
    with pytest.raises(ConfigurationError, match="chr5"):
        list(iter_chroms(sizes, ["chr1", "5"]))


def test_make_bin_table_indexes_genome_wide():
    sizes = pd.DataFrame({"chrom": ["chr1", "chr2"], "length": [2_500, 1_000]})
    bins = make_bin_table(sizes, bin_size=1_000)
    assert bins["bin_index"].tolist() == [0, 1, 2, 3]
    assert bins["chrom"].tolist() == ["chr1", "chr1", "chr1", "chr2"]
    assert bins["end"].tolist() == [1_000, 2_000, 2_500, 1_000]
