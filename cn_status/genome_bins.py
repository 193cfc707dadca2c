"""
genome_bins.py

Utilities for reading a chromosome size table and constructing genome bins.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from cn_status.contigs import canonical_primary_list, canonicalise_contig
from cn_status.errors import ConfigurationError

DEFAULT_BIN_SIZE = 1_000_000


@dataclass(frozen=True)
class ChromInfo:
    chrom: str
    length: int


def load_chrom_sizes(sizes_path: str | Path) -> pd.DataFrame:
    """
    Read a chromosome size table: `<name>\\t<size>` per line, no header.

    FASTA indexes (.fai) work as well since only the first two columns are used.
    """
    sizes_path = Path(sizes_path)
    if not sizes_path.exists():
        raise FileNotFoundError(f"Chromosome sizes not found: {sizes_path}")

    sizes = pd.read_csv(
        sizes_path,
        sep="\t",
        header=None,
        comment="#",
        usecols=[0, 1],
        names=["chrom", "length"],
        dtype={"chrom": str},
    )
    sizes["length"] = sizes["length"].astype(int)
    return sizes


def build_bins(chrom_length: int, bin_size: int) -> np.ndarray:
    """
    Returns bin edges with the last edge capped at chrom_length.

    The final bin is shorter than bin_size unless the chromosome length is an
    exact multiple of it.
    """
    if chrom_length <= 0:
        raise ConfigurationError("chrom_length must be > 0")
    if bin_size <= 0:
        raise ConfigurationError("bin_size must be > 0")

    edges = np.arange(0, chrom_length + bin_size, bin_size, dtype=np.int64)
    if edges[-1] != chrom_length:
        edges[-1] = chrom_length
    return edges


def _length_map(sizes: pd.DataFrame) -> dict[str, int]:
    if "chrom" not in sizes.columns or "length" not in sizes.columns:
        raise ConfigurationError("Chromosome size table must have columns: 'chrom' and 'length'")

    length_map: dict[str, int] = {}
    for raw_contig, raw_len in zip(sizes["chrom"].astype(str), sizes["length"].astype(int)):
        canonical = canonicalise_contig(raw_contig)
        if canonical is None:
            continue
        if canonical in length_map and length_map[canonical] != int(raw_len):
            raise ConfigurationError(
                f"Chromosome length mismatch for {canonical}: "
                f"{length_map[canonical]} vs {int(raw_len)}"
            )
        length_map[canonical] = int(raw_len)
    return length_map


def iter_chroms(sizes: pd.DataFrame, chroms: Optional[Sequence[str]] = None) -> Iterable[ChromInfo]:
    """
    Yield ChromInfo(chrom, length) for a subset of chromosomes.

    Parameters
    ----------
    sizes
        DataFrame from load_chrom_sizes() with columns 'chrom' and 'length'.
        Names may be Ensembl ("1", "X") or UCSC ("chr1", "chrX") style.
    chroms
        If provided, only yield these chromosomes (in this order).
        If None, yield every primary chromosome present in the table in
        karyotype order (chr1..chr22, chrX, chrY).

    Raises
    ------
    ConfigurationError if a requested chromosome is not in the size table.
    """
    length_map = _length_map(sizes)

    if chroms is None:
        chroms = [c for c in canonical_primary_list() if c in length_map]

    requested: list[str] = []
    seen: set[str] = set()
    for req in chroms:
        canonical = canonicalise_contig(req)
        if canonical is None:
            raise ConfigurationError(f"Chromosome '{req}' is not a primary canonical contig.")
        if canonical not in seen:
            seen.add(canonical)
            requested.append(canonical)

    for canonical in requested:
        if canonical not in length_map:
            raise ConfigurationError(f"Chromosome '{canonical}' not found in chromosome size table.")
        yield ChromInfo(chrom=canonical, length=int(length_map[canonical]))


def make_bin_table(
    sizes: pd.DataFrame,
    bin_size: int = DEFAULT_BIN_SIZE,
    chroms: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Partition the requested chromosomes into fixed-width bins.

    Returns columns bin_index, chrom, start, end (0-based, half-open) with
    bin_index running genome-wide in partition order.
    """
    parts: list[pd.DataFrame] = []
    for info in iter_chroms(sizes, chroms):
        edges = build_bins(info.length, bin_size)
        parts.append(
            pd.DataFrame(
                {
                    "chrom": info.chrom,
                    "start": edges[:-1],
                    "end": edges[1:],
                }
            )
        )

    if not parts:
        return pd.DataFrame(
            {
                "bin_index": pd.Series(dtype=np.int64),
                "chrom": pd.Series(dtype=object),
                "start": pd.Series(dtype=np.int64),
                "end": pd.Series(dtype=np.int64),
            }
        )

    bins = pd.concat(parts, ignore_index=True)
    bins.insert(0, "bin_index", np.arange(len(bins), dtype=np.int64))
    return bins
