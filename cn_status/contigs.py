"""
contigs.py

Chromosome name handling. Everything downstream works on UCSC-style primary
contigs so segment, uncallable and size tables can be compared directly.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

# GISTIC and some SEG exports number the sex chromosomes
_NUMERIC_SEX = {"23": "X", "24": "Y"}


def canonical_primary_list() -> list[str]:
    return [f"chr{i}" for i in range(1, 23)] + ["chrX", "chrY"]


def canonicalise_contig(contig: str) -> Optional[str]:
    """
    Map a contig name to canonical UCSC-style primary contigs.

    Returns:
      - "chr1".."chr22","chrX","chrY" for primary contigs
      - None for mitochondrial (MT/chrM) and non-primary contigs
    """
    if contig is None:
        return None
    c = str(contig).strip()
    if not c:
        return None

    cu = c.upper()
    if cu.startswith("CHR"):
        core = cu[3:]
    else:
        core = cu

    if core in ("M", "MT"):
        return None

    core = _NUMERIC_SEX.get(core, core)

    if core.isdigit():
        num = int(core)
        if 1 <= num <= 22:
            return f"chr{num}"
        return None

    if core in ("X", "Y"):
        return f"chr{core}"

    return None


def canonicalise_column(values: pd.Series) -> pd.Series:
    """Canonicalise a chromosome column; non-primary contigs become NaN."""
    as_str = values.astype(str)
    lookup = {raw: canonicalise_contig(raw) for raw in pd.unique(as_str)}
    return as_str.map(lookup)
