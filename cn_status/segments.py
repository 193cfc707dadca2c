"""
segments.py

Load consensus copy-number segments and uncallable regions into the
interval tables used for bin calling.

Segment output columns: sample_id, chrom, start, end, status
Uncallable output columns: chrom, start, end
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from cn_status.contigs import canonicalise_column
from cn_status.errors import ValidationError
from cn_status.intervals import validate_intervals

logger = logging.getLogger("cn_status")

STATUS_LABELS = ("loss", "neutral", "gain")
DEFAULT_PLOIDY = 2

# Accepted input headers -> internal column name
COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "sample_id": ("sample_id", "ID", "Kids_First_Biospecimen_ID", "biospecimen_id"),
    "chrom": ("chrom", "chr", "chromosome", "Chromosome"),
    "start": ("start", "loc.start", "Start"),
    "end": ("end", "loc.end", "End"),
    "copy_number": ("copy_number", "copy.num", "copy_num"),
    "ploidy": ("ploidy", "tumor_ploidy"),
    "status": ("status",),
}


def _resolve_columns(df: pd.DataFrame, wanted: Sequence[str]) -> Dict[str, str]:
    resolved: Dict[str, str] = {}
    for key in wanted:
        for alias in COLUMN_ALIASES[key]:
            if alias in df.columns:
                resolved[key] = alias
                break
    return resolved


def status_from_copy_number(copy_number, ploidy) -> np.ndarray:
    """
    Vectorised status: below ploidy -> loss, above -> gain, equal -> neutral.

    Missing copy numbers are neutral; consensus SEG files leave neutral
    stretches as NA.
    """
    cn = pd.to_numeric(pd.Series(copy_number), errors="coerce").to_numpy(dtype=float)
    pl = np.broadcast_to(np.asarray(ploidy, dtype=float), cn.shape)
    status = np.full(cn.shape, "neutral", dtype=object)
    known = np.isfinite(cn)
    status[known & (cn < pl)] = "loss"
    status[known & (cn > pl)] = "gain"
    return status


def _drop_noncanonical(df: pd.DataFrame, label: str) -> pd.DataFrame:
    canon = canonicalise_column(df["chrom"])
    dropped = int(canon.isna().sum())
    if dropped:
        logger.debug("%s: dropped %d rows on non-primary contigs", label, dropped)
    out = df.loc[canon.notna()].copy()
    out["chrom"] = canon[canon.notna()].astype(str)
    return out


def segments_from_frame(
    df: pd.DataFrame,
    ploidy: Optional[Mapping[str, float]] = None,
    default_ploidy: float = DEFAULT_PLOIDY,
) -> pd.DataFrame:
    """
    Turn a SEG-like frame into labelled segments.

    A `status` column is used as-is when present. Otherwise status is derived
    from copy number against ploidy, taken (in order of preference) from a
    ploidy column, the `ploidy` mapping of sample_id -> ploidy, or
    `default_ploidy`.
    """
    cols = _resolve_columns(df, ["sample_id", "chrom", "start", "end", "copy_number", "ploidy", "status"])
    required = ["sample_id", "chrom", "start", "end"]
    missing = [k for k in required if k not in cols]
    if missing:
        raise ValidationError(f"Segment table is missing columns: {', '.join(missing)}")
    if "status" not in cols and "copy_number" not in cols:
        raise ValidationError("Segment table needs either a 'status' or a copy number column.")

    out = pd.DataFrame(
        {
            "sample_id": df[cols["sample_id"]].astype(str).to_numpy(),
            "chrom": df[cols["chrom"]].to_numpy(),
            "start": df[cols["start"]].to_numpy(),
            "end": df[cols["end"]].to_numpy(),
        },
        index=df.index,
    )

    if "status" in cols:
        status = df[cols["status"]].astype(str).str.strip().str.lower()
        unknown = sorted(set(status) - set(STATUS_LABELS))
        if unknown:
            raise ValidationError(f"Unknown segment status labels: {', '.join(unknown)}")
        out["status"] = status.to_numpy()
    else:
        if "ploidy" in cols:
            sample_ploidy = pd.to_numeric(df[cols["ploidy"]], errors="coerce").fillna(default_ploidy)
        elif ploidy is not None:
            sample_ploidy = out["sample_id"].map(ploidy).astype(float).fillna(default_ploidy)
        else:
            sample_ploidy = pd.Series(float(default_ploidy), index=df.index)
        out["status"] = status_from_copy_number(df[cols["copy_number"]].to_numpy(), sample_ploidy.to_numpy())

    out = _drop_noncanonical(out, "segments")
    return out.reset_index(drop=True)


def load_consensus_segments(
    seg_path: str | Path,
    ploidy: Optional[Mapping[str, float]] = None,
    default_ploidy: float = DEFAULT_PLOIDY,
) -> pd.DataFrame:
    """Read a consensus SEG file (tab-separated, gzip allowed)."""
    seg_path = Path(seg_path)
    if not seg_path.exists():
        raise FileNotFoundError(f"Segment file not found: {seg_path}")
    raw = pd.read_csv(seg_path, sep="\t", dtype={"chrom": str})
    segs = segments_from_frame(raw, ploidy=ploidy, default_ploidy=default_ploidy)
    logger.info(
        "loaded %d segments for %d samples from %s",
        len(segs),
        segs["sample_id"].nunique(),
        seg_path.name,
    )
    return segs


def load_ploidy_table(ploidy_path: str | Path) -> Dict[str, float]:
    """
    Read a sample -> ploidy table (tab-separated, with header).

    Sample and ploidy columns are matched by the same aliases as the SEG
    reader (e.g. Kids_First_Biospecimen_ID / tumor_ploidy).
    """
    ploidy_path = Path(ploidy_path)
    if not ploidy_path.exists():
        raise FileNotFoundError(f"Ploidy table not found: {ploidy_path}")
    raw = pd.read_csv(ploidy_path, sep="\t", dtype=str)
    cols = _resolve_columns(raw, ["sample_id", "ploidy"])
    missing = [k for k in ("sample_id", "ploidy") if k not in cols]
    if missing:
        raise ValidationError(f"{ploidy_path.name}: ploidy table is missing columns: {', '.join(missing)}")

    values = pd.to_numeric(raw[cols["ploidy"]], errors="coerce")
    bad = values.isna() | (values <= 0)
    if bad.any():
        row = raw.index[bad][0]
        raise ValidationError(f"{ploidy_path.name} row {row}: ploidy must be a positive number")
    table = dict(zip(raw[cols["sample_id"]].astype(str).str.strip(), values.astype(float)))
    logger.info("loaded ploidy for %d samples from %s", len(table), ploidy_path.name)
    return table


def load_uncallable_regions(bed_path: str | Path) -> pd.DataFrame:
    """
    Read uncallable regions from a BED-like file (chrom, start, end, ...).

    A header line is tolerated when its first field is not a chromosome.
    """
    bed_path = Path(bed_path)
    if not bed_path.exists():
        raise FileNotFoundError(f"Uncallable region file not found: {bed_path}")

    raw = pd.read_csv(
        bed_path,
        sep="\t",
        header=None,
        comment="#",
        usecols=[0, 1, 2],
        names=["chrom", "start", "end"],
        dtype=str,
    )
    if len(raw) and not str(raw.iloc[0]["start"]).strip().isdigit():
        raw = raw.iloc[1:]
    regions = _drop_noncanonical(raw, "uncallable")
    regions = validate_intervals(regions, label="uncallable").reset_index(drop=True)
    logger.info("loaded %d uncallable regions from %s", len(regions), bed_path.name)
    return regions
