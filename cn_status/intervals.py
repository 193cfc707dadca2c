"""
intervals.py

Base-pair overlap between genome bins and labelled intervals.

All coordinates are 0-based, half-open integers on a single chromosome.
Intervals are grouped by chromosome (IntervalIndex) before any overlap is
computed so that bins are only ever compared with intervals on their own
chromosome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

import numpy as np
import pandas as pd

from cn_status.errors import ValidationError

INTERVAL_COLUMNS = ("chrom", "start", "end")

_EMPTY = np.zeros(0, dtype=np.int64)


def validate_intervals(df: pd.DataFrame, label: str = "intervals") -> pd.DataFrame:
    """
    Check an interval table and return a copy with int64 coordinates.

    Raises ValidationError for missing columns, missing coordinates,
    negative starts or end < start. The first offending row is reported.
    """
    missing = [c for c in INTERVAL_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"{label} table is missing columns: {', '.join(missing)}")

    out = df.copy()
    for col in ("start", "end"):
        coords = pd.to_numeric(out[col], errors="coerce")
        if coords.isna().any():
            row = out.index[coords.isna()][0]
            raise ValidationError(f"{label} row {row}: non-numeric or missing '{col}' ({out.at[row, col]!r})")
        out[col] = coords.astype(np.int64)

    bad = out["end"] < out["start"]
    if bad.any():
        row = out.index[bad][0]
        raise ValidationError(
            f"{label} row {row}: end < start "
            f"({out.at[row, 'chrom']}:{out.at[row, 'start']}-{out.at[row, 'end']})"
        )
    negative = out["start"] < 0
    if negative.any():
        row = out.index[negative][0]
        raise ValidationError(f"{label} row {row}: negative start ({out.at[row, 'start']})")
    return out


def bp_per_bin(bin_start: int, bin_end: int, starts: np.ndarray, ends: np.ndarray) -> int:
    """
    Total base pairs of the intervals (starts[i], ends[i]) falling inside one bin.

    Each interval contributes max(0, min(bin_end, end) - max(bin_start, start)),
    so intervals outside the bin contribute 0 and overlapping intervals are
    counted once each.
    """
    starts = np.asarray(starts, dtype=np.int64)
    ends = np.asarray(ends, dtype=np.int64)
    if starts.size == 0:
        return 0
    overlap = np.minimum(ends, bin_end) - np.maximum(starts, bin_start)
    return int(np.clip(overlap, 0, None).sum())


def _covered_before(points: np.ndarray, sorted_starts: np.ndarray, sorted_ends: np.ndarray) -> np.ndarray:
    """
    For each x in points, sum over intervals of |[start, end) & [0, x)|.

    Uses clip(x - s, 0, e - s) == max(x - s, 0) - max(x - e, 0) for e >= s,
    evaluated with prefix sums over sorted starts and sorted ends.
    """
    cs = np.concatenate(([0], np.cumsum(sorted_starts, dtype=np.int64)))
    ce = np.concatenate(([0], np.cumsum(sorted_ends, dtype=np.int64)))
    n_s = np.searchsorted(sorted_starts, points, side="left")
    n_e = np.searchsorted(sorted_ends, points, side="left")
    return (n_s * points - cs[n_s]) - (n_e * points - ce[n_e])


def bp_per_bins(
    bin_starts: np.ndarray,
    bin_ends: np.ndarray,
    starts: np.ndarray,
    ends: np.ndarray,
) -> np.ndarray:
    """
    Vectorised bp_per_bin for many bins on one chromosome.

    Returns an int64 array aligned with bin_starts/bin_ends.
    """
    bin_starts = np.asarray(bin_starts, dtype=np.int64)
    bin_ends = np.asarray(bin_ends, dtype=np.int64)
    starts = np.asarray(starts, dtype=np.int64)
    ends = np.asarray(ends, dtype=np.int64)
    if starts.size == 0 or bin_starts.size == 0:
        return np.zeros(bin_starts.shape, dtype=np.int64)

    s_sorted = np.sort(starts)
    e_sorted = np.sort(ends)
    return _covered_before(bin_ends, s_sorted, e_sorted) - _covered_before(bin_starts, s_sorted, e_sorted)


@dataclass(frozen=True)
class IntervalIndex:
    """
    Intervals grouped by chromosome, each group sorted by start.

    Build with IntervalIndex.from_frame(); lookups for chromosomes without
    intervals return empty arrays.
    """

    by_chrom: Mapping[str, Tuple[np.ndarray, np.ndarray]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, label: str = "intervals") -> "IntervalIndex":
        checked = validate_intervals(df, label=label)
        groups: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
        for chrom, sub in checked.groupby("chrom", sort=False):
            order = np.argsort(sub["start"].to_numpy(), kind="stable")
            starts = sub["start"].to_numpy(dtype=np.int64)[order]
            ends = sub["end"].to_numpy(dtype=np.int64)[order]
            starts.setflags(write=False)
            ends.setflags(write=False)
            groups[str(chrom)] = (starts, ends)
        return cls(by_chrom=groups)

    @property
    def chroms(self) -> list[str]:
        return list(self.by_chrom.keys())

    def __len__(self) -> int:
        return int(sum(starts.size for starts, _ in self.by_chrom.values()))

    def get(self, chrom: str) -> Tuple[np.ndarray, np.ndarray]:
        return self.by_chrom.get(chrom, (_EMPTY, _EMPTY))

    def candidates(self, chrom: str, start: int, end: int) -> Tuple[np.ndarray, np.ndarray]:
        """Intervals on `chrom` that can overlap [start, end)."""
        starts, ends = self.get(chrom)
        if starts.size == 0:
            return starts, ends
        hi = int(np.searchsorted(starts, end, side="left"))
        # ends are not sorted; the running max tells us where overlap can begin
        reach = np.maximum.accumulate(ends[:hi]) if hi else ends[:0]
        lo = int(np.searchsorted(reach, start, side="right"))
        return starts[lo:hi], ends[lo:hi]

    def bp_in(self, chrom: str, start: int, end: int) -> int:
        starts, ends = self.candidates(chrom, start, end)
        return bp_per_bin(start, end, starts, ends)


def bin_coverage(bins: pd.DataFrame, index: IntervalIndex) -> np.ndarray:
    """
    Covered base pairs per bin for a bin table (columns chrom, start, end).

    Output is aligned with the rows of `bins`.
    """
    out = np.zeros(len(bins), dtype=np.int64)
    if len(bins) == 0 or len(index) == 0:
        return out
    positions = np.arange(len(bins))
    for chrom, sub in bins.groupby("chrom", sort=False):
        starts, ends = index.get(str(chrom))
        if starts.size == 0:
            continue
        rows = positions[(bins["chrom"] == chrom).to_numpy()]
        out[rows] = bp_per_bins(sub["start"].to_numpy(), sub["end"].to_numpy(), starts, ends)
    return out
