"""
bin_status.py

Per-sample copy-number status of fixed-width genome bins.

For each bin:
  1. If more than `frac_uncallable` of the bin lies in uncallable regions,
     the call is "uncallable".
  2. Otherwise the fraction of the bin covered by the sample's loss, neutral
     and gain segments is computed. The best covered status is called when it
     reaches `frac_threshold`; if none does, the call is "unstable".

Ties between equally covered statuses resolve by BinCallConfig.status_priority.
Overlapping segments of the same status add up (no merging).
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from cn_status.errors import ConfigurationError, CopyNumberError, ValidationError
from cn_status.intervals import IntervalIndex, bin_coverage, validate_intervals
from cn_status.logging_utils import progress_line
from cn_status.segments import STATUS_LABELS

logger = logging.getLogger("cn_status")

UNSTABLE = "unstable"
UNCALLABLE = "uncallable"
CALL_LABELS = STATUS_LABELS + (UNSTABLE, UNCALLABLE)

# Integer codes for numeric heatmap matrices; pass to status_matrix(recode=...)
DEFAULT_STATUS_CODES: Dict[str, int] = {
    "loss": -1,
    "neutral": 0,
    "gain": 1,
    UNSTABLE: 2,
    UNCALLABLE: 3,
}


@dataclass(frozen=True)
class BinCallConfig:
    frac_threshold: float = 0.75
    frac_uncallable: float = 0.75
    status_priority: Tuple[str, ...] = ("loss", "gain", "neutral")

    def __post_init__(self) -> None:
        if not (0.0 < float(self.frac_threshold) <= 1.0):
            raise ConfigurationError(f"frac_threshold must be in (0, 1]; got {self.frac_threshold}")
        if not (0.0 <= float(self.frac_uncallable) <= 1.0):
            raise ConfigurationError(f"frac_uncallable must be in [0, 1]; got {self.frac_uncallable}")
        priority = tuple(str(s) for s in self.status_priority)
        if sorted(priority) != sorted(STATUS_LABELS):
            raise ConfigurationError(
                f"status_priority must order exactly {', '.join(STATUS_LABELS)}; got {', '.join(priority)}"
            )
        object.__setattr__(self, "status_priority", priority)

    def as_dict(self) -> Dict[str, object]:
        return {
            "frac_threshold": float(self.frac_threshold),
            "frac_uncallable": float(self.frac_uncallable),
            "status_priority": list(self.status_priority),
        }


@dataclass(frozen=True)
class CohortCalls:
    calls: pd.DataFrame
    failed: List[str] = field(default_factory=list)


def _checked_bins(bins: pd.DataFrame) -> pd.DataFrame:
    checked = validate_intervals(bins, label="bins")
    empty = checked["end"] <= checked["start"]
    if empty.any():
        row = checked.index[empty][0]
        raise ValidationError(f"bins row {row}: zero-length bin")
    if "bin_index" not in checked.columns:
        checked.insert(0, "bin_index", np.arange(len(checked), dtype=np.int64))
    return checked.reset_index(drop=True)


def _as_index(intervals: pd.DataFrame | IntervalIndex | None, label: str) -> IntervalIndex:
    if intervals is None:
        return IntervalIndex()
    if isinstance(intervals, IntervalIndex):
        return intervals
    return IntervalIndex.from_frame(intervals, label=label)


def uncallable_fractions(bins: pd.DataFrame, uncallable: pd.DataFrame | IntervalIndex | None) -> np.ndarray:
    """Fraction of each bin inside uncallable regions. Sample independent."""
    checked = _checked_bins(bins)
    lengths = (checked["end"] - checked["start"]).to_numpy(dtype=float)
    covered = bin_coverage(checked, _as_index(uncallable, "uncallable"))
    return covered / lengths


def call_bin_status(
    sample_id: str,
    bins: pd.DataFrame,
    segments: pd.DataFrame,
    uncallable: pd.DataFrame | IntervalIndex | None = None,
    config: Optional[BinCallConfig] = None,
    *,
    uncallable_fraction: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """
    Call the copy-number status of every bin for one sample.

    Parameters
    ----------
    sample_id
        Sample to call; segments of other samples are ignored.
    bins
        Bin table with chrom, start, end (and optionally bin_index).
    segments
        Segment table with chrom, start, end, status (and sample_id).
    uncallable
        Uncallable regions (chrom, start, end), an IntervalIndex, or None.
    config
        Thresholds and tie-break order. Defaults to BinCallConfig().
    uncallable_fraction
        Precomputed uncallable_fractions(bins, uncallable), so a cohort run
        does the sample independent work once.

    Returns
    -------
    DataFrame in bin order with sample_id, bin_index, chrom, start, end,
    status, uncallable_fraction and one <status>_fraction column per label.

    Raises
    ------
    ValidationError for malformed bins or intervals.
    """
    if config is None:
        config = BinCallConfig()
    checked = _checked_bins(bins)
    lengths = (checked["end"] - checked["start"]).to_numpy(dtype=float)

    if uncallable_fraction is None:
        uncallable_fraction = uncallable_fractions(checked, uncallable)
    uncallable_fraction = np.asarray(uncallable_fraction, dtype=float)
    if uncallable_fraction.shape != lengths.shape:
        raise ValidationError("uncallable_fraction must have one value per bin")

    if "sample_id" in segments.columns:
        sample_segs = segments.loc[segments["sample_id"].astype(str) == str(sample_id)]
    else:
        sample_segs = segments
    if len(sample_segs) and "status" not in sample_segs.columns:
        raise ValidationError("segments table is missing column: status")

    fractions: Dict[str, np.ndarray] = {label: np.zeros(len(checked), dtype=float) for label in STATUS_LABELS}
    present = set(sample_segs["status"].unique()) if len(sample_segs) else set()
    unknown = sorted(str(s) for s in present - set(STATUS_LABELS))
    if unknown:
        raise ValidationError(f"sample {sample_id}: unknown segment status labels: {', '.join(unknown)}")
    for label in present:
        index = IntervalIndex.from_frame(
            sample_segs.loc[sample_segs["status"] == label],
            label=f"sample {sample_id} segments",
        )
        fractions[label] = bin_coverage(checked, index) / lengths

    # columns in priority order so argmax resolves ties by priority
    stacked = np.column_stack([fractions[label] for label in config.status_priority])
    best_idx = np.argmax(stacked, axis=1)
    best_frac = stacked[np.arange(len(checked)), best_idx]
    best_label = np.asarray(config.status_priority, dtype=object)[best_idx]

    status = np.where(
        (best_frac >= config.frac_threshold) & (best_frac > 0),
        best_label,
        UNSTABLE,
    ).astype(object)
    status[uncallable_fraction > config.frac_uncallable] = UNCALLABLE

    out = pd.DataFrame(
        {
            "sample_id": str(sample_id),
            "bin_index": checked["bin_index"].to_numpy(),
            "chrom": checked["chrom"].to_numpy(),
            "start": checked["start"].to_numpy(),
            "end": checked["end"].to_numpy(),
            "status": status,
            "uncallable_fraction": uncallable_fraction,
        }
    )
    for label in STATUS_LABELS:
        out[f"{label}_fraction"] = fractions[label]
    return out


def _call_sample_task(
    sample_id: str,
    bins: pd.DataFrame,
    segments: pd.DataFrame,
    config: BinCallConfig,
    uncallable_fraction: np.ndarray,
) -> pd.DataFrame:
    return call_bin_status(
        sample_id,
        bins,
        segments,
        config=config,
        uncallable_fraction=uncallable_fraction,
    )


def call_cohort(
    bins: pd.DataFrame,
    segments: pd.DataFrame,
    uncallable: pd.DataFrame | IntervalIndex | None = None,
    config: Optional[BinCallConfig] = None,
    *,
    samples: Optional[Sequence[str]] = None,
    max_workers: int = 1,
) -> CohortCalls:
    """
    Run call_bin_status for every sample.

    Samples are independent: a sample whose inputs raise CopyNumberError is
    logged, recorded in CohortCalls.failed and skipped. With max_workers > 1
    samples run in a process pool. Output rows follow the sample order.
    """
    if config is None:
        config = BinCallConfig()
    if max_workers < 1:
        raise ConfigurationError(f"max_workers must be >= 1; got {max_workers}")

    if "sample_id" not in segments.columns:
        raise ValidationError("segments table is missing column: sample_id")

    checked = _checked_bins(bins)
    frac_uncallable = uncallable_fractions(checked, uncallable)

    if samples is None:
        samples = [str(s) for s in pd.unique(segments["sample_id"].astype(str))]
    else:
        samples = [str(s) for s in samples]

    by_sample = {sid: sub for sid, sub in segments.groupby(segments["sample_id"].astype(str), sort=False)}
    empty = segments.iloc[0:0]

    results: Dict[str, pd.DataFrame] = {}
    failed: List[str] = []
    total = len(samples)
    run_start = time.perf_counter()

    def _record_failure(sid: str, err: Exception) -> None:
        logger.warning("sample %s skipped: %s", sid, err)
        failed.append(sid)

    if max_workers == 1 or total <= 1:
        for i, sid in enumerate(samples, start=1):
            try:
                results[sid] = _call_sample_task(sid, checked, by_sample.get(sid, empty), config, frac_uncallable)
            except CopyNumberError as err:
                _record_failure(sid, err)
            progress_line(logger, i=i, total=total, run_start=run_start, unit="sample")
    else:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            future_to_sample = {
                executor.submit(
                    _call_sample_task, sid, checked, by_sample.get(sid, empty), config, frac_uncallable
                ): sid
                for sid in samples
            }
            for i, future in enumerate(as_completed(future_to_sample), start=1):
                sid = future_to_sample[future]
                try:
                    results[sid] = future.result()
                except CopyNumberError as err:
                    _record_failure(sid, err)
                progress_line(logger, i=i, total=total, run_start=run_start, unit="sample")

    ordered = [results[sid] for sid in samples if sid in results]
    if ordered:
        calls = pd.concat(ordered, ignore_index=True)
    else:
        calls = pd.DataFrame(
            columns=["sample_id", "bin_index", "chrom", "start", "end", "status", "uncallable_fraction"]
            + [f"{label}_fraction" for label in STATUS_LABELS]
        )
    failed_set = set(failed)
    failed_ordered = [sid for sid in samples if sid in failed_set]
    return CohortCalls(calls=calls, failed=failed_ordered)


def status_matrix(calls: pd.DataFrame, recode: Optional[Mapping[str, object]] = None) -> pd.DataFrame:
    """
    Samples x bins matrix of calls (rows in sample order, columns bin_index).

    `recode` maps each call label to the value to place in the matrix (e.g.
    DEFAULT_STATUS_CODES for a numeric heatmap). Every label present in the
    calls must have an entry.
    """
    sample_order = list(pd.unique(calls["sample_id"]))
    matrix = calls.pivot(index="sample_id", columns="bin_index", values="status")
    matrix = matrix.reindex(sample_order)
    matrix.columns.name = "bin_index"
    if recode is None:
        return matrix

    missing = sorted(set(pd.unique(calls["status"])) - set(recode.keys()))
    if missing:
        raise ConfigurationError(f"recode mapping has no entry for: {', '.join(missing)}")
    return matrix.apply(lambda col: col.map(recode))


def summarise_calls(calls: pd.DataFrame) -> pd.DataFrame:
    """Per-sample count of bins in each call label."""
    counts = pd.crosstab(calls["sample_id"], calls["status"])
    counts = counts.reindex(columns=list(CALL_LABELS), fill_value=0)
    counts = counts.reindex(list(pd.unique(calls["sample_id"])))
    counts.columns.name = None
    return counts
