"""
call_bins.py

Call per-sample copy-number status for fixed-width genome bins.

Inputs
------
- chromosome sizes (<name>\\t<size>, or a .fai)
- consensus SEG file (ID, chrom, loc.start, loc.end, copy.num[, ploidy])
- optional sample -> ploidy table (used when the SEG file has no ploidy column)
- optional uncallable regions BED

Outputs (in --out-dir)
----------------------
- bin_calls.tsv.gz: one row per sample and bin with status and coverage fractions
- status_matrix.tsv.gz: samples x bins matrix of status labels
- status_counts.tsv: per-sample count of each status
- run_config.json: resolved settings
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from cn_status.bin_status import call_cohort, status_matrix, summarise_calls
from cn_status.config import build_call_config, load_call_config, parse_csv_list
from cn_status.errors import CopyNumberError
from cn_status.genome_bins import load_chrom_sizes, make_bin_table
from cn_status.io_utils import ensure_dir, save_df, save_json
from cn_status.logging_utils import log_kv, log_section, setup_logging, status_totals, summarise_run, timed
from cn_status.segments import load_consensus_segments, load_ploidy_table, load_uncallable_regions

logger = logging.getLogger("cn_status")


def run_bin_calling(
    *,
    chrom_sizes_path: str | Path,
    segments_path: str | Path,
    out_dir: str | Path,
    uncallable_path: Optional[str | Path] = None,
    ploidy_path: Optional[str | Path] = None,
    config_path: Optional[str | Path] = None,
    bin_size: Optional[int] = None,
    frac_threshold: Optional[float] = None,
    frac_uncallable: Optional[float] = None,
    status_priority: Optional[str] = None,
    chroms: Optional[Sequence[str]] = None,
    samples: Optional[Sequence[str]] = None,
    default_ploidy: float = 2,
    workers: int = 1,
) -> List[str]:
    """Run the whole bin calling step; returns the IDs of failed samples."""
    file_values = load_call_config(config_path) if config_path else None
    config, bin_size = build_call_config(
        file_values,
        bin_size=bin_size,
        frac_threshold=frac_threshold,
        frac_uncallable=frac_uncallable,
        status_priority=status_priority,
    )
    out_dir = ensure_dir(out_dir)

    log_section(logger, "Bin calling")
    log_kv(logger, "bin_size", f"{bin_size:,}")
    log_kv(logger, "frac_threshold", str(config.frac_threshold))
    log_kv(logger, "frac_uncallable", str(config.frac_uncallable))
    log_kv(logger, "tie_break", " > ".join(config.status_priority))

    with timed(logger, "load inputs"):
        bins = make_bin_table(load_chrom_sizes(chrom_sizes_path), bin_size=bin_size, chroms=chroms)
        ploidy = load_ploidy_table(ploidy_path) if ploidy_path else None
        segments = load_consensus_segments(segments_path, ploidy=ploidy, default_ploidy=default_ploidy)
        uncallable = load_uncallable_regions(uncallable_path) if uncallable_path else None
    log_kv(logger, "bins", f"{len(bins):,}")

    with timed(logger, "call bins"):
        result = call_cohort(bins, segments, uncallable, config, samples=samples, max_workers=workers)

    counts = summarise_calls(result.calls)
    out_paths = {
        "calls": str(out_dir / "bin_calls.tsv.gz"),
        "matrix": str(out_dir / "status_matrix.tsv.gz"),
        "counts": str(out_dir / "status_counts.tsv"),
        "config": str(out_dir / "run_config.json"),
    }
    save_df(result.calls, out_paths["calls"])
    save_df(status_matrix(result.calls), out_paths["matrix"], index=True)
    save_df(counts, out_paths["counts"], index=True)
    save_json(
        {
            **config.as_dict(),
            "bin_size": int(bin_size),
            "chrom_sizes": str(chrom_sizes_path),
            "segments": str(segments_path),
            "uncallable": str(uncallable_path) if uncallable_path else None,
            "ploidy": str(ploidy_path) if ploidy_path else None,
            "chroms": list(chroms) if chroms else None,
            "default_ploidy": float(default_ploidy),
            "failed_samples": result.failed,
        },
        out_paths["config"],
    )

    summarise_run(
        logger,
        n_samples=int(counts.shape[0]),
        n_bins=len(bins),
        failed=result.failed,
        status_totals=status_totals(counts),
        out_paths=out_paths,
    )
    return result.failed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Call copy-number status per genome bin and sample.")
    parser.add_argument("--chrom-sizes", type=str, required=True, help="Chromosome sizes table or .fai")
    parser.add_argument("--segments", type=str, required=True, help="Consensus SEG file (tsv, may be gzipped)")
    parser.add_argument("--uncallable", type=str, default=None, help="BED of uncallable regions (optional)")
    parser.add_argument(
        "--ploidy",
        type=str,
        default=None,
        help="TSV of sample_id and ploidy (optional; used when the SEG file has no ploidy column)",
    )
    parser.add_argument("--out-dir", type=str, default="results/bin_calls", help="Output directory")
    parser.add_argument("--config", type=str, default=None, help="JSON config; flags below override it")
    parser.add_argument("--bin-size", type=int, default=None, help="Bin width in bp (default 1,000,000)")
    parser.add_argument("--frac-threshold", type=float, default=None, help="Coverage needed to call a status")
    parser.add_argument(
        "--frac-uncallable",
        type=float,
        default=None,
        help="Bins with more uncallable coverage than this are called uncallable",
    )
    parser.add_argument(
        "--status-priority",
        type=str,
        default=None,
        help="Tie-break order, comma list (default: loss,gain,neutral)",
    )
    parser.add_argument("--chroms", type=str, default=None, help="Comma list of chroms or omit for all primary")
    parser.add_argument("--samples", type=str, default=None, help="Comma list of sample IDs or omit for all")
    parser.add_argument("--default-ploidy", type=float, default=2, help="Ploidy when the SEG file has none")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (samples run in parallel)")
    parser.add_argument("--verbose", action="store_true", help="Enable INFO logging")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")

    args = parser.parse_args(argv)
    log_level = logging.DEBUG if args.debug else (logging.INFO if args.verbose else logging.WARNING)
    setup_logging(level=log_level, logger_name="cn_status", force=True)

    try:
        failed = run_bin_calling(
            chrom_sizes_path=args.chrom_sizes,
            segments_path=args.segments,
            out_dir=args.out_dir,
            uncallable_path=args.uncallable,
            ploidy_path=args.ploidy,
            config_path=args.config,
            bin_size=args.bin_size,
            frac_threshold=args.frac_threshold,
            frac_uncallable=args.frac_uncallable,
            status_priority=args.status_priority,
            chroms=parse_csv_list(args.chroms),
            samples=parse_csv_list(args.samples),
            default_ploidy=args.default_ploidy,
            workers=args.workers,
        )
    except CopyNumberError as e:
        logger.error("%s", e)
        return 2

    if failed:
        logger.warning("%d sample(s) failed: %s", len(failed), ",".join(failed))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
