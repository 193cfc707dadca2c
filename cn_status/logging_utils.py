from __future__ import annotations

import logging
from pathlib import Path
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Mapping

import pandas as pd


def setup_logging(
    *,
    level: int = logging.INFO,
    logger_name: str = "cn_status",
    force: bool = True,
) -> logging.Logger:
    """
    Configure logging for compact console output without colors.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="[%X]",
        force=force,
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    return logger


def _fmt_int(n: int) -> str:
    return f"{n:,}"


def _fmt_s(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    m = int(seconds // 60)
    s = seconds - 60 * m
    return f"{m}m{s:04.1f}s"


def log_section(logger: logging.Logger, title: str) -> None:
    logger.info("%s", title)


def log_kv(logger: logging.Logger, key: str, value: str) -> None:
    logger.info("  %-20s %s", f"{key}:", value)


@contextmanager
def timed(logger: logging.Logger, label: str) -> Iterator[None]:
    t0 = time.perf_counter()
    logger.info("START %s ...", label)
    try:
        yield
    finally:
        dt = time.perf_counter() - t0
        logger.info("DONE %s (%s)", label, _fmt_s(dt))


def progress_line(
    logger: logging.Logger,
    *,
    i: int,
    total: int,
    run_start: float,
    every: int = 25,
    unit: str = "item",
    force: bool = False,
) -> None:
    """
    Emit a progress line every N items (or when forced).
    Includes elapsed, rate, and ETA.
    """
    if not force and i != 1 and i % every != 0 and i != total:
        return

    elapsed = time.perf_counter() - run_start
    rate = (i / elapsed) if elapsed > 0 else float("nan")
    remaining = ((total - i) / rate) if rate and rate > 0 else float("nan")

    logger.info(
        "  %s %4d/%d  elapsed=%s  rate=%.2f %s/s  eta=%s",
        unit,
        i,
        total,
        _fmt_s(elapsed),
        rate,
        unit,
        _fmt_s(remaining) if remaining == remaining else "NA",
    )


def summarise_run(
    logger: logging.Logger,
    *,
    n_samples: int,
    n_bins: int,
    failed: list[str],
    status_totals: Mapping[str, int],
    out_paths: Dict[str, str],
) -> None:
    log_section(logger, "Run summary")
    log_kv(logger, "samples_called", _fmt_int(n_samples))
    log_kv(logger, "bins_per_sample", _fmt_int(n_bins))
    log_kv(logger, "samples_failed", ",".join(failed) if failed else "none")

    total = sum(int(v) for v in status_totals.values())
    if total:
        width = max(len("Status"), *(len(k) for k in status_totals))
        logger.info("  %-*s  %12s  %7s", width, "Status", "Bins", "Frac")
        logger.info("  %-*s  %12s  %7s", width, "-" * width, "-" * 12, "-" * 7)
        for status, count in status_totals.items():
            logger.info("  %-*s  %12s  %7.4f", width, status, _fmt_int(int(count)), int(count) / total)

    log_section(logger, "Outputs")
    for key, value in out_paths.items():
        if value == "skipped":
            logger.info("  %s skipped", key)
            continue
        filename = Path(value).name
        logger.info("  %s saved", filename)


def status_totals(counts: pd.DataFrame) -> Dict[str, int]:
    """Column sums of a summarise_calls() table."""
    return {str(k): int(v) for k, v in counts.sum(axis=0).items()}
