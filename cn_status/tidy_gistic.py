"""
tidy_gistic.py

Write tidy gene and cytoband level tables from a GISTIC run.

Outputs (in --out-dir)
----------------------
- gistic_gene_peak_mapping.tsv: gene -> detection peak, cytoband, boundaries, q values
- gistic_gene_status.tsv: gene, biospecimen, status
- gistic_cytoband_status.tsv: cytoband, biospecimen, status
- gistic_histology_overlap.tsv: cohort vs histology gene overlap counts (with --histology)
- gistic_scores.tsv: G-scores with deletions negated and X/Y recoded (with --scores)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from cn_status.errors import CopyNumberError
from cn_status.gistic import (
    compare_histologies,
    format_gistic_scores,
    prepare_cytoband_level_gistic,
    prepare_gene_level_gistic,
)
from cn_status.io_utils import ensure_dir, save_df
from cn_status.logging_utils import log_kv, log_section, setup_logging

logger = logging.getLogger("cn_status")


def _parse_histologies(values: Optional[Sequence[str]]) -> Dict[str, Path]:
    out: Dict[str, Path] = {}
    for item in values or []:
        label, sep, path = item.partition("=")
        if not sep or not label.strip() or not path.strip():
            raise ValueError(f"--histology expects LABEL=PATH; got '{item}'")
        out[label.strip()] = Path(path.strip())
    return out


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Tidy GISTIC outputs into gene and cytoband level tables.")
    parser.add_argument("--all-lesions", type=Path, required=True, help="all_lesions.conf_90.txt")
    parser.add_argument("--amp-genes", type=Path, required=True, help="amp_genes.conf_90.txt")
    parser.add_argument("--del-genes", type=Path, required=True, help="del_genes.conf_90.txt")
    parser.add_argument("--scores", type=Path, default=None, help="scores.gistic (optional)")
    parser.add_argument("--out-dir", type=Path, default=Path("results/gistic"), help="Output directory")
    parser.add_argument(
        "--residual-q-threshold",
        type=float,
        default=1.0,
        help="Keep gene status rows from peaks with residual q value below this",
    )
    parser.add_argument("--sample-prefix", type=str, default="BS", help="Prefix of biospecimen columns")
    parser.add_argument(
        "--histology",
        action="append",
        default=None,
        help="LABEL=amp_or_del_genes.conf_90.txt of a histology run to compare against --amp-genes; repeatable",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable INFO logging")

    args = parser.parse_args(argv)
    setup_logging(level=logging.INFO if args.verbose else logging.WARNING, logger_name="cn_status", force=True)

    try:
        histologies = _parse_histologies(args.histology)
    except ValueError as e:
        parser.error(str(e))

    out_dir = ensure_dir(args.out_dir)
    try:
        peak_assignment, gene_status = prepare_gene_level_gistic(
            args.all_lesions,
            args.amp_genes,
            args.del_genes,
            residual_q_threshold=args.residual_q_threshold,
            sample_prefix=args.sample_prefix,
        )
        cytoband_status = prepare_cytoband_level_gistic(args.all_lesions, sample_prefix=args.sample_prefix)
        overlap = compare_histologies(args.amp_genes, histologies) if histologies else None
        scores = format_gistic_scores(args.scores) if args.scores else None
    except CopyNumberError as e:
        logger.error("%s", e)
        return 2

    save_df(peak_assignment, out_dir / "gistic_gene_peak_mapping.tsv")
    save_df(gene_status, out_dir / "gistic_gene_status.tsv")
    save_df(cytoband_status, out_dir / "gistic_cytoband_status.tsv")
    if overlap is not None:
        save_df(overlap, out_dir / "gistic_histology_overlap.tsv")
    if scores is not None:
        save_df(scores, out_dir / "gistic_scores.tsv")

    log_section(logger, "GISTIC tidy")
    log_kv(logger, "genes", f"{peak_assignment['gene'].nunique():,}")
    log_kv(logger, "gene_status_rows", f"{len(gene_status):,}")
    log_kv(logger, "cytoband_rows", f"{len(cytoband_status):,}")
    log_kv(logger, "out_dir", str(out_dir))
    return 0


if __name__ == "__main__":
    sys.exit(main())
