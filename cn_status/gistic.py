"""
gistic.py

Tidy GISTIC 2.0 outputs into long tables comparable with consensus
copy-number calls.

Handled files
-------------
- amp_genes.conf_90.txt / del_genes.conf_90.txt: one column per peak; rows
  cytoband, q value, residual q value, wide peak boundaries, then genes.
- all_lesions.conf_90.txt: one row per peak and value type, one column per
  biospecimen. Only the "- CN values" half carries the per-sample values.
- scores.gistic: G-scores per segment for amplifications and deletions.

Outputs use the cohort's biospecimen column name Kids_First_Biospecimen_ID.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Tuple

import numpy as np
import pandas as pd

from cn_status.errors import ValidationError

BIOSPECIMEN_COLUMN = "Kids_First_Biospecimen_ID"
CN_VALUES_TAG = "- CN values"

_PEAK_FIELDS = ("cytoband", "q value", "residual q value", "wide peak boundaries")


def _require_file(path: str | Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"GISTIC file not found: {path}")
    return path


def format_gistic_genes(genes_path: str | Path, genes_only: bool = False) -> pd.DataFrame:
    """
    Long table of genes per peak from amp_genes/del_genes.conf_90.txt.

    Columns: cytoband, q value, residual q value, wide peak boundaries, gene.
    With genes_only=True only the gene column is returned.
    """
    genes_path = _require_file(genes_path)
    with open(genes_path, "rt", newline="") as f:
        rows = [row for row in csv.reader(f, delimiter="\t")]
    rows = [r for r in rows if any(cell.strip() for cell in r)]
    if not rows:
        raise ValidationError(f"{genes_path.name}: empty GISTIC genes file")

    width = max(len(r) for r in rows)
    rows = [r + [""] * (width - len(r)) for r in rows]

    labels = [r[0].strip() for r in rows]
    field_rows: Dict[str, int] = {}
    for name in _PEAK_FIELDS:
        if name not in labels:
            raise ValidationError(f"{genes_path.name}: missing '{name}' row")
        field_rows[name] = labels.index(name)
    gene_rows = [i for i in range(len(rows)) if i not in field_rows.values()]

    records: List[Dict[str, object]] = []
    for col in range(1, width):
        cytoband = rows[field_rows["cytoband"]][col].strip()
        if not cytoband:
            continue
        peak = {name: rows[idx][col].strip() for name, idx in field_rows.items()}
        for i in gene_rows:
            gene = rows[i][col].strip()
            if gene:
                records.append({**peak, "gene": gene})

    genes = pd.DataFrame(records, columns=list(_PEAK_FIELDS) + ["gene"])
    for name in ("q value", "residual q value"):
        genes[name] = pd.to_numeric(genes[name], errors="coerce")

    if genes_only:
        return genes[["gene"]]
    return genes


def read_all_lesions(all_lesions_path: str | Path) -> pd.DataFrame:
    """Rows of all_lesions.conf_90.txt that hold the per-sample CN values."""
    all_lesions_path = _require_file(all_lesions_path)
    lesions = pd.read_csv(all_lesions_path, sep="\t", dtype={"Unique Name": str})
    # trailing tabs produce empty "Unnamed: N" columns
    lesions = lesions.loc[:, [c for c in lesions.columns if not str(c).startswith("Unnamed")]]
    if "Unique Name" not in lesions.columns:
        raise ValidationError(f"{all_lesions_path.name}: missing 'Unique Name' column")
    mask = lesions["Unique Name"].astype(str).str.contains(CN_VALUES_TAG, regex=False)
    return lesions.loc[mask].reset_index(drop=True)


def status_from_gistic_value(values: Iterable[float]) -> np.ndarray:
    """GISTIC CN value -> loss (<0), gain (>0) or neutral (0)."""
    v = pd.to_numeric(pd.Series(list(values)), errors="coerce").to_numpy(dtype=float)
    status = np.full(v.shape, None, dtype=object)
    status[v < 0] = "loss"
    status[v > 0] = "gain"
    status[v == 0] = "neutral"
    return status


def _sample_columns(lesions: pd.DataFrame, sample_prefix: str) -> List[str]:
    cols = [c for c in lesions.columns if str(c).startswith(sample_prefix)]
    if not cols:
        raise ValidationError(f"No biospecimen columns starting with '{sample_prefix}' in all_lesions table")
    return cols


def _lesions_long(lesions: pd.DataFrame, id_vars: List[str], sample_prefix: str) -> pd.DataFrame:
    missing = [c for c in id_vars if c not in lesions.columns]
    if missing:
        raise ValidationError(f"all_lesions table is missing columns: {', '.join(missing)}")
    long = lesions[_sample_columns(lesions, sample_prefix) + id_vars].melt(
        id_vars=id_vars,
        var_name=BIOSPECIMEN_COLUMN,
        value_name="status",
    )
    long["status"] = status_from_gistic_value(long["status"])
    return long


def _peak_direction(unique_names: pd.Series) -> pd.Series:
    lowered = unique_names.astype(str).str.lower()
    direction = pd.Series(None, index=unique_names.index, dtype=object)
    direction.loc[lowered.str.startswith("amplification")] = "amp"
    direction.loc[lowered.str.startswith("deletion")] = "del"
    return direction


def tidy_gene_level(
    lesions: pd.DataFrame,
    amp_genes: pd.DataFrame,
    del_genes: pd.DataFrame,
    residual_q_threshold: float = 1.0,
    sample_prefix: str = "BS",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    In-memory form of prepare_gene_level_gistic().

    Peaks are matched on direction (amp/del) and wide peak boundaries.
    """
    genes = pd.concat(
        [amp_genes.assign(direction="amp"), del_genes.assign(direction="del")],
        ignore_index=True,
    )

    long = _lesions_long(lesions, ["Unique Name", "Wide Peak Limits"], sample_prefix)
    # "chr1:1-2(probes 10:20)" -> "chr1:1-2"
    long["Wide Peak Limits"] = long["Wide Peak Limits"].astype(str).str.replace(r"\(.*", "", regex=True).str.strip()
    long["direction"] = _peak_direction(long["Unique Name"])

    merged = genes.merge(
        long,
        how="left",
        left_on=["direction", "wide peak boundaries"],
        right_on=["direction", "Wide Peak Limits"],
    )

    peak_assignment = merged[
        ["gene", "Unique Name", "cytoband", "wide peak boundaries", "q value", "residual q value"]
    ].rename(columns={"Unique Name": "detection_peak"})
    peak_assignment["detection_peak"] = peak_assignment["detection_peak"].str.replace(
        f" {CN_VALUES_TAG}", "", regex=False
    )
    peak_assignment = peak_assignment.drop_duplicates().reset_index(drop=True)

    # overlapping peaks can share genes; residual q values drop the weaker peak
    gene_status = merged.loc[
        merged["residual q value"] < residual_q_threshold,
        ["gene", BIOSPECIMEN_COLUMN, "status"],
    ]
    gene_status = gene_status.dropna(subset=[BIOSPECIMEN_COLUMN]).drop_duplicates().reset_index(drop=True)
    return peak_assignment, gene_status


def prepare_gene_level_gistic(
    all_lesions_path: str | Path,
    amp_genes_path: str | Path,
    del_genes_path: str | Path,
    residual_q_threshold: float = 1.0,
    sample_prefix: str = "BS",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Gene level tables from GISTIC's all_lesions, amp_genes and del_genes files.

    Returns
    -------
    peak_assignment
        gene, detection_peak, cytoband, wide peak boundaries, q value,
        residual q value (distinct rows).
    gene_status
        gene, Kids_First_Biospecimen_ID, status for peaks with residual
        q value below residual_q_threshold (distinct rows).
    """
    return tidy_gene_level(
        read_all_lesions(all_lesions_path),
        format_gistic_genes(amp_genes_path),
        format_gistic_genes(del_genes_path),
        residual_q_threshold=residual_q_threshold,
        sample_prefix=sample_prefix,
    )


def prepare_cytoband_level_gistic(all_lesions_path: str | Path, sample_prefix: str = "BS") -> pd.DataFrame:
    """cytoband, Kids_First_Biospecimen_ID, status from all_lesions.conf_90.txt."""
    long = _lesions_long(read_all_lesions(all_lesions_path), ["Descriptor"], sample_prefix)
    long = long.rename(columns={"Descriptor": "cytoband"})
    long["cytoband"] = long["cytoband"].astype(str).str.strip()
    return long[["cytoband", BIOSPECIMEN_COLUMN, "status"]]


def format_gistic_scores(scores_path: str | Path) -> pd.DataFrame:
    """
    scores.gistic with chromosome 23/24 recoded to X/Y and deletion
    G-scores negated (GISTIC's own plotting convention).
    """
    scores_path = _require_file(scores_path)
    scores = pd.read_csv(scores_path, sep="\t")
    scores.columns = [str(c).strip() for c in scores.columns]
    missing = [c for c in ("Type", "Chromosome", "G-score") if c not in scores.columns]
    if missing:
        raise ValidationError(f"{scores_path.name}: missing columns: {', '.join(missing)}")

    scores = scores.rename(columns={"G-score": "gscore"})
    scores["Chromosome"] = scores["Chromosome"].astype(str).replace({"23": "X", "24": "Y"})
    scores["gscore"] = np.where(scores["Type"].astype(str).str.strip() == "Del", -scores["gscore"], scores["gscore"])
    return scores


@dataclass(frozen=True)
class GeneSetOverlap:
    label: str
    shared: frozenset
    cohort_only: frozenset
    histology_only: frozenset

    def counts(self) -> Dict[str, object]:
        return {
            "histology": self.label,
            "n_shared": len(self.shared),
            "n_cohort_only": len(self.cohort_only),
            "n_histology_only": len(self.histology_only),
        }


def compare_gene_sets(
    cohort_genes: Iterable[str],
    histology_genes: Iterable[str],
    histology_label: str,
) -> GeneSetOverlap:
    cohort = frozenset(str(g) for g in cohort_genes)
    histology = frozenset(str(g) for g in histology_genes)
    return GeneSetOverlap(
        label=histology_label,
        shared=cohort & histology,
        cohort_only=cohort - histology,
        histology_only=histology - cohort,
    )


def compare_histologies(
    cohort_genes_path: str | Path,
    histology_genes_paths: Mapping[str, str | Path],
) -> pd.DataFrame:
    """
    Overlap counts between the cohort's amp/del genes and each histology's.

    One row per histology label: histology, n_shared, n_cohort_only,
    n_histology_only.
    """
    cohort = format_gistic_genes(cohort_genes_path, genes_only=True)["gene"]
    rows = []
    for label, path in histology_genes_paths.items():
        histology = format_gistic_genes(path, genes_only=True)["gene"]
        rows.append(compare_gene_sets(cohort, histology, label).counts())
    return pd.DataFrame(rows, columns=["histology", "n_shared", "n_cohort_only", "n_histology_only"])
