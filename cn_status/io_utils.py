"""
io_utils.py

Small helpers for saving results and run artefacts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import json
import pandas as pd

_TSV_SUFFIXES = {".tsv", ".txt", ".seg"}


def ensure_dir(p: str | Path) -> Path:
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def save_json(obj: Dict[str, Any], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _table_suffix(path: Path) -> str:
    # results.tsv.gz -> .tsv; compression is inferred by pandas
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] in {".gz", ".bz2", ".xz", ".zip"}:
        suffixes = suffixes[:-1]
    return suffixes[-1] if suffixes else ""


def save_df(df: pd.DataFrame, path: str | Path, index: bool = False) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = _table_suffix(path)
    if suffix in _TSV_SUFFIXES:
        df.to_csv(path, sep="\t", index=index)
    elif suffix == ".csv":
        df.to_csv(path, index=index)
    else:
        # default parquet
        df.to_parquet(path, index=index)
