"""Run configuration helpers for bin calling."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from cn_status.bin_status import BinCallConfig
from cn_status.errors import ConfigurationError
from cn_status.genome_bins import DEFAULT_BIN_SIZE

CONFIG_KEYS = ("frac_threshold", "frac_uncallable", "status_priority", "bin_size")


def parse_csv_list(raw: Union[str, Sequence[str], None]) -> Optional[list[str]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return [tok.strip() for tok in raw.split(",") if tok.strip()]
    return [str(tok).strip() for tok in raw if str(tok).strip()]


def load_call_config(path: str | Path) -> Dict[str, Any]:
    """
    Read a JSON run config. Only CONFIG_KEYS are accepted, e.g.

        {"frac_threshold": 0.75, "frac_uncallable": 0.5, "bin_size": 1000000}
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must be a JSON object.")
    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return data


def build_call_config(
    file_values: Optional[Mapping[str, Any]] = None,
    **overrides: Any,
) -> Tuple[BinCallConfig, int]:
    """
    Merge config file values with explicit overrides (None means "not given").

    Returns (BinCallConfig, bin_size).
    """
    merged: Dict[str, Any] = dict(file_values or {})
    for key, value in overrides.items():
        if key not in CONFIG_KEYS:
            raise ConfigurationError(f"Unknown config key: {key}")
        if value is not None:
            merged[key] = value

    kwargs: Dict[str, Any] = {}
    try:
        if "frac_threshold" in merged:
            kwargs["frac_threshold"] = float(merged["frac_threshold"])
        if "frac_uncallable" in merged:
            kwargs["frac_uncallable"] = float(merged["frac_uncallable"])
        bin_size = int(merged.get("bin_size", DEFAULT_BIN_SIZE))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric config value: {e}") from e
    if "status_priority" in merged:
        kwargs["status_priority"] = tuple(parse_csv_list(merged["status_priority"]) or ())

    if bin_size <= 0:
        raise ConfigurationError(f"bin_size must be > 0; got {bin_size}")
    return BinCallConfig(**kwargs), bin_size
