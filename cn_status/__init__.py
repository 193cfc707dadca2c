"""Copy-number bin status calling and GISTIC tidying for the PBTA cohort."""

from cn_status.bin_status import BinCallConfig, call_bin_status, call_cohort
from cn_status.errors import ConfigurationError, CopyNumberError, ValidationError
from cn_status.intervals import bp_per_bin

__all__ = [
    "BinCallConfig",
    "ConfigurationError",
    "CopyNumberError",
    "ValidationError",
    "bp_per_bin",
    "call_bin_status",
    "call_cohort",
]
