import json

import pytest

from cn_status.config import build_call_config, load_call_config, parse_csv_list
from cn_status.errors import ConfigurationError


def test_build_call_config_defaults():
    config, bin_size = build_call_config()
    assert bin_size == 1_000_000
    assert config.frac_threshold == 0.75
    assert config.frac_uncallable == 0.75
    assert config.status_priority == ("loss", "gain", "neutral")


def test_overrides_win_over_file_values(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"frac_threshold": 0.6, "bin_size": 500000, "status_priority": "gain,loss,neutral"}))
    config, bin_size = build_call_config(load_call_config(path), frac_threshold=0.9, bin_size=None)
    assert config.frac_threshold == 0.9
    assert bin_size == 500_000
    assert config.status_priority == ("gain", "loss", "neutral")


def test_unknown_config_key(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"frac_treshold": 0.6}))
    with pytest.raises(ConfigurationError, match="frac_treshold"):
        load_call_config(path)


def test_invalid_bin_size():
    with pytest.raises(ConfigurationError):
        build_call_config(bin_size=0)


def test_parse_csv_list():
    assert parse_csv_list(None) is None
    assert parse_csv_list(" chr1, chr2 ,,") == ["chr1", "chr2"]
