from __future__ import annotations

import copy
from pathlib import Path
from typing import Dict, Optional

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "data_dir": "./data",
    "export_dir": "./exports",
    "output_modules": {
        "csv": "finvue.outputs.csv_output.CSVOutput",
        "excel": "finvue.outputs.excel_output.ExcelOutput",
    },
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, object]:
    """Read the YAML settings file, filling in anything it leaves out."""
    if path is None or not Path(path).exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping.")
    return _merge_defaults(data, DEFAULT_CONFIG)
