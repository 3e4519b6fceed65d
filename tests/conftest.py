"""Shared fixtures: the repository config and a copy redirected into tmp_path."""

import copy
import sys
from pathlib import Path

import pytest
import yaml

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def base_config() -> dict:
    with open(REPO_ROOT / "config.yaml", "r") as fh:
        return yaml.safe_load(fh)


@pytest.fixture
def tmp_config(tmp_path, base_config) -> Path:
    """Write config.yaml to tmp_path with every output path under tmp_path."""
    cfg = copy.deepcopy(base_config)
    for key, value in cfg["paths"].items():
        if key.endswith("_file") or key.endswith("_dir"):
            cfg["paths"][key] = str(tmp_path / value)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg, sort_keys=False), encoding="utf-8")
    return path
