"""
Shared pytest fixtures for the Vision pipeline tests.

Provides:
- A VisionConfig rooted in a temporary directory
- Helpers that write raw CSV exports and JSONL intermediates
"""

import importlib.util
import json
import os
from pathlib import Path

import pytest

from vision.config import VisionConfig

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep VISION_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("VISION_") or name == "LOG_LEVEL":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(tmp_path) -> VisionConfig:
    return VisionConfig(
        raw_dir=str(tmp_path / "rawData"),
        intermediate_dir=str(tmp_path / "intermediate"),
        processed_dir=str(tmp_path / "processed"),
        dictionary_dir=str(tmp_path / "dictionary"),
    )


@pytest.fixture
def write_raw(config):
    """write_raw("device.csv", ["header", "row", ...]) -> path"""
    def _write(name, lines):
        os.makedirs(config.raw_dir, exist_ok=True)
        path = os.path.join(config.raw_dir, name)
        with open(path, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        return path
    return _write


@pytest.fixture
def write_jsonl(tmp_path):
    """write_jsonl(directory, name, [obj or raw str, ...]) -> path"""
    def _write(directory, name, items):
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, name)
        with open(path, "w", encoding="utf-8") as handle:
            for item in items:
                handle.write((item if isinstance(item, str) else json.dumps(item)) + "\n")
        return path
    return _write


@pytest.fixture
def read_jsonl():
    def _read(path):
        with open(path, encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]
    return _read


@pytest.fixture
def sample_data_module():
    """scripts/generate_sample_data.py loaded as a module."""
    path = REPO_ROOT / "scripts" / "generate_sample_data.py"
    spec = importlib.util.spec_from_file_location("generate_sample_data", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
