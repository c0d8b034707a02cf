"""
Shared test configuration.

Adds both the project root and src/ to sys.path so that flat modules
(api, correlation_engine, history_store, ...) and the analytics/pipeline/
routes packages import the same way they do at runtime.
"""

import os
import sys

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

if _src_dir not in sys.path:
    sys.path.insert(1, _src_dir)


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "metrix_history.json"


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch):
    """Keep every test offline unless it opts back in."""
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
