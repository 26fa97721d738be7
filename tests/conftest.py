"""Pytest bootstrap for local source imports and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)

if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)

from fsdriver.local import LocalFilesystem  # noqa: E402


@pytest.fixture
def fs(tmp_path):
    """Driver rooted at a temporary directory."""
    return LocalFilesystem(str(tmp_path))


@pytest.fixture
def root(tmp_path):
    return tmp_path
