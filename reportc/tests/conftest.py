from __future__ import annotations

import shutil
from pathlib import Path
from uuid import uuid4
import pytest

TMP_BASE = Path(__file__).resolve().parent / ".tmp_pytest"


@pytest.fixture
def tmp_path():
    """Per-test scratch directory inside the tests tree, removed afterwards."""
    TMP_BASE.mkdir(parents=True, exist_ok=True)
    path = TMP_BASE / uuid4().hex
    path.mkdir(parents=True, exist_ok=True)
    yield path
    shutil.rmtree(path, ignore_errors=True)


def pytest_sessionfinish(session, exitstatus):
    if TMP_BASE.is_dir() and not any(TMP_BASE.iterdir()):
        TMP_BASE.rmdir()
