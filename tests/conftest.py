from __future__ import annotations

import sys
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from core import logger as log_module  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_log(tmp_path: Path):
    """Keep test runs from writing into the repo's logs/ directory."""
    previous = log_module.LOG_FILE
    log_module.configure_log_file(tmp_path / "test.log")
    yield
    log_module.configure_log_file(previous)


@pytest.fixture()
def sweep_dict() -> dict:
    return {
        "libraryPath": "/opt/lean",
        "apiJobUserId": "42",
        "apiAccessToken": "tok\"en",
        "parallelProcesses": 2,
        "startDate": "2020-01-01",
        "duration": 3,
        "alphaModelNames": ["EmaCross", "Rsi"],
        "minuteResolutions": [1, 5],
        "symbols": ["SPY", "QQQ"],
        "parameters": {
            "fast": {"start": 1, "end": 3, "step": 1},
            "slow": {"start": 2, "end": 8, "factor": 2},
        },
    }


@pytest.fixture()
def library_dir(tmp_path: Path) -> Path:
    """A library folder holding the engine's template config."""
    lib = tmp_path / "lean"
    (lib / "Launcher").mkdir(parents=True)
    template = "\n".join([
        "{",
        "  // engine template",
        '  "environment": "live-paper",',
        '  "debug-mode": true',
        "}",
    ])
    (lib / "Launcher" / "config.json").write_text(template)
    return lib
