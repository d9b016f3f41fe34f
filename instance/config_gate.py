"""
Worker configuration gate.

Every worker copies the engine's shared template config into its own run
directory and overwrites its run-specific keys. The read-modify-write happens
under one named lock so concurrent workers never interleave.
"""

import json
import shutil
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from core.errors import ConfigError
from sweep.config import ParameterState
from sweep.dates import format_date
from .mutex import with_lock

CONFIG_LOCK_NAME = "config"
TEMPLATE_RELATIVE_PATH = Path("Launcher") / "config.json"
CONFIG_FILE_NAME = "config.json"

ALGORITHM_TYPE_NAME = "BasicTemplateFrameworkAlgorithm"
ALGORITHM_LOCATION = "Algorithm.dll"
JOB_QUEUE_HANDLER = "LeanBatchLauncher.Launcher.Queue"
DATA_PROVIDER = "QuantConnect.Lean.Engine.DataFeeds.ApiDataProvider"


@dataclass(frozen=True)
class InstanceRequest:
    """Decoded worker arguments."""
    library_path: str
    api_job_user_id: str
    api_access_token: str
    start_date: date
    end_date: date
    alpha_model_name: str
    symbol: str
    minute_resolution: int
    parameters: Dict[str, ParameterState] = field(default_factory=dict)


def _strip_line_comments(text: str) -> str:
    # The engine template allows whole-line // comments
    return "\n".join(line for line in text.splitlines() if not line.lstrip().startswith("//"))


def read_config(path: Path) -> Dict[str, Any]:
    try:
        config = json.loads(_strip_line_comments(Path(path).read_text()))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Cannot parse engine config {path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"Engine config {path} must be a JSON object")
    return config


def instance_settings(request: InstanceRequest) -> Dict[str, str]:
    """Keys the worker writes over the template."""
    library_path = Path(request.library_path)
    settings = {
        "algorithm-type-name": ALGORITHM_TYPE_NAME,
        "algorithm-location": ALGORITHM_LOCATION,
        "environment": "backtesting",
        "data-folder": str(library_path / "Data") + "/",
        "job-queue-handler": JOB_QUEUE_HANDLER,
        "data-provider": DATA_PROVIDER,
        "job-user-id": request.api_job_user_id,
        "api-access-token": request.api_access_token,
        "LBL-start-date": format_date(request.start_date),
        "LBL-end-date": format_date(request.end_date),
        "LBL-alpha-model-name": request.alpha_model_name,
        "LBL-symbol": request.symbol,
        "LBL-minute-resolution": str(request.minute_resolution),
    }
    for name, state in request.parameters.items():
        settings[name] = str(state.value)
    return settings


def prepare_instance_config(
    request: InstanceRequest,
    work_dir: Path,
    lock_name: str = CONFIG_LOCK_NAME,
    lock_dir: Optional[Path] = None
) -> Dict[str, Any]:
    """
    Copy the template config into ``work_dir`` and apply this run's settings.

    Returns:
        The config as written
    """
    template = Path(request.library_path) / TEMPLATE_RELATIVE_PATH
    target = Path(work_dir) / CONFIG_FILE_NAME
    if not template.exists():
        raise ConfigError(f"Engine config template not found: {template}")

    def copy_and_apply() -> Dict[str, Any]:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(template, target)
        config = read_config(target)
        config.update(instance_settings(request))
        with open(target, "w") as f:
            json.dump(config, f, indent=2)
        return config

    return with_lock(lock_name, copy_and_apply, lock_dir=lock_dir)
