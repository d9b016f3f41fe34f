"""
Backtest Instance

One worker process: decodes its arguments, copies the engine config into a
fresh run directory under the shared lock, then hands off to the engine
command named in that config, run inside that directory.

Usage:
    python -m instance <libraryPath> <apiUserId> <apiToken> <startDate> <endDate>
                       <alphaModelName> <symbol> <minuteResolution> <parameters>
"""

import re
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from core.argcodec import decode_arg
from core.errors import ConfigError, LauncherError
from core.logger import LOG_DIR, configure_log_file, log
from sweep.config import deserialize_parameters
from sweep.dates import format_date, parse_date
from .config_gate import CONFIG_FILE_NAME, InstanceRequest, prepare_instance_config

INSTANCE_LOG_FILE = LOG_DIR / "instance.log"
ENGINE_COMMAND_KEY = "engine-command"
ARG_COUNT = 9
RUNS_DIR = Path("runs")

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def parse_instance_args(argv: Sequence[str]) -> InstanceRequest:
    """Decode the nine worker arguments."""
    if len(argv) != ARG_COUNT:
        raise ConfigError(f"Expected {ARG_COUNT} worker arguments, got {len(argv)}")

    (library_path, user_id, token, start, end,
     alpha_model_name, symbol, resolution, parameters) = [decode_arg(a) for a in argv]

    try:
        minute_resolution = int(resolution)
    except ValueError as e:
        raise ConfigError(f"Minute resolution must be an integer, got {resolution!r}") from e

    return InstanceRequest(
        library_path=library_path,
        api_job_user_id=user_id,
        api_access_token=token,
        start_date=parse_date(start),
        end_date=parse_date(end),
        alpha_model_name=alpha_model_name,
        symbol=symbol,
        minute_resolution=minute_resolution,
        parameters=deserialize_parameters(parameters),
    )


def engine_command(config: dict) -> Optional[List[str]]:
    command = config.get(ENGINE_COMMAND_KEY)
    if not command:
        return None
    if isinstance(command, str):
        return [command]
    return [str(part) for part in command]


def instance_work_dir(request: InstanceRequest, runs_dir: Optional[Path] = None) -> Path:
    """Fresh directory holding one worker's config and whatever its engine writes."""
    root = Path(runs_dir) if runs_dir is not None else RUNS_DIR
    root.mkdir(parents=True, exist_ok=True)
    prefix = (
        f"{request.symbol}-{request.alpha_model_name}-{request.minute_resolution}m-"
        f"{format_date(request.start_date)}-"
    )
    return Path(tempfile.mkdtemp(prefix=_UNSAFE_NAME_CHARS.sub("_", prefix), dir=root))


def run_instance(request: InstanceRequest, runs_dir: Optional[Path] = None) -> int:
    """
    Prepare the config and run the engine. Returns the engine's exit code.

    Each call gets its own work directory under ``runs_dir`` so concurrent
    engines never read a sibling's config.
    """
    work_dir = instance_work_dir(request, runs_dir)
    config = prepare_instance_config(request, work_dir)

    log(
        f"Instance {request.symbol} {request.alpha_model_name} {request.minute_resolution}m "
        f"{format_date(request.start_date)}..{format_date(request.end_date)} "
        f"configured in {work_dir / CONFIG_FILE_NAME}"
    )

    command = engine_command(config)
    if command is None:
        log(f"No '{ENGINE_COMMAND_KEY}' in engine config, nothing to run")
        return 0

    result = subprocess.run(command, cwd=work_dir)
    log(f"Engine exited with {result.returncode}")
    return result.returncode


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    configure_log_file(INSTANCE_LOG_FILE)
    try:
        request = parse_instance_args(argv)
        return run_instance(request)
    except LauncherError as e:
        log(f"Instance failed: {e}")
        return 1
