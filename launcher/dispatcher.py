"""
Batch Dispatcher

Launches one worker process per work item, with at most N running at once.
Each pool slot blocks on its child and picks up the next item as soon as the
child exits. Exit codes are reported, never acted on: no retries, no
cancellation of siblings.
"""

import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed

from core.argcodec import build_command_line, split_command_line
from core.errors import WorkerLaunchError
from core.logger import log
from sweep.config import SweepSpec
from sweep.dates import format_date
from sweep.expander import WorkItem
from .progress import DispatchProgress, live_dashboard

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_WORKER_MODULE = "instance"

LaunchArgs = Union[str, List[str]]


@dataclass
class LaunchResult:
    """Outcome of one worker process."""
    item: WorkItem
    exit_code: Optional[int]
    duration_seconds: float
    error: Optional[str] = None

    @property
    def launched(self) -> bool:
        return self.exit_code is not None


@dataclass
class DispatchSummary:
    """Outcome of a whole batch."""
    results: List[LaunchResult]
    parallelism: int
    total_seconds: float

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def launched(self) -> int:
        return sum(1 for r in self.results if r.launched)

    @property
    def launch_failures(self) -> List[LaunchResult]:
        return [r for r in self.results if not r.launched]

    @property
    def nonzero_exits(self) -> List[LaunchResult]:
        return [r for r in self.results if r.launched and r.exit_code != 0]

    @property
    def per_backtest_seconds(self) -> float:
        return self.total_seconds / self.total if self.total else 0.0


def resolve_worker_command(worker_path: Optional[Union[str, Path]] = None) -> List[str]:
    """
    Command prefix that starts one worker.

    None runs the bundled worker module with this interpreter; a ``.py`` path
    runs that script with this interpreter; anything else is an executable.
    """
    if worker_path is None:
        return [sys.executable, "-m", DEFAULT_WORKER_MODULE]
    path = str(worker_path)
    if path.endswith(".py"):
        return [sys.executable, path]
    return [path]


def worker_env() -> Dict[str, str]:
    """Environment for workers; the project root is importable."""
    env = dict(os.environ)
    paths = [str(PROJECT_ROOT)]
    if env.get("PYTHONPATH"):
        paths.append(env["PYTHONPATH"])
    env["PYTHONPATH"] = os.pathsep.join(paths)
    return env


def item_tokens(item: WorkItem, spec: SweepSpec) -> List[str]:
    """Worker arguments, in the order the worker reads them."""
    return [
        spec.library_path,
        spec.api_job_user_id,
        spec.api_access_token,
        format_date(item.start_date),
        format_date(item.end_date),
        item.alpha_model_name,
        item.symbol,
        str(item.minute_resolution),
        item.parameters_serialized,
    ]


def build_launch_args(worker_command: Sequence[str], item: WorkItem, spec: SweepSpec) -> LaunchArgs:
    """
    Full process arguments for one item.

    Windows gets the quoted command line as-is and its runtime splits it. Elsewhere
    the line is split here by the same rules, so workers see identical argv.
    """
    line = build_command_line(item_tokens(item, spec))
    if os.name == "nt":
        return subprocess.list2cmdline(list(worker_command)) + " " + line
    return list(worker_command) + split_command_line(line)


def shuffle_items(items: Sequence[WorkItem], rng: np.random.Generator) -> List[WorkItem]:
    order = rng.permutation(len(items))
    return [items[int(i)] for i in order]


def launch_worker(
    index: int,
    item: WorkItem,
    args: LaunchArgs,
    env: Optional[Dict[str, str]],
    progress: DispatchProgress
) -> LaunchResult:
    """
    Start one worker and wait for it to exit.

    Runs on a pool thread. A launch failure (missing executable, NUL in an
    argument) is logged and returned, not raised, so siblings keep running.
    """
    start_time = time.time()
    progress.started(index, item.label)
    log(f"START {item.label}")

    try:
        with subprocess.Popen(args, env=env) as proc:
            exit_code = proc.wait()
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        error = WorkerLaunchError(f"{item.label}: {e}")
        log(f"LAUNCH FAILED {error}")
        progress.finished(index, None)
        return LaunchResult(
            item=item,
            exit_code=None,
            duration_seconds=time.time() - start_time,
            error=str(error)
        )

    duration = time.time() - start_time
    log(f"DONE  {item.label} exit={exit_code} elapsed={duration:.1f}s")
    progress.finished(index, exit_code)
    return LaunchResult(item=item, exit_code=exit_code, duration_seconds=duration)


def run_work_items(
    items: Sequence[WorkItem],
    spec: SweepSpec,
    worker_path: Optional[Union[str, Path]] = None,
    parallelism: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    show_progress: bool = True
) -> DispatchSummary:
    """
    Run every work item in its own worker process.

    Args:
        items: Work items from ``expand_sweep``
        spec: Sweep specification (library path and API credentials)
        worker_path: Worker executable or script (default: bundled worker)
        parallelism: Max concurrent workers (default: spec.parallel_processes)
        rng: Shuffle source; takes precedence over ``seed``
        seed: Seed for a fresh shuffle source
        show_progress: Show the Rich Live dashboard

    Returns:
        DispatchSummary, once every worker has exited
    """
    parallel = parallelism if parallelism is not None else spec.parallel_processes
    if parallel < 1:
        raise ValueError(f"parallelism must be >= 1, got {parallel}")

    total = len(items)
    if total == 0:
        log("No work items to launch.")
        return DispatchSummary(results=[], parallelism=0, total_seconds=0.0)

    rng = rng if rng is not None else np.random.default_rng(seed)
    shuffled = shuffle_items(items, rng)

    # Encode everything before the first launch so a bad item aborts cleanly
    worker_command = resolve_worker_command(worker_path)
    launch_args = [build_launch_args(worker_command, item, spec) for item in shuffled]
    env = worker_env() if worker_path is None else None

    n_jobs = min(parallel, total)
    log(f"Launching {n_jobs} threads at a time. Total of {total} backtests.")

    progress = DispatchProgress(total=total)
    start_time = time.time()

    with live_dashboard(progress, enabled=show_progress):
        results = Parallel(n_jobs=n_jobs, backend="threading", batch_size=1)(
            delayed(launch_worker)(i, item, args, env, progress)
            for i, (item, args) in enumerate(zip(shuffled, launch_args))
        )

    summary = DispatchSummary(
        results=list(results),
        parallelism=n_jobs,
        total_seconds=time.time() - start_time
    )
    log_summary(summary)
    return summary


def log_summary(summary: DispatchSummary) -> None:
    clean = summary.launched - len(summary.nonzero_exits)
    log(
        f"Completed: {clean} exited cleanly, {len(summary.nonzero_exits)} non-zero, "
        f"{len(summary.launch_failures)} failed to launch"
    )
    for r in summary.launch_failures:
        log(f"  not run: {r.item.label} ({r.error})")
    log(
        f"Execution time: {summary.total_seconds / 60.0:.1f} minutes (total), "
        f"{summary.per_backtest_seconds / 60.0:.1f} minute(s) (per backtest)"
    )
