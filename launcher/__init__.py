"""Launcher module: bounded-parallelism worker dispatch."""

from .dispatcher import (
    run_work_items,
    launch_worker,
    build_launch_args,
    item_tokens,
    resolve_worker_command,
    shuffle_items,
    LaunchResult,
    DispatchSummary,
)
from .progress import DispatchProgress, live_dashboard, make_progress_table

__all__ = [
    "run_work_items",
    "launch_worker",
    "build_launch_args",
    "item_tokens",
    "resolve_worker_command",
    "shuffle_items",
    "LaunchResult",
    "DispatchSummary",
    "DispatchProgress",
    "live_dashboard",
    "make_progress_table",
]
