"""
Dispatch Progress

Thread-safe counters for a running batch and a Rich Live dashboard over them.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from rich.console import Console
from rich.live import Live
from rich.table import Table


@dataclass
class DispatchProgress:
    """Tracks the workers of one batch. Updated from the pool threads."""
    total: int
    completed: int = 0
    nonzero_exits: int = 0
    launch_failures: int = 0
    start_time: float = field(default_factory=time.time)
    _running: Dict[int, str] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def started(self, slot: int, label: str) -> None:
        with self._lock:
            self._running[slot] = label

    def finished(self, slot: int, exit_code: Optional[int]) -> None:
        with self._lock:
            self._running.pop(slot, None)
            self.completed += 1
            if exit_code is None:
                self.launch_failures += 1
            elif exit_code != 0:
                self.nonzero_exits += 1

    @property
    def running(self) -> List[str]:
        with self._lock:
            return list(self._running.values())

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    @property
    def progress_pct(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.completed / self.total) * 100

    @property
    def eta_seconds(self) -> float:
        if self.completed == 0:
            return 0.0
        return self.elapsed_seconds / self.completed * (self.total - self.completed)


def make_progress_table(progress: DispatchProgress) -> Table:
    table = Table(title="Batch Progress", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    pct = progress.progress_pct
    bar = "█" * int(pct / 5) + "░" * (20 - int(pct / 5))
    running = progress.running

    table.add_row("Progress", f"[{bar}] {pct:.1f}%")
    table.add_row("Completed", f"{progress.completed}/{progress.total}")
    table.add_row("Non-zero exits", str(progress.nonzero_exits))
    table.add_row("Launch failures", str(progress.launch_failures))
    table.add_row("Elapsed", f"{progress.elapsed_seconds:.1f}s")
    table.add_row("ETA", f"{progress.eta_seconds:.0f}s")
    if running:
        table.add_row("Running", ", ".join(s[:30] for s in running[:3]))
    return table


@contextmanager
def live_dashboard(progress: DispatchProgress, enabled: bool = True) -> Iterator[None]:
    """Show the progress table while the block runs."""
    if not enabled:
        yield
        return

    console = Console()
    with Live(
        get_renderable=lambda: make_progress_table(progress),
        console=console,
        refresh_per_second=4,
    ):
        yield
