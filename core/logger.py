"""
Launcher log helper.

Timestamped lines to stdout and to an append-only log file.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_DIR = Path("logs")
LOG_FILE: Optional[Path] = LOG_DIR / "launcher.log"


def configure_log_file(path: Optional[Path]) -> None:
    """Redirect file logging. ``None`` keeps stdout only."""
    global LOG_FILE
    LOG_FILE = Path(path) if path is not None else None


def log(msg: str):
    """Log message to file and stdout."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    line = f"[{timestamp}] {msg}"
    print(line, flush=True)
    if LOG_FILE is None:
        return
    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(LOG_FILE, "a") as f:
            f.write(line + "\n")
    except OSError as e:
        print(f"Logging error: {e}")
