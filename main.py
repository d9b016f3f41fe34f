"""
Batch Backtest Launcher - Main Entry Point

Usage:
    python main.py plan --config config/batch.config.yaml --manifest results/manifest.csv
    python main.py run --config config/batch.config.yaml --parallel 8
    python main.py instance <nine encoded worker arguments>
"""

import argparse
import sys
from pathlib import Path

# Ensure project modules are importable
sys.path.insert(0, str(Path(__file__).parent))

from core.errors import LauncherError
from core.logger import LOG_DIR, configure_log_file, log


def _load_work_items(args):
    """Load the sweep and expand it. Any error here aborts before launching."""
    from sweep import expand_sweep, load_sweep_spec, resolve_earliest_dates
    from sweep.earliest import format_earliest

    spec = load_sweep_spec(Path(args.config))
    data_dir = Path(args.data_dir) if args.data_dir else None
    earliest_path = Path(args.earliest) if args.earliest else None
    if earliest_path is not None and data_dir is not None and not earliest_path.exists():
        # Discovered dates alone are enough
        earliest_path = None
    earliest = resolve_earliest_dates(spec.symbols, earliest_path=earliest_path, data_dir=data_dir)
    log(f"Earliest data dates: {format_earliest(earliest)}")

    items = expand_sweep(spec, earliest)
    return spec, items


def cmd_plan(args):
    """Enumerate the sweep without launching anything."""
    from sweep import write_manifest

    spec, items = _load_work_items(args)
    parallel = args.parallel or spec.parallel_processes

    log(f"Would launch {min(parallel, len(items))} threads at a time. Total of {len(items)} backtests.")

    if args.manifest:
        path = write_manifest(items, Path(args.manifest))
        log(f"Manifest written to {path}")


def cmd_run(args):
    """Enumerate the sweep and run every work item."""
    from launcher import run_work_items

    spec, items = _load_work_items(args)
    run_work_items(
        items,
        spec,
        worker_path=args.worker,
        parallelism=args.parallel,
        seed=args.seed,
        show_progress=not args.no_progress
    )


def cmd_instance(args):
    """Run one worker in this process."""
    from instance.program import main as instance_main

    return instance_main(args.worker_args)


def _add_sweep_args(parser):
    parser.add_argument("--config", default="config/batch.config.yaml", help="Sweep specification (YAML or JSON)")
    parser.add_argument("--earliest", default="config/data-start-date-by-symbol.yaml",
                        help="Earliest data date per symbol (YAML or JSON)")
    parser.add_argument("--data-dir", help="Parquet data root to discover earliest dates from (e.g. data/parquet)")
    parser.add_argument("--parallel", type=int, default=None, help="Override parallelProcesses")


def main(argv=None):

    parser = argparse.ArgumentParser(
        description="Batch Backtest Launcher - parameter sweeps over isolated worker processes",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--log-file", default=str(LOG_DIR / "launcher.log"), help="Log file path")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Plan command
    pln = subparsers.add_parser("plan", help="Enumerate work items without launching")
    _add_sweep_args(pln)
    pln.add_argument("--manifest", help="Write work items to CSV (or .parquet)")

    # Run command
    rn = subparsers.add_parser("run", help="Enumerate and launch all work items")
    _add_sweep_args(rn)
    rn.add_argument("--worker", help="Worker executable or .py script (default: bundled instance worker)")
    rn.add_argument("--seed", type=int, default=None, help="Shuffle seed for reproducible launch order")
    rn.add_argument("--no-progress", action="store_true", help="Disable the live progress dashboard")

    # Instance command
    inst = subparsers.add_parser("instance", help="Run a single worker (invoked by the launcher)")
    inst.add_argument("worker_args", nargs=argparse.REMAINDER, help="Nine encoded worker arguments")

    args = parser.parse_args(argv)

    if args.command == "instance":
        return cmd_instance(args)

    configure_log_file(Path(args.log_file))

    try:
        if args.command == "plan":
            cmd_plan(args)
        elif args.command == "run":
            cmd_run(args)
        else:
            parser.print_help()
    except LauncherError as e:
        log(f"Aborted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
