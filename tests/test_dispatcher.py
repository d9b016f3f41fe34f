import json
import os
import sys
from dataclasses import replace
from datetime import date

import numpy as np
import pytest

from core.argcodec import decode_arg
from launcher.dispatcher import (
    build_launch_args,
    item_tokens,
    resolve_worker_command,
    run_work_items,
    shuffle_items,
    worker_env,
)
from sweep.config import SweepSpec
from sweep.expander import WorkItem

WORKER_SCRIPT = """
import json, os, sys, time, uuid

started = time.time()
time.sleep(float(os.environ.get("WORKER_SLEEP", "0.3")))
record = os.path.join(os.environ["RECORD_DIR"], uuid.uuid4().hex + ".json")
with open(record, "w") as f:
    json.dump({"start": started, "end": time.time(), "argv": sys.argv[1:]}, f)
sys.exit(int(os.environ.get("WORKER_EXIT", "0")))
"""


def make_items(n):
    params = json.dumps({"fast": {"start": 1.0, "end": 3.0, "step": 1.0, "factor": None, "current": 2.0}})
    return [
        WorkItem(
            start_date=date(2020, 1, 1),
            end_date=date(2020, 4, 1),
            alpha_model_name="EmaCross",
            symbol=f"SYM{i}",
            minute_resolution=5,
            parameters_serialized=params,
        )
        for i in range(n)
    ]


@pytest.fixture()
def worker(tmp_path, monkeypatch):
    script = tmp_path / "worker.py"
    script.write_text(WORKER_SCRIPT)
    records = tmp_path / "records"
    records.mkdir()
    monkeypatch.setenv("RECORD_DIR", str(records))
    return script, records


def read_records(records):
    return [json.loads(p.read_text()) for p in records.glob("*.json")]


def max_overlap(records):
    peak = 0
    for r in records:
        running = sum(1 for o in records if o["start"] <= r["start"] < o["end"])
        peak = max(peak, running)
    return peak


def test_every_item_runs_once_with_bounded_concurrency(worker, sweep_dict):
    script, records = worker
    spec = SweepSpec.from_dict(sweep_dict)
    items = make_items(6)

    summary = run_work_items(items, spec, worker_path=script, parallelism=2, seed=1, show_progress=False)

    done = read_records(records)
    assert summary.total == 6
    assert summary.launched == 6
    assert summary.parallelism == 2
    assert not summary.nonzero_exits
    assert len(done) == 6
    assert max_overlap(done) <= 2


def test_workers_receive_decoded_tokens(worker, sweep_dict, monkeypatch):
    script, records = worker
    monkeypatch.setenv("WORKER_SLEEP", "0")
    spec = SweepSpec.from_dict(sweep_dict)
    items = make_items(3)

    run_work_items(items, spec, worker_path=script, parallelism=3, seed=2, show_progress=False)

    received = sorted([decode_arg(a) for a in r["argv"]] for r in read_records(records))
    expected = sorted(item_tokens(item, spec) for item in items)
    assert received == expected
    assert received[0][2] == 'tok"en'


def test_nonzero_exit_is_reported_not_retried(worker, sweep_dict, monkeypatch):
    script, records = worker
    monkeypatch.setenv("WORKER_SLEEP", "0")
    monkeypatch.setenv("WORKER_EXIT", "3")
    spec = SweepSpec.from_dict(sweep_dict)

    summary = run_work_items(make_items(4), spec, worker_path=script, parallelism=2, show_progress=False)

    assert len(summary.nonzero_exits) == 4
    assert {r.exit_code for r in summary.results} == {3}
    assert len(read_records(records)) == 4


def test_launch_failures_do_not_stop_the_batch(tmp_path, sweep_dict):
    spec = SweepSpec.from_dict(sweep_dict)
    missing = tmp_path / "no-such-worker"

    summary = run_work_items(make_items(5), spec, worker_path=missing, parallelism=2, show_progress=False)

    assert summary.total == 5
    assert len(summary.launch_failures) == 5
    assert all(r.error for r in summary.launch_failures)


def test_unlaunchable_argument_fails_only_its_item(worker, sweep_dict, monkeypatch):
    script, records = worker
    monkeypatch.setenv("WORKER_SLEEP", "0")
    spec = SweepSpec.from_dict(sweep_dict)
    items = make_items(4)
    items[2] = replace(items[2], symbol="SP\x00Y")

    summary = run_work_items(items, spec, worker_path=script, parallelism=1, seed=3, show_progress=False)

    assert summary.launched == 3
    assert [r.item.symbol for r in summary.launch_failures] == ["SP\x00Y"]
    assert len(read_records(records)) == 3


def test_empty_batch(sweep_dict):
    summary = run_work_items([], SweepSpec.from_dict(sweep_dict), show_progress=False)
    assert summary.total == 0


def test_parallelism_must_be_positive(sweep_dict):
    with pytest.raises(ValueError):
        run_work_items(make_items(1), SweepSpec.from_dict(sweep_dict), parallelism=0, show_progress=False)


def test_shuffle_is_reproducible_permutation():
    items = make_items(20)
    first = shuffle_items(items, np.random.default_rng(7))
    second = shuffle_items(items, np.random.default_rng(7))

    assert first == second
    assert sorted(first, key=lambda i: i.symbol) == sorted(items, key=lambda i: i.symbol)


def test_resolve_worker_command():
    assert resolve_worker_command() == [sys.executable, "-m", "instance"]
    assert resolve_worker_command("w.py") == [sys.executable, "w.py"]
    assert resolve_worker_command("/bin/worker") == ["/bin/worker"]


@pytest.mark.skipif(os.name == "nt", reason="argv is pre-split on POSIX only")
def test_launch_args_split_like_the_worker_would(sweep_dict):
    spec = SweepSpec.from_dict(sweep_dict)
    item = make_items(1)[0]
    args = build_launch_args(["worker"], item, spec)

    assert args[0] == "worker"
    assert len(args) == 10
    assert [decode_arg(a) for a in args[1:]] == item_tokens(item, spec)


def test_worker_env_puts_project_on_path(monkeypatch):
    monkeypatch.setenv("PYTHONPATH", "/elsewhere")
    paths = worker_env()["PYTHONPATH"].split(os.pathsep)
    assert paths[-1] == "/elsewhere"
    assert os.path.isdir(os.path.join(paths[0], "instance"))
