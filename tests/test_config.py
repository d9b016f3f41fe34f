import json
from datetime import date

import pytest
import yaml

from core.errors import ConfigError, InvalidDateError, InvalidRangeError
from sweep.config import (
    ParameterState,
    RangeSpec,
    SweepSpec,
    deserialize_parameters,
    load_earliest_dates,
    load_sweep_spec,
    serialize_parameters,
)


def test_sweep_spec_from_dict(sweep_dict):
    spec = SweepSpec.from_dict(sweep_dict)

    assert spec.library_path == "/opt/lean"
    assert spec.api_access_token == 'tok"en'
    assert spec.parallel_processes == 2
    assert spec.start_date == date(2020, 1, 1)
    assert spec.duration == 3
    assert spec.alpha_model_names == ("EmaCross", "Rsi")
    assert spec.minute_resolutions == (1, 5)
    assert spec.symbols == ("SPY", "QQQ")
    assert list(spec.parameters) == ["fast", "slow"]
    assert spec.parameters["slow"].spec.is_product
    assert spec.parameters["slow"].spec.values() == [2.0, 4.0, 8.0]


@pytest.mark.parametrize("key", ["libraryPath", "startDate", "duration", "symbols", "minuteResolutions"])
def test_required_keys(sweep_dict, key):
    del sweep_dict[key]
    with pytest.raises(ConfigError, match=key):
        SweepSpec.from_dict(sweep_dict)


def test_parallel_processes_must_be_positive(sweep_dict):
    sweep_dict["parallelProcesses"] = 0
    with pytest.raises(ConfigError):
        SweepSpec.from_dict(sweep_dict)


def test_duration_must_be_positive(sweep_dict):
    sweep_dict["duration"] = 0
    with pytest.raises(InvalidDateError):
        SweepSpec.from_dict(sweep_dict)


def test_empty_symbols_rejected(sweep_dict):
    sweep_dict["symbols"] = []
    with pytest.raises(ConfigError):
        SweepSpec.from_dict(sweep_dict)


def test_bad_start_date(sweep_dict):
    sweep_dict["startDate"] = "someday"
    with pytest.raises(InvalidDateError):
        SweepSpec.from_dict(sweep_dict)


@pytest.mark.parametrize("raw", [
    {"start": 1, "end": 5},
    {"start": 1, "end": 5, "step": 1, "factor": 2},
    {"start": 1, "end": 5, "step": 0},
    {"start": 1, "end": 5, "factor": 1.5},
    {"start": 1, "step": 1},
    {"start": "one", "end": 5, "step": 1},
])
def test_invalid_parameter_ranges(raw):
    with pytest.raises(InvalidRangeError):
        RangeSpec.from_dict(raw, "p")


def test_invalid_range_aborts_sweep(sweep_dict):
    sweep_dict["parameters"]["fast"]["step"] = 0
    with pytest.raises(InvalidRangeError, match="fast"):
        SweepSpec.from_dict(sweep_dict)


def test_load_yaml_and_json(tmp_path, sweep_dict):
    yaml_path = tmp_path / "batch.yaml"
    yaml_path.write_text(yaml.safe_dump(sweep_dict))
    json_path = tmp_path / "batch.json"
    json_path.write_text(json.dumps(sweep_dict, indent=2))

    assert load_sweep_spec(yaml_path) == load_sweep_spec(json_path)


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_sweep_spec(tmp_path / "nope.yaml")


def test_load_unparseable_file(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("libraryPath: [unclosed\n")
    with pytest.raises(ConfigError):
        load_sweep_spec(path)


def test_load_earliest_dates(tmp_path):
    path = tmp_path / "earliest.yaml"
    path.write_text("SPY: 1998-01-02\nQQQ: '1999-03-10'\n")
    assert load_earliest_dates(path) == {"SPY": date(1998, 1, 2), "QQQ": date(1999, 3, 10)}


def test_with_current_returns_a_copy():
    state = ParameterState(name="fast", spec=RangeSpec(start=1.0, end=3.0, step=1.0))
    chosen = state.with_current(2.0)

    assert state.current is None
    assert state.value == 1.0
    assert chosen.value == 2.0


def test_serialized_parameters_round_trip():
    states = {
        "fast": ParameterState("fast", RangeSpec(1.0, 3.0, step=1.0), current=2.0),
        "slow": ParameterState("slow", RangeSpec(2.0, 8.0, factor=2.0), current=8.0),
    }
    text = serialize_parameters(states)

    assert json.loads(text)["slow"] == {"start": 2.0, "end": 8.0, "step": None, "factor": 2.0, "current": 8.0}
    assert deserialize_parameters(text) == states


def test_deserialize_rejects_garbage():
    with pytest.raises(ConfigError):
        deserialize_parameters("not json")
    with pytest.raises(ConfigError):
        deserialize_parameters("[1, 2]")
