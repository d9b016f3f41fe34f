"""
Sweep Specification

Loads the declarative batch document (YAML or JSON) into immutable records.
Key names follow the document format: libraryPath, apiJobUserId, ...
"""

import json
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from core.errors import ConfigError, InvalidDateError, InvalidRangeError
from .dates import parse_date
from .ranges import product_range, stepped_range

DEFAULT_SPEC_PATH = Path("config/batch.config.yaml")
DEFAULT_EARLIEST_PATH = Path("config/data-start-date-by-symbol.yaml")


@dataclass(frozen=True)
class RangeSpec:
    """Range of one parameter. Exactly one of step/factor is set."""
    start: float
    end: float
    step: Optional[float] = None
    factor: Optional[float] = None

    def __post_init__(self):
        if (self.step is None) == (self.factor is None):
            raise InvalidRangeError("Exactly one of 'step' or 'factor' must be given")
        if self.step is not None and self.step == 0:
            raise InvalidRangeError("Parameter step cannot equal zero.")
        if self.factor is not None and self.factor < 2:
            raise InvalidRangeError("Parameter factor cannot be less than 2.")

    @property
    def is_product(self) -> bool:
        return self.factor is not None

    def values(self) -> List[float]:
        """Materialize the range."""
        if self.is_product:
            return product_range(self.start, self.end, self.factor)
        return stepped_range(self.start, self.end, self.step)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], name: str = "?") -> "RangeSpec":
        if not isinstance(raw, Mapping):
            raise InvalidRangeError(f"Parameter '{name}' must be a mapping, got {type(raw).__name__}")
        try:
            return cls(
                start=float(raw["start"]),
                end=float(raw["end"]),
                step=float(raw["step"]) if raw.get("step") is not None else None,
                factor=float(raw["factor"]) if raw.get("factor") is not None else None,
            )
        except KeyError as e:
            raise InvalidRangeError(f"Parameter '{name}' is missing {e.args[0]!r}") from e
        except InvalidRangeError as e:
            raise InvalidRangeError(f"Parameter '{name}': {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidRangeError(f"Parameter '{name}' has a non-numeric bound: {e}") from e


@dataclass(frozen=True)
class ParameterState:
    """A parameter's range plus the value chosen for one work item."""
    name: str
    spec: RangeSpec
    current: Optional[float] = None

    @property
    def value(self) -> float:
        return self.spec.start if self.current is None else self.current

    def with_current(self, value: float) -> "ParameterState":
        return replace(self, current=value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.spec.start,
            "end": self.spec.end,
            "step": self.spec.step,
            "factor": self.spec.factor,
            "current": self.value,
        }


@dataclass(frozen=True)
class SweepSpec:
    """The full batch definition, read once at startup."""
    library_path: str
    api_job_user_id: str
    api_access_token: str
    parallel_processes: int
    start_date: date
    duration: int
    alpha_model_names: Tuple[str, ...] = ()
    minute_resolutions: Tuple[int, ...] = ()
    symbols: Tuple[str, ...] = ()
    parameters: Dict[str, ParameterState] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SweepSpec":
        if not isinstance(raw, Mapping):
            raise ConfigError("Sweep specification must be a mapping")

        missing = [k for k in ("libraryPath", "startDate", "duration", "symbols", "minuteResolutions") if k not in raw]
        if missing:
            raise ConfigError(f"Sweep specification is missing: {', '.join(missing)}")

        parallel = _as_int(raw.get("parallelProcesses", 1), "parallelProcesses")
        if parallel < 1:
            raise ConfigError(f"parallelProcesses must be >= 1, got {parallel}")

        duration = _as_int(raw["duration"], "duration")
        if duration < 1:
            raise InvalidDateError(f"duration must be >= 1 month, got {duration}")

        symbols = tuple(str(s) for s in (raw.get("symbols") or []))
        if not symbols:
            raise ConfigError("symbols must list at least one symbol")

        resolutions = tuple(_as_int(r, "minuteResolutions") for r in (raw.get("minuteResolutions") or []))
        if not resolutions:
            raise ConfigError("minuteResolutions must list at least one resolution")

        parameters = {}
        for name, spec in (raw.get("parameters") or {}).items():
            parameters[str(name)] = ParameterState(name=str(name), spec=RangeSpec.from_dict(spec, str(name)))

        return cls(
            library_path=str(raw["libraryPath"]),
            api_job_user_id=str(raw.get("apiJobUserId", "")),
            api_access_token=str(raw.get("apiAccessToken", "")),
            parallel_processes=parallel,
            start_date=parse_date(raw["startDate"]),
            duration=duration,
            alpha_model_names=tuple(str(a) for a in (raw.get("alphaModelNames") or [])),
            minute_resolutions=resolutions,
            symbols=symbols,
            parameters=parameters,
        )


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e


def _read_document(path: Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e


def load_sweep_spec(path: Path = DEFAULT_SPEC_PATH) -> SweepSpec:
    """Load the batch document (YAML, or JSON which YAML also reads)."""
    return SweepSpec.from_dict(_read_document(path) or {})


def load_earliest_dates(path: Path = DEFAULT_EARLIEST_PATH) -> Dict[str, date]:
    """Load the symbol -> earliest usable data date document."""
    raw = _read_document(path) or {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{path} must map symbol to date")
    return {str(symbol): parse_date(day) for symbol, day in raw.items()}


def serialize_parameters(parameters: Mapping[str, ParameterState]) -> str:
    """JSON form carried to the worker: {name: {start, end, step, factor, current}}."""
    return json.dumps({name: state.to_dict() for name, state in parameters.items()}, sort_keys=True)


def deserialize_parameters(text: str) -> Dict[str, ParameterState]:
    """Inverse of ``serialize_parameters``."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid serialized parameters: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Serialized parameters must be a JSON object")
    states = {}
    for name, entry in raw.items():
        states[name] = ParameterState(
            name=name,
            spec=RangeSpec.from_dict(entry, name),
            current=float(entry["current"]) if entry.get("current") is not None else None,
        )
    return states
