"""
Sweep Expander

Crosses date windows, alpha models, symbols, minute resolutions and parameter
combinations into the flat list of work items handed to the launcher.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional

from core.errors import UnknownSymbolError
from .combinations import generate_combinations
from .config import ParameterState, RangeSpec, SweepSpec, serialize_parameters
from .dates import add_months, format_date, generate_windows

DEFAULT_ALPHA_MODEL = "ALL"
INERT_PARAMETER = "NA"


@dataclass(frozen=True)
class WorkItem:
    """One fully-resolved backtest run."""
    start_date: date
    end_date: date
    alpha_model_name: str
    symbol: str
    minute_resolution: int
    parameters_serialized: str

    @property
    def label(self) -> str:
        return f"{self.symbol}/{self.alpha_model_name}/{self.minute_resolution}m/{format_date(self.start_date)}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "start_date": format_date(self.start_date),
            "end_date": format_date(self.end_date),
            "alpha_model_name": self.alpha_model_name,
            "symbol": self.symbol,
            "minute_resolution": self.minute_resolution,
            "parameters": self.parameters_serialized,
        }


def sweep_parameters(spec: SweepSpec) -> Dict[str, ParameterState]:
    """Declared parameters, or the single inert one when none are declared."""
    if spec.parameters:
        return dict(spec.parameters)
    return {INERT_PARAMETER: ParameterState(name=INERT_PARAMETER, spec=RangeSpec(start=0.0, end=0.0, step=1.0))}


def build_parameter_ranges(parameters: Mapping[str, ParameterState]) -> Dict[str, List[float]]:
    """Materialize every parameter range, stepped or product."""
    return {name: state.spec.values() for name, state in parameters.items()}


def expand_sweep(
    spec: SweepSpec,
    earliest_by_symbol: Mapping[str, date],
    now: Optional[datetime] = None
) -> List[WorkItem]:
    """
    Expand a sweep into its work items.

    Length is |dates| x |alpha models| x |symbols| x |resolutions| x |combinations|.

    Args:
        spec: Sweep specification
        earliest_by_symbol: First usable data date per symbol
        now: Wall clock for window generation (defaults to now)

    Returns:
        Work items in enumeration order (the launcher shuffles them)
    """
    missing = [s for s in spec.symbols if s not in earliest_by_symbol]
    if missing:
        raise UnknownSymbolError(missing[0])

    alpha_models = list(spec.alpha_model_names) or [DEFAULT_ALPHA_MODEL]
    parameters = sweep_parameters(spec)
    ranges = build_parameter_ranges(parameters)
    dates = generate_windows(spec.start_date, spec.duration, now=now)
    combinations = generate_combinations(ranges)

    # Serialize each combination once, not once per window/symbol
    serialized = [
        serialize_parameters({name: state.with_current(combo[name]) for name, state in parameters.items()})
        for combo in combinations
    ]

    items = []
    for start_date in dates:
        # Same end date for all symbols, even when a symbol's data starts later
        end_date = add_months(start_date, spec.duration)
        for alpha_model_name in alpha_models:
            for symbol in spec.symbols:
                earliest = earliest_by_symbol[symbol]
                item_start = earliest if start_date < earliest else start_date
                for minute_resolution in spec.minute_resolutions:
                    for parameters_serialized in serialized:
                        items.append(WorkItem(
                            start_date=item_start,
                            end_date=end_date,
                            alpha_model_name=alpha_model_name,
                            symbol=symbol,
                            minute_resolution=minute_resolution,
                            parameters_serialized=parameters_serialized,
                        ))

    return items
