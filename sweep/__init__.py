"""Sweep module: specification loading and work item enumeration."""

from .ranges import stepped_range, product_range
from .combinations import generate_combinations, iter_combinations, count_combinations
from .dates import generate_windows, add_months, parse_date, format_date
from .config import (
    RangeSpec,
    ParameterState,
    SweepSpec,
    load_sweep_spec,
    load_earliest_dates,
    serialize_parameters,
    deserialize_parameters,
)
from .expander import WorkItem, expand_sweep, build_parameter_ranges, sweep_parameters
from .earliest import earliest_dates_from_parquet, resolve_earliest_dates
from .manifest import work_items_frame, write_manifest

__all__ = [
    "stepped_range",
    "product_range",
    "generate_combinations",
    "iter_combinations",
    "count_combinations",
    "generate_windows",
    "add_months",
    "parse_date",
    "format_date",
    "RangeSpec",
    "ParameterState",
    "SweepSpec",
    "load_sweep_spec",
    "load_earliest_dates",
    "serialize_parameters",
    "deserialize_parameters",
    "WorkItem",
    "expand_sweep",
    "build_parameter_ranges",
    "sweep_parameters",
    "earliest_dates_from_parquet",
    "resolve_earliest_dates",
    "work_items_frame",
    "write_manifest",
]
