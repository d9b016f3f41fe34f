"""
Earliest usable data date per symbol.

Either read from the earliest-date document or discovered from the parquet
data tree (data/parquet/<SYMBOL>/<YEAR>.parquet).
"""

from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import polars as pl

from core.errors import ConfigError
from core.logger import log
from .config import load_earliest_dates


def earliest_dates_from_parquet(
    data_dir: Path,
    symbols: Iterable[str],
    timestamp_column: str = "timestamp"
) -> Dict[str, date]:
    """First timestamp per symbol; symbols without data are left out."""
    found = {}
    for symbol in symbols:
        symbol_dir = Path(data_dir) / symbol
        if not any(symbol_dir.glob("*.parquet")):
            continue

        try:
            first = (
                pl.scan_parquet(str(symbol_dir / "*.parquet"))
                .select(pl.col(timestamp_column).min())
                .collect()
                .item()
            )
        except (pl.exceptions.PolarsError, OSError) as e:
            raise ConfigError(f"Cannot read earliest '{timestamp_column}' for {symbol} from {symbol_dir}: {e}") from e
        if first is None:
            continue
        found[symbol] = first.date() if isinstance(first, datetime) else first

    return found


def resolve_earliest_dates(
    symbols: Iterable[str],
    earliest_path: Optional[Path] = None,
    data_dir: Optional[Path] = None
) -> Dict[str, date]:
    """
    Merge the earliest-date document with dates discovered from data.

    Document entries win over discovered ones.
    """
    symbols = list(symbols)
    resolved: Dict[str, date] = {}

    if data_dir is not None:
        discovered = earliest_dates_from_parquet(data_dir, symbols)
        log(f"Discovered earliest dates for {len(discovered)}/{len(symbols)} symbols in {data_dir}")
        resolved.update(discovered)

    if earliest_path is not None:
        resolved.update(load_earliest_dates(earliest_path))

    return resolved


def format_earliest(earliest: Mapping[str, date]) -> str:
    return ", ".join(f"{s}={d.isoformat()}" for s, d in sorted(earliest.items()))
