"""Work item manifest export (dry-run output of ``main.py plan``)."""

from pathlib import Path
from typing import Sequence

import polars as pl

from .expander import WorkItem


def work_items_frame(items: Sequence[WorkItem]) -> pl.DataFrame:
    """One row per work item."""
    schema = {
        "start_date": pl.Utf8,
        "end_date": pl.Utf8,
        "alpha_model_name": pl.Utf8,
        "symbol": pl.Utf8,
        "minute_resolution": pl.Int64,
        "parameters": pl.Utf8,
    }
    return pl.DataFrame([item.to_dict() for item in items], schema=schema)


def write_manifest(items: Sequence[WorkItem], output_path: Path) -> Path:
    """Write the manifest as parquet (``.parquet``) or CSV (anything else)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = work_items_frame(items)
    if output_path.suffix == ".parquet":
        df.write_parquet(output_path)
    else:
        df.write_csv(output_path)
    return output_path
