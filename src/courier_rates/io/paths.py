from __future__ import annotations

from pathlib import Path
from typing import Tuple

RATES_SUFFIX = "_rates.xlsx"


def derive_output_paths(input_file: Path) -> Tuple[Path, Path]:
    """
    Given a shipments workbook, return (rates_xlsx_path, log_path) in the same directory.

    Raises FileNotFoundError if input_file doesn't exist (explicit early signal for CLI).
    """
    p = Path(input_file)
    if not p.exists():
        raise FileNotFoundError(p)

    rates = p.with_name(f"{p.stem}{RATES_SUFFIX}")
    log = p.with_suffix(".log")
    return rates, log
