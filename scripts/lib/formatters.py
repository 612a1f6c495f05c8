"""
Output formatters for address balance and token rate reports.

This module handles CSV generation and timestamp-based filenames.
"""

import csv
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from .models import BALANCE_CSV_COLUMNS, NATIVE_RATE_KEY, RATE_CSV_COLUMNS, AssetBalance, PriceRates


def generate_timestamp() -> str:
    """
    Generate a timestamp string for filenames.

    Returns:
        Timestamp in YYYYMMDD_HHMMSS format
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def generate_filename(base_path: str, timestamp: Optional[str] = None) -> str:
    """
    Generate a timestamped filename.

    Examples:
        generate_filename("balances.csv", "20241214_153022")
        -> "balances_20241214_153022.csv"
    """
    if timestamp is None:
        timestamp = generate_timestamp()

    path = Path(base_path)
    suffix = path.suffix or ".csv"
    return str(path.parent / f"{path.stem}_{timestamp}{suffix}")


def write_balances_to_stream(balances: List[AssetBalance], stream: TextIO) -> None:
    writer = csv.writer(stream)
    writer.writerow(BALANCE_CSV_COLUMNS)

    for balance in balances:
        writer.writerow(balance.to_csv_row())


def write_rates_to_stream(rates: PriceRates, stream: TextIO) -> None:
    """Write a rate table sorted by token id."""
    writer = csv.writer(stream)
    writer.writerow(RATE_CSV_COLUMNS)

    for token_id in sorted(rates):
        writer.writerow([token_id, repr(rates[token_id][NATIVE_RATE_KEY])])


def write_csv(
    balances: List[AssetBalance],
    output_path: Optional[str] = None,
) -> Optional[str]:
    """
    Write balances to a timestamped CSV file or stdout.

    Args:
        balances: Balance records to write
        output_path: Base output path. If None, writes to stdout.

    Returns:
        The written file path, or None when writing to stdout
    """
    if output_path is None:
        write_balances_to_stream(balances, sys.stdout)
        return None

    filename = generate_filename(output_path)
    with open(filename, "w", newline="", encoding="utf-8") as f:
        write_balances_to_stream(balances, f)

    return filename


def write_rates_csv(rates: PriceRates, output_path: Optional[str] = None) -> Optional[str]:
    """Write a rate table to a timestamped CSV file or stdout."""
    if output_path is None:
        write_rates_to_stream(rates, sys.stdout)
        return None

    filename = generate_filename(output_path)
    with open(filename, "w", newline="", encoding="utf-8") as f:
        write_rates_to_stream(rates, f)

    return filename
