"""Shared formatting and file utilities for commands."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.table import Table

from gauge_autovoter.shared.results import RunSummary, VoteOutcome

# Shared console instance
console = Console()

_OUTCOME_STYLES = {
    VoteOutcome.SUBMITTED: "green",
    VoteOutcome.SKIPPED: "dim",
    VoteOutcome.FAILED: "red",
    VoteOutcome.DRY_RUN: "cyan",
}


def format_address(address: str, length: int = 10) -> str:
    """
    Shorten a base58 address to its first and last characters.

    Returns:
        Formatted address like "EXdZNf...n9Mf"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_timestamp(timestamp: int, format_str: str = "%Y-%m-%d %H:%M") -> str:
    dt = datetime.fromtimestamp(timestamp)
    return dt.strftime(format_str)


def format_power(voting_power: float, decimals: int = 6) -> str:
    """Voting power in whole tokens, with thousands separators."""
    return f"{voting_power / 10**decimals:,.2f}"


def save_json_output(
    data: Dict[str, Any],
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file with automatic directory creation.

    Args:
        data: Data to save
        filename: Output filename (can include subdirectories)
        output_dir: Base output directory (default: 'output')
        print_path: Whether to print the saved file path

    Returns:
        Full path to saved file
    """
    filepath = Path(output_dir) / filename
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)


def generate_timestamped_filename(prefix: str, extension: str = "json") -> str:
    """
    Generate a filename with timestamp.

    Returns:
        Filename like "prefix_20240315_123456.json"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"


def create_run_table(summary: RunSummary) -> Table:
    """Rich table with one row per voter of a run."""
    table = Table(
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
        box=None,
    )
    table.add_column("Owner", width=14)
    table.add_column("Outcome", width=10)
    table.add_column("Ixs", width=4, justify="right")
    table.add_column("CU", width=9, justify="right")
    table.add_column("Signature / reason")

    for report in summary.reports:
        style = _OUTCOME_STYLES.get(report.outcome, "")
        table.add_row(
            format_address(report.owner),
            f"[{style}]{report.outcome.value}[/{style}]",
            str(report.instruction_count or ""),
            str(report.compute_units or ""),
            report.signature or report.reason,
        )
    return table
