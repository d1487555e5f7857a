"""Display formatting helpers."""

import math


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    value: float = size
    for unit in ["B", "K", "M", "G", "T"]:
        if value < 1024:
            return f"{value:5.1f}{unit}" if unit != "B" else f"{int(value):5d}{unit}"
        value = value / 1024
    return f"{value:.1f}P"


def format_cpu(percent: float) -> str:
    """Format a CPU percentage with one decimal place."""
    if math.isnan(percent):
        return "-"
    return f"{percent:5.1f}%"
