from __future__ import annotations

from ..models.processing_result import ImportResult, ImportStats

"""Summary rendering for the bulk lead importer.

Format:
SUMMARY records={n} created={c} updated={u} groups={g} elapsed_sec={s}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     stats=ImportStats(created=3, updated=1), records=4, groups=1,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY records=4 created=3 updated=1 groups=1 elapsed_sec=2'
    """
    return (
        f"SUMMARY records={result.records} "
        f"created={result.stats.created} "
        f"updated={result.stats.updated} "
        f"groups={result.groups} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_completion_message(stats: ImportStats) -> str:
    """User-facing final message."""
    return f"Import complete: {stats.created} created, {stats.updated} updated."
