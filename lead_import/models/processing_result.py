from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime

"""Processing result models for the bulk lead importer.

ImportStats is the result contract returned to the caller. ImportResult wraps it
with timing and commit-group metrics for the SUMMARY line.
"""


@dataclass(frozen=True)
class ImportStats:
    """Created / updated counts accumulated across commit groups."""
    created: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated

    def __add__(self, other: ImportStats) -> ImportStats:
        return ImportStats(
            created=self.created + other.created,
            updated=self.updated + other.updated,
        )


@dataclass(frozen=True)
class ImportResult:
    """Aggregated results for one import run."""
    stats: ImportStats
    records: int  # 確認済みバッチの件数
    groups: int  # committed group count
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    avg_group_seconds: float = 0.0
    p95_group_seconds: float = 0.0


class BatchStatsAccumulator:
    """Helper class to accumulate commit-group timing statistics.

    Collects individual group commit timings and calculates summary statistics.
    """

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a group commit timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate group statistics.

        Returns:
            tuple: (total_groups, avg_group_seconds, p95_group_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total = len(self.batch_times)
        avg = statistics.mean(self.batch_times)

        if total == 1:
            p95 = self.batch_times[0]
        else:
            p95 = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 95th percentile (19th out of 20 quantiles, 0-indexed)

        return (total, avg, p95)
