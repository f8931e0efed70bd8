from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

- a single tqdm bar over the records of the confirmed batch, only when stdout
  is a TTY (CI logs stay free of control sequences)
- every step also produces a "Processing {i} / {total}..." message that is
  forwarded to an optional caller callback (e.g. a UI status line)
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "progress_message",
]

logger = logging.getLogger(__name__)


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and a progress bar should be drawn."""
    return sys.stdout.isatty()


def progress_message(current: int, total: int) -> str:
    return f"Processing {current} / {total}..."


class ProgressTracker:
    """Progress tracker for record processing.

    Args:
        total: number of records in the batch
        description: progress bar label
        callback: receives each progress message (and the final summary)
    """

    def __init__(
        self,
        total: int,
        *,
        description: str = "Importing records",
        callback: Callable[[str], None] | None = None,
    ) -> None:
        self.total = total
        self.description = description
        self.current = 0
        self.callback = callback

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="record",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self) -> None:
        """Mark one more record as queued."""
        self.current += 1
        message = progress_message(self.current, self.total)
        logger.debug(message)
        if self.callback is not None:
            self.callback(message)
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)

    def report(self, message: str) -> None:
        """Forward a free-form message (final summary) to the callback."""
        if self.callback is not None:
            self.callback(message)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
