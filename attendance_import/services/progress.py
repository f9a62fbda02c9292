from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress reporting for chunked imports.

ProgressSink is fire-and-forget: the processor calls ``notify`` once per
completed chunk and ignores the outcome.

- ProgressTracker: single tqdm bar, TTY only (disabled in CI to avoid ANSI
  control sequence spam)
- LoggingProgressSink: one INFO line per chunk, for non-TTY runs
"""

__all__ = [
    "LoggingProgressSink",
    "ProgressSink",
    "ProgressTracker",
    "format_progress",
    "is_tty_enabled",
]

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    def notify(
        self,
        range_start: int,
        range_end: int,
        total: int,
        percent: float,
        filter_description: str | None = None,
    ) -> None:
        ...


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


def format_progress(
    range_start: int,
    range_end: int,
    total: int,
    percent: float,
    filter_description: str | None = None,
) -> str:
    """``Processed records 1 to 500 of 1200 (41.7%) (filtering ...)``."""
    filter_info = f" ({filter_description})" if filter_description else ""
    return (
        f"Processed records {range_start} to {range_end} of {total} "
        f"({percent:.1f}%){filter_info}"
    )


class LoggingProgressSink:
    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def notify(
        self,
        range_start: int,
        range_end: int,
        total: int,
        percent: float,
        filter_description: str | None = None,
    ) -> None:
        logger.log(
            self.level,
            format_progress(range_start, range_end, total, percent, filter_description),
        )


class ProgressTracker:
    """tqdm progress bar over data rows.

    Usable as a context manager; the bar is closed on exit.
    """

    def __init__(self, total_rows: int, *, description: str = "Importing rows") -> None:
        self.total_rows = total_rows
        self.description = description
        self.completed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def notify(
        self,
        range_start: int,
        range_end: int,
        total: int,
        percent: float,
        filter_description: str | None = None,
    ) -> None:
        advanced = max(range_end - self.completed, 0)
        self.completed = max(self.completed, range_end)
        if self.enabled and self.pbar is not None:
            self.pbar.update(advanced)
            if filter_description:
                self.pbar.set_description(f"{self.description} ({filter_description})")

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
