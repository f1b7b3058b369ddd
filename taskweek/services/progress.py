from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

Large exports take a noticeable moment to normalize, so row progress is shown
on an interactive terminal. In non-TTY environments (pipes, CI) the bar is
disabled to keep ANSI control sequences out of captured output.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]

# Below this many rows a bar is just flicker
MIN_ROWS_FOR_BAR = 500


def is_tty_enabled() -> bool:
    """True when stderr (where the bar is drawn) is a TTY."""
    return sys.stderr.isatty()


class ProgressTracker:
    """Row progress tracker backed by a single tqdm instance."""

    def __init__(
        self,
        total: int,
        *,
        description: str = "Processing",
        unit: str = "row",
        enabled: bool = True,
    ) -> None:
        self.total = total
        self.description = description
        self.current = 0

        self.enabled = enabled and total >= MIN_ROWS_FOR_BAR and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                leave=False,
                ncols=80,
                ascii=True,
                file=sys.stderr,
            )
        else:
            self.pbar = None

    def advance(self, n: int = 1) -> None:
        self.current += n
        if self.pbar is not None:
            self.pbar.update(n)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
