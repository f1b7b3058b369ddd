from __future__ import annotations

from ..models.task import Status
from ..models.views import StatusOverview

"""SUMMARY line rendering for a loaded export."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(rows: int, overview: StatusOverview, weeks: int, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for one successful load.

    Format:
    SUMMARY rows={raw rows} tasks={tasks} weeks={distinct weeks}
    open={n} inprogress={n} done={n} other={n} elapsed_sec={elapsed}

    Examples:
        >>> from taskweek.models.views import StatusOverview
        >>> ov = StatusOverview(total=3, with_week=3, counts={Status.OPEN: 1, Status.DONE: 2})
        >>> render_summary_line(3, ov, 2, 0.5)
        'SUMMARY rows=3 tasks=3 weeks=2 open=1 inprogress=0 done=2 other=0 elapsed_sec=0.5'
    """
    counts = " ".join(f"{s.value}={overview.count(s)}" for s in Status)
    return (
        f"SUMMARY rows={rows} "
        f"tasks={overview.total} "
        f"weeks={weeks} "
        f"{counts} "
        f"elapsed_sec={_format_seconds(elapsed_seconds)}"
    )
