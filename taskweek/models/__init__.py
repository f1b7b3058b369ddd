"""Domain models for the weekly task report pipeline.

Normalized Task records, the typed task identity, and the derived view rows
produced by the aggregation services.
"""

from .error_record import ErrorRecord
from .task import CompositeIdentity, KeyedIdentity, Status, Task, TaskIdentity
from .views import (
    CompareRow,
    CompareSummary,
    CompareView,
    FollowUpReport,
    ProjectFilter,
    ProjectRow,
    StatusOverview,
    WeekSelection,
    WorkloadBucketRow,
    WorkloadRow,
)

__all__ = [
    # Task records
    "Status",
    "Task",
    "TaskIdentity",
    "KeyedIdentity",
    "CompositeIdentity",
    # View parameters
    "WeekSelection",
    "ProjectFilter",
    # View rows
    "ProjectRow",
    "WorkloadRow",
    "CompareRow",
    "CompareSummary",
    "CompareView",
    "WorkloadBucketRow",
    "FollowUpReport",
    "StatusOverview",
    # Error log
    "ErrorRecord",
]
