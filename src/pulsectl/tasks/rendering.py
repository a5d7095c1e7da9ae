"""Text rendering for task commands."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from datetime import datetime

from pulsectl.tasks.models import METRIC_EVENT, Task, WatchEvent

TIME_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"
METRICS_MARKER = "[metrics collected]"
TABLE_HEADERS = (
    "ID",
    "NAME",
    "STATE",
    "HIT COUNT",
    "MISS COUNT",
    "FAILURE COUNT",
    "CREATION TIME",
    "LAST FAILURE MSG",
)


def render_watch_event(event: WatchEvent) -> str:
    """Render one watch event as a single output line."""

    if event.event_type == METRIC_EVENT:
        pairs = " ".join(
            f"{metric.namespace}={format_metric_value(metric.data)}" for metric in event.metrics
        )
        return f"{METRICS_MARKER} {pairs}"
    return f"[{event.event_type}]"


def format_metric_value(value: object) -> str:
    """Render an untyped metric payload for display."""

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, str | int | float):
        return str(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def format_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime(TIME_FORMAT)


def render_task_table(tasks: Sequence[Task]) -> list[str]:
    """Render tasks as a header row plus one left-aligned row per task."""

    rows = [list(TABLE_HEADERS)]
    for task in tasks:
        rows.append(
            [
                str(task.id),
                task.name,
                task.state_label,
                str(task.hit_count),
                str(task.miss_count),
                str(task.failed_count),
                format_time(task.creation_time),
                task.last_failure_message,
            ],
        )
    widths = [max(len(row[column]) for row in rows) for column in range(len(TABLE_HEADERS))]
    return [
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths, strict=True)).rstrip()
        for row in rows
    ]


def render_created_task(task: Task) -> list[str]:
    return [
        "Task created",
        f"ID: {task.id}",
        f"Name: {task.name}",
        f"State: {task.state_label}",
    ]


def render_task_export(task: Task) -> str:
    return json.dumps(task.payload, separators=(",", ":"), sort_keys=True)
