"""Domain models for scheduled tasks and their watch streams."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

METRIC_EVENT = "metric-event"
STREAM_OPEN_EVENT = "stream-open"
TASK_DISABLED_EVENT = "task-disabled"


class TaskState(str, Enum):
    """Task lifecycle states reported by the scheduler."""

    STOPPED = "Stopped"
    SPINNING = "Spinning"
    FIRING = "Firing"
    STOPPING = "Stopping"
    ENDED = "Ended"
    DISABLED = "Disabled"


@dataclass(slots=True)
class Task:
    """Read-only snapshot of a scheduled task."""

    id: int
    name: str
    state: TaskState | str
    hit_count: int = 0
    miss_count: int = 0
    failed_count: int = 0
    creation_time: datetime | None = None
    last_failure_message: str = ""
    href: str = ""
    payload: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def state_label(self) -> str:
        return self.state.value if isinstance(self.state, TaskState) else self.state

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Task:
        """Build a task from the scheduled-task body returned by the service."""

        return cls(
            id=int(payload.get("id") or 0),
            name=str(payload.get("name") or ""),
            state=_parse_state(payload.get("task_state")),
            hit_count=int(payload.get("hit_count") or 0),
            miss_count=int(payload.get("miss_count") or 0),
            failed_count=int(payload.get("failed_count") or 0),
            creation_time=_parse_timestamp(payload.get("creation_timestamp")),
            last_failure_message=str(payload.get("last_failure_message") or ""),
            href=str(payload.get("href") or ""),
            payload=payload,
        )


@dataclass(slots=True)
class TaskMutation:
    """Acknowledgement for start/stop/remove requests."""

    id: int


@dataclass(slots=True)
class TaskDefinition:
    """Input payload for task creation."""

    version: int
    schedule: dict[str, Any]
    workflow: dict[str, Any]
    name: str | None = None
    deadline: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "version": self.version,
            "schedule": self.schedule,
            "workflow": self.workflow,
        }
        if self.name:
            payload["name"] = self.name
        if self.deadline:
            payload["deadline"] = self.deadline
        return payload


@dataclass(frozen=True, slots=True)
class StreamedMetric:
    """One collected metric value carried by a metric event."""

    namespace: str
    data: Any = None
    source: str | None = None
    timestamp: str | None = None


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """Event pushed by the service on a task watch stream."""

    event_type: str
    message: str = ""
    metrics: tuple[StreamedMetric, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> WatchEvent:
        raw_metrics = payload.get("event") or []
        if not isinstance(raw_metrics, list):
            raise ValueError(f"Invalid watch event body: {raw_metrics!r}")
        metrics = tuple(
            StreamedMetric(
                namespace=_format_namespace(item.get("namespace")),
                data=item.get("data"),
                source=item.get("source"),
                timestamp=item.get("timestamp"),
            )
            for item in raw_metrics
            if isinstance(item, dict)
        )
        return cls(
            event_type=str(payload.get("type") or ""),
            message=str(payload.get("message") or ""),
            metrics=metrics,
        )


def _parse_state(value: object) -> TaskState | str:
    text = str(value or "")
    try:
        return TaskState(text)
    except ValueError:
        return text


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, int | float | str) or value in ("", 0):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=UTC)
    except (ValueError, OverflowError, OSError):
        return None


def _format_namespace(value: object) -> str:
    if isinstance(value, list):
        return "/" + "/".join(str(part) for part in value)
    return str(value or "")
