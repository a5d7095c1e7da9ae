"""Shared test fixtures."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterable
from datetime import UTC, datetime

import pytest

from pulsectl.config import WatchSettings
from pulsectl.tasks.client import TaskClientError
from pulsectl.tasks.controllers import TaskCliController
from pulsectl.tasks.models import Task, TaskDefinition, TaskMutation, TaskState, WatchEvent
from pulsectl.tasks.watch import TaskWatch


def make_task(task_id: int = 1, **overrides) -> Task:
    payload = {
        "id": task_id,
        "name": f"Task-{task_id}",
        "task_state": "Spinning",
        "hit_count": 3,
        "miss_count": 1,
        "failed_count": 0,
        "creation_timestamp": int(datetime(2026, 2, 18, 12, 0, tzinfo=UTC).timestamp()),
        "last_failure_message": "",
        "href": f"http://localhost:8181/v1/tasks/{task_id}",
    }
    payload.update(overrides)
    return Task.from_payload(payload)


class ManualWatch:
    """Watch handle whose completion is driven by the test."""

    def __init__(self, events: Iterable[WatchEvent] = ()) -> None:
        self.events: queue.Queue[WatchEvent] = queue.Queue()
        for event in events:
            self.events.put(event)
        self.done = threading.Event()
        self.error: Exception | None = None
        self.close_calls = 0
        self.closed = threading.Event()

    def close(self) -> None:
        self.close_calls += 1
        self.closed.set()


class FakeTaskClient:
    """In-memory task client recording every call."""

    def __init__(
        self,
        *,
        tasks: list[Task] | None = None,
        events: Iterable[WatchEvent] = (),
        error: TaskClientError | None = None,
    ) -> None:
        self.tasks = tasks if tasks is not None else [make_task(1)]
        self.events = list(events)
        self.error = error
        self.calls: list[tuple[str, object]] = []
        self.created: list[TaskDefinition] = []
        self.watch: TaskWatch | None = None

    def _check(self, name: str, argument: object = None) -> None:
        self.calls.append((name, argument))
        if self.error is not None:
            raise self.error

    def create_task(self, definition: TaskDefinition) -> Task:
        self._check("create_task", definition)
        self.created.append(definition)
        return make_task(7, name=definition.name or "Task-7", task_state=TaskState.STOPPED.value)

    def get_tasks(self) -> list[Task]:
        self._check("get_tasks")
        return self.tasks

    def get_task(self, task_id: int) -> Task:
        self._check("get_task", task_id)
        return make_task(task_id)

    def start_task(self, task_id: int) -> TaskMutation:
        self._check("start_task", task_id)
        return TaskMutation(id=task_id)

    def stop_task(self, task_id: int) -> TaskMutation:
        self._check("stop_task", task_id)
        return TaskMutation(id=task_id)

    def remove_task(self, task_id: int) -> TaskMutation:
        self._check("remove_task", task_id)
        return TaskMutation(id=task_id)

    def watch_task(self, task_id: int) -> TaskWatch:
        self._check("watch_task", task_id)
        self.watch = TaskWatch(task_id=task_id, source=iter(self.events))
        return self.watch.start()


@pytest.fixture()
def fake_client() -> FakeTaskClient:
    return FakeTaskClient()


@pytest.fixture()
def controller_factory():
    def _factory(client: FakeTaskClient) -> TaskCliController:
        return TaskCliController(
            client=client,
            watch_settings=WatchSettings(poll_interval_seconds=0.01),
        )

    return _factory


@pytest.fixture()
def task_factory():
    return make_task


@pytest.fixture()
def client_factory():
    return FakeTaskClient


@pytest.fixture()
def watch_factory():
    return ManualWatch
