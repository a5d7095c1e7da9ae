"""Controllers for task CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pulsectl.config import WatchSettings
from pulsectl.tasks.client import TaskClient, TaskClientError
from pulsectl.tasks.definition import TaskDefinitionError, load_task_definition
from pulsectl.tasks.rendering import render_created_task, render_task_export, render_task_table
from pulsectl.tasks.watch import WatchSession

logger = logging.getLogger(__name__)


class TaskCommandError(Exception):
    """Fatal, user-visible command failure; the CLI exits with status 1."""

    def __init__(self, message: str, *, show_help: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.show_help = show_help


@dataclass(slots=True)
class TaskCreateCommand:
    """CLI input for task creation."""

    path: Path
    name: str | None = None
    deadline: str | None = None


@dataclass(slots=True)
class TaskIdCommand:
    """CLI input for commands addressing one task."""

    task_id: int


class TaskCliController:
    """Runs task commands against an injected task client."""

    def __init__(self, client: TaskClient, watch_settings: WatchSettings | None = None) -> None:
        self.client = client
        self.watch_settings = watch_settings or WatchSettings()

    def create_task(self, command: TaskCreateCommand) -> list[str]:
        try:
            definition = load_task_definition(
                command.path,
                name=command.name,
                deadline=command.deadline,
            )
        except TaskDefinitionError as error:
            raise TaskCommandError(str(error)) from error

        try:
            task = self.client.create_task(definition)
        except TaskClientError as error:
            raise TaskCommandError(f"Error creating task:\n{error}") from error
        logger.info("Created task %s", task.id)
        return render_created_task(task)

    def list_tasks(self) -> list[str]:
        try:
            tasks = self.client.get_tasks()
        except TaskClientError as error:
            raise TaskCommandError(f"Error getting tasks:\n{error}") from error
        return render_task_table(tasks)

    def start_task(self, command: TaskIdCommand) -> list[str]:
        try:
            result = self.client.start_task(command.task_id)
        except TaskClientError as error:
            raise TaskCommandError(f"Error starting task:\n{error}") from error
        return ["Task started:", f"ID: {result.id}"]

    def stop_task(self, command: TaskIdCommand) -> list[str]:
        try:
            result = self.client.stop_task(command.task_id)
        except TaskClientError as error:
            raise TaskCommandError(f"Error stopping task:\n{error}") from error
        return ["Task stopped:", f"ID: {result.id}"]

    def remove_task(self, command: TaskIdCommand) -> list[str]:
        try:
            result = self.client.remove_task(command.task_id)
        except TaskClientError as error:
            raise TaskCommandError(f"Error removing task:\n{error}") from error
        return ["Task removed:", f"ID: {result.id}"]

    def export_task(self, command: TaskIdCommand) -> list[str]:
        try:
            task = self.client.get_task(command.task_id)
        except TaskClientError as error:
            raise TaskCommandError(f"Error exporting task:\n{error}") from error
        return [render_task_export(task)]

    def watch_task(self, command: TaskIdCommand, emit: Callable[[str], None]) -> None:
        """Stream a task's events to ``emit`` until the watch completes."""

        try:
            watch = self.client.watch_task(command.task_id)
        except TaskClientError as error:
            raise TaskCommandError(f"Error starting task:\n{error}", show_help=True) from error

        emit(f"Watching Task ({command.task_id}):")
        session = WatchSession(
            watch,
            emit=emit,
            poll_interval_seconds=self.watch_settings.poll_interval_seconds,
        )
        error = session.run()
        if error is not None:
            raise TaskCommandError(f"Task watch ended with error:\n{error}")
