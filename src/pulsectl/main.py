"""CLI entrypoint for pulsectl."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from pulsectl import __version__
from pulsectl.config import Settings
from pulsectl.tasks.client import PulseClient
from pulsectl.tasks.controllers import (
    TaskCliController,
    TaskCommandError,
    TaskCreateCommand,
    TaskIdCommand,
)

click.rich_click.USE_MARKDOWN = True

_LEGACY_OCTAL = re.compile(r"0[0-7_]+")


def parse_task_id(value: str, *, bits: int = 64) -> int:
    """Parse an unsigned task id written in decimal or with a base prefix."""

    if not value or not value.isascii() or value != value.strip() or value[0] in "+-":
        raise ValueError(f"invalid task id {value!r}")
    try:
        number = int(value, 8) if _LEGACY_OCTAL.fullmatch(value) else int(value, 0)
    except ValueError:
        raise ValueError(f"invalid task id {value!r}") from None
    if number >= 1 << bits:
        raise ValueError(f"task id {value!r} is out of range for {bits}-bit ids")
    return number


class TaskId(click.ParamType):
    """Click parameter type for unsigned task ids."""

    name = "task_id"

    def __init__(self, bits: int = 64) -> None:
        self.bits = bits

    def convert(
        self,
        value: object,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> int:
        if isinstance(value, int):
            return value
        try:
            return parse_task_id(str(value), bits=self.bits)
        except ValueError as error:
            self.fail(str(error), param, ctx)


class TaskCommand(click.RichCommand):
    """Command reporting usage errors with its full help and exit status 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as error:
            click.echo(f"Incorrect usage - {error.format_message()}")
            click.echo(ctx.get_help())
            ctx.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="pulsectl")
@click.option(
    "--url",
    default=None,
    help="Pulse REST API URL. Defaults to PULSECTL_URL or http://localhost:8181.",
)
@click.option(
    "--api-version",
    default=None,
    help="REST API version prefix. Defaults to PULSECTL_API_VERSION or v1.",
)
@click.pass_context
def pulsectl(ctx: click.Context, url: str | None, api_version: str | None) -> None:
    """Pulse task scheduler CLI."""

    if isinstance(ctx.obj, TaskCliController):
        return
    try:
        settings = Settings.from_env(url=url, api_version=api_version)
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    client = PulseClient.from_settings(settings.client)
    ctx.call_on_close(client.close)
    ctx.obj = TaskCliController(client=client, watch_settings=settings.watch)


@pulsectl.group()
def task() -> None:
    """Task lifecycle commands."""


@task.command("create", cls=TaskCommand)
@click.argument("path", type=click.Path(path_type=Path, dir_okay=False))
@click.option("--name", "-n", default=None, help="Task name; overrides the name in the file.")
@click.option(
    "--deadline",
    "-d",
    default=None,
    help="Per-run deadline, for example 5s; overrides the deadline in the file.",
)
@click.pass_context
def task_create(ctx: click.Context, path: Path, name: str | None, deadline: str | None) -> None:
    """Create a task from a YAML or JSON task file."""

    controller = _controller(ctx)
    _run(
        ctx,
        lambda: controller.create_task(TaskCreateCommand(path=path, name=name, deadline=deadline)),
    )


@task.command("list", cls=TaskCommand)
@click.pass_context
def task_list(ctx: click.Context) -> None:
    """List scheduled tasks."""

    controller = _controller(ctx)
    _run(ctx, controller.list_tasks)


@task.command("watch", cls=TaskCommand)
@click.argument("task_id", type=TaskId())
@click.pass_context
def task_watch(ctx: click.Context, task_id: int) -> None:
    """Stream events of a running task until it ends or Ctrl+C is pressed."""

    controller = _controller(ctx)
    _run(ctx, lambda: controller.watch_task(TaskIdCommand(task_id=task_id), emit=click.echo))


@task.command("start", cls=TaskCommand)
@click.argument("task_id", type=TaskId())
@click.pass_context
def task_start(ctx: click.Context, task_id: int) -> None:
    """Start a task."""

    controller = _controller(ctx)
    _run(ctx, lambda: controller.start_task(TaskIdCommand(task_id=task_id)))


@task.command("stop", cls=TaskCommand)
@click.argument("task_id", type=TaskId())
@click.pass_context
def task_stop(ctx: click.Context, task_id: int) -> None:
    """Stop a task."""

    controller = _controller(ctx)
    _run(ctx, lambda: controller.stop_task(TaskIdCommand(task_id=task_id)))


@task.command("remove", cls=TaskCommand)
@click.argument("task_id", type=TaskId())
@click.pass_context
def task_remove(ctx: click.Context, task_id: int) -> None:
    """Remove a task."""

    controller = _controller(ctx)
    _run(ctx, lambda: controller.remove_task(TaskIdCommand(task_id=task_id)))


@task.command("export", cls=TaskCommand)
@click.argument("task_id", type=TaskId(bits=32))
@click.pass_context
def task_export(ctx: click.Context, task_id: int) -> None:
    """Print a task as JSON."""

    controller = _controller(ctx)
    _run(ctx, lambda: controller.export_task(TaskIdCommand(task_id=task_id)))


def _controller(ctx: click.Context) -> TaskCliController:
    return ctx.find_object(TaskCliController)


def _run(ctx: click.Context, action: Callable[[], list[str] | None]) -> None:
    try:
        lines = action()
    except TaskCommandError as error:
        click.echo(error.message)
        if error.show_help:
            click.echo(ctx.get_help())
        ctx.exit(1)
    _emit_lines(lines or [])


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    pulsectl()
