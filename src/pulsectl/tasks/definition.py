"""Task definition file loading and validation."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from pulsectl.tasks.models import TaskDefinition

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = 1
YAML_SUFFIXES = frozenset({".yaml", ".yml"})
JSON_SUFFIXES = frozenset({".json"})


class TaskDefinitionError(ValueError):
    """Raised when a task definition file cannot be turned into a request."""


def load_task_definition(
    path: Path,
    *,
    name: str | None = None,
    deadline: str | None = None,
) -> TaskDefinition:
    """Read, parse and validate a task definition file.

    The format is chosen by file extension. ``name`` and ``deadline`` override
    the values found in the file when given.
    """

    suffix = path.suffix.lower()
    try:
        text = path.read_text("utf-8")
    except OSError as error:
        raise TaskDefinitionError(f"File error - {error}") from error

    if suffix in YAML_SUFFIXES:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as error:
            raise TaskDefinitionError(f"Error parsing YAML file input - {error}") from error
    elif suffix in JSON_SUFFIXES:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as error:
            raise TaskDefinitionError(f"Error parsing JSON file input - {error}") from error
    else:
        raise TaskDefinitionError(f"Unsupported file type {path.suffix}")

    definition = parse_task_definition(raw)
    if name:
        definition.name = name
    if deadline:
        definition.deadline = deadline
    logger.debug("Loaded task definition from %s (name=%s)", path, definition.name)
    return definition


def parse_task_definition(raw: Any) -> TaskDefinition:
    """Validate a decoded document and build a task definition."""

    if not isinstance(raw, Mapping):
        raise TaskDefinitionError("Task definition must be a mapping.")
    fields = {str(key).lower(): value for key, value in raw.items()}

    version = fields.get("version")
    if isinstance(version, bool) or version != SUPPORTED_VERSION:
        raise TaskDefinitionError("Invalid version provided")

    schedule = fields.get("schedule")
    if not isinstance(schedule, Mapping) or not schedule.get("type"):
        raise TaskDefinitionError("Task definition requires a schedule with a type.")

    workflow = fields.get("workflow")
    if not isinstance(workflow, Mapping):
        raise TaskDefinitionError("Task definition requires a workflow mapping.")

    name = fields.get("name")
    deadline = fields.get("deadline")
    return TaskDefinition(
        version=SUPPORTED_VERSION,
        schedule=dict(schedule),
        workflow=dict(workflow),
        name=str(name) if name else None,
        deadline=str(deadline) if deadline else None,
    )
