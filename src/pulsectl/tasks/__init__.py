"""Task lifecycle commands backed by the Pulse REST API."""

from pulsectl.tasks.client import PulseClient, TaskClient, TaskClientError
from pulsectl.tasks.controllers import TaskCliController, TaskCommandError
from pulsectl.tasks.watch import TaskWatch, WatchSession

__all__ = [
    "PulseClient",
    "TaskCliController",
    "TaskClient",
    "TaskClientError",
    "TaskCommandError",
    "TaskWatch",
    "WatchSession",
]
