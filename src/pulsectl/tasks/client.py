"""REST client for the Pulse task scheduling service."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import httpx

from pulsectl import __version__
from pulsectl.config import ClientSettings
from pulsectl.tasks.models import (
    STREAM_OPEN_EVENT,
    TASK_DISABLED_EVENT,
    Task,
    TaskDefinition,
    TaskMutation,
    WatchEvent,
)
from pulsectl.tasks.watch import TaskWatch

logger = logging.getLogger(__name__)

USER_AGENT = f"pulsectl/{__version__}"
ERROR_RESPONSE_TYPE = "error"


class TaskClientError(RuntimeError):
    """Raised when the service rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskClient(Protocol):
    """Operations the CLI needs from the task service."""

    def create_task(self, definition: TaskDefinition) -> Task:
        """Create a task from a definition."""

    def get_tasks(self) -> list[Task]:
        """List every scheduled task."""

    def get_task(self, task_id: int) -> Task:
        """Fetch one scheduled task."""

    def start_task(self, task_id: int) -> TaskMutation:
        """Start a task."""

    def stop_task(self, task_id: int) -> TaskMutation:
        """Stop a task."""

    def remove_task(self, task_id: int) -> TaskMutation:
        """Remove a task."""

    def watch_task(self, task_id: int) -> TaskWatch:
        """Open a watch subscription on a running task."""


class PulseClient:
    """``httpx`` implementation of :class:`TaskClient`."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        connect_timeout_seconds: float = 5.0,
        max_retries: int = 0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        # Watch streams may stay silent for as long as the task does.
        self._watch_timeout = httpx.Timeout(
            timeout_seconds,
            connect=connect_timeout_seconds,
            read=None,
        )
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self._timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> PulseClient:
        return cls(
            base_url=settings.base_url,
            timeout_seconds=settings.request_timeout_seconds,
            connect_timeout_seconds=settings.connect_timeout_seconds,
            max_retries=settings.max_retries,
        )

    def create_task(self, definition: TaskDefinition) -> Task:
        body = self._request("POST", "/tasks", json=definition.to_payload())
        with _decoding("task"):
            return Task.from_payload(body)

    def get_tasks(self) -> list[Task]:
        body = self._request("GET", "/tasks")
        with _decoding("task list"):
            return [Task.from_payload(item) for item in body.get("ScheduledTasks") or []]

    def get_task(self, task_id: int) -> Task:
        body = self._request("GET", f"/tasks/{task_id}")
        with _decoding("task"):
            return Task.from_payload(body)

    def start_task(self, task_id: int) -> TaskMutation:
        body = self._request("PUT", f"/tasks/{task_id}/start")
        return _mutation(body, task_id)

    def stop_task(self, task_id: int) -> TaskMutation:
        body = self._request("PUT", f"/tasks/{task_id}/stop")
        return _mutation(body, task_id)

    def remove_task(self, task_id: int) -> TaskMutation:
        body = self._request("DELETE", f"/tasks/{task_id}")
        return _mutation(body, task_id)

    def watch_task(self, task_id: int) -> TaskWatch:
        """Open the event stream and hand it to a started :class:`TaskWatch`.

        Errors while opening are raised here; errors after that complete the
        watch with :attr:`TaskWatch.error` set.
        """

        path = f"/tasks/{task_id}/watch"
        request = self._client.build_request("GET", path, timeout=self._watch_timeout)
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.warning("HTTP error opening %s: %s", path, exc)
            raise TaskClientError(str(exc)) from exc

        if not response.is_success:
            try:
                response.read()
            finally:
                response.close()
            raise _response_error(response)

        logger.debug("Watch stream opened for task %s", task_id)
        watch = TaskWatch(
            task_id=task_id,
            source=_stream_events(response),
            on_close=response.close,
        )
        return watch.start()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PulseClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("HTTP error on %s %s: %s", method, path, exc)
            raise TaskClientError(str(exc)) from exc

        envelope = _decode_envelope(response)
        meta = envelope.get("meta")
        is_error = isinstance(meta, dict) and meta.get("type") == ERROR_RESPONSE_TYPE
        if not response.is_success or is_error:
            raise _response_error(response, envelope)
        body = envelope.get("body")
        if not isinstance(body, dict):
            logger.warning("Response to %s %s has no body", method, path)
            raise TaskClientError(
                f"Invalid response from {method} {path}: missing response body",
                status_code=response.status_code,
            )
        return body


def _mutation(body: dict[str, Any], task_id: int) -> TaskMutation:
    with _decoding("task id"):
        return TaskMutation(id=int(body.get("id", task_id)))


@contextmanager
def _decoding(what: str) -> Iterator[None]:
    try:
        yield
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("Could not decode %s: %s", what, exc)
        raise TaskClientError(f"Invalid {what} in response: {exc}") from exc


def iter_watch_events(lines: Iterable[str]) -> Iterator[WatchEvent]:
    """Decode a newline-delimited stream of watch events.

    ``stream-open`` acknowledgements are skipped; ``task-disabled`` is the last
    event the stream yields.
    """

    for line in lines:
        text = line.strip()
        if text.startswith("data:"):
            text = text[len("data:") :].strip()
        if not text:
            continue
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid watch event: {text!r}")
        event = WatchEvent.from_payload(payload)
        if event.event_type == STREAM_OPEN_EVENT:
            logger.debug("Watch stream acknowledged: %s", event.message)
            continue
        yield event
        if event.event_type == TASK_DISABLED_EVENT:
            return


def _stream_events(response: httpx.Response) -> Iterator[WatchEvent]:
    try:
        yield from iter_watch_events(response.iter_lines())
    finally:
        response.close()


def _decode_envelope(response: httpx.Response) -> dict[str, Any]:
    try:
        decoded = response.json()
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def _response_error(
    response: httpx.Response,
    envelope: dict[str, Any] | None = None,
) -> TaskClientError:
    if envelope is None:
        envelope = _decode_envelope(response)
    meta = envelope.get("meta")
    body = envelope.get("body")
    message = (
        (body.get("message") if isinstance(body, dict) else None)
        or (meta.get("message") if isinstance(meta, dict) else None)
        or f"HTTP {response.status_code} {response.reason_phrase}".strip()
    )
    return TaskClientError(str(message), status_code=response.status_code)
