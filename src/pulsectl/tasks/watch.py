"""Task watch subscription handle and the interactive watch loop."""

from __future__ import annotations

import logging
import queue
import signal
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol

from pulsectl.tasks.models import WatchEvent
from pulsectl.tasks.rendering import render_watch_event

logger = logging.getLogger(__name__)

STOPPING_NOTICE = "Stopping task watch"


class WatchHandle(Protocol):
    """What a watch session needs from a subscription."""

    events: queue.Queue[WatchEvent]
    done: threading.Event
    error: Exception | None

    def close(self) -> None:
        """Ask for the subscription to be torn down."""


class TaskWatch:
    """Live subscription to one task's event stream.

    A daemon reader thread drains ``source`` into :attr:`events` in delivery
    order. :attr:`done` is set exactly once: when the stream ends, when it
    fails (with :attr:`error` populated), or when :meth:`close` is called.
    """

    def __init__(
        self,
        *,
        task_id: int,
        source: Iterable[WatchEvent],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.task_id = task_id
        self.events: queue.Queue[WatchEvent] = queue.Queue()
        self.done = threading.Event()
        self.error: Exception | None = None
        self._source = source
        self._on_close = on_close
        self._closing = threading.Event()
        self._lock = threading.Lock()
        self._reader: threading.Thread | None = None

    @property
    def closed(self) -> bool:
        return self._closing.is_set()

    def start(self) -> TaskWatch:
        if self._reader is None:
            self._reader = threading.Thread(
                target=self._read_loop,
                daemon=True,
                name=f"task-watch-{self.task_id}",
            )
            self._reader.start()
        return self

    def close(self) -> None:
        """Tear down the stream and complete the watch. Safe to call from any thread."""

        with self._lock:
            if self._closing.is_set():
                return
            self._closing.set()
        logger.debug("Closing watch for task %s", self.task_id)
        if self._on_close is not None:
            try:
                self._on_close()
            except Exception as exc:  # noqa: BLE001 - the reader may be mid-read on the stream
                logger.warning("Error closing watch for task %s: %s", self.task_id, exc)
        self._finish(None)

    def _read_loop(self) -> None:
        error: Exception | None = None
        try:
            for event in self._source:
                if self._closing.is_set():
                    break
                self.events.put(event)
        except Exception as exc:  # noqa: BLE001
            if not self._closing.is_set():
                logger.warning("Watch stream for task %s failed: %s", self.task_id, exc)
                error = exc
        finally:
            self._finish(error)

    def _finish(self, error: Exception | None) -> None:
        with self._lock:
            if self.done.is_set():
                return
            self.error = error
            self.done.set()
        logger.debug("Watch for task %s completed (error=%s)", self.task_id, error)


class WatchSession:
    """Print a subscription's events until it completes.

    SIGINT/SIGTERM only request a close; the session still returns on the
    subscription's completion signal.
    """

    def __init__(
        self,
        watch: WatchHandle,
        *,
        emit: Callable[[str], None],
        poll_interval_seconds: float = 0.1,
    ) -> None:
        self._watch = watch
        self._emit = emit
        self._poll_interval = poll_interval_seconds
        self._output_lock = threading.Lock()
        self._interrupted = threading.Event()
        self._finished = threading.Event()
        self._stop_signal_name: str | None = None

    def run(self) -> Exception | None:
        """Block until the watch completes and return its terminal error, if any."""

        with self._signal_handlers(), self._interrupt_listener():
            while True:
                try:
                    event = self._watch.events.get(timeout=self._poll_interval)
                except queue.Empty:
                    if self._watch.done.is_set() and self._watch.events.empty():
                        break
                    continue
                self._emit_line(render_watch_event(event))
        return self._watch.error

    def request_stop(self, *, signal_name: str = "manual") -> None:
        if self._stop_signal_name is None:
            self._stop_signal_name = signal_name
        self._interrupted.set()

    def _emit_line(self, line: str) -> None:
        with self._output_lock:
            self._emit(line)

    def _listen_for_interrupt(self) -> None:
        self._interrupted.wait()
        if self._finished.is_set():
            return
        logger.info("Received %s, closing task watch", self._stop_signal_name or "stop request")
        self._emit_line(STOPPING_NOTICE)
        self._watch.close()

    @contextmanager
    def _interrupt_listener(self) -> Iterator[None]:
        listener = threading.Thread(
            target=self._listen_for_interrupt,
            daemon=True,
            name="task-watch-interrupt",
        )
        listener.start()
        try:
            yield
        finally:
            self._finished.set()
            self._interrupted.set()
            listener.join(timeout=5)

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self.request_stop(signal_name=name)

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
