"""Off-loop execution of backend jobs.

Jobs run on a bounded worker pool; each outcome is queued as a
``Completion`` and only applied when the interaction loop drains the queue.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class Completion:
    """Outcome of one dispatched job.

    ``kind`` and ``token`` are whatever the submitter passed; the controller
    uses them to route the result and to detect stale work.
    """

    kind: str
    token: object
    value: object = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Dispatcher(Protocol):
    def submit(self, kind: str, token: object, job: Callable[[], object]) -> None: ...

    def drain(self) -> list[Completion]: ...

    def close(self) -> None: ...

    @property
    def busy(self) -> bool: ...


def _run(kind: str, token: object, job: Callable[[], object]) -> Completion:
    try:
        return Completion(kind=kind, token=token, value=job())
    except Exception as exc:
        logger.debug("%s job failed: %s", kind, exc)
        return Completion(kind=kind, token=token, error=exc)


class BackgroundDispatcher:
    """Bounded worker pool; results collected on a queue."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, thread_name: str = "lazybrowse-worker") -> None:
        self.max_workers = max(1, int(max_workers))
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=thread_name)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._results: Queue[Completion] = Queue()

    def _worker(self, kind: str, token: object, job: Callable[[], object]) -> None:
        self._results.put(_run(kind, token, job))
        with self._lock:
            self._in_flight -= 1

    def submit(self, kind: str, token: object, job: Callable[[], object]) -> None:
        """Queue ``job``; at most ``max_workers`` jobs run at once."""
        with self._lock:
            self._in_flight += 1
        self._executor.submit(self._worker, kind, token, job)

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._in_flight > 0 or not self._results.empty()

    def drain(self) -> list[Completion]:
        """Drain all completed jobs."""
        out: list[Completion] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out

    def close(self) -> None:
        """Stop accepting work and drop jobs that have not started."""
        self._executor.shutdown(wait=False, cancel_futures=True)


class InlineDispatcher:
    """Run jobs synchronously at submit time; results still wait for ``drain``."""

    def __init__(self) -> None:
        self.submitted: list[tuple[str, object]] = []
        self._results: list[Completion] = []

    def submit(self, kind: str, token: object, job: Callable[[], object]) -> None:
        self.submitted.append((kind, token))
        self._results.append(_run(kind, token, job))

    @property
    def busy(self) -> bool:
        return bool(self._results)

    def drain(self) -> list[Completion]:
        out = self._results
        self._results = []
        return out

    def close(self) -> None:
        self._results = []


__all__ = [
    "BackgroundDispatcher",
    "Completion",
    "Dispatcher",
    "InlineDispatcher",
]
