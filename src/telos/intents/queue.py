"""In-memory intent queue and its shared, lock-guarded wrapper."""

import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager

from .models import Intent


class IntentQueue:
    """FIFO of intents waiting to be processed in the current beat.

    Has no locking of its own; go through SharedIntentQueue when the queue
    is reachable from more than one call site.
    """

    def __init__(self) -> None:
        self._items: deque[Intent] = deque()

    def push(self, intent: Intent) -> None:
        """Append an intent to the back of the queue."""
        self._items.append(intent)

    def push_front(self, intent: Intent) -> None:
        """Insert an intent at the front so it is popped next."""
        self._items.appendleft(intent)

    def pop_next(self) -> Intent | None:
        """Remove and return the front intent, or None when empty."""
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self) -> Intent | None:
        """Return the front intent without removing it."""
        return self._items[0] if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Intent]:
        return iter(list(self._items))


class ReadWriteLock:
    """Reader/writer lock that prefers waiting writers.

    Any number of readers may hold the lock together; a writer holds it
    alone. Never hold it across an ``await``.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SharedIntentQueue:
    """An IntentQueue behind a reader/writer lock.

    The orchestrator and every submitter share one instance. Submitters only
    push; the orchestrator is the only caller of pop_next.
    """

    def __init__(self, queue: IntentQueue | None = None) -> None:
        self._queue = queue or IntentQueue()
        self._lock = ReadWriteLock()

    @contextmanager
    def read(self) -> Iterator[IntentQueue]:
        """Hold the read lock and yield the inner queue."""
        with self._lock.read():
            yield self._queue

    @contextmanager
    def write(self) -> Iterator[IntentQueue]:
        """Hold the write lock and yield the inner queue."""
        with self._lock.write():
            yield self._queue

    def push(self, intent: Intent) -> None:
        with self.write() as queue:
            queue.push(intent)

    def push_front(self, intent: Intent) -> None:
        with self.write() as queue:
            queue.push_front(intent)

    def pop_next(self) -> Intent | None:
        with self.write() as queue:
            return queue.pop_next()

    def snapshot(self) -> list[Intent]:
        """Copy of the queued intents, front first."""
        with self.read() as queue:
            return list(queue)

    def __len__(self) -> int:
        with self.read() as queue:
            return len(queue)
