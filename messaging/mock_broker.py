"""In-process message broker with at-least-once delivery and bounded retries."""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, List, Optional, cast
from uuid import uuid4

from services.exceptions import TransportError
from settings import get_settings

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], object]


@dataclass(frozen=True)
class RetryPolicy:
    """Redeliver a failed message up to ``retry_limit`` times, ``interval`` seconds apart."""

    retry_limit: int = 3
    interval: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.retry_limit + 1


@dataclass(frozen=True)
class Envelope:
    message_id: str
    body: bytes
    published_at: datetime


@dataclass(frozen=True)
class DeadLetter:
    envelope: Envelope
    attempts: int
    error: str
    failed_at: datetime


_STOP = object()


class MockBroker:
    """Single-queue broker that fans deliveries out to a bounded worker pool.

    At most ``prefetch`` messages are taken off the queue ahead of completion and
    at most ``concurrency`` handlers run at once. A handler that raises is
    retried per ``retry_policy``; once retries are exhausted the message is
    parked in the dead-letter list.
    """

    def __init__(
        self,
        name: str,
        concurrency: int = 8,
        prefetch: int = 32,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1.")
        self.name = name
        self.concurrency = concurrency
        self.prefetch = max(prefetch, concurrency)
        self.retry_policy = retry_policy or RetryPolicy()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._window = threading.BoundedSemaphore(self.prefetch)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._dispatcher: Optional[threading.Thread] = None
        self._handler: Optional[MessageHandler] = None
        self._closed = threading.Event()
        self._stopping = threading.Event()
        self._pending = 0
        self._pending_changed = threading.Condition()
        self._dead_letters: List[DeadLetter] = []
        self._dead_letters_lock = threading.Lock()
        self._state_lock = threading.Lock()

    def publish(self, body: bytes) -> str:
        """Enqueue ``body`` for delivery and return its message id."""

        if self._closed.is_set():
            raise TransportError(f"Broker {self.name!r} is closed.")
        envelope = Envelope(
            message_id=str(uuid4()),
            body=body,
            published_at=datetime.now(timezone.utc),
        )
        with self._pending_changed:
            self._pending += 1
        self._queue.put(envelope)
        return envelope.message_id

    def subscribe(self, handler: MessageHandler) -> None:
        """Start delivering queued and future messages to ``handler``."""

        with self._state_lock:
            if self._handler is not None:
                raise RuntimeError(f"Broker {self.name!r} already has a subscriber.")
            if self._closed.is_set():
                raise TransportError(f"Broker {self.name!r} is closed.")
            self._handler = handler
            self._executor = ThreadPoolExecutor(
                max_workers=self.concurrency, thread_name_prefix=f"{self.name}-worker"
            )
            self._dispatcher = threading.Thread(
                target=self._dispatch_loop,
                args=(self._executor, handler),
                name=f"{self.name}-dispatcher",
                daemon=True,
            )
            self._dispatcher.start()

    def stop(self, drain: bool = True, timeout: Optional[float] = 10.0) -> None:
        """Stop accepting deliveries; in-flight handlers finish when ``drain`` is set."""

        with self._state_lock:
            self._closed.set()
            self._stopping.set()
            self._queue.put(_STOP)
            dispatcher = self._dispatcher
            executor = self._executor
        if dispatcher is not None:
            dispatcher.join(timeout=timeout)
        if executor is not None:
            executor.shutdown(wait=drain, cancel_futures=not drain)

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Block until every published message is acknowledged or dead-lettered."""

        deadline = time.monotonic() + timeout
        with self._pending_changed:
            while self._pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._pending_changed.wait(remaining)
        return True

    def dead_letters(self) -> List[DeadLetter]:
        with self._dead_letters_lock:
            return list(self._dead_letters)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _dispatch_loop(self, executor: ThreadPoolExecutor, handler: MessageHandler) -> None:
        while True:
            self._window.acquire()
            item = self._queue.get()
            if item is _STOP or self._stopping.is_set():
                self._window.release()
                if item is not _STOP:
                    # Leave undelivered work queued for a later subscriber.
                    self._queue.put(item)
                return
            executor.submit(self._deliver, cast(Envelope, item), handler)

    def _deliver(self, envelope: Envelope, handler: MessageHandler) -> None:
        policy = self.retry_policy
        try:
            for attempt in range(1, policy.max_attempts + 1):
                try:
                    handler(envelope.body)
                    return
                except Exception as exc:  # noqa: BLE001
                    if attempt >= policy.max_attempts:
                        self._dead_letter(envelope, attempt, exc)
                        return
                    logger.warning(
                        "Delivery failed, redelivering in %.1fs: %s",
                        policy.interval,
                        exc,
                        extra={"message_id": envelope.message_id, "attempt": attempt},
                    )
                    time.sleep(policy.interval)
        finally:
            self._window.release()
            with self._pending_changed:
                self._pending -= 1
                self._pending_changed.notify_all()

    def _dead_letter(self, envelope: Envelope, attempts: int, exc: Exception) -> None:
        letter = DeadLetter(
            envelope=envelope,
            attempts=attempts,
            error=f"{type(exc).__name__}: {exc}",
            failed_at=datetime.now(timezone.utc),
        )
        with self._dead_letters_lock:
            self._dead_letters.append(letter)
        logger.error(
            "Retries exhausted, message moved to dead-letter list: %s",
            letter.error,
            extra={"message_id": envelope.message_id, "attempt": attempts},
        )


@lru_cache
def build_default_broker(name: Optional[str] = None) -> MockBroker:
    settings = get_settings()
    return MockBroker(
        name="sensor-data-queue" if name is None else name,
        concurrency=settings.consumer_concurrency,
        prefetch=settings.consumer_prefetch,
        retry_policy=RetryPolicy(
            retry_limit=settings.retry_limit,
            interval=settings.retry_interval,
        ),
    )
