"""Request serializer: one-at-a-time, first-come-first-served access to a session.

This module implements:
- PendingRequest: a submitted Query plus its single-use reply slot
- RequestSerializer: many producers (request handlers), exactly one consumer
  (a worker task) that owns the InferenceSession

The worker is the only code that ever calls session.respond(), so at most one
generation is in flight at any instant. Blocking model calls run in a worker
thread so the event loop keeps accepting requests meanwhile.

Request lifecycle:
    QUEUED -> IN_FLIGHT -> COMPLETED | FAILED
    QUEUED -> DISCARDED   (caller went away before dispatch)
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Generator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry.trace import Status, StatusCode

from query_service.core.exceptions import (
    InferenceError,
    QueueFullError,
    ServiceUnavailableError,
)
from query_service.core.logging import bind_request_id, get_logger, reset_request_id
from query_service.models.query import Query
from query_service.observability.tracing import get_tracer
from query_service.providers.base import InferenceSession


logger = get_logger(__name__)


class RequestState(str, Enum):
    """Lifecycle states of a PendingRequest."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"
    DISCARDED = "discarded"


def _new_reply_slot() -> asyncio.Future[str]:
    return asyncio.get_running_loop().create_future()


@dataclass(eq=False)
class PendingRequest:
    """A query admitted to the serializer, awaiting its answer.

    Awaiting the request yields the answer or raises the terminal error.
    Must be created inside a running event loop.

    Attributes:
        query: The validated query.
        request_id: Unique identifier, bound into log context during dispatch.
        created_at: Admission time (time.time()).
        state: Current lifecycle state.
        dispatched_at: When the worker handed the query to the session.
        finished_at: When a terminal value was written.
    """

    query: Query
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)
    state: RequestState = RequestState.QUEUED
    dispatched_at: float | None = None
    finished_at: float | None = None
    _reply: asyncio.Future[str] = field(
        default_factory=_new_reply_slot, repr=False
    )

    def __await__(self) -> Generator[Any, None, str]:
        return self._reply.__await__()

    @property
    def done(self) -> bool:
        """True once the reply slot holds a value or was cancelled."""
        return self._reply.done()

    @property
    def abandoned(self) -> bool:
        """True if the caller stopped waiting (reply slot cancelled)."""
        return self._reply.cancelled()

    @property
    def wait_time(self) -> float | None:
        """Seconds spent queued before dispatch."""
        if self.dispatched_at is None:
            return None
        return self.dispatched_at - self.created_at

    @property
    def service_time(self) -> float | None:
        """Seconds spent in the session."""
        if self.dispatched_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.dispatched_at

    def resolve(self, answer: str) -> bool:
        """Write the answer. Returns False if the caller already went away."""
        self.state = RequestState.COMPLETED
        self.finished_at = time.time()
        if self._reply.done():
            return False
        self._reply.set_result(answer)
        return True

    def fail(self, error: BaseException) -> bool:
        """Write a terminal error. Returns False if the caller already went away."""
        self.state = RequestState.FAILED
        self.finished_at = time.time()
        if self._reply.done():
            return False
        self._reply.set_exception(error)
        return True


class RequestSerializer:
    """Funnels concurrent queries into one session, strictly in order.

    Args:
        session: The loaded session. The serializer becomes its only user.
        max_queue_size: Queued requests admitted before submit() raises
            QueueFullError. 0 means unbounded.

    Example:
        >>> serializer = RequestSerializer(session)
        >>> serializer.start()
        >>> answer = await serializer.ask(Query("Why is the sky blue?"))
        >>> await serializer.shutdown()
    """

    def __init__(
        self,
        session: InferenceSession,
        max_queue_size: int = 0,
    ) -> None:
        if max_queue_size < 0:
            raise ValueError(f"max_queue_size must be >= 0, got {max_queue_size}")

        self._session = session
        self._max_queue_size = max_queue_size
        self._queue: asyncio.Queue[PendingRequest] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._accepting = False
        self._closed = False
        self._in_flight: PendingRequest | None = None
        self._generation: asyncio.Future[str] | None = None
        self._tracer = get_tracer(__name__)

        # Statistics
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_discarded = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def session(self) -> InferenceSession:
        return self._session

    @property
    def max_queue_size(self) -> int:
        return self._max_queue_size

    @property
    def pending_count(self) -> int:
        """Requests waiting in the queue (not counting the one in flight)."""
        return self._queue.qsize()

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    @property
    def is_running(self) -> bool:
        return (
            self._accepting
            and self._worker is not None
            and not self._worker.done()
        )

    @property
    def total_submitted(self) -> int:
        return self._total_submitted

    @property
    def total_completed(self) -> int:
        return self._total_completed

    @property
    def total_failed(self) -> int:
        return self._total_failed

    @property
    def total_discarded(self) -> int:
        return self._total_discarded

    def stats(self) -> dict[str, Any]:
        """Snapshot of queue state and counters."""
        return {
            "running": self.is_running,
            "in_flight": self.in_flight,
            "pending": self.pending_count,
            "max_queue_size": self._max_queue_size,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "total_discarded": self._total_discarded,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the worker task. Idempotent while running.

        Raises:
            RuntimeError: If called after shutdown().
        """
        if self._closed:
            raise RuntimeError("RequestSerializer cannot be restarted after shutdown")
        if self._worker is not None and not self._worker.done():
            return

        self._accepting = True
        self._worker = asyncio.create_task(self._run(), name="request-serializer")
        logger.info("serializer_started", max_queue_size=self._max_queue_size)

    async def shutdown(self, timeout: float = 30.0) -> dict[str, Any]:
        """Stop admitting requests, drain the queue, then stop the worker.

        Requests still queued or in flight when the timeout expires are
        failed with InferenceError, so every admitted request still gets
        exactly one terminal value. An interrupted generation keeps running
        in its thread; shutdown() waits for it before returning so the
        caller can unload the session safely.

        Args:
            timeout: Seconds to wait for queued work to finish.

        Returns:
            Dict with completed_during_drain, pending_failed and timed_out.
        """
        self._accepting = False
        self._closed = True
        finished_before = self._finished_count()
        timed_out = False
        interrupted = False

        if self._worker is not None and not self._worker.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                timed_out = True

            interrupted = self._in_flight is not None
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)

        if self._generation is not None:
            # The thread cannot be cancelled; let the session go idle
            logger.info("waiting_for_generation")
            await asyncio.gather(self._generation, return_exceptions=True)
            self._generation = None

        completed_during_drain = self._finished_count() - finished_before - int(interrupted)
        pending_failed = self._fail_remaining() + int(interrupted)

        result = {
            "completed_during_drain": completed_during_drain,
            "pending_failed": pending_failed,
            "timed_out": timed_out,
        }
        logger.info("serializer_stopped", **result)
        return result

    # =========================================================================
    # Admission
    # =========================================================================

    def submit(self, query: Query) -> PendingRequest:
        """Admit a query to the back of the queue without blocking.

        Args:
            query: A validated Query.

        Returns:
            PendingRequest to await for the answer.

        Raises:
            ServiceUnavailableError: If the serializer is not running.
            QueueFullError: If max_queue_size requests are already queued.
        """
        if not isinstance(query, Query):
            raise TypeError(f"expected Query, got {type(query).__name__}")
        if not self._accepting:
            raise ServiceUnavailableError()

        depth = self._queue.qsize()
        if self._max_queue_size and depth >= self._max_queue_size:
            logger.warning(
                "request_rejected_queue_full",
                max_queue_size=self._max_queue_size,
                current_size=depth,
            )
            raise QueueFullError(
                max_queue_size=self._max_queue_size,
                current_size=depth,
            )

        pending = PendingRequest(query=query)
        self._queue.put_nowait(pending)
        self._total_submitted += 1
        logger.debug(
            "request_queued",
            request_id=pending.request_id,
            position=depth + 1,
            in_flight=self.in_flight,
        )
        return pending

    async def ask(self, query: Query) -> str:
        """Submit a query and wait for its answer."""
        return await self.submit(query)

    # =========================================================================
    # Worker
    # =========================================================================

    async def _run(self) -> None:
        """Consume the queue forever, one request at a time."""
        while True:
            pending = await self._queue.get()
            token = bind_request_id(pending.request_id)
            try:
                await self._dispatch(pending)
            except Exception:
                # Bookkeeping failure outside the session call; keep serving.
                logger.exception("serializer_dispatch_error")
                if not pending.done:
                    self._total_failed += 1
                    pending.fail(InferenceError())
            finally:
                reset_request_id(token)
                self._queue.task_done()

    async def _dispatch(self, pending: PendingRequest) -> None:
        if pending.abandoned:
            pending.state = RequestState.DISCARDED
            self._total_discarded += 1
            logger.info("request_discarded", reason="caller_gone")
            return

        pending.state = RequestState.IN_FLIGHT
        pending.dispatched_at = time.time()
        self._in_flight = pending
        logger.info(
            "request_dispatched",
            wait_ms=round((pending.wait_time or 0.0) * 1000, 2),
            pending=self.pending_count,
            prompt_chars=len(pending.query.text),
        )

        try:
            with self._tracer.start_as_current_span("session.respond") as span:
                span.set_attribute("request.id", pending.request_id)
                span.set_attribute("request.wait_ms", (pending.wait_time or 0.0) * 1000)
                self._generation = asyncio.ensure_future(
                    asyncio.to_thread(self._session.respond, pending.query.text)
                )
                try:
                    answer = await asyncio.shield(self._generation)
                except asyncio.CancelledError:
                    self._total_failed += 1
                    pending.fail(InferenceError())
                    logger.warning("request_interrupted", reason="shutdown")
                    raise
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                    self._total_failed += 1
                    pending.fail(InferenceError())
                    logger.exception(
                        "request_failed",
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    return
        finally:
            self._in_flight = None
            if self._generation is not None and self._generation.done():
                self._generation = None

        self._total_completed += 1
        delivered = pending.resolve(answer)
        logger.info(
            "request_completed",
            service_ms=round((pending.service_time or 0.0) * 1000, 2),
            answer_chars=len(answer),
            delivered=delivered,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _finished_count(self) -> int:
        return self._total_completed + self._total_failed + self._total_discarded

    def _fail_remaining(self) -> int:
        failed = 0
        while True:
            try:
                pending = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if pending.abandoned:
                pending.state = RequestState.DISCARDED
                self._total_discarded += 1
            else:
                pending.fail(InferenceError())
                self._total_failed += 1
                failed += 1
            self._queue.task_done()
        return failed
