"""Single-owner execution context serializing runs of one agent."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Optional

from agentflow.agent.spec import AgentDefinition, RunResult
from agentflow.errors import AgentExecutionError, AgentFlowError, AgentStoppedError, RunTimeoutError
from agentflow.observability.context import InvocationContext

if TYPE_CHECKING:
    from agentflow.engine.engine import Engine

logger = logging.getLogger(__name__)

ProcessState = Literal["idle", "running", "stopped"]


@dataclass(slots=True)
class _RunRequest:
    value: Any
    session_id: str
    future: "asyncio.Future[RunResult]"


def _cancel_if_abandoned(task: "asyncio.Task[RunResult]", future: "asyncio.Future[RunResult]") -> None:
    if future.cancelled() and not task.done():
        task.cancel()


class AgentProcess:
    """Actor owning one :class:`AgentDefinition`.

    Requests enter a FIFO mailbox and a single worker task executes them one
    at a time. When a caller's timeout fires the in-flight run is cancelled
    (a request still waiting in the mailbox is dropped). A failed run returns
    the process to ``idle``.
    """

    def __init__(
        self,
        definition: AgentDefinition,
        engine: "Engine",
        *,
        default_timeout_ms: Optional[int] = None,
    ) -> None:
        self.definition = definition
        self.engine = engine
        self.default_timeout_ms = default_timeout_ms or engine.settings.DEFAULT_TIMEOUT_MS
        self.session_id = definition.session_id or f"session-{uuid.uuid4().hex[:12]}"
        self._queue: Optional[asyncio.Queue[_RunRequest]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._current: Optional[asyncio.Task[RunResult]] = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def state(self) -> ProcessState:
        if self._worker is None or self._worker.done():
            return "stopped"
        if self._current is not None and not self._current.done():
            return "running"
        return "idle"

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> "AgentProcess":
        if self.state != "stopped":
            return self
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(
            self._serve(self._queue), name=f"agentflow:{self.name}"
        )
        logger.debug("Started agent process %s (session %s)", self.name, self.session_id)
        return self

    async def run(
        self,
        value: Any,
        *,
        timeout_ms: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> RunResult:
        """Submit a run and wait for its result.

        Raises:
            RunTimeoutError: The run did not finish within ``timeout_ms``
                (measured from submission, including time spent queued).
            AgentStoppedError: The process is not running.
            AgentFlowError: Any structured failure of the run itself.
        """
        if self._queue is None or self.state == "stopped":
            raise AgentStoppedError(f"Agent process '{self.name}' is not running")

        timeout = timeout_ms if timeout_ms is not None else self.default_timeout_ms
        if timeout <= 0:
            raise ValueError("timeout_ms must be positive")

        future: asyncio.Future[RunResult] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_RunRequest(value, session_id or self.session_id, future))
        started = time.perf_counter()
        try:
            return await asyncio.wait_for(future, timeout / 1000)
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.engine.metrics.record_run(
                self.definition.kind, elapsed_ms, ok=False, timed_out=True
            )
            logger.warning("Agent %s timed out after %dms", self.name, timeout)
            raise RunTimeoutError(self.name, timeout) from None

    async def stop(self) -> None:
        """Cancel the in-flight run and fail every queued request."""
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker

        queue, self._queue = self._queue, None
        while queue is not None and not queue.empty():
            request = queue.get_nowait()
            if not request.future.done():
                request.future.set_exception(
                    AgentStoppedError(f"Agent process '{self.name}' stopped")
                )
        logger.debug("Stopped agent process %s", self.name)

    async def _serve(self, queue: "asyncio.Queue[_RunRequest]") -> None:
        while True:
            request = await queue.get()
            if request.future.done():
                continue

            task = asyncio.create_task(self._execute(request))
            self._current = task
            request.future.add_done_callback(
                lambda future, task=task: _cancel_if_abandoned(task, future)
            )
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                task.cancel()
                if not request.future.done():
                    request.future.set_exception(
                        AgentStoppedError(f"Agent process '{self.name}' stopped")
                    )
                raise
            finally:
                self._current = None

            if task.cancelled():
                continue
            error = task.exception()
            if request.future.done():
                continue
            if error is not None:
                request.future.set_exception(error)
            else:
                request.future.set_result(task.result())

    async def _execute(self, request: _RunRequest) -> RunResult:
        invocation = InvocationContext(session_id=request.session_id, agent_name=self.name)
        hook_context = {
            "agent_name": self.name,
            "agent_kind": self.definition.kind,
            "session_id": invocation.session_id,
            "invocation_id": invocation.invocation_id,
        }
        callbacks = self.engine.callbacks
        started = time.perf_counter()
        logger.info("Run %s of %s started", invocation.invocation_id, self.name)

        try:
            before = await callbacks.run("before_run", request.value, hook_context)
            if before.halted:
                result = RunResult(
                    output=before.value,
                    agent_name=self.name,
                    session_id=invocation.session_id,
                    invocation_id=invocation.invocation_id,
                )
            else:
                result = await self.engine.run_agent(self.definition, before.value, invocation)
            after = await callbacks.run("after_run", result, hook_context)
            if isinstance(after.value, RunResult):
                result = after.value
        except Exception as exc:
            error: BaseException = (
                exc if isinstance(exc, AgentFlowError) else AgentExecutionError(self.name, exc)
            )
            handled = await callbacks.run("on_error", error, hook_context)
            if isinstance(handled.value, BaseException):
                error = handled.value
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.engine.metrics.record_run(self.definition.kind, elapsed_ms, ok=False)
            logger.warning("Run %s of %s failed: %s", invocation.invocation_id, self.name, error)
            if error is exc:
                raise
            raise error from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.engine.metrics.record_run(self.definition.kind, elapsed_ms, ok=True)
        logger.info(
            "Run %s of %s finished in %.1fms", invocation.invocation_id, self.name, elapsed_ms
        )
        return result


__all__ = ["AgentProcess", "ProcessState"]
