"""
Threaded tier-2 delegate.

The simulation never waits on a model.  ``submit`` drops requests on a
queue and returns at once; a daemon worker thread takes them one at a time,
asks the LLM client for a weekly plan, and leaves a ``DelegateResponse`` on
the response queue.  The simulation collects finished responses with
``poll`` at the start of a later tick.

Every failure mode, including an unexpected exception from a client,
becomes a response with ``error`` set and no actions; the agent keeps its
previous plan or idles, and the worker carries on with the next request.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING

from worldsim.core.cognition import DelegateRequest, DelegateResponse
from worldsim.llm.client import LLMRateLimitedError, LLMUnavailableError
from worldsim.llm.prompts import build_system_prompt, build_user_prompt, parse_plan
from worldsim.llm.ratelimit import RateLimiter

if TYPE_CHECKING:
    from worldsim.llm.client import LLMClient

logger = logging.getLogger(__name__)


class ThreadedDelegate:
    """Runs delegate calls on a worker thread behind a calls-per-minute cap."""

    def __init__(
        self,
        client: LLMClient,
        calls_per_minute: int = 20,
        limiter: RateLimiter | None = None,
        max_pending: int = 1000,
    ) -> None:
        self.client = client
        self.limiter = limiter or RateLimiter(calls_per_minute)
        self._requests: queue.Queue[DelegateRequest] = queue.Queue(maxsize=max_pending)
        self._responses: queue.Queue[DelegateResponse] = queue.Queue()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._worker, name="worldsim-delegate", daemon=True,
        )
        self._thread.start()
        logger.info("Delegate worker started (%s)", self.client.provider)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # ------------------------------------------------------------------
    # Simulation-facing side
    # ------------------------------------------------------------------

    def submit(self, requests: list[DelegateRequest]) -> int:
        """Queue requests without blocking; returns how many were accepted."""
        accepted = 0
        for request in requests:
            try:
                self._requests.put_nowait(request)
            except queue.Full:
                logger.warning(
                    "Delegate queue full, dropping %d requests", len(requests) - accepted,
                )
                break
            accepted += 1
        return accepted

    def poll(self) -> list[DelegateResponse]:
        """Every response finished since the last poll."""
        out: list[DelegateResponse] = []
        while True:
            try:
                out.append(self._responses.get_nowait())
            except queue.Empty:
                return out

    @property
    def pending(self) -> int:
        return self._requests.qsize()

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        while not self._stop.is_set():
            try:
                request = self._requests.get(timeout=0.5)
            except queue.Empty:
                continue
            try:
                response = self.process(request)
            except Exception as e:
                logger.exception("Delegate call crashed for agent %d", request.agent_id)
                response = DelegateResponse(request.agent_id, request.tick, error=str(e))
            self._responses.put(response)

    def process(self, request: DelegateRequest) -> DelegateResponse:
        """Run one request synchronously."""
        if not self.limiter.acquire():
            logger.warning("Delegate rate limit reached; agent %d idles", request.agent_id)
            return DelegateResponse(request.agent_id, request.tick, error="rate limited")

        system = build_system_prompt(request.context)
        user = build_user_prompt(request.context)
        logger.debug("Delegate call for agent %d at tick %d", request.agent_id, request.tick)
        try:
            response = self.client.complete(
                system=system,
                messages=[{"role": "user", "content": user}],
                max_tokens=500,
            )
        except LLMRateLimitedError as e:
            logger.warning("Delegate throttled for agent %d: %s", request.agent_id, e)
            return DelegateResponse(request.agent_id, request.tick, error="rate limited")
        except LLMUnavailableError as e:
            logger.warning("Delegate call failed for agent %d: %s", request.agent_id, e)
            return DelegateResponse(request.agent_id, request.tick, error=str(e))

        try:
            plan = parse_plan(response.text, request.agent_id)
        except ValueError as e:
            logger.warning("Unusable delegate reply for agent %d: %s", request.agent_id, e)
            return DelegateResponse(request.agent_id, request.tick, error=str(e))

        if not plan:
            return DelegateResponse(request.agent_id, request.tick, error="no valid actions")
        return DelegateResponse(request.agent_id, request.tick, actions=tuple(plan))
