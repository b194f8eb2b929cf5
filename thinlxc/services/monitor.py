"""Waiting for a container to reach a runtime state.

A watch polls the runtime from a daemon thread and hands exactly one
WatchResult to the caller through a one-slot queue:

    watch = StateMonitor(runtime).watch("web", ContainerState.RUNNING, timeout=60)
    runtime.start("web", config_path)
    result = watch.result()
    if result.outcome is WatchOutcome.REACHED:
        ...
"""
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from thinlxc.core.logger import get_logger
from thinlxc.models.state import ContainerState
from thinlxc.services.runtime import LxcRuntime

logger = get_logger(__name__)


class WatchOutcome(str, Enum):
    REACHED = "reached"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WatchResult:
    outcome: WatchOutcome
    state: ContainerState

    @property
    def reached(self) -> bool:
        return self.outcome is WatchOutcome.REACHED


class StateWatch:
    """Handle on one running watch."""

    def __init__(self, name: str, target: ContainerState):
        self.name = name
        self.target = target
        self._stop = threading.Event()
        self._results: "queue.Queue[WatchResult]" = queue.Queue(maxsize=1)
        self._delivered: Optional[WatchResult] = None
        self._thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        """Ask the poller to stop; it delivers CANCELLED unless already done."""
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def done(self) -> bool:
        return self._delivered is not None or not self._results.empty()

    def result(self, timeout: Optional[float] = None) -> WatchResult:
        """Block until the watch delivers its result.

        Args:
            timeout: Seconds to wait for delivery (None = until delivered)

        Raises:
            TimeoutError: If nothing was delivered within `timeout`
        """
        if self._delivered is None:
            try:
                self._delivered = self._results.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(
                    f"No result yet for {self.name} waiting on {self.target.value}"
                ) from None
        return self._delivered

    def _deliver(self, outcome: WatchOutcome, state: ContainerState) -> None:
        self._results.put_nowait(WatchResult(outcome, state))


class StateMonitor:
    """Polls the runtime until a container reaches a target state."""

    def __init__(
        self,
        runtime: LxcRuntime,
        poll_interval: float = 0.5,
        settle_delay: float = 5.0,
    ):
        self.runtime = runtime
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay

    def watch(
        self,
        name: str,
        target: ContainerState,
        timeout: Optional[float] = None,
    ) -> StateWatch:
        """Start polling in the background.

        Args:
            name: Container name
            target: State to wait for
            timeout: Seconds before giving up with TIMED_OUT (None = never)

        Returns:
            StateWatch delivering a single WatchResult
        """
        watch = StateWatch(name, target)
        watch._thread = threading.Thread(
            target=self._poll,
            args=(watch, timeout),
            name=f"watch-{name}-{target.value.lower()}",
            daemon=True,
        )
        watch._thread.start()
        return watch

    def wait_for(
        self,
        name: str,
        target: ContainerState,
        timeout: Optional[float] = None,
    ) -> WatchResult:
        """Watch and block until the result is delivered."""
        return self.watch(name, target, timeout).result()

    def _poll(self, watch: StateWatch, timeout: Optional[float]) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout
        state = ContainerState.UNKNOWN

        while not watch.cancelled:
            try:
                state = self.runtime.state(watch.name)
            except Exception as e:
                logger.error(f"State query for {watch.name} failed: {e}")
                state = ContainerState.UNKNOWN
            if state == watch.target:
                # RUNNING is reported before the network inside is up
                if watch.target == ContainerState.RUNNING and self.settle_delay:
                    if watch._stop.wait(self.settle_delay):
                        break
                logger.debug(f"{watch.name} reached {state.value}")
                watch._deliver(WatchOutcome.REACHED, state)
                return

            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(
                    f"Timed out waiting for {watch.name} to reach {watch.target.value} "
                    f"(last seen {state.value})"
                )
                watch._deliver(WatchOutcome.TIMED_OUT, state)
                return

            wait = self.poll_interval
            if deadline is not None:
                wait = max(0.0, min(wait, deadline - time.monotonic()))
            watch._stop.wait(wait)

        watch._deliver(WatchOutcome.CANCELLED, state)
