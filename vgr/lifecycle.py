from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Sequence

from .logsink import LogSink
from .runtime import CommandResult, RunState, RuntimeClient


class WaitResult(str, Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"


class ContainerLifecycleController:
    """Start/restart/wait primitives, addressed by container name.

    Every runtime command and its output is written to the log.
    """

    def __init__(
        self,
        runtime: RuntimeClient,
        log: LogSink,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.runtime = runtime
        self.log = log
        self._sleep = sleep
        self._clock = clock

    def get_run_state(self, name: str) -> RunState:
        return self.runtime.inspect(name).run_state

    def _command(self, verb: str, name: str, action: Callable[[str], CommandResult]) -> CommandResult:
        result = action(name)
        self.log.append(f"Command: docker {verb} {name}", container=name)
        self.log.append(f"Output: {result.output}", level="INFO" if result.ok else "ERROR", container=name)
        return result

    def start(self, name: str) -> CommandResult:
        return self._command("start", name, self.runtime.start)

    def restart(self, name: str) -> CommandResult:
        return self._command("restart", name, self.runtime.restart)

    def wait_until_running(self, name: str, max_wait: float, poll_interval: float) -> WaitResult:
        """Poll until ``name`` runs or ``max_wait`` seconds have passed.

        A timeout is returned, not raised; the caller decides what comes next.
        """
        started = self._clock()
        while self.get_run_state(name) is not RunState.RUNNING:
            if self._clock() - started >= max_wait:
                self.log.append(f"Timeout waiting for container {name} to start.", level="WARN", container=name)
                return WaitResult.TIMED_OUT
            self._sleep(poll_interval)
        self.log.append(f"Container {name} is now running.", container=name)
        return WaitResult.READY

    def is_reachable(self, name: str, targets: Sequence[str]) -> bool:
        """Ping each target from inside the container; all must answer."""
        for target in targets:
            result = self.runtime.exec(name, ["ping", "-c", "1", target])
            if not result.ok:
                self.log.append(f"Ping {target} from {name} failed: {result.output}", level="WARN", container=name)
                return False
        return True
