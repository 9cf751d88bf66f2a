from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from . import diagnostics
from .discovery import discover_members
from .health import ProbeResult, check_endpoint
from .lifecycle import ContainerLifecycleController
from .logsink import LogSink
from .runtime import RecoveryContext, RunState, RuntimeClient, utc_now
from .settings import Settings


class PassOutcome(str, Enum):
    RESOLVED = "resolved"
    STILL_DOWN = "still_down"
    PARTIAL_FAILURE = "partial_failure"


class RunOutcome(str, Enum):
    RESOLVED = "resolved"
    ABORTED = "aborted"


@dataclass(frozen=True)
class PassResult:
    outcome: PassOutcome
    members: list[str]
    failed: str | None = None


@dataclass
class RunReport:
    outcome: RunOutcome
    attempts: int
    outcomes: list[str] = field(default_factory=list)
    members: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=utc_now)
    finished_at: str = field(default_factory=utc_now)

    @property
    def ok(self) -> bool:
        return self.outcome is RunOutcome.RESOLVED


class RecoveryOrchestrator:
    """Probe the site, repair the VPN container and its dependents, re-check.

    One ``run()`` is one invocation. It ends as soon as the site answers, or
    after ``max_retry_count`` recovery cycles.
    """

    def __init__(
        self,
        settings: Settings,
        runtime: RuntimeClient,
        log: LogSink,
        probe: Callable[[str], ProbeResult] = check_endpoint,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings.validate()
        self.settings = settings
        self.runtime = runtime
        self.log = log
        self.probe = probe
        self._sleep = sleep
        self.lifecycle = ContainerLifecycleController(runtime, log, sleep=sleep, clock=clock)

    @property
    def gateway(self) -> str:
        return self.settings.vpn_container

    def run(self) -> RunReport:
        ctx = RecoveryContext()

        if self._check_site():
            self._report_up(ctx)
            return self._finish(ctx, RunOutcome.RESOLVED)

        while True:
            ctx.attempt += 1
            self.log.append("Script starting...")
            partial = self._recovery_cycle(ctx)

            self.log.append("Waiting a moment to allow containers to start up properly...")
            self._sleep(self.settings.sleep_s)

            if self._check_site():
                ctx.outcomes.append(PassOutcome.RESOLVED.value)
                self._report_up(ctx)
                return self._finish(ctx, RunOutcome.RESOLVED)

            ctx.outcomes.append((PassOutcome.PARTIAL_FAILURE if partial else PassOutcome.STILL_DOWN).value)
            self.log.append(f"Retry count: {ctx.attempt}")
            if ctx.attempt >= self.settings.max_retry_count:
                self.log.append(
                    "VPN Containers and/or the sub-containers are STILL DOWN. Maximum retries reached. Aborting script.",
                    level="ERROR",
                )
                return self._finish(ctx, RunOutcome.ABORTED)

    def _finish(self, ctx: RecoveryContext, outcome: RunOutcome) -> RunReport:
        return RunReport(
            outcome=outcome,
            attempts=ctx.attempt,
            outcomes=list(ctx.outcomes),
            members=list(ctx.last_members),
            started_at=ctx.started_at,
        )

    def _check_site(self) -> bool:
        res = self.probe(self.settings.site_url)
        self.log.append(f"Health check {self.settings.site_url}: {res.detail} -> {res.status.value}")
        if res.is_up:
            self.log.append("**Containers using VPN is WORKING.**")
            return True
        self.log.append(
            "**Containers using VPN is NOT WORKING. Executing script to restart VPN container and its sub-containers.**",
            level="WARN",
        )
        return False

    def _report_up(self, ctx: RecoveryContext) -> None:
        self.log.append("VPN Container and sub-containers are UP.")
        ctx.last_members = self._discover()
        self.log.append(f"Identified sub containers: {', '.join(ctx.last_members)}")
        self._report_identity()

    def _report_identity(self) -> None:
        if self.settings.enable_diagnostics:
            diagnostics.report(self.runtime, self.gateway, self.log, self.settings.ipinfo_url)

    def _discover(self) -> list[str]:
        return discover_members(self.runtime, self.settings.member_label)

    def _wait(self, name: str) -> None:
        self.lifecycle.wait_until_running(name, self.settings.max_wait_s, self.settings.wait_interval_s)

    def _recovery_cycle(self, ctx: RecoveryContext) -> bool:
        """Gateway, dependents, sweep. Returns True if a dependent command failed."""
        self.recover_gateway()

        result = self.recover_dependents(ctx)
        partial = result.outcome is PassOutcome.PARTIAL_FAILURE
        if partial:
            self.log.append(
                "Failed to start/restart one or more sub-containers. Restarting VPN container...",
                level="WARN",
            )
            self.recover_gateway(force=True)
            again = self.recover_dependents(ctx)
            if again.outcome is PassOutcome.PARTIAL_FAILURE:
                self.log.append(
                    "VPN Container restarted due to failed start/restart of sub containers. "
                    "Trying to restart sub containers again...",
                    level="WARN",
                )

        self.sweep_dependents(ctx)
        return partial

    def recover_gateway(self, force: bool = False) -> None:
        """Bring the VPN container back.

        Stopped: start it. Running but unable to reach the outside: restart
        it. ``force`` skips the reachability check and restarts a running
        container unconditionally.
        """
        name = self.gateway
        state = self.lifecycle.get_run_state(name)

        if state is RunState.STOPPED:
            self.log.append("VPN container is not currently running. Trying to start it...", container=name)
            self.lifecycle.start(name)
            self._wait(name)
            return

        if state is RunState.UNKNOWN:
            self.log.append("VPN container state could not be inspected.", level="WARN", container=name)
        elif not force:
            self.log.append("VPN container is running. Checking connectivity...", container=name)
            if self.lifecycle.is_reachable(name, self.settings.targets()):
                self.log.append(
                    "VPN connection is UP. No action needed with VPN Container. Continuing to restart sub-containers...",
                    container=name,
                )
                return
            self.log.append("Connectivity issue detected.", level="WARN", container=name)

        self.log.append("Restarting VPN container...", container=name)
        self.lifecycle.restart(name)
        self._wait(name)
        self._report_identity()

    def recover_dependents(self, ctx: RecoveryContext) -> PassResult:
        """One sequential pass over the dependents.

        The first failed start/restart ends the pass; the names after it are
        left for the sweep.
        """
        members = self._discover()
        ctx.last_members = members

        for name in members:
            if self.lifecycle.get_run_state(name) is not RunState.RUNNING:
                self.log.append(f"Starting stopped container: {name}...", container=name)
                result = self.lifecycle.start(name)
            else:
                self.log.append(f"Restarting running container: {name}...", container=name)
                result = self.lifecycle.restart(name)

            if not result.ok:
                return PassResult(PassOutcome.PARTIAL_FAILURE, members, failed=name)
            self._wait(name)

        return PassResult(PassOutcome.STILL_DOWN, members)

    def sweep_dependents(self, ctx: RecoveryContext) -> list[str]:
        """Start every dependent that is still not running. Returns the names started."""
        members = self._discover()
        ctx.last_members = members

        started: list[str] = []
        for name in members:
            if self.lifecycle.get_run_state(name) is RunState.RUNNING:
                continue
            self.log.append(f"Sub-container {name} is not running. Starting it...", level="WARN", container=name)
            self.lifecycle.start(name)
            self._wait(name)
            started.append(name)
        return started
