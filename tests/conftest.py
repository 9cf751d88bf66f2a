import os as _os
import sys
from typing import Sequence

import pytest

# Ensure project root is importable (so `import cli` works reliably across environments)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from vgr.health import HealthStatus, ProbeResult  # noqa: E402
from vgr.logsink import MemoryLogSink  # noqa: E402
from vgr.runtime import CommandResult, Inspection, RunState  # noqa: E402


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRuntime:
    """In-memory container runtime keyed by name."""

    def __init__(self) -> None:
        self.states: dict[str, RunState] = {}
        self.labels: dict[str, dict[str, str]] = {}
        self.fail: set[tuple[str, str]] = set()  # (verb, name) that error out
        self.unreachable: set[tuple[str, str]] = set()  # (container, target)
        self.exec_output: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.inspected: list[str] = []
        self.queries = 0
        self.on_command = None

    def add(self, name: str, state: RunState = RunState.RUNNING, labels: dict[str, str] | None = None) -> None:
        self.states[name] = state
        self.labels[name] = dict(labels or {})

    def add_member(self, name: str, state: RunState = RunState.RUNNING) -> None:
        self.add(name, state, {"vpn_network": "true"})

    def remove(self, name: str) -> None:
        self.states.pop(name, None)
        self.labels.pop(name, None)

    def commands(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in {"start", "restart"}]

    def inspect(self, name: str) -> Inspection:
        self.inspected.append(name)
        if name not in self.states:
            return Inspection(exists=False, run_state=RunState.UNKNOWN)
        return Inspection(exists=True, run_state=self.states[name])

    def _lifecycle(self, verb: str, name: str) -> CommandResult:
        self.calls.append((verb, name))
        if name not in self.states:
            return CommandResult(ok=False, output=f"NotFound: No such container: {name}")
        if (verb, name) in self.fail:
            return CommandResult(ok=False, output=f"APIError: cannot {verb} {name}")
        self.states[name] = RunState.RUNNING
        if self.on_command is not None:
            self.on_command(verb, name)
        return CommandResult(ok=True, output=name)

    def start(self, name: str) -> CommandResult:
        return self._lifecycle("start", name)

    def restart(self, name: str) -> CommandResult:
        return self._lifecycle("restart", name)

    def exec(self, name: str, argv: Sequence[str]) -> CommandResult:
        self.calls.append(("exec", name))
        if argv[0] == "ping":
            ok = (name, argv[-1]) not in self.unreachable
            return CommandResult(ok=ok, output="" if ok else "ping: bad address")
        if argv[0] == "curl":
            out = self.exec_output.get("curl", "")
            return CommandResult(ok=bool(out), output=out)
        return CommandResult(ok=False, output="unsupported")

    def query_by_label(self, key: str, value: str) -> list[str]:
        self.queries += 1
        return [n for n, labels in self.labels.items() if labels.get(key) == value]


def probe_sequence(codes):
    """Probe that answers with the given HTTP codes, repeating the last one."""
    seen: list[str] = []
    remaining = list(codes)

    def probe(url: str) -> ProbeResult:
        seen.append(url)
        code = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        status = HealthStatus.DOWN if code == 502 else HealthStatus.UP
        return ProbeResult(status, code, f"HTTP {code}")

    probe.seen = seen
    return probe


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def runtime():
    rt = FakeRuntime()
    rt.add("vpn")
    rt.exec_output["curl"] = '{"ip": "203.0.113.7", "hostname": "nl-ams.example.net", "city": "Amsterdam"}'
    return rt


@pytest.fixture
def log():
    return MemoryLogSink()
