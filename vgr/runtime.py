from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, Sequence


def utc_now() -> str:
    return datetime.utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")


class RunState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Inspection:
    exists: bool
    run_state: RunState


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    output: str = ""


class RuntimeClient(Protocol):
    """What the recovery code needs from a container runtime.

    Everything is addressed by container name. Implementations report
    failures through the return value instead of raising.
    """

    def inspect(self, name: str) -> Inspection: ...

    def start(self, name: str) -> CommandResult: ...

    def restart(self, name: str) -> CommandResult: ...

    def exec(self, name: str, argv: Sequence[str]) -> CommandResult: ...

    def query_by_label(self, key: str, value: str) -> list[str]: ...


@dataclass
class RecoveryContext:
    """Per-invocation state; a new one is created for every run."""

    attempt: int = 0
    last_members: list[str] = field(default_factory=list)
    outcomes: list[str] = field(default_factory=list)  # one per recovery cycle
    started_at: str = field(default_factory=utc_now)
