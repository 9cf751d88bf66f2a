from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import docker
from docker.errors import DockerException

from .runtime import CommandResult, Inspection, RunState


# "restarting" is already on its way up and "paused" cannot be started, only
# restarted. Both go down the restart path instead of a failing start.
RUNNING_STATUSES = frozenset({"running", "restarting", "paused"})


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str


def _client() -> docker.DockerClient:
    return docker.from_env()


def docker_available() -> bool:
    try:
        c = _client()
        c.ping()
        return True
    except DockerException:
        return False


def _output_text(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace").strip()
    return str(raw).strip()


class DockerRuntime:
    """RuntimeClient backed by the local Docker daemon.

    Containers are always looked up by name at call time; container IDs are
    never kept between calls because the daemon may recreate a container
    under a new ID at any point.
    """

    def __init__(self, client: docker.DockerClient | None = None):
        self._docker = client

    @property
    def client(self) -> docker.DockerClient:
        if self._docker is None:
            self._docker = _client()
        return self._docker

    def inspect(self, name: str) -> Inspection:
        try:
            cont = self.client.containers.get(name)
            cont.reload()
        except DockerException:
            return Inspection(exists=False, run_state=RunState.UNKNOWN)
        running = cont.status in RUNNING_STATUSES
        return Inspection(exists=True, run_state=RunState.RUNNING if running else RunState.STOPPED)

    def start(self, name: str) -> CommandResult:
        try:
            self.client.containers.get(name).start()
        except DockerException as e:
            return CommandResult(ok=False, output=f"{type(e).__name__}: {e}")
        return CommandResult(ok=True, output=name)

    def restart(self, name: str) -> CommandResult:
        try:
            self.client.containers.get(name).restart()
        except DockerException as e:
            return CommandResult(ok=False, output=f"{type(e).__name__}: {e}")
        return CommandResult(ok=True, output=name)

    def exec(self, name: str, argv: Sequence[str]) -> CommandResult:
        try:
            exit_code, raw = self.client.containers.get(name).exec_run(list(argv))
        except DockerException as e:
            return CommandResult(ok=False, output=f"{type(e).__name__}: {e}")
        return CommandResult(ok=exit_code == 0, output=_output_text(raw))

    def list_containers(self, key: str, value: str) -> list[ContainerRef]:
        filters = {"label": [f"{key}={value}"]}
        try:
            containers = self.client.containers.list(all=True, filters=filters)
        except DockerException:
            return []
        return [ContainerRef(id=x.id, name=x.name) for x in containers]

    def query_by_label(self, key: str, value: str) -> list[str]:
        return [ref.name for ref in self.list_containers(key, value)]
