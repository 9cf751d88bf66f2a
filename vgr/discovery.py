from __future__ import annotations

from .runtime import RuntimeClient


def parse_label(label: str) -> tuple[str, str]:
    key, sep, value = label.partition("=")
    if not sep or not key or not value:
        raise ValueError(f"Invalid label {label!r}; expected key=value.")
    return key, value


def discover_members(runtime: RuntimeClient, label: str) -> list[str]:
    """Names of all containers (running or stopped) carrying ``label``.

    Always asks the runtime. A crashed container can come back under a new ID
    or a new name, so a list from before a restart is not reused after it.
    """
    key, value = parse_label(label)
    return list(runtime.query_by_label(key, value))


class ContainerDiscovery:
    def __init__(self, runtime: RuntimeClient, label: str):
        parse_label(label)
        self.runtime = runtime
        self.label = label

    def members(self) -> list[str]:
        return discover_members(self.runtime, self.label)
