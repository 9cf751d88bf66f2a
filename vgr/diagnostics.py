from __future__ import annotations

import json

from pydantic import BaseModel, ValidationError

from .logsink import LogSink
from .runtime import RuntimeClient


class ExternalIdentity(BaseModel):
    ip: str | None = None
    hostname: str | None = None
    city: str | None = None


def fetch_external_identity(runtime: RuntimeClient, gateway: str, url: str = "ipinfo.io") -> ExternalIdentity | None:
    """Ask an ipinfo-style service for the public identity seen through ``gateway``.

    The request runs inside the gateway container so it leaves through the VPN.
    Returns None on any failure.
    """
    result = runtime.exec(gateway, ["curl", "-s", url])
    if not result.ok or not result.output:
        return None
    try:
        return ExternalIdentity.model_validate(json.loads(result.output))
    except (ValueError, ValidationError):
        return None


def report(runtime: RuntimeClient, gateway: str, log: LogSink, url: str = "ipinfo.io") -> ExternalIdentity | None:
    info = fetch_external_identity(runtime, gateway, url)
    if info is None:
        log.append("VPN Connection >> External IP lookup failed.", level="WARN", container=gateway)
        return None
    log.append(
        f"VPN Connection >> External IP: {info.ip} | Hostname: {info.hostname} | Location: {info.city}",
        container=gateway,
    )
    return info
