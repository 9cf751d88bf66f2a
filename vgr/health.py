from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum

import httpx


class HealthStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


# Only a bad-gateway answer from the reverse proxy in front of the dependents
# counts as down. Anything else, including no response at all, counts as up.
DOWN_STATUS_CODES = frozenset({502})


@dataclass(frozen=True)
class ProbeResult:
    status: HealthStatus
    code: int | None
    detail: str
    latency_ms: float | None = None

    @property
    def is_up(self) -> bool:
        return self.status is HealthStatus.UP


def check_endpoint(url: str, client: httpx.Client | None = None) -> ProbeResult:
    """GET the monitored URL once and classify the answer.

    No retries happen here and redirects are not followed. The httpx default
    timeout applies.
    """
    start = time.time()
    try:
        if client is None:
            with httpx.Client(follow_redirects=False) as c:
                resp = c.get(url)
        else:
            resp = client.get(url)
    except httpx.HTTPError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return ProbeResult(HealthStatus.UP, None, f"No response ({type(e).__name__}: {e})", latency_ms)

    latency_ms = round((time.time() - start) * 1000.0, 2)
    if resp.status_code in DOWN_STATUS_CODES:
        return ProbeResult(HealthStatus.DOWN, resp.status_code, f"HTTP {resp.status_code}", latency_ms)
    return ProbeResult(HealthStatus.UP, resp.status_code, f"HTTP {resp.status_code}", latency_ms)
