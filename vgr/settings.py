from __future__ import annotations

import os
from dataclasses import dataclass

import httpx

from .discovery import parse_label


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Containers
    vpn_container: str = os.getenv("VGR_VPN_CONTAINER", "vpn")
    # key=value label carried by every container routed through the VPN container.
    member_label: str = os.getenv("VGR_MEMBER_LABEL", "vpn_network=true")

    # Health check
    site_url: str = os.getenv("VGR_SITE_URL", "http://localhost")
    reachability_targets: str = os.getenv("VGR_REACHABILITY_TARGETS", "1.1.1.1,google.com")

    # Timing and retry budget
    max_wait_s: int = _env_int("VGR_MAX_WAIT_S", 30)
    wait_interval_s: int = _env_int("VGR_WAIT_INTERVAL_S", 3)
    max_retry_count: int = _env_int("VGR_MAX_RETRY_COUNT", 3)
    sleep_s: int = _env_int("VGR_SLEEP_S", 15)

    # External IP lookup, run from inside the VPN container (optional)
    enable_diagnostics: bool = _env_bool("VGR_ENABLE_DIAGNOSTICS", True)
    ipinfo_url: str = os.getenv("VGR_IPINFO_URL", "ipinfo.io")

    # Logging
    log_dir: str = os.getenv("VGR_LOG_DIR", "logs")
    log_file_prefix: str = os.getenv("VGR_LOG_FILE_PREFIX", "restart_vpn_containers")
    db_path: str = os.getenv("VGR_DB_PATH", "vgr.db")

    def targets(self) -> list[str]:
        return [t.strip() for t in self.reachability_targets.split(",") if t.strip()]

    def validate(self) -> None:
        if not self.vpn_container.strip():
            raise ValueError("vpn_container must not be empty.")
        if not self.site_url.strip():
            raise ValueError("site_url must not be empty.")
        try:
            url = httpx.URL(self.site_url)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid site_url {self.site_url!r}: {e}") from e
        if url.scheme not in {"http", "https"} or not url.host:
            raise ValueError(f"site_url must be an http(s) URL with a host, got {self.site_url!r}.")
        if self.max_wait_s < 0:
            raise ValueError("max_wait_s must be >= 0.")
        if self.wait_interval_s <= 0:
            raise ValueError("wait_interval_s must be > 0.")
        if self.max_retry_count <= 0:
            raise ValueError("max_retry_count must be > 0.")
        if self.sleep_s < 0:
            raise ValueError("sleep_s must be >= 0.")
        parse_label(self.member_label)


settings = Settings()
