#!/usr/bin/env python3
"""
Status Probe — Tower Setup Kit
===============================
Answers "is Tower already installed on this host, and if so, what is it?"
with at most two read-only GET requests.

  GET <proto>://<host>/api/v1/        — must look like the Tower API root
  GET <proto>://<host>/api/v1/ping/   — version, role and HA topology (Tower >= 2.1)

A host that cannot be reached is simply "not installed"; nothing here raises
on network trouble.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

import requests
import urllib3

from logger import get_logger

log = get_logger()

API_ROOT = "/api/v1/"
PING = "/api/v1/ping/"

# Keys the Tower API root always lists. All must be present.
API_ROOT_KEYS = frozenset(
    ["authtoken", "config", "me", "users", "jobs", "unified_jobs"])

# The ping endpoint (and HA) first shipped in 2.1.
MIN_PING_VERSION = (2, 1)
DEFAULT_TIMEOUT = 10.0


@dataclass
class InstallationStatus:
    installed: bool = False
    version: Optional[tuple[int, ...]] = None
    role: Optional[str] = None
    ha: bool = False
    primary: Optional[str] = None
    secondaries: list[str] = field(default_factory=list)

    @property
    def needs_primary_correction(self) -> bool:
        return self.installed and self.role == "secondary" and bool(self.primary)

    @property
    def version_str(self) -> str:
        return ".".join(str(v) for v in self.version) if self.version else "unknown"

    def __str__(self) -> str:
        if not self.installed:
            return "not installed"
        ha = f", HA primary={self.primary} secondaries={self.secondaries}" if self.ha else ""
        return f"installed (version {self.version_str}, role {self.role or 'primary'}{ha})"


def parse_hostname(hostname: str) -> tuple[str, str]:
    """Return (protocol, host) for a host string as typed by the operator.

    'example.com' -> http, 'example.com:8443' -> https, an explicit
    'proto://' prefix wins, and a bare IPv6 address is bracketed.
    """
    protocol = "https" if hostname.count(":") == 1 else "http"
    if "://" in hostname:
        protocol, hostname = hostname.split("://", 1)
    if hostname.count(":") >= 3:
        hostname = f"[{hostname}]"
    return protocol, hostname


def parse_version(version: str) -> tuple[int, ...]:
    """'2.1.0-0.el6' -> (2, 1, 0, 6); non-digits are dropped per component."""
    parts = [re.sub(r"\D", "", p) for p in str(version).split(".")]
    return tuple(int(p) for p in parts if p)


def _get_json(url: str, timeout: float, verify: bool) -> Optional[dict]:
    """GET `url`; return the decoded JSON object, or None for anything else."""
    try:
        r = requests.get(url, timeout=timeout, verify=verify)
    except requests.RequestException as e:
        log.debug("GET %s failed: %s", url, e)
        return None
    if r.status_code >= 400:
        log.debug("GET %s returned HTTP %s", url, r.status_code)
        return None
    try:
        body = r.json()
    except ValueError:
        log.debug("GET %s returned a non-JSON body", url)
        return None
    return body if isinstance(body, dict) else None


def probe(host: str, timeout: float = DEFAULT_TIMEOUT,
          verify: bool = False) -> InstallationStatus:
    """Probe `host` for an existing Tower installation."""
    if not verify:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    protocol, target = parse_hostname(host)
    base = f"{protocol}://{target}"

    root = _get_json(base + API_ROOT, timeout, verify)
    if root is None or not API_ROOT_KEYS.issubset(root):
        log.info("Probe %s: not installed", host)
        return InstallationStatus()

    status = InstallationStatus(installed=True)
    ping = _get_json(base + PING, timeout, verify)
    if ping is None:
        # Pre-2.1 Tower: no ping endpoint, never HA.
        log.info("Probe %s: %s (no ping endpoint)", host, status)
        return status

    try:
        status.version = parse_version(ping["version"])
        status.role = str(ping.get("role") or "primary")
        status.ha = bool(ping.get("ha", False))
        if status.ha or status.role == "secondary":
            instances = ping.get("instances") or {}
            status.primary = instances.get("primary")
            status.secondaries = list(instances.get("secondaries") or [])
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        log.warning("Probe %s: malformed ping response (%s)", host, e)
        return InstallationStatus(installed=True)

    if status.version and status.version < MIN_PING_VERSION:
        # No HA before 2.1: role and topology fields are not trusted
        log.info("Probe %s: version %s predates HA; ignoring role and instances",
                 host, status.version_str)
        return InstallationStatus(installed=True, version=status.version)
    log.info("Probe %s: %s", host, status)
    return status
