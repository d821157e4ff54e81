#!/usr/bin/env python3
"""
Config Loader — Tower Setup Kit
================================
The configuration state the wizard resolves, the options file it can be
seeded from, and the runtime settings that tune the wizard itself.

Security model:
  - The options file (tower_setup_conf.yml) holds application passwords;
    it is written by configure.py and read by setup.sh. Keep it out of git.
  - Runtime settings come from the environment or an optional .env file.

Usage:
  from config_loader import load_options, load_settings
  conf = load_options("tower_setup_conf.yml")
  settings = load_settings()

Environment variables (all optional, set in .env or shell):
  TOWER_SETUP_OUTPUT_DIR     — where tower_setup_conf.yml and inventory are written
  TOWER_SETUP_LOG_DIR        — directory for setup-<timestamp>.log
  TOWER_SETUP_PROBE_TIMEOUT  — seconds before a status probe gives up
  TOWER_SETUP_VERIFY_TLS     — "1" to verify TLS certificates when probing
"""
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, get_args, get_origin

import yaml
from dotenv import load_dotenv

from errors import ConfigValidationError, OptionsFileError

KIT_DIR = Path(__file__).resolve().parent
SETTINGS_FILE = "tower_setup_conf.yml"
INVENTORY_FILE = "inventory"

DATABASES = ("internal", "external")
DEFAULT_PG_PORT = 5432
LOCAL_HOSTS = ("localhost", "127.0.0.1")

# Not persisted in the settings file; the inventory carries them.
TRANSIENT_FIELDS = ("secondary_machines",)


@dataclass
class SetupConfig:
    """Resolved installation configuration. None means "not resolved yet"."""

    primary_machine: Optional[str] = None
    secondary_machines: Optional[list[str]] = None

    database: Optional[str] = None
    pg_host: Optional[str] = None
    pg_database: Optional[str] = None
    pg_username: Optional[str] = None
    pg_password: Optional[str] = None
    pg_port: Optional[int] = None

    admin_password: Optional[str] = None
    redis_password: Optional[str] = None
    munin_password: Optional[str] = None

    ansible_ssh_user: Optional[str] = None
    ansible_sudo: Optional[bool] = None
    ansible_su: Optional[bool] = None
    ansible_ask_sudo_pass: Optional[bool] = None
    ansible_ask_su_pass: Optional[bool] = None
    ansible_ask_pass: Optional[bool] = None
    using_ssh_host_keys: Optional[bool] = None

    # Keys from a loaded file that the wizard does not resolve itself.
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.name != "extra"]

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SetupConfig":
        known = set(cls.field_names())
        conf = cls(**{k: v for k, v in data.items() if k in known})
        conf.extra = {k: v for k, v in data.items() if k not in known}
        conf.validate()
        return conf

    def to_mapping(self, include_transient: bool = False) -> dict[str, Any]:
        """Set fields plus extras, as written to the settings file."""
        data = dict(self.extra)
        for name in self.field_names():
            if name in TRANSIENT_FIELDS and not include_transient:
                continue
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    def is_local(self) -> bool:
        return (self.primary_machine or "").lower() in LOCAL_HOSTS

    @property
    def escalation_method(self) -> Optional[str]:
        if self.ansible_sudo:
            return "sudo"
        if self.ansible_su:
            return "su"
        return None

    def validate(self, complete: bool = False) -> None:
        """Check the invariants between fields.

        A partially resolved configuration only has its present fields
        checked; `complete=True` also requires the fields a finished run
        must have.
        """
        for f in fields(self):
            if f.name != "extra":
                _check_type(f.name, getattr(self, f.name), _field_type(f))

        if self.database is not None and self.database not in DATABASES:
            raise ConfigValidationError(
                "database", f"must be one of {', '.join(DATABASES)}")

        if self.pg_port is not None and self.pg_port <= 0:
            raise ConfigValidationError("pg_port", "must be a positive integer")

        if self.ansible_sudo and self.ansible_su:
            raise ConfigValidationError(
                "ansible_su", "ansible_sudo and ansible_su are mutually exclusive")

        if self.using_ssh_host_keys is False and self.ansible_ask_pass is False:
            raise ConfigValidationError(
                "ansible_ask_pass", "must be true when SSH keys are not used")

        if not complete:
            return

        if not self.primary_machine:
            raise ConfigValidationError("primary_machine", "is required")
        if self.database is None:
            raise ConfigValidationError("database", "is required")
        if self.database == "external":
            for name in ("pg_host", "pg_database", "pg_username", "pg_port"):
                if getattr(self, name) in (None, ""):
                    raise ConfigValidationError(
                        name, "is required with an external database")
        if self.secondary_machines and self.database != "external":
            raise ConfigValidationError(
                "secondary_machines", "require an external database")
        if self.using_ssh_host_keys is False and not self.ansible_ask_pass:
            raise ConfigValidationError(
                "ansible_ask_pass", "must be true when SSH keys are not used")
        if self.ansible_ssh_user not in (None, "root") and not self.escalation_method:
            raise ConfigValidationError(
                "ansible_sudo", "sudo or su is required for a non-root SSH user")


TYPE_NAMES = {str: "a string", bool: "true or false", int: "an integer",
              list: "a list of hostnames"}


def _field_type(f) -> type:
    """Optional[list[str]] -> list, Optional[int] -> int."""
    inner = next(a for a in get_args(f.type) if a is not type(None))
    return get_origin(inner) or inner


def _check_type(name: str, value: Any, expected: type) -> None:
    if value is None:
        return
    if expected is list:
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    elif expected is int:
        # bool is an int subclass; "pg_port: yes" is not a port
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ConfigValidationError(name, f"must be {TYPE_NAMES[expected]}")


def load_options(options_file: str) -> SetupConfig:
    """
    Load a previously saved options file.

    Raises:
        OptionsFileError: If the file is missing, unreadable, not a YAML
            mapping, or breaks a configuration invariant
    """
    path = Path(options_file).expanduser().resolve()
    if not path.is_file():
        raise OptionsFileError(
            f"Setup options file {path} does not exist or is not readable.")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise OptionsFileError(f"Setup options file {path} could not be read: {e}")
    if not isinstance(data, dict):
        raise OptionsFileError(f"Setup options file {path} is not a YAML mapping.")
    try:
        return SetupConfig.from_mapping(data)
    except TypeError as e:
        raise OptionsFileError(f"Setup options file {path} is malformed: {e}")


@dataclass(frozen=True)
class RuntimeSettings:
    output_dir: Path
    log_dir: str
    probe_timeout: float
    verify_tls: bool


def load_settings(env_file: Optional[Path] = None) -> RuntimeSettings:
    """Read runtime settings, loading .env first (real env vars win)."""
    load_dotenv(env_file or KIT_DIR / ".env", override=False)

    try:
        timeout = float(os.environ.get("TOWER_SETUP_PROBE_TIMEOUT", "10"))
        if timeout <= 0:
            raise ValueError(timeout)
    except ValueError:
        timeout = 10.0

    return RuntimeSettings(
        output_dir=Path(os.environ.get("TOWER_SETUP_OUTPUT_DIR", str(KIT_DIR))),
        log_dir=os.environ.get("TOWER_SETUP_LOG_DIR", "/var/log/tower"),
        probe_timeout=timeout,
        verify_tls=os.environ.get("TOWER_SETUP_VERIFY_TLS", "").lower()
        in ("1", "true", "yes"),
    )
