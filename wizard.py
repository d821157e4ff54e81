#!/usr/bin/env python3
"""
Tower Setup Kit — Interactive Configuration Wizard
===================================================
Resolves every setting setup.sh needs, in a fixed order. For each setting
the first source that has a value wins:

  1. the options file (--options-file)
  2. a value implied by a flag (--local)
  3. what a probe of an existing Tower installation reports
  4. the operator, asked interactively

A question is only asked when none of the earlier sources supplied a value,
and an answer never overwrites a value that is already present.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from config_loader import DEFAULT_PG_PORT, SetupConfig
from errors import DatabaseConnectionError, ReviewDeclined
from logger import get_logger
from passwords import get_password
from probe import DEFAULT_TIMEOUT, InstallationStatus, probe
from ui import ask, ask_until, ask_yes_no, newline, parse_yes_no, say, sec, warn

log = get_logger()

SECRET_FIELDS = ("admin_password", "pg_password", "redis_password", "munin_password")


@dataclass
class SetupRun:
    """Everything one configure invocation accumulates."""

    conf: SetupConfig = field(default_factory=SetupConfig)
    dirty: bool = False
    private_key_path: Optional[str] = None
    status: InstallationStatus = field(default_factory=InstallationStatus)
    all_secondaries_installed: bool = True
    autogenerate: bool = True
    no_secondaries: bool = False
    probe_timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = False

    @property
    def already_installed(self) -> bool:
        return self.status.installed

    def set(self, name: str, value) -> None:
        """Record a newly obtained value; the run now has something to save."""
        setattr(self.conf, name, value)
        self.dirty = True
        shown = "********" if name in SECRET_FIELDS else repr(value)
        log.info("Resolved %s = %s", name, shown)

    def probe(self, host: str) -> InstallationStatus:
        return probe(host, timeout=self.probe_timeout, verify=self.verify_tls)


# ── Answer parsers ────────────────────────────────────────────
def parse_required(raw: str) -> str:
    value = raw.strip()
    if not value:
        raise ValueError("A value is required.")
    return value


def parse_database(raw: str) -> str:
    answer = raw.strip().lower()
    if answer in ("i", "l", "internal", "local"):
        return "internal"
    if answer in ("e", "external"):
        return "external"
    raise ValueError("Please enter internal or external.")


def parse_port(raw: str) -> int:
    raw = raw.strip()
    if not raw:
        return DEFAULT_PG_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ValueError("PostgreSQL port must be an integer.")
    if port <= 0:
        raise ValueError("PostgreSQL port must be a positive integer.")
    return port


def parse_escalation(raw: str) -> str:
    answer = raw.strip().lower()
    if answer in ("1", "sudo"):
        return "sudo"
    if answer in ("2", "su"):
        return "su"
    raise ValueError("Please enter (1) sudo or (2) su.")


def parse_key_path(raw: str) -> str:
    path = raw.strip()
    if not path or not os.path.isfile(os.path.expanduser(path)):
        raise ValueError("File does not exist!")
    return path


def _apply_probed(run: SetupRun, name: str, value) -> None:
    """Fill `name` from a probe unless a loaded/implied value is present."""
    current = getattr(run.conf, name)
    if current is None:
        setattr(run.conf, name, value)
        log.info("Derived %s = %r from %s", name, value, run.conf.primary_machine)
    elif current != value:
        warn(f"Warning: the existing installation reports {name} = {value!r}, "
             f"but the options provided say {current!r}. Keeping {current!r}.")
        log.info("Conflict on %s: kept %r, probe reported %r", name, current, value)


# ── [1] Primary machine ───────────────────────────────────────
def resolve_primary_machine(run: SetupRun) -> None:
    if run.conf.primary_machine:
        return
    sec("PRIMARY TOWER MACHINE")
    say("Tower can be installed (or upgraded) on this machine, or onto a "
        "remote machine that is reachable by SSH.", nl=2)
    say('Note: If using the High Availability features of Tower, you must use '
        'DNS resolvable hostnames or IP addresses (do not use "localhost").', nl=2)
    say("Enter the hostname or IP to configure Ansible Tower")
    primary_machine = ask("(default: localhost): ").strip()
    if not primary_machine:
        say("Installing Tower on localhost.")
        primary_machine = "localhost"
    run.set("primary_machine", primary_machine)
    newline()


# ── [2] Existing installation ─────────────────────────────────
def resolve_install_status(run: SetupRun) -> None:
    """Probe the primary; an upgrade takes its topology from the install."""
    status = run.probe(run.conf.primary_machine)
    run.status = status
    if not status.installed:
        return

    if status.needs_primary_correction:
        say(f"{run.conf.primary_machine} is a secondary Tower machine. "
            f"Using its primary, {status.primary}, instead.", nl=2)
        log.info("Corrected primary_machine %s -> %s",
                 run.conf.primary_machine, status.primary)
        run.conf.primary_machine = status.primary
        run.dirty = True

    if status.ha:
        _apply_probed(run, "database", "external")
        if run.conf.database == "external":
            _apply_probed(run, "secondary_machines", list(status.secondaries))
        elif status.secondaries:
            warn(f"Warning: the existing installation also reports secondary "
                 f"machines {', '.join(status.secondaries)}. They are not added, "
                 f"since secondary machines require an external database.")
            log.info("Dropped probed secondaries %s (database=%r)",
                     status.secondaries, run.conf.database)
    else:
        _apply_probed(run, "database", "internal")


# ── [3] Database ──────────────────────────────────────────────
def resolve_database(run: SetupRun) -> None:
    if run.already_installed or run.conf.database:
        return
    sec("DATABASE")
    say("Tower can use an internal database installed on the Tower machine, "
        "or an external PostgreSQL database. An external database could be "
        "a hosted database, such as Amazon's RDS.", nl=2)
    say("An internal database is fine for most situations. However, to use "
        "the High Availability features of Tower, an external database is "
        "required.", nl=2)
    say("If using an external database, the database (but not the necessary "
        "tables) must already exist.", nl=2)
    run.set("database", ask_until(
        "Will this installation use an (i)nternal or (e)xternal database? ",
        parse_database))
    newline()


# ── [4] External database details ─────────────────────────────
def resolve_external_database(run: SetupRun) -> None:
    conf = run.conf
    if run.already_installed or conf.database != "external":
        return
    for name, question in (
        ("pg_host", "Enter the PostgreSQL host: "),
        ("pg_database", "Enter the PostgreSQL database name: "),
        ("pg_username", "Enter the PostgreSQL user: "),
    ):
        if not getattr(conf, name):
            run.set(name, ask_until(question, parse_required))
    if conf.pg_password is None:
        run.set("pg_password", get_password(
            "Enter the PostgreSQL password: ", allow_blank=True))
    if not conf.pg_port:
        run.set("pg_port", ask_until(
            f"Enter the PostgreSQL port (default {DEFAULT_PG_PORT}): ", parse_port))
    newline()

    verify_database(conf)
    newline()


def verify_database(conf: SetupConfig) -> bool:
    """Connect with the given details. False means "could not check"."""
    try:
        import psycopg2
    except ImportError:
        warn("Warning: psycopg2 is not installed on this machine. We will "
             "assume these credentials are correct. You may see playbook "
             "errors later if they are not.")
        newline()
        say("You may edit tower_setup_conf.yml prior to running the setup.sh "
            "command to make changes after completing this wizard.")
        log.info("psycopg2 missing; database credentials not verified")
        return False

    try:
        conn = psycopg2.connect(
            database=conf.pg_database,
            host=conf.pg_host,
            password=conf.pg_password,
            port=conf.pg_port,
            user=conf.pg_username,
        )
    except psycopg2.OperationalError as e:
        log.error("Database connection to %s:%s failed: %s",
                  conf.pg_host, conf.pg_port, e)
        raise DatabaseConnectionError(
            "Error: Unable to connect to the database.\n"
            f"The error we got when we tried was:\n\n{e}")
    conn.close()
    log.info("Verified database connection to %s:%s", conf.pg_host, conf.pg_port)
    return True


# ── [5] Secondary machines ────────────────────────────────────
def resolve_secondaries(run: SetupRun) -> None:
    conf = run.conf
    if run.no_secondaries or conf.database != "external":
        return
    if conf.secondary_machines is None:
        conf.secondary_machines = []

    sec("SECONDARY MACHINES")
    say("You may optionally elect to add any number of secondary machines, "
        "on which Ansible Tower will also be installed (in secondary mode).")
    if conf.secondary_machines:
        say("You already have the following secondary machine(s): "
            + ", ".join(conf.secondary_machines))

    if not ask_yes_no("Add secondary machines (y/n)? "):
        newline()
        return
    newline()
    say("Enter the hostname or IP of secondary machines. If you are done "
        "adding machines, enter an empty line.")
    while True:
        host = ask("Hostname or IP: ").strip()
        if not host:
            break
        conf.secondary_machines.append(host)
        run.dirty = True
        log.info("Added secondary machine %s", host)
    newline()


# ── [6] Passwords ─────────────────────────────────────────────
def resolve_passwords(run: SetupRun) -> None:
    conf = run.conf
    run.all_secondaries_installed = all(
        run.probe(host).installed for host in conf.secondary_machines or [])
    if run.already_installed and run.all_secondaries_installed:
        return

    fresh = not run.already_installed
    wanted = [
        ("admin_password", fresh,
         "Enter the desired Ansible Tower admin user password: ", False),
        ("pg_password", fresh and conf.database == "internal",
         "Enter the desired PostgreSQL password: ", run.autogenerate),
        # Redis and Munin passwords are per machine, so any new machine needs them.
        ("redis_password", True, "Enter the desired Redis password: ", run.autogenerate),
        ("munin_password", True, "Enter the desired Munin password: ", False),
    ]
    missing = [w for w in wanted if w[1] and getattr(conf, w[0]) is None]
    if not missing:
        return

    sec("PASSWORDS")
    if fresh:
        say("For security reasons, since this is a new install, you must "
            "specify the following application passwords.", nl=2)
    else:
        say("At least one secondary machine is new and does not have Tower "
            "already installed. Therefore, we will need you to provide some "
            "application passwords.", nl=2)
    for name, _, question, autogenerate in missing:
        run.set(name, get_password(question, autogenerate=autogenerate))
    newline()


# ── [7] Connection information ────────────────────────────────
def resolve_connection(run: SetupRun) -> None:
    conf = run.conf
    if conf.is_local():
        return

    if conf.ansible_ssh_user is None:
        sec("CONNECTION INFORMATION")
        ssh_user = ask("Enter the SSH user to connect with (default: root): ").strip()
        run.set("ansible_ssh_user", ssh_user or "root")
        newline()

    if conf.ansible_ssh_user != "root":
        if conf.escalation_method is None:
            say("Root access is required to install Tower.")
            method = ask_until("Will you use (1) sudo or (2) su? ", parse_escalation)
            run.set(f"ansible_{method}", True)
            newline()
        method = conf.escalation_method
        ask_pass = f"ansible_ask_{method}_pass"
        if getattr(conf, ask_pass) is None:
            run.set(ask_pass, ask_until(
                f"Will {method} require a password (y/N)? ", parse_yes_no(False)))
            newline()

    if conf.using_ssh_host_keys is None:
        run.set("using_ssh_host_keys",
                ask_yes_no("Will you be using SSH keys (Y/n)? ", default=True))
        newline()
    if conf.using_ssh_host_keys is False and not conf.ansible_ask_pass:
        run.set("ansible_ask_pass", True)

    # Only on a dirty run: a known options file means the key is most likely
    # already added, and automated reruns must not block here.
    if conf.using_ssh_host_keys and run.dirty and not run.private_key_path:
        run.private_key_path = ask_until(
            "Please specify the path to the SSH private key: ", parse_key_path)
        newline()


# ── Review ────────────────────────────────────────────────────
def print_review(run: SetupRun) -> None:
    conf = run.conf
    sec("REVIEW")
    if run.already_installed:
        say("You are UPGRADING an existing Tower installation on "
            f"{conf.primary_machine}.", nl=2)
        return

    say("You selected the following options:", nl=2)
    say(f"The primary Tower machine is: {conf.primary_machine}")
    say(f"Tower will operate on an {conf.database.upper()} database.")
    if conf.database == "external":
        say(f"  host: {conf.pg_host}")
        say(f"  database: {conf.pg_database}")
        say(f"  user: {conf.pg_username}")
        say("  password: ********")
        say(f"  port: {conf.pg_port}")
    if conf.secondary_machines:
        say("Additional secondary machines:")
        for host in conf.secondary_machines:
            say(f"  - {host}")
    if conf.ansible_ssh_user:
        say(f"Using SSH user: {conf.ansible_ssh_user}")


def review(run: SetupRun) -> None:
    """Show what was resolved and require a yes; a no aborts the run."""
    print_review(run)
    newline()
    confirmed = ask_until("Are these settings correct (y/n)? ", parse_yes_no())
    if not confirmed:
        log.info("Operator declined the review")
        raise ReviewDeclined("Exiting. Rerun ./configure to re-configure.")


def run_wizard(run: SetupRun) -> SetupRun:
    """Resolve every setting of `run.conf`, in order. Returns `run`."""
    resolve_primary_machine(run)
    resolve_install_status(run)
    resolve_database(run)
    resolve_external_database(run)
    resolve_secondaries(run)
    resolve_passwords(run)
    resolve_connection(run)
    log.info("Wizard finished (dirty=%s, installed=%s)", run.dirty, run.already_installed)
    return run
