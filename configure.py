#!/usr/bin/env python3
"""
Tower Setup Kit — configure
============================
Works out how Ansible Tower is to be installed or upgraded, saves the answer
for setup.sh, and prints the command to run next.

Usage:
  ./configure.py                          # Ask for everything not yet known
  ./configure.py -o tower_setup_conf.yml  # Start from a saved options file
  ./configure.py --local                  # This machine, internal database
  ./configure.py -A                       # Type the PostgreSQL/Redis passwords yourself

Exit codes:
  32  Ansible or PyYAML missing        33  Ansible older than 1.7
  64  --options-file with --local      40  options file missing or unreadable
   1  external database unreachable    10  settings rejected at review
 130  interrupted (Ctrl-C)
"""
import argparse
import re
import subprocess
import sys

try:
    import yaml  # noqa: F401
except ImportError:
    print("PyYAML is not installed on this machine. It should have been "
          "installed alongside Ansible, and must be installed in order to "
          "install Tower.", file=sys.stderr)
    sys.exit(32)

from artifacts import emit
from command import synthesize_command
from config_loader import SETTINGS_FILE, SetupConfig, load_options, load_settings
from errors import (
    ConflictingOptions, PrerequisiteMissing, PrerequisiteTooOld, SetupError,
    WriteInterrupted,
)
from logger import setup_logger
from ui import error, green, hdr, newline, say, sec, yellow
from wizard import SetupRun, review, run_wizard

MIN_ANSIBLE_VERSION = (1, 7)
ANSIBLE_DOCS = "http://docs.ansible.com/intro_installation.html"


# ── Prerequisites ─────────────────────────────────────────────
def parse_ansible_version(output: str) -> tuple[int, ...]:
    """'ansible 1.9.4' / 'ansible [core 2.15.3]' -> (1, 9) / (2, 15)."""
    first_line = output.strip().split("\n")[0]
    m = re.search(r"(\d+)\.(\d+)", first_line)
    return (int(m.group(1)), int(m.group(2))) if m else ()


def check_ansible() -> tuple[int, ...]:
    """Return the installed Ansible version or raise a prerequisite error."""
    try:
        proc = subprocess.run(["ansible", "--version"],
                              capture_output=True, text=True)
        returncode = proc.returncode
    except OSError:
        returncode = 255
    if returncode != 0:
        raise PrerequisiteMissing(f"""
            Ansible is not installed on this machine.
            You must install Ansible before you can install Tower.

            For guidance on installing Ansible, consult
            {ANSIBLE_DOCS}
        """)

    version = parse_ansible_version(proc.stdout)
    if version < MIN_ANSIBLE_VERSION:
        shown = ".".join(str(v) for v in version) or "unknown"
        raise PrerequisiteTooOld(f"""
            Ansible is installed on this machine, but is too old (version {shown}).
            Ansible Tower setup requires at least Ansible 1.7. Please upgrade.

            For guidance on installing Ansible, consult
            {ANSIBLE_DOCS}
        """)
    return version


# ── Options ───────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Configure an Ansible Tower installation or upgrade"
    )
    parser.add_argument("-o", "--options-file", dest="options_file", default="",
                        metavar="FILE", help="Start from a saved settings file")
    parser.add_argument("-l", "--local", action="store_true",
                        help="Install on this machine with an internal database")
    parser.add_argument("-A", "--no-autogenerate", dest="autogenerate",
                        action="store_false",
                        help="Ask for the PostgreSQL and Redis passwords instead of generating them")
    parser.add_argument("--no-secondary-prompt", dest="no_secondaries",
                        action="store_true", help="Do not offer to add secondary machines")
    parser.add_argument("-d", "--output-dir", dest="output_dir", default=None,
                        metavar="DIR", help="Where to write the settings and inventory files")
    return parser


def build_run(args: argparse.Namespace, settings) -> SetupRun:
    """Seed the run from the options file or from --local."""
    conf = load_options(args.options_file) if args.options_file else SetupConfig()
    run = SetupRun(conf=conf, autogenerate=args.autogenerate,
                   no_secondaries=args.no_secondaries,
                   probe_timeout=settings.probe_timeout,
                   verify_tls=settings.verify_tls)
    if args.local:
        sec("LOCAL INSTALLATION")
        say("You are installing Ansible Tower on this machine, using an "
            "internal database.", nl=2)
        conf.primary_machine = "localhost"
        conf.database = "internal"
        run.dirty = True
    return run


def print_command(run: SetupRun) -> None:
    sec("FINISHED!")
    say("You have completed the setup wizard. You may execute the installation "
        "of Ansible Tower by issuing the following command: ", nl=2)
    for line in synthesize_command(run.conf, run.private_key_path):
        say(line)
    newline()


def configure(args: argparse.Namespace) -> SetupRun:
    settings = load_settings()
    log = setup_logger(settings.log_dir)
    output_dir = args.output_dir or settings.output_dir

    if args.options_file and args.local:
        raise ConflictingOptions("ERROR: Cannot specify both --options-file and --local.")
    log.info("Starting configure (options_file=%r, local=%s)",
             args.options_file, args.local)

    hdr("Welcome to the Ansible Tower Install Wizard")
    say("This wizard will guide you through the setup process.", nl=2)

    run = build_run(args, settings)

    run_wizard(run)

    if run.dirty:
        review(run)
        try:
            settings_path, inventory_path = emit(run.conf, output_dir)
        except KeyboardInterrupt:
            log.warning("Interrupted while writing to %s", output_dir)
            raise WriteInterrupted(
                f"Setup aborted while writing to {output_dir}. The settings "
                "and inventory files may be incomplete; rerun ./configure.") from None
        say(green(f"Settings saved to {settings_path.name}."))
        say(f"Inventory written to {inventory_path.name}.")
        newline()
    else:
        say(f"The configuration provided in {args.options_file or SETTINGS_FILE} "
            "appears complete.")
        newline()

    print_command(run)
    return run


def main(argv=None) -> None:
    """Entry point for ./configure."""
    args = build_parser().parse_args(argv)
    try:
        check_ansible()
        configure(args)
    except SetupError as e:
        error(str(e))
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        print(f"\n\n  {yellow('Setup aborted. No changes made.')}")
        sys.exit(130)


if __name__ == "__main__":
    main()
