#!/usr/bin/env python3
"""
Artifact Emitter — Tower Setup Kit
===================================
Writes the two files setup.sh reads:

  tower_setup_conf.yml  — every resolved setting except secondary_machines
  inventory             — Ansible inventory with [primary] / [secondary] groups

Both are whole-file overwrites. They are written independently; if a run dies
between the two, re-running configure with the settings file repairs both.
"""
from pathlib import Path

import yaml

from config_loader import INVENTORY_FILE, SETTINGS_FILE, SetupConfig
from logger import get_logger

log = get_logger()


def write_settings(conf: SetupConfig, path: Path) -> Path:
    """Write the settings file (secondary machines live in the inventory)."""
    with open(path, "w") as f:
        yaml.safe_dump(conf.to_mapping(), f, default_flow_style=False,
                       allow_unicode=True)
    log.info("Wrote settings file %s", path)
    return path


def build_inventory(primary: str, secondaries: list[str] | None = None) -> str:
    hosts = {"primary": [primary] if primary else [],
             "secondary": list(secondaries or [])}
    out = ""
    for group, members in hosts.items():
        if members:
            out += f"[{group}]\n" + "\n".join(members) + "\n\n"
    out += "[all:children]\n"
    for group, members in hosts.items():
        if members:
            out += f"{group}\n"
    return out


def write_inventory(conf: SetupConfig, path: Path) -> Path:
    with open(path, "w") as f:
        f.write(build_inventory(conf.primary_machine, conf.secondary_machines))
    log.info("Wrote inventory %s (%d secondary host(s))",
             path, len(conf.secondary_machines or []))
    return path


def emit(conf: SetupConfig, output_dir: Path) -> tuple[Path, Path]:
    """Validate the finished configuration and write both artifacts."""
    conf.validate(complete=True)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    settings = write_settings(conf, output_dir / SETTINGS_FILE)
    inventory = write_inventory(conf, output_dir / INVENTORY_FILE)
    return settings, inventory
