"""Build the command the operator runs next to apply the configuration."""
from typing import Optional

from config_loader import SetupConfig

SETUP_SCRIPT = "./setup.sh"

# (short flag, config field), in the order the flags are printed
EXTRA_ARGS = (
    ("p", "ansible_ask_pass"),
    ("s", "ansible_ask_sudo_pass"),
    ("u", "ansible_ask_su_pass"),
)


def setup_args(conf: SetupConfig) -> list[str]:
    return [f"-{flag}" for flag, name in EXTRA_ARGS if getattr(conf, name)]


def synthesize_command(conf: SetupConfig,
                       private_key_path: Optional[str] = None) -> list[str]:
    """Return the lines to print; the last one is the setup.sh invocation."""
    if conf.is_local():
        return [f"sudo {SETUP_SCRIPT}"]

    lines = []
    if private_key_path:
        lines += [
            "# Add your SSH key to SSH agent.",
            "# You may be asked to enter your SSH unlock key password to do this.",
            "ssh-agent bash",
            f"ssh-add {private_key_path}",
        ]
    lines.append(" ".join([SETUP_SCRIPT] + setup_args(conf)))
    return lines
