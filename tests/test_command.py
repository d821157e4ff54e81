# tests/test_command.py
from command import synthesize_command
from config_loader import SetupConfig


def test_local_install():
    assert synthesize_command(SetupConfig(primary_machine="localhost")) == ["sudo ./setup.sh"]
    assert synthesize_command(SetupConfig(primary_machine="127.0.0.1")) == ["sudo ./setup.sh"]

def test_local_ignores_key_path():
    conf = SetupConfig(primary_machine="localhost", ansible_ask_pass=True)
    assert synthesize_command(conf, "~/.ssh/id_rsa") == ["sudo ./setup.sh"]

def test_remote_without_flags():
    assert synthesize_command(SetupConfig(primary_machine="tower1")) == ["./setup.sh"]

def test_remote_flags_in_fixed_order():
    conf = SetupConfig(primary_machine="tower1", ansible_ask_sudo_pass=True,
                       ansible_ask_pass=True)
    assert synthesize_command(conf) == ["./setup.sh -p -s"]

def test_remote_su_flag():
    conf = SetupConfig(primary_machine="tower1", ansible_su=True,
                       ansible_ask_su_pass=True, ansible_ask_pass=False)
    assert synthesize_command(conf) == ["./setup.sh -u"]

def test_ssh_agent_bootstrap_with_key():
    lines = synthesize_command(SetupConfig(primary_machine="tower1"), "~/.ssh/tower")
    assert lines[-1] == "./setup.sh"
    assert "ssh-agent bash" in lines
    assert "ssh-add ~/.ssh/tower" in lines
    assert lines.index("ssh-agent bash") < lines.index("ssh-add ~/.ssh/tower")
