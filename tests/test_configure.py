# tests/test_configure.py
import subprocess

import pytest
import yaml

import configure
from configure import check_ansible, main, parse_ansible_version

LOCAL_COMPLETE = {
    "primary_machine": "localhost",
    "database": "internal",
    "admin_password": "adminpw",
    "pg_password": "pgpw",
    "redis_password": "redispw",
    "munin_password": "muninpw",
}


@pytest.fixture
def kit(monkeypatch, tmp_path):
    """Output and log dirs under tmp_path, Ansible present, no real probes."""
    out = tmp_path / "out"
    monkeypatch.setenv("TOWER_SETUP_OUTPUT_DIR", str(out))
    monkeypatch.setenv("TOWER_SETUP_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(configure, "check_ansible", lambda: (2, 15))
    return out


def exit_code(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


# ── prerequisites ─────────────────────────────────────────────
def test_parse_ansible_version():
    assert parse_ansible_version("ansible 1.9.4\n  configured module search path") == (1, 9)
    assert parse_ansible_version("ansible [core 2.15.3]\n  config file = None") == (2, 15)
    assert parse_ansible_version("garbage") == ()

def test_ansible_missing(monkeypatch):
    def no_ansible(*a, **kw):
        raise FileNotFoundError("ansible")
    monkeypatch.setattr(configure.subprocess, "run", no_ansible)
    assert exit_code([]) == 32

def test_ansible_too_old(monkeypatch):
    old = subprocess.CompletedProcess(["ansible"], 0, stdout="ansible 1.6.10\n", stderr="")
    monkeypatch.setattr(configure.subprocess, "run", lambda *a, **kw: old)
    assert exit_code([]) == 33

def test_ansible_new_enough(monkeypatch):
    new = subprocess.CompletedProcess(["ansible"], 0, stdout="ansible 1.7\n", stderr="")
    monkeypatch.setattr(configure.subprocess, "run", lambda *a, **kw: new)
    assert check_ansible() == (1, 7)


# ── options ───────────────────────────────────────────────────
def test_options_file_and_local_conflict(kit, tmp_path):
    assert exit_code(["-o", str(tmp_path / "conf.yml"), "--local"]) == 64

def test_missing_options_file(kit, tmp_path):
    assert exit_code(["--options-file", str(tmp_path / "nope.yml")]) == 40

def test_mistyped_options_file(kit, tmp_path, hosts):
    options = tmp_path / "tower_setup_conf.yml"
    options.write_text("primary_machine: 10\n")
    assert exit_code(["-o", str(options)]) == 40
    assert hosts.probed == []


# ── whole runs ────────────────────────────────────────────────
def test_complete_options_file_is_a_no_op(kit, tmp_path, hosts, answers,
                                          typed_passwords, capsys):
    options = tmp_path / "tower_setup_conf.yml"
    options.write_text(yaml.safe_dump(LOCAL_COMPLETE))
    before = options.read_text()

    main(["-o", str(options)])

    out = " ".join(capsys.readouterr().out.split())
    assert "appears complete" in out
    assert "sudo ./setup.sh" in out
    assert answers.questions == []
    assert typed_passwords.questions == []
    assert not kit.exists()
    assert options.read_text() == before

def test_review_declined_writes_nothing(kit, hosts, answers, typed_passwords):
    typed_passwords.feed("adminpw", "muninpw")
    answers.feed("n")
    assert exit_code(["--local"]) == 10
    assert not (kit / "tower_setup_conf.yml").exists()
    assert not (kit / "inventory").exists()

def test_local_install_writes_artifacts(kit, hosts, answers, typed_passwords, capsys):
    typed_passwords.feed("adminpw", "muninpw")
    answers.feed("y")
    main(["--local"])

    settings = yaml.safe_load((kit / "tower_setup_conf.yml").read_text())
    assert settings["primary_machine"] == "localhost"
    assert settings["database"] == "internal"
    assert settings["admin_password"] == "adminpw"
    assert len(settings["redis_password"]) == 40
    assert (kit / "inventory").read_text() == "[primary]\nlocalhost\n\n[all:children]\nprimary\n"
    assert "sudo ./setup.sh" in capsys.readouterr().out
    assert hosts.probed == ["localhost"]

def test_remote_run_prints_flags(kit, hosts, answers, typed_passwords, capsys):
    typed_passwords.feed("adminpw", "muninpw")
    answers.feed("tower1", "i", "deploy", "1", "y", "n", "y")
    main([])
    lines = capsys.readouterr().out.splitlines()
    assert "./setup.sh -p -s" in lines
    settings = yaml.safe_load((kit / "tower_setup_conf.yml").read_text())
    assert settings["ansible_sudo"] is True
    assert settings["ansible_ask_sudo_pass"] is True
    assert settings["ansible_ask_pass"] is True

def test_ctrl_c_at_a_prompt_changes_nothing(kit, hosts, monkeypatch, capsys):
    def interrupted(question=""):
        raise KeyboardInterrupt
    monkeypatch.setattr("builtins.input", interrupted)
    assert exit_code([]) == 130
    assert "No changes made." in capsys.readouterr().out
    assert not kit.exists()

def test_ctrl_c_while_writing_warns_of_partial_files(kit, hosts, answers,
                                                    typed_passwords, monkeypatch,
                                                    capsys):
    def interrupted(conf, output_dir):
        raise KeyboardInterrupt
    monkeypatch.setattr(configure, "emit", interrupted)
    typed_passwords.feed("adminpw", "muninpw")
    answers.feed("y")
    assert exit_code(["--local"]) == 130
    captured = capsys.readouterr()
    assert "No changes made." not in captured.out
    assert "may be incomplete" in " ".join(captured.err.split())
