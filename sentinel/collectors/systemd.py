from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, quote
from sentinel.models import CollectedData

# Units shipped by stock Debian/Ubuntu/cloud images. Their unit files are not read.
STANDARD_SERVICES = frozenset(
    {
        "acpid.service",
        "apparmor.service",
        "apport.service",
        "atd.service",
        "blk-availability.service",
        "chrony.service",
        "cloud-config.service",
        "cloud-final.service",
        "cloud-init-local.service",
        "cloud-init.service",
        "console-setup.service",
        "cron.service",
        "dbus-org.freedesktop.login1.service",
        "dbus-org.freedesktop.resolve1.service",
        "dbus-org.freedesktop.thermald.service",
        "dbus-org.freedesktop.timesync1.service",
        "dbus-org.freedesktop.timedate1.service",
        "dbus.service",
        "e2scrub_reap.service",
        "emergency.service",
        "friendly-recovery.service",
        "fstrim.service",
        "fwupd.service",
        "getty@.service",
        "grub-common.service",
        "grub-initrd-fallback.service",
        "irqbalance.service",
        "keyboard-setup.service",
        "kmod-static-nodes.service",
        "lvm2-monitor.service",
        "ModemManager.service",
        "multipathd.service",
        "networkd-dispatcher.service",
        "NetworkManager.service",
        "networking.service",
        "open-iscsi.service",
        "open-vm-tools.service",
        "packagekit.service",
        "plymouth-quit-wait.service",
        "plymouth-quit.service",
        "plymouth-read-write.service",
        "polkit.service",
        "pollinate.service",
        "qemu-guest-agent.service",
        "rescue.service",
        "rsync.service",
        "rsyslog.service",
        "serial-getty@.service",
        "setvtrgb.service",
        "snapd.apparmor.service",
        "snapd.autoimport.service",
        "snapd.core-fixup.service",
        "snapd.recovery-chooser-trigger.service",
        "snapd.seeded.service",
        "snapd.service",
        "snapd.system-shutdown.service",
        "ssh.service",
        "sshd.service",
        "openssh-server.service",
        "sudo.service",
        "systemd-ask-password-console.service",
        "systemd-ask-password-wall.service",
        "systemd-fsck-root.service",
        "systemd-fsck@.service",
        "systemd-initctl.service",
        "systemd-journal-flush.service",
        "systemd-journald.service",
        "systemd-logind.service",
        "systemd-machine-id-commit.service",
        "systemd-modules-load.service",
        "systemd-networkd-wait-online.service",
        "systemd-networkd.service",
        "systemd-pstore.service",
        "systemd-random-seed.service",
        "systemd-remount-fs.service",
        "systemd-resolved.service",
        "systemd-sysctl.service",
        "systemd-sysusers.service",
        "systemd-timesyncd.service",
        "systemd-tmpfiles-clean.service",
        "systemd-tmpfiles-setup-dev.service",
        "systemd-tmpfiles-setup.service",
        "systemd-udev-trigger.service",
        "systemd-udevd.service",
        "systemd-update-utmp-runlevel.service",
        "systemd-update-utmp.service",
        "systemd-user-sessions.service",
        "thermald.service",
        "ua-reboot-cmds.service",
        "ubuntu-advantage.service",
        "udev.service",
        "udisks2.service",
        "ufw.service",
        "unattended-upgrades.service",
        "upower.service",
    }
)

UNIT_DIRS = ("/etc/systemd/system", "/lib/systemd/system", "/usr/lib/systemd/system")

_FOOTER = re.compile(r"^\d+ unit files? listed")
_FRAGMENT_PATH = re.compile(r"^FragmentPath=(.+)$", re.MULTILINE)


def parse_enabled_services(output: str) -> List[Dict[str, str]]:
    services: List[Dict[str, str]] = []
    for line in output.split("\n"):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("UNIT FILE") or _FOOTER.match(trimmed):
            continue
        parts = trimmed.split()
        if len(parts) >= 2:
            services.append({"name": parts[0], "state": parts[1]})
    return services


def extract_directive(content: str, directive: str) -> str:
    match = re.search(rf"^{re.escape(directive)}=(.+)$", content, re.MULTILINE)
    return match.group(1).strip() if match else ""


@register_collector
class SystemdCollector(Collector):
    module = "systemd"

    def collect(self) -> CollectedData:
        listing = self.runner.run("systemctl list-unit-files --type=service --state=enabled --no-pager").stdout
        raw_parts: List[str] = [listing]

        enabled = parse_enabled_services(listing)
        service_files: List[Dict[str, Any]] = []
        for svc in enabled:
            if svc["name"] in STANDARD_SERVICES:
                continue
            info = self._read_unit(svc["name"])
            if info is not None:
                service_files.append(info)
                raw_parts.append(f"--- {info['path']} ---\n{info['content']}")

        return CollectedData(
            module=self.module,
            records={"enabled_services": enabled, "service_files": service_files},
            raw="\n".join(raw_parts),
        )

    def _locate_unit(self, name: str) -> str:
        show = self.runner.run(f"systemctl show -p FragmentPath {quote(name)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        if show.success:
            match = _FRAGMENT_PATH.search(show.stdout)
            if match and match.group(1).strip():
                return match.group(1).strip()

        for unit_dir in UNIT_DIRS:
            candidate = f"{unit_dir}/{name}"
            check = self.runner.run(f"test -f {quote(candidate)} && echo exists", timeout=CONFIG_TIMEOUT)
            if "exists" in check.stdout:
                return candidate
        return ""

    def _read_unit(self, name: str) -> Optional[Dict[str, Any]]:
        path = self._locate_unit(name)
        if not path:
            return None

        result = self.runner.run(f"cat {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        content = result.stdout if result.success else ""
        return {
            "name": name,
            "path": path,
            "content": content,
            "exec_start": extract_directive(content, "ExecStart"),
            "restart": extract_directive(content, "Restart"),
            "restart_sec": extract_directive(content, "RestartSec"),
            "standard_output": extract_directive(content, "StandardOutput"),
        }
