"""
System operations — the privileged side effects lxcshare needs.

The reconciler never shells out itself; it calls a SystemOperations
object. HostSystem runs the real commands on a Proxmox node (mount,
apt-get, systemctl, pct). Tests pass an in-memory fake instead.

Every method reports failure through its return value. A command that
is missing or times out counts as a failure, not an exception.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import List, Sequence, Tuple

logger = logging.getLogger("lxcshare.system")

PROC_MOUNTS = Path("/proc/mounts")


class SystemOperations:
    """Abstract base for system side effects."""

    def ensure_dir(self, path: str) -> None:
        """Create a directory (and parents) if it does not exist."""
        raise NotImplementedError

    def helper_installed(self) -> bool:
        """Whether the autofs automounter is available."""
        raise NotImplementedError

    def install_package(self, name: str) -> bool:
        raise NotImplementedError

    def enable_service(self, name: str) -> bool:
        raise NotImplementedError

    def reload_service(self, name: str) -> bool:
        raise NotImplementedError

    def mount(self, target: str) -> bool:
        """Mount a path that has an fstab entry."""
        raise NotImplementedError

    def trigger_lazy_mount(self, target: str) -> bool:
        """List a directory so autofs mounts it."""
        raise NotImplementedError

    def container_running(self, container_id: str) -> bool:
        raise NotImplementedError

    def start_container(self, container_id: str) -> bool:
        raise NotImplementedError

    def exec_in_container(self, container_id: str, argv: Sequence[str]) -> bool:
        """Run a command inside a container; True on exit status 0."""
        raise NotImplementedError

    def active_mounts(self, fs_type: str) -> List[Tuple[str, str]]:
        """(source, mount point) of mounted filesystems of one type."""
        raise NotImplementedError


def _run(cmd: list[str], timeout: int = 30) -> subprocess.CompletedProcess:
    """Run a command and capture output.

    A missing binary or a timeout yields a CompletedProcess with
    return code 127 or 124 so callers only check ``returncode``.
    """
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=f"{cmd[0]}: not found")
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(cmd, 124, stdout="", stderr="timed out")


def parse_proc_mounts(text: str, fs_type: str) -> List[Tuple[str, str]]:
    mounts = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) >= 3 and fields[2] == fs_type:
            mounts.append((fields[0], fields[1].replace("\\040", " ")))
    return mounts


class HostSystem(SystemOperations):
    """SystemOperations backed by the commands of a Proxmox VE node."""

    def __init__(self, start_wait: float = 1.0, install_timeout: int = 600) -> None:
        self._start_wait = start_wait
        self._install_timeout = install_timeout

    def ensure_dir(self, path: str) -> None:
        if not os.path.isdir(path):
            logger.info("Creating directory: %s", path)
            Path(path).mkdir(parents=True, exist_ok=True)

    def helper_installed(self) -> bool:
        return shutil.which("automount") is not None

    def install_package(self, name: str) -> bool:
        if shutil.which("apt-get") is None:
            logger.warning("apt-get not available - install %s manually", name)
            return False
        r = _run(["apt-get", "update", "-y"], timeout=self._install_timeout)
        if r.returncode != 0:
            logger.error("apt-get update failed: %s", r.stderr.strip())
            return False
        r = _run(["apt-get", "install", "-y", name], timeout=self._install_timeout)
        if r.returncode != 0:
            logger.error("Failed to install %s: %s", name, r.stderr.strip())
            return False
        logger.info("Installed %s", name)
        return True

    def enable_service(self, name: str) -> bool:
        return _run(["systemctl", "enable", "--now", name]).returncode == 0

    def reload_service(self, name: str) -> bool:
        return _run(["systemctl", "reload", name]).returncode == 0

    def mount(self, target: str) -> bool:
        r = _run(["mount", target], timeout=60)
        if r.returncode != 0:
            logger.debug("mount %s: %s", target, r.stderr.strip())
        return r.returncode == 0

    def trigger_lazy_mount(self, target: str) -> bool:
        try:
            os.listdir(target)
            return True
        except OSError as exc:
            logger.debug("Listing %s did not trigger a mount: %s", target, exc)
            return False

    def container_running(self, container_id: str) -> bool:
        r = _run(["pct", "status", container_id])
        return r.returncode == 0 and "running" in r.stdout

    def start_container(self, container_id: str) -> bool:
        r = _run(["pct", "start", container_id], timeout=120)
        if r.returncode != 0:
            logger.warning("pct start %s failed: %s", container_id, r.stderr.strip())
            return False
        time.sleep(self._start_wait)
        return self.container_running(container_id)

    def exec_in_container(self, container_id: str, argv: Sequence[str]) -> bool:
        r = _run(["pct", "exec", container_id, "--", *argv], timeout=60)
        if r.returncode != 0:
            logger.debug("pct exec %s %s: %s", container_id, " ".join(argv), r.stderr.strip())
        return r.returncode == 0

    def active_mounts(self, fs_type: str) -> List[Tuple[str, str]]:
        try:
            return parse_proc_mounts(PROC_MOUNTS.read_text(), fs_type)
        except OSError as exc:
            logger.warning("Unable to query mount state: %s", exc)
            return []
