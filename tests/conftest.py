"""Shared test fixtures for lxcshare."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Set, Tuple

import pytest

from lxcshare.models import ShareConfig
from lxcshare.system import SystemOperations


class FakeSystem(SystemOperations):
    """In-memory SystemOperations that records every call."""

    def __init__(
        self,
        helper: bool = True,
        installable: bool = False,
        mount_ok: bool = True,
        running: bool = True,
        startable: bool = True,
        exec_ok: bool = True,
        group_exists: bool = False,
    ) -> None:
        self.helper = helper
        self.installable = installable
        self.mount_ok = mount_ok
        self.running = running
        self.startable = startable
        self.exec_ok = exec_ok
        self.group_exists = group_exists
        self.failing: Set[str] = set()
        self.calls: List[Tuple] = []
        self.mounts: List[Tuple[str, str]] = []

    def ensure_dir(self, path: str) -> None:
        self.calls.append(("ensure_dir", path))

    def helper_installed(self) -> bool:
        return self.helper

    def install_package(self, name: str) -> bool:
        self.calls.append(("install_package", name))
        if self.installable:
            self.helper = True
        return self.installable

    def enable_service(self, name: str) -> bool:
        self.calls.append(("enable_service", name))
        return True

    def reload_service(self, name: str) -> bool:
        self.calls.append(("reload_service", name))
        return True

    def mount(self, target: str) -> bool:
        self.calls.append(("mount", target))
        return self.mount_ok

    def trigger_lazy_mount(self, target: str) -> bool:
        self.calls.append(("trigger_lazy_mount", target))
        return True

    def container_running(self, container_id: str) -> bool:
        return self.running

    def start_container(self, container_id: str) -> bool:
        self.calls.append(("start_container", container_id))
        if self.startable:
            self.running = True
        return self.startable

    def exec_in_container(self, container_id: str, argv: Sequence[str]) -> bool:
        self.calls.append(("exec", container_id, tuple(argv)))
        if not self.exec_ok or argv[0] in self.failing:
            return False
        if list(argv[:2]) == ["getent", "group"]:
            return self.group_exists
        return True

    def active_mounts(self, fs_type: str) -> List[Tuple[str, str]]:
        return [m for m in self.mounts if fs_type == "cifs"]

    def called(self, name: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """A fake host filesystem root with the directories lxcshare touches."""
    root = tmp_path / "host"
    for sub in ("etc/auto.master.d", "etc/pve/lxc", "root", "mnt/lxc_shares"):
        (root / sub).mkdir(parents=True)
    (root / "etc" / "fstab").write_text(
        "# /etc/fstab: static file system information.\n"
        "proc /proc proc defaults 0 0\n"
        "/dev/pve/root / ext4 errors=remount-ro 0 1\n"
    )
    return root


@pytest.fixture
def config(host_root: Path) -> ShareConfig:
    """ShareConfig with every path under the fake host root."""
    return ShareConfig(
        fstab_path=host_root / "etc" / "fstab",
        autofs_master_dir=host_root / "etc" / "auto.master.d",
        autofs_map_dir=host_root / "etc",
        credentials_dir=host_root / "root",
        lxc_config_dir=host_root / "etc" / "pve" / "lxc",
    )


@pytest.fixture
def system() -> FakeSystem:
    return FakeSystem()


@pytest.fixture
def lxc_config(config: ShareConfig) -> Path:
    """A provisioned container 101 with one storage-backed mount point."""
    path = config.lxc_config_dir / "101.conf"
    path.write_text(
        "arch: amd64\n"
        "hostname: media\n"
        "memory: 2048\n"
        "mp0: local-lvm:vm-101-disk-1,mp=/data,size=8G\n"
        "rootfs: local-lvm:vm-101-disk-0,size=8G\n"
        "unprivileged: 1\n"
    )
    return path
