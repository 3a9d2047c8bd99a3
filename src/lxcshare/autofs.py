"""
On-demand mount table — autofs master includes and direct maps.

Every share mounted through autofs gets a pair of files keyed by its
credential name::

    /etc/auto.master.d/proxmox-lxc-cifs-<name>.autofs
        /- /etc/auto.cifs-proxmox-lxc-<name>.map --timeout=60 --ghost

    /etc/auto.cifs-proxmox-lxc-<name>.map
        /mnt/lxc_shares/<name> -fstype=cifs,credentials=...,noperm,rw ://nas/share

Both files are rewritten whole on every write.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .credentials import check_name
from .fstab import access_mode_of, credentials_of
from .models import HostMountEntry, MountMechanism, ShareConfig

logger = logging.getLogger("lxcshare.autofs")


class OnDemandMountTable:
    """Read and write the autofs files owned by lxcshare."""

    def __init__(self, config: ShareConfig) -> None:
        self.config = config

    def master_path(self, name: str) -> Path:
        cfg = self.config
        return cfg.autofs_master_dir / f"{cfg.autofs_master_prefix}-{check_name(name)}.autofs"

    def map_path(self, name: str) -> Path:
        cfg = self.config
        return cfg.autofs_map_dir / f"{cfg.autofs_map_prefix}-{check_name(name)}.map"

    def master_files(self) -> List[Path]:
        master_dir = self.config.autofs_master_dir
        if not master_dir.is_dir():
            return []
        return sorted(master_dir.glob(f"{self.config.autofs_master_prefix}-*.autofs"))

    @staticmethod
    def _map_file_of(master: Path) -> Optional[Path]:
        """Second field of the first line with at least two fields."""
        try:
            for line in master.read_text(encoding="utf-8", errors="surrogateescape").splitlines():
                fields = line.split()
                if len(fields) >= 2:
                    return Path(fields[1])
        except OSError as exc:
            logger.warning("Unable to read %s: %s", master, exc)
        return None

    def _parse_map_line(self, line: str, map_file: Path) -> Optional[HostMountEntry]:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None
        fields = stripped.split()
        if len(fields) < 3:
            return None
        target, options, source = fields[0], fields[1], fields[2]
        return HostMountEntry(
            source=source[1:] if source.startswith(":") else source,
            target=target,
            mechanism=MountMechanism.ON_DEMAND,
            access_mode=access_mode_of(options.lstrip("-")),
            credentials_path=credentials_of(options),
            map_file=map_file,
        )

    def list_entries(self) -> List[HostMountEntry]:
        """All map entries reachable from this tool's master includes."""
        entries: List[HostMountEntry] = []
        for master in self.master_files():
            map_file = self._map_file_of(master)
            if map_file is None or not map_file.is_file():
                continue
            try:
                lines = map_file.read_text(encoding="utf-8", errors="surrogateescape").splitlines()
            except OSError as exc:
                logger.warning("Unable to read %s: %s — skipping", map_file, exc)
                continue
            for line in lines:
                entry = self._parse_map_line(line, map_file)
                if entry is not None:
                    entries.append(entry)
        return entries

    def has_entry_for_target(self, target: str) -> bool:
        return any(e.target == target for e in self.list_entries())

    def format_map_line(self, entry: HostMountEntry) -> str:
        cfg = self.config
        options = ",".join([
            f"-fstype={cfg.fs_type}",
            f"credentials={entry.credentials_path}",
            f"uid={cfg.host_uid}",
            f"gid={cfg.host_gid}",
            f"dir_mode={cfg.dir_mode}",
            f"file_mode={cfg.file_mode}",
            f"iocharset={cfg.iocharset}",
            "noperm",
            entry.access_mode.value,
        ])
        return f"{entry.target} {options} :{entry.source}"

    def write_entry(self, entry: HostMountEntry, name: str) -> Optional[Tuple[Path, Path]]:
        """Write the master include and map file for one share.

        Args:
            entry: The mount. ``credentials_path`` must be set.
            name: Credential name keying both files.

        Returns:
            (master_path, map_path), or None if a file could not be
            written (logged as a warning).

        Raises:
            InvalidName: ``name`` is not a safe file name component.
        """
        master = self.master_path(name)
        map_file = self.map_path(name)

        try:
            master.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Writing autofs master file: %s", master)
            master.write_text(
                f"/- {map_file} --timeout={self.config.autofs_timeout} --ghost\n",
                encoding="utf-8",
            )

            map_file.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Writing autofs map file: %s", map_file)
            map_file.write_text(self.format_map_line(entry) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Unable to write autofs files for %s: %s", entry.target, exc)
            return None
        return master, map_file
