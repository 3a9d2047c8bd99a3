"""Container bind table — ``mpN:`` lines in ``/etc/pve/lxc/<id>.conf``."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

from .errors import ConfigNotFound
from .models import AccessMode, ContainerBindEntry, ShareConfig

logger = logging.getLogger("lxcshare.lxc_config")

_MP_INDEX_RE = re.compile(r"^mp(\d+):")
_MP_LINE_RE = re.compile(r"^mp(\d+):\s*(.*)$")


def parse_bind_line(line: str) -> Optional[ContainerBindEntry]:
    """Parse an ``mpN: <source>,mp=<path>[,opt=...]`` line.

    Storage-backed mount points (``local-lvm:vm-101-disk-1``) parse too;
    only lines without an ``mp=`` option are rejected.
    """
    match = _MP_LINE_RE.match(line.strip())
    if not match:
        return None
    index = int(match.group(1))
    parts = match.group(2).split(",")
    source = parts[0].strip()
    container_path = ""
    access = AccessMode.READ_WRITE
    for option in parts[1:]:
        key, _, value = option.partition("=")
        key = key.strip()
        if key == "mp":
            container_path = value.strip()
        elif key == "ro" and value.strip() == "1":
            access = AccessMode.READ_ONLY
    if not container_path:
        return None
    return ContainerBindEntry(
        index=index,
        source_path=source,
        container_path=container_path,
        access_mode=access,
    )


class ContainerBindTable:
    """Allocate and append bind mount slots in container configs."""

    def __init__(self, config: ShareConfig) -> None:
        self.config_dir = config.lxc_config_dir

    def config_path(self, container_id: str) -> Path:
        return self.config_dir / f"{container_id}.conf"

    @staticmethod
    def _lines(config_path: Path) -> List[str]:
        if not config_path.is_file():
            return []
        return config_path.read_text(encoding="utf-8", errors="surrogateescape").splitlines()

    def next_index(self, config_path: Path) -> int:
        """``max(N) + 1`` over existing ``mpN:`` lines, or 0.

        Compared numerically: after mp9 and mp10 comes mp11.
        """
        indices = [
            int(m.group(1))
            for m in (_MP_INDEX_RE.match(line) for line in self._lines(config_path))
            if m
        ]
        return max(indices) + 1 if indices else 0

    def list_binds(self, config_path: Path) -> List[ContainerBindEntry]:
        binds = []
        for line in self._lines(config_path):
            entry = parse_bind_line(line)
            if entry is not None:
                binds.append(entry)
        return binds

    def find_bind(
        self,
        config_path: Path,
        source_path: str,
        container_path: str,
        access_mode: AccessMode,
    ) -> Optional[ContainerBindEntry]:
        """An existing bind with the same source, target and mode."""
        for entry in self.list_binds(config_path):
            if (
                entry.source_path == source_path
                and entry.container_path == container_path
                and entry.access_mode == access_mode
            ):
                return entry
        return None

    def append_bind(self, config_path: Path, entry: ContainerBindEntry) -> bool:
        """Append the bind line unless the identical line is present.

        Raises:
            ConfigNotFound: The container config does not exist.

        Returns:
            True if a line was written.
        """
        if not config_path.is_file():
            raise ConfigNotFound(config_path)

        line = entry.to_line()
        content = config_path.read_text(encoding="utf-8", errors="surrogateescape")
        if line in content.splitlines():
            logger.info("Bind already present in %s - nothing to change", config_path)
            return False

        prefix = "" if not content or content.endswith("\n") else "\n"
        with open(config_path, "a", encoding="utf-8", errors="surrogateescape") as fh:
            fh.write(f"{prefix}{line}\n")
        logger.info("Added bind to %s as mp%d", config_path, entry.index)
        return True
