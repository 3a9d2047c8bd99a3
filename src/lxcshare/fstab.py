"""
Host mount table — CIFS entries in ``/etc/fstab``.

Only uncommented lines whose type field is the share type are
considered. Lines are appended, never edited: if an entry for a
mount point exists it is left exactly as the operator wrote it.

Line format::

    //nas/main /mnt/lxc_shares/main cifs _netdev,x-systemd.automount,...,noperm 0 0
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

from .errors import TableUnreadable
from .models import AccessMode, HostMountEntry, MountMechanism, ShareConfig

logger = logging.getLogger("lxcshare.fstab")

_CREDENTIALS_RE = re.compile(r"(?:^|,)credentials=([^, ]*)")
_READ_ONLY_RE = re.compile(r"(?:^|,)ro(?:,|$)")


def option_value(options: str, pattern: re.Pattern) -> Optional[str]:
    match = pattern.search(options)
    return match.group(1) if match else None


def access_mode_of(options: str) -> AccessMode:
    """``ro`` anywhere in the option list makes the mount read-only."""
    return AccessMode.READ_ONLY if _READ_ONLY_RE.search(options) else AccessMode.READ_WRITE


def credentials_of(options: str) -> Optional[Path]:
    value = option_value(options, _CREDENTIALS_RE)
    return Path(value) if value else None


def format_fstab_line(entry: HostMountEntry, config: ShareConfig) -> str:
    """Build the fstab line for a static CIFS mount.

    Args:
        entry: The mount to encode. ``credentials_path`` must be set.
        config: Supplies the ID mapping and permission bits.

    Returns:
        The line, without a trailing newline.
    """
    options = ",".join([
        "_netdev",
        "x-systemd.automount",
        "noatime",
        entry.access_mode.value,
        f"uid={config.host_uid}",
        f"gid={config.host_gid}",
        f"dir_mode={config.dir_mode}",
        f"file_mode={config.file_mode}",
        f"credentials={entry.credentials_path}",
        f"iocharset={config.iocharset}",
        "noperm",
    ])
    return f"{entry.source} {entry.target} {config.fs_type} {options} 0 0"


def parse_fstab_line(line: str, fs_type: str = "cifs") -> Optional[HostMountEntry]:
    """Parse one fstab line into an entry.

    Returns:
        The entry, or None for comments, blanks, short lines and other
        filesystem types.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    fields = stripped.split()
    if len(fields) < 4 or fields[2] != fs_type:
        return None
    options = fields[3]
    return HostMountEntry(
        source=fields[0],
        target=fields[1],
        mechanism=MountMechanism.STATIC,
        access_mode=access_mode_of(options),
        credentials_path=credentials_of(options),
    )


class HostMountTable:
    """Query and append CIFS entries in the host fstab."""

    def __init__(self, config: ShareConfig) -> None:
        self.config = config
        self.path = config.fstab_path

    def _read_lines(self) -> List[str]:
        # Bytes that are not UTF-8 (latin-1 comments) survive as surrogates.
        if not self.path.exists():
            return []
        try:
            data = self.path.read_bytes()
        except OSError as exc:
            raise TableUnreadable(self.path, str(exc)) from exc
        return data.decode("utf-8", errors="surrogateescape").splitlines()

    def lines(self) -> List[str]:
        """All lines of the table; empty (with a warning) if unreadable."""
        try:
            return self._read_lines()
        except TableUnreadable as exc:
            logger.warning("%s — treating as empty", exc)
            return []

    def list_entries(self) -> List[HostMountEntry]:
        entries = []
        for line in self.lines():
            entry = parse_fstab_line(line, self.config.fs_type)
            if entry is not None:
                entries.append(entry)
        return entries

    def has_entry_for_target(self, target: str) -> bool:
        """True if an uncommented CIFS entry mounts exactly ``target``.

        No path normalisation: ``/mnt/a/`` and ``/mnt/a`` differ.
        """
        return any(e.target == target for e in self.list_entries())

    def append_entry(self, entry: HostMountEntry) -> bool:
        """Append the entry's line unless the identical line is present.

        A write failure is logged and reported as nothing written.

        Returns:
            True if a line was written.
        """
        line = format_fstab_line(entry, self.config)
        if line in self.lines():
            logger.info("fstab already contains entry for %s", entry.target)
            return False

        try:
            prefix = ""
            if self.path.exists() and self.path.stat().st_size > 0:
                with open(self.path, "rb") as fh:
                    fh.seek(-1, 2)
                    if fh.read(1) != b"\n":
                        prefix = "\n"

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", errors="surrogateescape") as fh:
                fh.write(f"{prefix}{line}\n")
        except OSError as exc:
            logger.warning("Unable to write %s: %s — entry for %s not added", self.path, exc, entry.target)
            return False
        logger.info("Added %s -> %s to %s", entry.source, entry.target, self.path)
        return True
