"""Snapshot of the CIFS mounts a host already has.

Shown before any change so the operator can decide whether to create a
new host mount or reuse one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .autofs import OnDemandMountTable
from .fstab import HostMountTable
from .models import HostMountEntry, ShareConfig
from .system import SystemOperations


@dataclass
class HostInventory:
    """What is configured and what is mounted right now.

    Attributes:
        fstab: CIFS entries in the host fstab.
        mounted: (share, mount point) of active CIFS mounts.
        autofs_mounts: (map, mount point) of active autofs control mounts.
        autofs: Map entries from this tool's autofs includes.
    """

    fstab: List[HostMountEntry] = field(default_factory=list)
    mounted: List[Tuple[str, str]] = field(default_factory=list)
    autofs_mounts: List[Tuple[str, str]] = field(default_factory=list)
    autofs: List[HostMountEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fstab": [e.model_dump(mode="json") for e in self.fstab],
            "mounted": [{"source": s, "target": t} for s, t in self.mounted],
            "autofs_mounts": [{"source": s, "target": t} for s, t in self.autofs_mounts],
            "autofs": [e.model_dump(mode="json") for e in self.autofs],
        }


def collect_inventory(config: ShareConfig, system: SystemOperations) -> HostInventory:
    return HostInventory(
        fstab=HostMountTable(config).list_entries(),
        mounted=system.active_mounts(config.fs_type),
        autofs_mounts=system.active_mounts("autofs"),
        autofs=OnDemandMountTable(config).list_entries(),
    )
